import math
import uuid


def approx_tokens(text: str) -> int:
    """Rough token estimator (1 token ~4 chars)."""
    return max(1, len(text) // 4)


def new_id() -> str:
    return uuid.uuid4().hex


def format_clock(seconds: int) -> str:
    """Render seconds as ``MM:SS``."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))
