"""Error kinds shared by the task, timer and chat layers.

None of these is fatal to a running session: callers either reject the
operation up front (validation), treat it as a no-op (not found), or degrade
(service, parse and persistence failures).
"""


class TomatodoError(Exception):
    """Base class for application errors."""


class ValidationError(TomatodoError, ValueError):
    """User input was empty or otherwise invalid."""


class NotFoundError(TomatodoError, KeyError):
    """An operation referenced a task or message id that no longer exists."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class ServiceError(TomatodoError):
    """The text-generation service call failed."""


class ParseError(TomatodoError):
    """An assistant response was not the expected JSON payload."""


class PersistenceError(TomatodoError):
    """A store read or write failed."""


__all__ = [
    "TomatodoError",
    "ValidationError",
    "NotFoundError",
    "ServiceError",
    "ParseError",
    "PersistenceError",
]
