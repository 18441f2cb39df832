from typing import List

from state import Role, WindowEntry


class ConversationWindow:
    """Role-tagged entries sent to the text-generation service.

    The first entry is always the fixed instruction. ``trim`` keeps it plus the
    ``size`` most recent conversational entries.
    """

    def __init__(self, instruction: str, size: int = 10):
        if size < 1:
            raise ValueError("window size must be at least 1")
        self.instruction = instruction
        self.size = size
        self.entries: List[WindowEntry] = []
        self.reset()

    def __len__(self) -> int:
        return len(self.entries)

    def reset(self) -> None:
        self.entries = [WindowEntry(role=Role.SYSTEM, content=self.instruction)]

    def append(self, role: Role, content: str) -> None:
        self.entries.append(WindowEntry(role=role, content=content))

    def trim(self) -> int:
        """Drop the oldest conversational entries; return how many were dropped."""
        overflow = len(self.entries) - 1 - self.size
        if overflow <= 0:
            return 0
        del self.entries[1 : 1 + overflow]
        return overflow

    def to_wire(self) -> List[dict]:
        return [e.to_wire() for e in self.entries]


__all__ = ["ConversationWindow"]
