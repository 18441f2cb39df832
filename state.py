"""Data models shared by the task, timer and chat layers.

Persisted records keep the field names the stored JSON has always used
(``estPomodoros``, ``isCompleted`` ...); Python code uses the snake_case names.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from utils import new_id


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


# Single mapping from stored/wire role tags to Role. "model" is the tag older
# transcripts used for assistant turns.
ROLE_TAGS: Dict[str, Role] = {
    "user": Role.USER,
    "assistant": Role.ASSISTANT,
    "model": Role.ASSISTANT,
    "system": Role.SYSTEM,
}


def parse_role(tag) -> Role:
    if isinstance(tag, Role):
        return tag
    try:
        return ROLE_TAGS[str(tag).lower()]
    except KeyError:
        raise ValueError(f"unknown role tag: {tag!r}") from None


class TimerMode(str, Enum):
    FOCUS = "pomodoro"
    SHORT_BREAK = "shortBreak"
    LONG_BREAK = "longBreak"

    @property
    def is_break(self) -> bool:
        return self is not TimerMode.FOCUS


class Task(BaseModel):
    """A planned piece of work measured in focus sessions."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_id)
    title: str = Field(min_length=1)
    estimated_units: int = Field(default=1, ge=1, alias="estPomodoros")
    completed_units: int = Field(default=0, ge=0, alias="actPomodoros")
    is_done: bool = Field(default=False, alias="isCompleted")
    note: Optional[str] = None

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class SuggestedTask(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    est_pomodoros: int = Field(default=1, ge=1, alias="estPomodoros")


class AssistantReply(BaseModel):
    """The ``{text, suggestedTasks}`` payload the assistant is asked to produce."""
    model_config = ConfigDict(populate_by_name=True)

    text: str
    suggested_tasks: List[SuggestedTask] = Field(default_factory=list, alias="suggestedTasks")

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


class ChatMessage(BaseModel):
    id: str = Field(default_factory=new_id)
    role: Role
    text: str
    suggestions: Optional[List[SuggestedTask]] = None

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, value):
        return parse_role(value)


class StoredEntry(BaseModel):
    """One persisted transcript row."""
    role: Role
    content: str

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, value):
        return parse_role(value)


class WindowEntry(BaseModel):
    """One role-tagged entry of the conversation sent to the service."""
    role: Role
    content: str

    def to_wire(self) -> dict:
        return {"role": self.role.value, "content": self.content}


__all__ = [
    "Role",
    "ROLE_TAGS",
    "parse_role",
    "TimerMode",
    "Task",
    "SuggestedTask",
    "AssistantReply",
    "ChatMessage",
    "StoredEntry",
    "WindowEntry",
]
