"""Turning assistant replies into tasks.

Replies are parsed leniently: anything that is not the expected JSON object
is shown as plain text with no suggestions.
"""
from __future__ import annotations

import json
import math
import re
from typing import List

from errors import ParseError, ValidationError
from logging_bus import emit
from state import AssistantReply, SuggestedTask, Task
from utils import clamp, round_half_up

MIN_ESTIMATE = 1
MAX_EDIT_ESTIMATE = 10

_FENCE = re.compile(r"^\s*```(?:json)?\s*\n(.*?)\n?```\s*$", re.DOTALL | re.IGNORECASE)


def sanitize_estimate(value) -> int:
    """Coerce an ``estPomodoros`` value to an integer of at least 1."""
    if isinstance(value, bool) or value is None:
        return MIN_ESTIMATE
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return MIN_ESTIMATE
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return MIN_ESTIMATE
    return max(MIN_ESTIMATE, round_half_up(value))


def sanitize_suggestions(items) -> List[SuggestedTask]:
    if not isinstance(items, list):
        return []
    cleaned = []
    for item in items:
        if not isinstance(item, dict):
            continue
        title = item.get("title")
        if not isinstance(title, str) or not title.strip():
            continue
        cleaned.append(SuggestedTask(title=title.strip(),
                                     est_pomodoros=sanitize_estimate(item.get("estPomodoros"))))
    return cleaned


def decode_reply(raw: str) -> AssistantReply:
    """Strictly decode the ``{text, suggestedTasks}`` payload.

    Raises ParseError when ``raw`` is not that shape.
    """
    body = raw
    fenced = _FENCE.match(raw or "")
    if fenced:
        body = fenced.group(1)
    try:
        data = json.loads(body)
    except (TypeError, ValueError) as e:
        raise ParseError(f"Response is not JSON: {e}") from e
    if not isinstance(data, dict) or not isinstance(data.get("text"), str):
        raise ParseError("Response JSON has no text field")
    return AssistantReply(text=data["text"],
                          suggested_tasks=sanitize_suggestions(data.get("suggestedTasks")))


def parse_reply(raw: str) -> AssistantReply:
    try:
        return decode_reply(raw)
    except ParseError as e:
        emit("WARN", "CHAT", "Showing raw response", reason=str(e))
        return AssistantReply(text=raw or "", suggested_tasks=[])


class SuggestionReconciler:
    """Maps suggestions held in the transcript onto the task repository."""

    def __init__(self, tasks, transcript):
        self.tasks = tasks
        self.transcript = transcript

    def suggestion(self, message_id: str, index: int) -> SuggestedTask:
        message = self.transcript.find(message_id)
        suggestions = message.suggestions or []
        if not 0 <= index < len(suggestions):
            raise IndexError(f"Message {message_id} has no suggestion {index}")
        return suggestions[index]

    def is_added(self, title: str) -> bool:
        # Title equality, not identity: any task with the same title counts.
        return self.tasks.has_title(title)

    def accept(self, message_id: str, index: int) -> Task:
        item = self.suggestion(message_id, index)
        task = self.tasks.add(item.title, item.est_pomodoros)
        emit("INFO", "CHAT", "Accepted suggestion", message=message_id, index=index)
        return task

    def edit_title(self, message_id: str, index: int, title: str) -> SuggestedTask:
        item = self.suggestion(message_id, index)
        if not (title or "").strip():
            raise ValidationError("Suggestion title cannot be empty")
        item.title = title.strip()
        return item

    def adjust_estimate(self, message_id: str, index: int, delta: int) -> SuggestedTask:
        item = self.suggestion(message_id, index)
        item.est_pomodoros = clamp(item.est_pomodoros + delta, MIN_ESTIMATE, MAX_EDIT_ESTIMATE)
        return item


__all__ = [
    "sanitize_estimate",
    "sanitize_suggestions",
    "decode_reply",
    "parse_reply",
    "SuggestionReconciler",
    "MIN_ESTIMATE",
    "MAX_EDIT_ESTIMATE",
]
