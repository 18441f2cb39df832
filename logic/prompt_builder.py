from dataclasses import dataclass, field
from typing import List, Optional

from state import TimerMode


@dataclass
class PromptContext:
    """What the assistant should know about the user's current state."""
    active_title: Optional[str] = None
    active_note: Optional[str] = None
    task_titles: List[str] = field(default_factory=list)
    timer_mode: TimerMode = TimerMode.FOCUS
    minutes_left: int = 0


def build_context(tasks, timer) -> PromptContext:
    """Snapshot a task repository and timer into a PromptContext."""
    active = tasks.active_task
    return PromptContext(
        active_title=active.title if active else None,
        active_note=active.note if active else None,
        task_titles=tasks.titles(),
        timer_mode=timer.mode,
        minutes_left=timer.minutes_left,
    )


def describe_context(ctx: PromptContext) -> str:
    if ctx.active_title:
        task_part = f'Focusing on: "{ctx.active_title}".'
        if ctx.active_note:
            task_part += f' Note: "{ctx.active_note}".'
    else:
        task_part = f"Current Tasks: {', '.join(ctx.task_titles) or 'None'}."
    timer_part = f"Timer: {ctx.timer_mode.value}, {ctx.minutes_left}m left."
    return f"[Context: {task_part} {timer_part}]"


def build_prompt(user_text: str, ctx: Optional[PromptContext]) -> str:
    """Combine the user's message with the ambient context into one entry."""
    if ctx is None:
        return user_text
    return f"{describe_context(ctx)}\n\nUser Input: {user_text}"


__all__ = ["PromptContext", "build_context", "describe_context", "build_prompt"]
