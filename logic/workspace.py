"""The single actor tying tasks, timer and chat together.

UI events call into a Workspace; the Workspace mutates the repositories and
reacts to timer completions and assistant replies.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from errors import NotFoundError, ValidationError
from logging_bus import emit
from services.openai_helper import AssistantResult, AssistantSession
from state import AssistantReply, ChatMessage, Task, TimerMode

from .prompt_builder import PromptContext, build_context
from .suggestions import SuggestionReconciler, parse_reply
from .tasks import TaskRepository
from .timer import TimerCompletion, TimerSettings, TimerStateMachine
from .transcript import ChatTranscript

NOTIFICATIONS = {
    TimerMode.SHORT_BREAK: ("Pomodoro Complete!", "Time for a short break."),
    TimerMode.LONG_BREAK: ("Pomodoro Complete!", "Great job! Take a long break."),
    TimerMode.FOCUS: ("Break Over!", "Time to focus again."),
}


@dataclass
class ChatRequest:
    text: str
    context: PromptContext
    generation: int


class Workspace:
    def __init__(self, ctx, scheduler=None):
        self.ctx = ctx
        self.tasks = TaskRepository(ctx.store)
        self.timer_settings = TimerSettings.load(ctx.store)
        self.timer = TimerStateMachine(
            self.timer_settings,
            scheduler=scheduler,
            long_break_interval=ctx.settings['long_break_interval'],
        )
        self.session = AssistantSession(ctx.client, window_size=ctx.settings['window_size'])
        self.transcript = ChatTranscript(ctx.store, session=self.session)
        self.suggestions = SuggestionReconciler(self.tasks, self.transcript)
        self.timer.add_listener(self._on_timer_complete)

    def load(self) -> None:
        self.tasks.load()
        self.transcript.load_history()
        emit("INFO", "SYSTEM", "Workspace loaded", tasks=len(self.tasks), messages=len(self.transcript))

    def close(self) -> None:
        self.timer.destroy()

    # -------- timer ---------
    def _on_timer_complete(self, event: TimerCompletion) -> None:
        if event.finished_mode is TimerMode.FOCUS and self.tasks.active_task_id is not None:
            self._quietly(self.tasks.record_focus_completion, self.tasks.active_task_id)
        title, body = NOTIFICATIONS[event.next_mode]
        self.ctx.alerts.play_sound()
        self.ctx.alerts.notify(title, body)

    def update_timer_settings(self, focus: int, short_break: int, long_break: int) -> TimerSettings:
        """Apply new durations given in minutes and persist them."""
        settings = TimerSettings.from_minutes(focus, short_break, long_break)
        self.timer_settings = settings
        self.timer.apply_durations(settings)
        settings.save(self.ctx.store)
        return settings

    # -------- tasks ---------
    def _quietly(self, op, *args, **kwargs):
        try:
            return op(*args, **kwargs)
        except NotFoundError as e:
            emit("WARN", "TASKS", "Ignored operation on missing item", op=op.__name__, error=str(e))
            return None

    def add_task(self, title: str, estimated_units: int = 1) -> Task:
        return self.tasks.add(title, estimated_units)

    def update_task(self, task_id: str, **fields) -> Optional[Task]:
        return self._quietly(self.tasks.update, task_id, **fields)

    def toggle_task(self, task_id: str) -> Optional[Task]:
        return self._quietly(self.tasks.toggle_done, task_id)

    def delete_task(self, task_id: str) -> Optional[Task]:
        return self._quietly(self.tasks.remove, task_id)

    def select_task(self, task_id: Optional[str]) -> None:
        self._quietly(self.tasks.select, task_id)

    def move_task(self, from_index: int, to_index: int) -> None:
        self.tasks.reorder(from_index, to_index)

    # -------- chat ---------
    def begin_chat(self, text: str) -> ChatRequest:
        text = (text or "").strip()
        if not text:
            raise ValidationError("Message cannot be empty")
        self.transcript.add_user(text)
        return ChatRequest(text, build_context(self.tasks, self.timer), self.session.generation)

    def resolve_chat(self, request: ChatRequest) -> AssistantResult:
        """Blocking service call; safe to run on a worker thread."""
        return self.session.send(request.text, request.context)

    def apply_chat(self, request: ChatRequest, result: AssistantResult) -> Optional[ChatMessage]:
        if result.generation != self.session.generation or request.generation != self.session.generation:
            emit("WARN", "CHAT", "Discarded stale reply", generation=result.generation)
            return None
        if result.ok:
            reply = parse_reply(result.text)
        else:
            reply = AssistantReply(text=result.text, suggested_tasks=[])
        return self.transcript.add_assistant(reply)

    def send_chat(self, text: str) -> Optional[ChatMessage]:
        request = self.begin_chat(text)
        return self.apply_chat(request, self.resolve_chat(request))

    def clear_chat(self) -> None:
        self.transcript.clear()

    def accept_suggestion(self, message_id: str, index: int) -> Task:
        return self.suggestions.accept(message_id, index)

    def suggestion_added(self, title: str) -> bool:
        return self.suggestions.is_added(title)


__all__ = ["Workspace", "ChatRequest", "NOTIFICATIONS"]
