"""Pomodoro countdown with the focus / short break / long break cycle."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from pydantic import RootModel, field_validator

from errors import ValidationError
from logging_bus import emit
from persistence import TIMER_SETTINGS_KEY, KeyValueStore
from state import TimerMode
from utils import format_clock

TICK_MS = 1000
LONG_BREAK_INTERVAL = 4

DEFAULT_DURATIONS: Dict[TimerMode, int] = {
    TimerMode.FOCUS: 25 * 60,
    TimerMode.SHORT_BREAK: 5 * 60,
    TimerMode.LONG_BREAK: 15 * 60,
}


class TimerSettings(RootModel[Dict[TimerMode, int]]):
    """Duration in seconds for each timer mode."""

    @field_validator("root")
    @classmethod
    def check_durations(cls, value):
        for mode, seconds in value.items():
            if seconds < 1:
                raise ValueError(f"{mode.value} duration must be positive")
        return {**DEFAULT_DURATIONS, **value}

    def __getitem__(self, mode: TimerMode) -> int:
        return self.root[mode]

    @classmethod
    def defaults(cls) -> "TimerSettings":
        return cls(dict(DEFAULT_DURATIONS))

    @classmethod
    def from_minutes(cls, focus: int, short_break: int, long_break: int) -> "TimerSettings":
        values = {
            TimerMode.FOCUS: focus,
            TimerMode.SHORT_BREAK: short_break,
            TimerMode.LONG_BREAK: long_break,
        }
        for mode, minutes in values.items():
            if isinstance(minutes, bool) or not isinstance(minutes, int) or minutes < 1:
                raise ValidationError(f"{mode.value} minutes must be a positive integer")
        return cls({mode: minutes * 60 for mode, minutes in values.items()})

    @classmethod
    def load(cls, store: KeyValueStore) -> "TimerSettings":
        raw = store.get(TIMER_SETTINGS_KEY)
        if not raw:
            return cls.defaults()
        try:
            return cls.model_validate_json(raw)
        except ValueError as e:
            emit("WARN", "STORE", "Discarded malformed timer settings", error=str(e))
            return cls.defaults()

    def save(self, store: KeyValueStore) -> bool:
        try:
            return bool(store.set(TIMER_SETTINGS_KEY, self.model_dump_json()))
        except Exception as e:
            emit("ERROR", "STORE", "Write failed", key=TIMER_SETTINGS_KEY, error=str(e))
            return False


@dataclass
class TimerCompletion:
    finished_mode: TimerMode
    next_mode: TimerMode
    completed_focus_count: int


class TimerStateMachine:
    """Countdown clock driven by a one-second tick.

    ``scheduler`` follows Tk's ``after(ms, callback)`` / ``after_cancel(handle)``
    API; the Tk root can be passed directly. Without a scheduler the caller
    drives ``tick()`` itself.
    """

    def __init__(self, durations: Optional[TimerSettings] = None, scheduler=None,
                 long_break_interval: int = LONG_BREAK_INTERVAL):
        self.durations = durations or TimerSettings.defaults()
        self.scheduler = scheduler
        self.long_break_interval = long_break_interval
        self.mode = TimerMode.FOCUS
        self.remaining_seconds = self.durations[TimerMode.FOCUS]
        self.is_running = False
        self.completed_focus_count = 0
        self._listeners: List[Callable[[TimerCompletion], None]] = []
        self._tick_listeners: List[Callable[[], None]] = []
        self._pending = None

    def add_listener(self, callback: Callable[[TimerCompletion], None]) -> None:
        """Call ``callback`` with a TimerCompletion whenever a run reaches zero."""
        self._listeners.append(callback)

    def add_tick_listener(self, callback: Callable[[], None]) -> None:
        self._tick_listeners.append(callback)

    # -------- tick scheduling ---------
    def _schedule(self) -> None:
        if self.scheduler is not None and self._pending is None:
            self._pending = self.scheduler.after(TICK_MS, self._on_scheduled_tick)

    def _cancel(self) -> None:
        if self.scheduler is not None and self._pending is not None:
            self.scheduler.after_cancel(self._pending)
        self._pending = None

    def _on_scheduled_tick(self) -> None:
        self._pending = None
        self.tick()
        if self.is_running:
            self._schedule()

    # -------- transitions ---------
    def start(self) -> bool:
        if self.remaining_seconds <= 0:
            return False
        if not self.is_running:
            self.is_running = True
            emit("INFO", "TIMER", "Started", mode=self.mode.value, remaining=self.remaining_seconds)
        self._schedule()
        return True

    def pause(self) -> None:
        self.is_running = False
        self._cancel()

    def switch_mode(self, mode: TimerMode) -> None:
        self.pause()
        self.mode = TimerMode(mode)
        self.remaining_seconds = self.durations[self.mode]

    def tick(self) -> None:
        if not self.is_running:
            return
        self.remaining_seconds = max(0, self.remaining_seconds - 1)
        if self.remaining_seconds == 0:
            self._on_zero()
        for cb in list(self._tick_listeners):
            cb()

    def _on_zero(self) -> None:
        self.pause()
        finished = self.mode
        if finished is TimerMode.FOCUS:
            self.completed_focus_count += 1
            if self.completed_focus_count % self.long_break_interval == 0:
                next_mode = TimerMode.LONG_BREAK
            else:
                next_mode = TimerMode.SHORT_BREAK
        else:
            next_mode = TimerMode.FOCUS
            if finished is TimerMode.LONG_BREAK:
                self.completed_focus_count = 0
        self.switch_mode(next_mode)
        event = TimerCompletion(finished, next_mode, self.completed_focus_count)
        emit("INFO", "TIMER", "Completed", finished=finished.value, next=next_mode.value,
             count=self.completed_focus_count)
        for cb in list(self._listeners):
            cb(event)

    def apply_durations(self, durations: TimerSettings) -> None:
        self.durations = durations
        if not self.is_running:
            self.remaining_seconds = durations[self.mode]

    def destroy(self) -> None:
        self.pause()
        self._listeners.clear()
        self._tick_listeners.clear()

    # -------- display ---------
    @property
    def minutes_left(self) -> int:
        return self.remaining_seconds // 60

    def clock(self) -> str:
        return format_clock(self.remaining_seconds)


__all__ = [
    "TimerSettings",
    "TimerCompletion",
    "TimerStateMachine",
    "DEFAULT_DURATIONS",
    "LONG_BREAK_INTERVAL",
    "TICK_MS",
]
