import json

import pytest

from context import AppContext
from persistence import MemoryStore
from services.alerts import Alerts


class FakeClient:
    """Completion client returning canned responses and recording requests."""

    def __init__(self, responses=None, error=None):
        self.responses = list(responses or [])
        self.error = error
        self.calls = []

    def complete(self, messages):
        self.calls.append([dict(m) for m in messages])
        if self.error is not None:
            raise self.error
        if self.responses:
            return self.responses.pop(0)
        return json.dumps({"text": "ok", "suggestedTasks": []})


class FakeScheduler:
    """Stand-in for Tk's after/after_cancel."""

    def __init__(self):
        self.pending = {}
        self.cancelled = []
        self._next = 0

    def after(self, ms, callback):
        self._next += 1
        self.pending[self._next] = (ms, callback)
        return self._next

    def after_cancel(self, handle):
        self.cancelled.append(handle)
        self.pending.pop(handle, None)

    def fire(self):
        handle = next(iter(self.pending))
        _, callback = self.pending.pop(handle)
        callback()


def run_out(timer):
    """Start the timer and tick until the current run completes."""
    timer.start()
    while timer.is_running:
        timer.tick()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def client():
    return FakeClient()


@pytest.fixture
def alerts():
    sent = []
    sounds = []
    a = Alerts(notifier=lambda title, body: sent.append((title, body)), player=lambda: sounds.append(1))
    a.sent = sent
    a.sounds = sounds
    return a


@pytest.fixture
def ctx(tmp_path, store, client, alerts):
    return AppContext(data_dir=tmp_path, store=store, client=client, alerts=alerts, load_env=False)
