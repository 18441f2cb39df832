import json
import time

import pytest

import logging_bus as bus
from context import AppContext


@pytest.fixture(autouse=True)
def reset_bus():
    bus.clear()
    yield
    bus.set_verbose(True)
    bus.set_log_level_filter({"INFO": True, "WARN": True, "ERROR": True})
    bus.set_kind_filter({k: True for k in bus.KINDS})
    bus.set_file_logger(None)


def test_emit_records_and_notifies():
    seen = []
    bus.subscribe(seen.append)
    try:
        bus.emit("INFO", "TASKS", "Added task", id="t1")
    finally:
        bus.unsubscribe(seen.append)
    events = bus.snapshot()
    assert events[-1].msg == "Added task"
    assert events[-1].meta == {"id": "t1"}
    assert seen == [events[-1]]


def test_failing_listener_does_not_block_others():
    seen = []

    def broken(evt):
        raise RuntimeError("listener bug")

    bus.subscribe(broken)
    bus.subscribe(seen.append)
    try:
        bus.emit("WARN", "CHAT", "Careful")
    finally:
        bus.unsubscribe(broken)
        bus.unsubscribe(seen.append)
    assert len(seen) == 1


def test_filters_and_verbosity():
    bus.set_kind_filter({"TIMER": False})
    bus.emit("INFO", "TIMER", "hidden")
    bus.set_log_level_filter({"WARN": False})
    bus.emit("WARN", "CHAT", "hidden too")
    bus.set_verbose(False)
    bus.emit("INFO", "CHAT", "quiet")
    bus.emit("INFO", "SYSTEM", "still shown")
    bus.emit("ERROR", "STORE", "always shown")
    assert [e.msg for e in bus.snapshot()] == ["still shown", "always shown"]


def test_file_logger_writes_json_lines(tmp_path):
    path = tmp_path / "activity.jsonl"
    bus.set_file_logger(str(path))
    bus.emit("ERROR", "NETWORK", "Request failed", error="offline")
    deadline = time.time() + 2
    while time.time() < deadline and not (path.exists() and path.read_text().strip()):
        time.sleep(0.02)
    record = json.loads(path.read_text().splitlines()[-1])
    assert record["kind"] == "NETWORK"
    assert record["meta"] == {"error": "offline"}


def test_ring_keeps_most_recent_events():
    bus.set_ring_limit(10)
    try:
        for i in range(250):
            bus.emit("WARN", "TIMER", f"tick {i}")
        events = bus.snapshot()
    finally:
        bus.set_ring_limit(2000)
    assert len(events) == 200
    assert events[-1].msg == "tick 249"
    assert events[0].msg == "tick 50"


def test_settings_configure_the_bus(tmp_path, store, client, alerts):
    AppContext(data_dir=tmp_path, settings={"muted_log_kinds": ["TIMER"], "log_ring_limit": 200},
               store=store, client=client, alerts=alerts, load_env=False)
    try:
        for i in range(210):
            bus.emit("INFO", "TASKS", f"task {i}")
        bus.emit("INFO", "TIMER", "muted")
        events = bus.snapshot()
    finally:
        bus.set_ring_limit(2000)
    assert len(events) == 200
    assert all(e.kind != "TIMER" for e in events)
