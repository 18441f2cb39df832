import json
import threading
import time

import logging_bus
from conftest import FakeClient
from logic.conversation import ConversationWindow
from logic.prompt_builder import PromptContext, build_prompt
from services.openai_helper import FALLBACK_MESSAGE, SYSTEM_INSTRUCTION, AssistantSession
from state import Role, TimerMode


def test_window_keeps_instruction_and_recent_entries():
    window = ConversationWindow("rules", size=3)
    for i in range(5):
        window.append(Role.USER, f"u{i}")
    assert window.trim() == 2
    assert [e.content for e in window.entries] == ["rules", "u2", "u3", "u4"]
    assert window.trim() == 0


def test_send_trims_before_each_request():
    client = FakeClient()
    session = AssistantSession(client, window_size=4)
    for i in range(5):
        session.send(f"msg {i}")
    for call in client.calls:
        assert len(call) <= 5
        assert call[0] == {"role": "system", "content": SYSTEM_INSTRUCTION}
    last = client.calls[-1]
    assert last[-1] == {"role": "user", "content": "msg 4"}
    assert [m["role"] for m in last[1:]] == ["assistant", "user", "assistant", "user"]


def test_send_records_raw_reply_in_window():
    raw = json.dumps({"text": "hi", "suggestedTasks": []})
    session = AssistantSession(FakeClient([raw]))
    result = session.send("hello")
    assert result.ok and result.text == raw
    assert session.window.entries[-1].role is Role.ASSISTANT
    assert session.window.entries[-1].content == raw


def test_service_failure_returns_fallback():
    client = FakeClient(error=ConnectionError("offline"))
    session = AssistantSession(client)
    result = session.send("hello")
    assert result.ok is False
    assert result.text == FALLBACK_MESSAGE
    assert len(client.calls) == 1
    assert session.window.entries[-1].role is Role.USER
    errors = [e for e in logging_bus.snapshot() if e.kind == "NETWORK" and e.level == "ERROR"]
    assert errors and errors[-1].meta["error"] == "offline"


def test_non_string_response_is_a_service_failure():
    class OddClient:
        def complete(self, messages):
            return None

    result = AssistantSession(OddClient()).send("hello")
    assert result.ok is False


def test_reset_starts_fresh_window():
    session = AssistantSession(FakeClient())
    session.send("one")
    generation = session.generation
    session.reset()
    assert session.generation == generation + 1
    assert [e.role for e in session.window.entries] == [Role.SYSTEM]


def test_reply_arriving_after_reset_is_not_recorded():
    class ResettingClient:
        def complete(self, messages):
            session.reset()
            return "late"

    session = AssistantSession(ResettingClient())
    result = session.send("one")
    assert result.generation == session.generation - 1
    assert [e.role for e in session.window.entries] == [Role.SYSTEM]


def test_context_block_with_active_task():
    ctx = PromptContext(active_title="Write report", active_note="intro first",
                        task_titles=["Write report"], timer_mode=TimerMode.FOCUS, minutes_left=12)
    assert build_prompt("What next?", ctx) == (
        '[Context: Focusing on: "Write report". Note: "intro first". Timer: pomodoro, 12m left.]'
        "\n\nUser Input: What next?"
    )


def test_context_block_lists_tasks_without_active():
    ctx = PromptContext(task_titles=["A", "B"], timer_mode=TimerMode.SHORT_BREAK, minutes_left=4)
    assert build_prompt("hi", ctx).startswith("[Context: Current Tasks: A, B. Timer: shortBreak, 4m left.]")
    empty = PromptContext(timer_mode=TimerMode.FOCUS, minutes_left=25)
    assert "Current Tasks: None." in build_prompt("hi", empty)


def test_send_includes_context_in_outbound_entry():
    client = FakeClient()
    session = AssistantSession(client)
    session.send("plan my day", PromptContext(task_titles=["A"], minutes_left=25))
    content = client.calls[0][-1]["content"]
    assert content.endswith("User Input: plan my day")
    assert "Current Tasks: A." in content


def test_overlapping_requests_keep_window_consistent():
    second_sent = threading.Event()

    class SlowFirstClient:
        def __init__(self):
            self.calls = []

        def complete(self, messages):
            self.calls.append([m["content"] for m in messages])
            if messages[-1]["content"] == "one":
                assert second_sent.wait(2)
                return "first reply"
            second_sent.set()
            return "second reply"

    client = SlowFirstClient()
    session = AssistantSession(client, window_size=4)
    first = threading.Thread(target=session.send, args=("one",))
    first.start()
    while not client.calls:
        time.sleep(0.01)
    second = session.send("two")
    first.join(2)

    assert second.text == "second reply"
    assert client.calls[1][-2:] == ["one", "two"]
    contents = [e.content for e in session.window.entries]
    assert contents[:3] == [SYSTEM_INSTRUCTION, "one", "two"]
    assert sorted(contents[3:]) == ["first reply", "second reply"]
    session.send("three")
    assert len(client.calls[2]) == 5
    assert client.calls[2][0] == SYSTEM_INSTRUCTION
    assert client.calls[2][-1] == "three"
