import json

import pytest

from errors import ParseError, ValidationError
from logic.suggestions import SuggestionReconciler, decode_reply, parse_reply, sanitize_estimate
from logic.tasks import TaskRepository
from logic.transcript import ChatTranscript
from persistence import MemoryStore
from state import AssistantReply, SuggestedTask


@pytest.mark.parametrize("value,expected", [
    ("abc", 1),
    (0, 1),
    (None, 1),
    (-3, 1),
    (3.7, 4),
    (2.5, 3),
    ("3", 3),
    (True, 1),
    (float("nan"), 1),
    ([2], 1),
])
def test_sanitize_estimate(value, expected):
    assert sanitize_estimate(value) == expected


def test_missing_estimate_defaults_to_one():
    reply = parse_reply(json.dumps({"text": "t", "suggestedTasks": [{"title": "Plan"}]}))
    assert reply.suggested_tasks == [SuggestedTask(title="Plan", est_pomodoros=1)]


def test_parse_reply_sanitizes_each_suggestion():
    raw = json.dumps({
        "text": "Try these",
        "suggestedTasks": [
            {"title": "Outline", "estPomodoros": "abc"},
            {"title": "Draft", "estPomodoros": 3.7},
            {"title": "  ", "estPomodoros": 2},
            "not a task",
            {"title": "Edit", "estPomodoros": 2},
        ],
    })
    reply = parse_reply(raw)
    assert reply.text == "Try these"
    assert [(s.title, s.est_pomodoros) for s in reply.suggested_tasks] == [
        ("Outline", 1), ("Draft", 4), ("Edit", 2),
    ]


def test_malformed_response_degrades_to_text():
    reply = parse_reply("Sure, here's my answer")
    assert reply.text == "Sure, here's my answer"
    assert reply.suggested_tasks == []


@pytest.mark.parametrize("raw", ['["a", "b"]', '{"suggestedTasks": []}', '{"text": 5}', ""])
def test_decode_reply_rejects_wrong_shapes(raw):
    with pytest.raises(ParseError):
        decode_reply(raw)


def test_fenced_json_is_accepted():
    raw = '```json\n{"text": "Hi", "suggestedTasks": [{"title": "A", "estPomodoros": 2}]}\n```'
    reply = parse_reply(raw)
    assert reply.text == "Hi"
    assert reply.suggested_tasks[0].title == "A"


def test_non_list_suggestions_become_empty():
    reply = parse_reply('{"text": "Hi", "suggestedTasks": "none"}')
    assert reply.text == "Hi"
    assert reply.suggested_tasks == []


@pytest.fixture
def setup():
    store = MemoryStore()
    tasks = TaskRepository(store)
    transcript = ChatTranscript(store)
    transcript.load_history()
    return tasks, transcript, SuggestionReconciler(tasks, transcript)


def _offer(transcript, *titles):
    return transcript.add_assistant(AssistantReply(
        text="ideas",
        suggested_tasks=[SuggestedTask(title=t, est_pomodoros=2) for t in titles],
    ))


def test_accept_adds_task_and_keeps_suggestion(setup):
    tasks, transcript, recon = setup
    msg = _offer(transcript, "Write report", "Send invoice")
    task = recon.accept(msg.id, 1)
    assert (task.title, task.estimated_units) == ("Send invoice", 2)
    assert len(transcript.find(msg.id).suggestions) == 2


def test_already_added_matches_by_title_across_messages(setup):
    tasks, transcript, recon = setup
    first = _offer(transcript, "Write report")
    assert recon.is_added("Write report") is False
    recon.accept(first.id, 0)
    second = _offer(transcript, "Write report")
    assert recon.is_added(second.suggestions[0].title) is True


def test_edits_stay_in_transcript_until_accepted(setup):
    tasks, transcript, recon = setup
    msg = _offer(transcript, "Draft")
    recon.edit_title(msg.id, 0, "  Draft intro ")
    recon.adjust_estimate(msg.id, 0, 3)
    assert len(tasks) == 0
    task = recon.accept(msg.id, 0)
    assert (task.title, task.estimated_units) == ("Draft intro", 5)


def test_estimate_edits_are_clamped(setup):
    _, transcript, recon = setup
    msg = _offer(transcript, "Draft")
    assert recon.adjust_estimate(msg.id, 0, -5).est_pomodoros == 1
    assert recon.adjust_estimate(msg.id, 0, 20).est_pomodoros == 10


def test_edit_title_rejects_blank(setup):
    _, transcript, recon = setup
    msg = _offer(transcript, "Draft")
    with pytest.raises(ValidationError):
        recon.edit_title(msg.id, 0, " ")
    assert msg.suggestions[0].title == "Draft"


def test_unknown_index_raises(setup):
    _, transcript, recon = setup
    msg = _offer(transcript, "Draft")
    with pytest.raises(IndexError):
        recon.accept(msg.id, 3)
