import itertools

import pytest

from errors import NotFoundError, ValidationError
from logic.tasks import TaskRepository
from persistence import TASKS_KEY, MemoryStore


def make_repo(store=None):
    counter = itertools.count(1)
    return TaskRepository(store or MemoryStore(), id_factory=lambda: f"t{next(counter)}")


def titles(repo):
    return [t.title for t in repo.tasks]


def test_add_appends_and_activates_first():
    repo = make_repo()
    a = repo.add("Write report", 2)
    b = repo.add("Review PR")
    assert titles(repo) == ["Write report", "Review PR"]
    assert a.completed_units == 0 and a.is_done is False
    assert b.estimated_units == 1
    assert repo.active_task_id == a.id


def test_add_trims_and_rejects_blank_title():
    repo = make_repo()
    assert repo.add("  Spaced  ").title == "Spaced"
    with pytest.raises(ValidationError):
        repo.add("   ")
    with pytest.raises(ValidationError):
        repo.add("Ok", 0)
    assert len(repo) == 1


def test_update_is_partial():
    repo = make_repo()
    task = repo.add("Draft", 2)
    repo.update(task.id, note="outline first")
    assert (task.title, task.estimated_units, task.note) == ("Draft", 2, "outline first")
    repo.update(task.id, title="Final draft", estimated_units=4)
    assert (task.title, task.estimated_units, task.note) == ("Final draft", 4, "outline first")
    with pytest.raises(NotFoundError):
        repo.update("nope", title="x")


def test_toggle_done_keeps_units():
    repo = make_repo()
    task = repo.add("Draft")
    repo.record_focus_completion(task.id)
    repo.toggle_done(task.id)
    assert task.is_done is True
    assert task.completed_units == 1
    repo.toggle_done(task.id)
    assert task.is_done is False


def test_remove_active_clears_reference():
    repo = make_repo()
    a = repo.add("A")
    b = repo.add("B")
    repo.remove(b.id)
    assert repo.active_task_id == a.id
    repo.remove(a.id)
    assert repo.active_task_id is None
    assert repo.active_task is None


def test_select_validates_id():
    repo = make_repo()
    repo.add("A")
    b = repo.add("B")
    repo.select(b.id)
    assert repo.active_task is b
    with pytest.raises(NotFoundError):
        repo.select("ghost")
    repo.select(None)
    assert repo.active_task_id is None


def test_reorder_moves_by_position():
    repo = make_repo()
    for name in "ABCD":
        repo.add(name)
    repo.reorder(0, 2)
    assert titles(repo) == ["B", "C", "A", "D"]
    repo.reorder(3, 0)
    assert titles(repo) == ["D", "B", "C", "A"]


@pytest.mark.parametrize("src,dst", [(4, 0), (0, 4), (-1, 0), (0, -1)])
def test_reorder_out_of_range_raises(src, dst):
    repo = make_repo()
    for name in "ABCD":
        repo.add(name)
    with pytest.raises(IndexError):
        repo.reorder(src, dst)
    assert titles(repo) == ["A", "B", "C", "D"]


def test_every_mutation_persists():
    store = MemoryStore()
    repo = make_repo(store)
    task = repo.add("A")
    first = store.data[TASKS_KEY]
    repo.record_focus_completion(task.id)
    assert store.data[TASKS_KEY] != first
    assert '"actPomodoros":1' in store.data[TASKS_KEY]


def test_persist_then_load_keeps_content_and_order():
    store = MemoryStore()
    repo = make_repo(store)
    for name in "ABC":
        repo.add(name, 2)
    repo.update("t2", note="middle")
    repo.toggle_done("t3")
    repo.reorder(2, 0)
    expected = [t.model_copy() for t in repo.tasks]

    restored = make_repo(store)
    restored.load()
    assert restored.tasks == expected


def test_load_activates_first_task_not_previous_active():
    store = MemoryStore()
    repo = make_repo(store)
    repo.add("A")
    b = repo.add("B")
    repo.select(b.id)

    restored = make_repo(store)
    restored.load()
    assert restored.active_task.title == "A"


def test_load_seeds_example_task_when_empty():
    repo = make_repo()
    repo.load()
    assert len(repo) == 1
    assert repo.active_task_id == repo.tasks[0].id
    assert repo.tasks[0].title == "Plan project architecture"


def test_load_seeds_when_record_is_malformed():
    repo = make_repo(MemoryStore({TASKS_KEY: '[{"title": 5}]'}))
    repo.load()
    assert titles(repo) == ["Plan project architecture"]


def test_focus_completion_increments():
    repo = make_repo()
    task = repo.add("A")
    task.completed_units = 2
    repo.record_focus_completion(task.id)
    assert task.completed_units == 3
    with pytest.raises(NotFoundError):
        repo.record_focus_completion("gone")
