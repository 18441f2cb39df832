"""Ordered task collection with an active-task pointer."""
from __future__ import annotations

from typing import Callable, Iterator, List, Optional

from pydantic import TypeAdapter

from errors import NotFoundError, ValidationError
from logging_bus import emit
from persistence import TASKS_KEY, KeyValueStore, load_record, save_record
from state import Task
from utils import new_id

TASK_LIST = TypeAdapter(List[Task])


def default_tasks() -> List[Task]:
    return [
        Task(
            title="Plan project architecture",
            estimated_units=3,
            note="Review system requirements and define component hierarchy.",
        )
    ]


def _check_estimate(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(f"Estimate must be a positive integer, got {value!r}")
    return value


def _check_title(title) -> str:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Task title cannot be empty")
    return title


class TaskRepository:
    """Holds the user's tasks in display order.

    Every mutation writes the whole collection back to the store. The active
    task identity is deliberately not persisted: after ``load`` the first task
    is active.
    """

    def __init__(self, store: KeyValueStore, key: str = TASKS_KEY,
                 id_factory: Callable[[], str] = new_id):
        self.store = store
        self.key = key
        self.id_factory = id_factory
        self.tasks: List[Task] = []
        self.active_task_id: Optional[str] = None

    def __len__(self) -> int:
        return len(self.tasks)

    def __iter__(self) -> Iterator[Task]:
        return iter(self.tasks)

    # -------- loading / saving ---------
    def load(self) -> List[Task]:
        saved = load_record(self.store, self.key, TASK_LIST)
        if saved:
            self.tasks = list(saved)
            emit("INFO", "TASKS", "Restored tasks", count=len(self.tasks))
        else:
            self.tasks = default_tasks()
            emit("INFO", "TASKS", "Seeded example task")
        self.active_task_id = self.tasks[0].id
        return self.tasks

    def persist(self) -> bool:
        return save_record(self.store, self.key, self.tasks, TASK_LIST)

    # -------- queries ---------
    def get(self, task_id: str) -> Task:
        for task in self.tasks:
            if task.id == task_id:
                return task
        raise NotFoundError(f"No task with id {task_id}")

    @property
    def active_task(self) -> Optional[Task]:
        if self.active_task_id is None:
            return None
        try:
            return self.get(self.active_task_id)
        except NotFoundError:
            return None

    def titles(self) -> List[str]:
        return [t.title for t in self.tasks]

    def has_title(self, title: str) -> bool:
        return any(t.title == title for t in self.tasks)

    # -------- mutations ---------
    def add(self, title: str, estimated_units: int = 1) -> Task:
        task = Task(
            id=self.id_factory(),
            title=_check_title(title),
            estimated_units=_check_estimate(estimated_units),
        )
        self.tasks.append(task)
        if self.active_task_id is None:
            self.active_task_id = task.id
        emit("INFO", "TASKS", "Added task", id=task.id, est=task.estimated_units)
        self.persist()
        return task

    def update(self, task_id: str, title: Optional[str] = None,
               estimated_units: Optional[int] = None, note: Optional[str] = None) -> Task:
        task = self.get(task_id)
        new_title = _check_title(title) if title is not None else task.title
        new_est = _check_estimate(estimated_units) if estimated_units is not None else task.estimated_units
        task.title = new_title
        task.estimated_units = new_est
        if note is not None:
            task.note = note or None
        self.persist()
        return task

    def toggle_done(self, task_id: str) -> Task:
        task = self.get(task_id)
        task.is_done = not task.is_done
        self.persist()
        return task

    def remove(self, task_id: str) -> Task:
        task = self.get(task_id)
        self.tasks.remove(task)
        if self.active_task_id == task_id:
            self.active_task_id = None
        emit("INFO", "TASKS", "Removed task", id=task_id)
        self.persist()
        return task

    def select(self, task_id: Optional[str]) -> None:
        if task_id is not None:
            self.get(task_id)
        self.active_task_id = task_id

    def reorder(self, from_index: int, to_index: int) -> None:
        size = len(self.tasks)
        if not (0 <= from_index < size and 0 <= to_index < size):
            raise IndexError(f"Cannot move task {from_index} -> {to_index} in a list of {size}")
        task = self.tasks.pop(from_index)
        self.tasks.insert(to_index, task)
        self.persist()

    def record_focus_completion(self, task_id: str) -> Task:
        task = self.get(task_id)
        task.completed_units += 1
        emit("INFO", "TASKS", "Focus session recorded", id=task_id, done=task.completed_units)
        self.persist()
        return task


__all__ = ["TaskRepository", "TASK_LIST", "default_tasks"]
