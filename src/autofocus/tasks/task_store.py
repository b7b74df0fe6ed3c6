# src/autofocus/tasks/task_store.py

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from .errors import NotFoundError
from .task_models import Task

logger = logging.getLogger(__name__)


class TaskStore:
    """
    In-memory ordered task collection.

    Insertion order is the store order (suggestions rely on it).
    Tasks are frozen; updates swap the stored value in place so the
    position of a task never changes.
    """

    def __init__(self, tasks: Iterable[Task] = ()) -> None:
        self._tasks: dict[str, Task] = {}
        self.load(tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    def __iter__(self) -> Iterator[Task]:
        return iter(self._tasks.values())

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def all(self) -> tuple[Task, ...]:
        return tuple(self._tasks.values())

    def get(self, task_id: str) -> Task | None:
        return self._tasks.get(task_id)

    def require(self, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise NotFoundError(task_id)
        return task

    def on_page(self, page_index: int) -> list[Task]:
        return [t for t in self._tasks.values() if t.page_index == page_index]

    def add(self, task: Task) -> None:
        if task.id in self._tasks:
            raise ValueError(f"duplicate task id: {task.id}")
        self._tasks[task.id] = task

    def replace(self, task: Task) -> Task:
        """Swap in a new value for an existing task; returns the previous value."""
        prev = self.require(task.id)
        self._tasks[task.id] = task
        return prev

    def remove(self, task_id: str) -> Task:
        task = self.require(task_id)
        del self._tasks[task_id]
        return task

    def clear(self) -> None:
        self._tasks.clear()

    def load(self, tasks: Iterable[Task]) -> None:
        """Replace the whole content; duplicate ids are rejected before anything changes."""
        fresh: dict[str, Task] = {}
        for task in tasks:
            if task.id in fresh:
                raise ValueError(f"duplicate task id: {task.id}")
            fresh[task.id] = task
        self._tasks = fresh
        logger.debug("TaskStore loaded total=%s", len(fresh))
