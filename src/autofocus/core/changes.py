# src/autofocus/core/changes.py

"""
State-change notifications.

The notebook mutates its in-memory state synchronously and then publishes
one of these values. A persistence worker drains them later; nothing in
the engine waits for storage.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass

from ..tasks.task_models import NotebookSettings, Task
from .ports import NotebookRepo

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TasksUpserted:
    """One or more tasks created or changed. A fired page is a single batch."""

    tasks: tuple[Task, ...]


@dataclass(frozen=True, slots=True)
class TaskDeleted:
    task_id: str


@dataclass(frozen=True, slots=True)
class SettingsSaved:
    settings: NotebookSettings


@dataclass(frozen=True, slots=True)
class CursorMoved:
    page_index: int


@dataclass(frozen=True, slots=True)
class NotebookReplaced:
    """Whole-state replacement (reset or import)."""

    tasks: tuple[Task, ...]
    settings: NotebookSettings
    current_page: int


NotebookChange = TasksUpserted | TaskDeleted | SettingsSaved | CursorMoved | NotebookReplaced


def apply_change(repo: NotebookRepo, change: NotebookChange) -> None:
    """Write one change through the repository (one call, one transaction)."""
    if isinstance(change, TasksUpserted):
        repo.upsert_tasks(change.tasks)
    elif isinstance(change, TaskDeleted):
        repo.delete_task(change.task_id)
    elif isinstance(change, SettingsSaved):
        repo.save_settings(change.settings)
    elif isinstance(change, CursorMoved):
        repo.save_current_page(change.page_index)
    elif isinstance(change, NotebookReplaced):
        repo.replace_all(change.tasks, change.settings, current_page=change.current_page)
    else:
        raise TypeError(f"unknown change: {change!r}")


class ChangeQueue:
    """
    Thread-safe FIFO of pending changes.

    The console thread publishes, the persistence thread drains.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: deque[NotebookChange] = deque()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def publish(self, change: NotebookChange) -> None:
        with self._lock:
            self._items.append(change)

    def drain(self) -> list[NotebookChange]:
        with self._lock:
            items = list(self._items)
            self._items.clear()
        return items

    def requeue(self, changes: Iterable[NotebookChange]) -> None:
        """Put changes back at the head, ahead of anything published meanwhile."""
        pending = list(changes)
        if not pending:
            return
        with self._lock:
            self._items.extendleft(reversed(pending))
        logger.debug("Requeued %d change(s)", len(pending))
