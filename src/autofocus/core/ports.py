# src/autofocus/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The engine depends on Protocols instead of concrete storage.
This keeps the durable store swappable and makes testing easier.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from ..tasks.task_models import NotebookSettings, Task

if TYPE_CHECKING:
    from .changes import NotebookChange

ChangeListener = Callable[["NotebookChange"], Any]


@dataclass(frozen=True, slots=True)
class StoredNotebook:
    """What a repository hands back on load. settings is None if none were saved yet."""

    tasks: list[Task]
    settings: NotebookSettings | None
    current_page: int = 0


class NotebookRepo(Protocol):
    """Durable storage for the notebook (local SQLite, or a fake in tests)."""

    def load(self) -> StoredNotebook: ...
    def count_tasks(self) -> int: ...

    def upsert_tasks(self, tasks: Sequence[Task]) -> int: ...
    def delete_task(self, task_id: str) -> None: ...

    def save_settings(self, settings: NotebookSettings) -> None: ...
    def save_current_page(self, page_index: int) -> None: ...

    def replace_all(
            self,
            tasks: Sequence[Task],
            settings: NotebookSettings,
            *,
            current_page: int = 0,
    ) -> None: ...
