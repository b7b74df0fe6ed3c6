# src/autofocus/core/notebook.py

"""
Notebook: the page/task lifecycle engine.

A Notebook owns the task store, the notebook settings and the paging
cursor. It is the only writer: every mutation goes through one of its
methods under a single lock, then a change notification is published to
the subscribed listeners (the persistence queue in the app).

Listener failures are logged and swallowed; the in-memory state stays
authoritative and is never rolled back.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from datetime import datetime, tzinfo
from typing import Any

from ..tasks import page_policy, snapshot, suggestions
from ..tasks.errors import ValidationError
from ..tasks.history import LogEntry
from ..tasks.history import history as monthly_history
from ..tasks.task_models import (
    DEFAULT_FONT_SIZE,
    DEFAULT_PAGE_SIZE,
    LEGACY_PAGE_SIZE,
    Completed,
    Dismissed,
    NotebookSettings,
    Task,
)
from ..tasks.task_store import TaskStore
from .changes import (
    CursorMoved,
    NotebookChange,
    NotebookReplaced,
    SettingsSaved,
    TaskDeleted,
    TasksUpserted,
)
from .ports import ChangeListener

logger = logging.getLogger(__name__)

_UNSET: Any = object()


def now_ms() -> int:
    return int(time.time() * 1000)


def _new_task_id() -> str:
    return str(uuid.uuid4())


def _require_text(text: Any) -> str:
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("task text must not be empty")
    return text.strip()


def _require_positive(value: Any, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ValidationError(f"{name} must be a positive integer")
    return value


@dataclass(frozen=True, slots=True)
class PageAdvance:
    from_page: int
    to_page: int
    dismissed: tuple[Task, ...] = ()


class Notebook:
    def __init__(
        self,
        *,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        default_font_size: int = DEFAULT_FONT_SIZE,
        clock: Callable[[], int] = now_ms,
        id_factory: Callable[[], str] = _new_task_id,
    ) -> None:
        self._default_page_size = _require_positive(default_page_size, "default_page_size")
        self._default_font_size = _require_positive(default_font_size, "default_font_size")
        self._clock = clock
        self._id_factory = id_factory

        self._lock = threading.RLock()
        self._listeners: list[ChangeListener] = []

        self._store = TaskStore()
        self._settings = self._fresh_settings()
        self._current_page = 0
        self._action_taken = False

    def _fresh_settings(self) -> NotebookSettings:
        return NotebookSettings(page_size=self._default_page_size, font_size=self._default_font_size)

    # ---- listeners ----

    def subscribe(self, listener: ChangeListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def _emit(self, change: NotebookChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception("Change listener failed change=%s", type(change).__name__)

    # ---- queries ----

    @property
    def tasks(self) -> tuple[Task, ...]:
        with self._lock:
            return self._store.all()

    @property
    def settings(self) -> NotebookSettings:
        with self._lock:
            return self._settings.copy()

    @property
    def current_page_index(self) -> int:
        return self._current_page

    @property
    def action_taken(self) -> bool:
        return self._action_taken

    @property
    def max_page_index(self) -> int:
        with self._lock:
            return page_policy.max_page_index(self._store)

    @property
    def last_active_page_index(self) -> int:
        return self.max_page_index

    @property
    def first_active_page_index(self) -> int:
        with self._lock:
            first = page_policy.first_active_page_index(self._store)
        return 0 if first is None else first

    def get_task(self, task_id: str) -> Task:
        with self._lock:
            return self._store.require(task_id)

    def tasks_on_page(self, page_index: int) -> list[Task]:
        with self._lock:
            return self._store.on_page(page_index)

    def is_page_full(self, page_index: int) -> bool:
        with self._lock:
            return page_policy.is_page_full(self._store, self._settings, page_index)

    def page_view(self, page_index: int) -> page_policy.PageView:
        with self._lock:
            return page_policy.describe_page(self._store, self._settings, page_index)

    def get_suggestions(self, text: str) -> list[str]:
        with self._lock:
            return suggestions.get_suggestions(text, self._store)

    def check_dismissed_warning(self, text: str) -> bool:
        with self._lock:
            return suggestions.check_dismissed_warning(text, self._store)

    def history(self, year: int, month: int, *, tz: tzinfo | None = None) -> list[LogEntry]:
        with self._lock:
            return monthly_history(self._store, year, month, tz=tz)

    # ---- task lifecycle ----

    def add_task(self, text: str, details: str | None = None) -> Task:
        clean = _require_text(text)
        with self._lock:
            target = page_policy.placement_page(self._store, self._settings)
            is_new_page = len(self._store) > 0 and target > page_policy.max_page_index(self._store)

            now = self._clock()
            task = Task(
                id=self._id_factory(),
                text=clean,
                details=details,
                page_index=target,
                created_at=now,
                updated_at=now,
            )
            self._store.add(task)

            # A sealed page whose tasks were all deleted can come back as the
            # placement page; it starts over as a fresh, open page.
            reopened = target in self._settings.closed_pages
            if reopened:
                self._settings.closed_pages.remove(target)

            settings_changed = reopened
            if is_new_page or reopened or target not in self._settings.page_capacities:
                self._settings.page_capacities[target] = self._settings.page_size
                settings_changed = True

            logger.debug("Task added id=%s page=%s", task.id, target)
            self._emit(TasksUpserted((task,)))
            if settings_changed:
                self._emit(SettingsSaved(self._settings.copy()))
            self._move_cursor(target)
            return task

    def update_task(self, task_id: str, *, text: Any = _UNSET, details: Any = _UNSET) -> Task:
        """Edit text and/or details in any status. Page and status never change here."""
        with self._lock:
            task = self._store.require(task_id)
            changes: dict[str, Any] = {}
            if text is not _UNSET:
                changes["text"] = _require_text(text)
            if details is not _UNSET:
                if details is not None and not isinstance(details, str):
                    raise ValidationError("details must be a string")
                changes["details"] = details

            updated = replace(task, updated_at=self._clock(), **changes)
            self._store.replace(updated)
            self._emit(TasksUpserted((updated,)))
            return updated

    def complete_task(self, task_id: str) -> Task:
        """
        active -> completed, and mark that an action was taken on the current page.

        Unknown ids raise NotFoundError; a task that is already finished is left
        untouched and returned as is.
        """
        with self._lock:
            task = self._store.require(task_id)
            if not task.is_active:
                logger.debug("complete_task ignored id=%s status=%s", task_id, task.status)
                return task

            now = self._clock()
            done = replace(task, state=Completed(at=now), updated_at=now)
            self._store.replace(done)
            self._action_taken = True
            self._emit(TasksUpserted((done,)))
            return done

    def dismiss_page_tasks(self, page_index: int) -> list[Task]:
        """Fire a page: every active task on it becomes dismissed. Returns what changed."""
        with self._lock:
            fired = self._dismiss_page(page_index)
            if page_index == self._current_page:
                self._action_taken = True
            return fired

    fire_page = dismiss_page_tasks

    def _dismiss_page(self, page_index: int) -> list[Task]:
        now = self._clock()
        fired: list[Task] = []
        for task in self._store.on_page(page_index):
            if not task.is_active:
                continue
            gone = replace(task, state=Dismissed(at=now), updated_at=now)
            self._store.replace(gone)
            fired.append(gone)

        if fired:
            logger.info("Page %s fired: %d task(s) dismissed", page_index, len(fired))
            self._emit(TasksUpserted(tuple(fired)))
        return fired

    def delete_task(self, task_id: str) -> Task:
        with self._lock:
            task = self._store.remove(task_id)
            logger.debug("Task deleted id=%s page=%s", task_id, task.page_index)
            self._emit(TaskDeleted(task_id))
            return task

    def mark_action_taken(self) -> None:
        with self._lock:
            self._action_taken = True

    # ---- paging ----

    def _move_cursor(self, page_index: int) -> None:
        if page_index == self._current_page:
            return
        self._current_page = page_index
        self._emit(CursorMoved(page_index))

    def advance_page(self) -> PageAdvance:
        """
        Move forward one page.

        Leaving a page that is not the frontier without having acted on it
        dismisses its active tasks first. Then: from the frontier wrap to the
        first page with active work (or stay); elsewhere step forward by one.
        """
        with self._lock:
            current = self._current_page
            last = page_policy.max_page_index(self._store)

            dismissed: list[Task] = []
            if not self._action_taken and current < last:
                dismissed = self._dismiss_page(current)

            target = page_policy.next_page_index(self._store, current, last)
            self._move_cursor(target)
            self._action_taken = False

            logger.debug("Advance %s -> %s (dismissed=%d)", current, target, len(dismissed))
            return PageAdvance(from_page=current, to_page=target, dismissed=tuple(dismissed))

    def go_to_page(self, page_index: int) -> int:
        """
        Jump straight to a page; nothing is dismissed.

        Any existing page and the blank page right after the frontier are
        valid targets.
        """
        with self._lock:
            if not isinstance(page_index, int) or isinstance(page_index, bool) or page_index < 0:
                raise ValidationError("page index must be a non-negative integer")
            limit = page_policy.max_page_index(self._store) + 1
            if page_index > limit:
                raise ValidationError(f"page index must be at most {limit}")
            self._move_cursor(page_index)
            return page_index

    # ---- settings ----

    def set_page_size(self, new_size: int) -> NotebookSettings:
        size = _require_positive(new_size, "page size")
        with self._lock:
            self._settings = page_policy.reconcile_page_size(self._store, self._settings, size)
            last = page_policy.max_page_index(self._store)
            logger.info(
                "Page size -> %s (last page %s %s)",
                size,
                last,
                "closed" if last in self._settings.closed_pages else "open",
            )
            self._emit(SettingsSaved(self._settings.copy()))
            return self._settings.copy()

    def set_font_size(self, size: int) -> None:
        value = _require_positive(size, "font size")
        with self._lock:
            self._settings.font_size = value
            self._emit(SettingsSaved(self._settings.copy()))

    # ---- whole-state operations ----

    def reset_all(self) -> None:
        with self._lock:
            self._store.clear()
            self._settings = self._fresh_settings()
            self._current_page = 0
            self._action_taken = False
            logger.info("Notebook reset")
            self._emit(NotebookReplaced((), self._settings.copy(), 0))

    def export_document(self, *, exported_at: datetime | None = None) -> dict[str, Any]:
        with self._lock:
            return snapshot.to_document(self._store, self._settings, exported_at=exported_at)

    def import_document(self, doc: Any) -> None:
        """
        Apply an export document. Only the fields present are applied; the
        document is fully validated first so a bad one changes nothing.
        """
        patch = snapshot.parse_document(doc)
        with self._lock:
            if patch.tasks is not None:
                self._store.load(patch.tasks)
            if patch.page_size is not None:
                self._settings.page_size = patch.page_size
            if patch.font_size is not None:
                self._settings.font_size = patch.font_size
            if patch.page_capacities is not None:
                self._settings.page_capacities = dict(patch.page_capacities)
            if patch.closed_pages is not None:
                self._settings.closed_pages = list(patch.closed_pages)

            self._current_page = 0
            self._action_taken = False
            logger.info("Imported notebook tasks=%d", len(self._store))
            self._emit(NotebookReplaced(self._store.all(), self._settings.copy(), 0))

    def restore(
        self,
        tasks: Iterable[Task],
        settings: NotebookSettings | None = None,
        *,
        current_page: int = 0,
    ) -> None:
        """
        Load persisted state without publishing changes.

        Data saved before per-page capacities existed gets every used page
        frozen at the legacy size.
        """
        with self._lock:
            self._store.load(tasks)
            self._settings = settings.copy() if settings is not None else self._fresh_settings()

            if len(self._store) and not self._settings.page_capacities:
                for page in page_policy.page_indices(self._store):
                    self._settings.page_capacities[page] = LEGACY_PAGE_SIZE
                logger.info(
                    "Migrated legacy page capacities for %d page(s)",
                    len(self._settings.page_capacities),
                )

            self._current_page = max(0, int(current_page))
            self._action_taken = False
