# src/autofocus/tasks/snapshot.py

"""
Export / import document codec.

Document shape (JSON):
    {
      "exportedAt": "<iso8601>",
      "version": 1,
      "settings": {"pageSize": int, "fontSize": int},
      "pageCapacities": {"<page>": int},
      "closedPages": [int],
      "tasks": [{"id", "text", "details"?, "status", "pageIndex",
                 "createdAt", "completedAt"?, "dismissedAt"?, "updatedAt"?}]
    }

Timestamps are epoch milliseconds. Import is validated as a whole before
anything is applied; every top-level field is optional.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from .errors import MalformedImportError
from .task_models import NotebookSettings, Task, TaskStatus, build_state

SNAPSHOT_VERSION = 1


@dataclass(frozen=True, slots=True)
class ImportPatch:
    """Fields present in an import document; None means "leave as is"."""

    tasks: list[Task] | None = None
    page_size: int | None = None
    font_size: int | None = None
    page_capacities: dict[int, int] | None = None
    closed_pages: list[int] | None = None


def task_to_dict(task: Task) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": task.id,
        "text": task.text,
        "status": task.status.value,
        "pageIndex": task.page_index,
        "createdAt": task.created_at,
    }
    if task.details is not None:
        out["details"] = task.details
    if task.completed_at is not None:
        out["completedAt"] = task.completed_at
    if task.dismissed_at is not None:
        out["dismissedAt"] = task.dismissed_at
    if task.updated_at is not None:
        out["updatedAt"] = task.updated_at
    return out


def to_document(
    tasks: Iterable[Task],
    settings: NotebookSettings,
    *,
    exported_at: datetime | None = None,
) -> dict[str, Any]:
    when = exported_at or datetime.now(UTC)
    return {
        "exportedAt": when.isoformat(),
        "version": SNAPSHOT_VERSION,
        "settings": {
            "pageSize": settings.page_size,
            "fontSize": settings.font_size,
        },
        "pageCapacities": {str(k): v for k, v in sorted(settings.page_capacities.items())},
        "closedPages": list(settings.closed_pages),
        "tasks": [task_to_dict(t) for t in tasks],
    }


# ---- validation helpers ----


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _opt_ms(raw: dict[str, Any], key: str, where: str) -> int | None:
    v = raw.get(key)
    if v is None:
        return None
    if not _is_number(v):
        raise MalformedImportError(f"{where}: {key} must be a number")
    if not math.isfinite(v):
        raise MalformedImportError(f"{where}: {key} must be a finite number")
    return int(v)


def _positive_int(v: Any, where: str) -> int:
    if not _is_int(v) or v <= 0:
        raise MalformedImportError(f"{where} must be a positive integer")
    return int(v)


def task_from_dict(raw: Any, where: str = "task") -> Task:
    if not isinstance(raw, dict):
        raise MalformedImportError(f"{where} must be an object")

    task_id = raw.get("id")
    if not isinstance(task_id, str) or not task_id.strip():
        raise MalformedImportError(f"{where}: id must be a non-empty string")

    text = raw.get("text")
    if not isinstance(text, str) or not text.strip():
        raise MalformedImportError(f"{where}: text must be a non-empty string")

    details = raw.get("details")
    if details is not None and not isinstance(details, str):
        raise MalformedImportError(f"{where}: details must be a string")

    try:
        status = TaskStatus.parse(raw.get("status"))
    except ValueError as e:
        raise MalformedImportError(f"{where}: {e}") from None

    page_index = raw.get("pageIndex")
    if not _is_int(page_index) or page_index < 0:
        raise MalformedImportError(f"{where}: pageIndex must be a non-negative integer")

    created_at = _opt_ms(raw, "createdAt", where)
    if created_at is None:
        raise MalformedImportError(f"{where}: createdAt is required")
    updated_at = _opt_ms(raw, "updatedAt", where)

    state = build_state(
        status,
        completed_at=_opt_ms(raw, "completedAt", where),
        dismissed_at=_opt_ms(raw, "dismissedAt", where),
        fallback_at=updated_at if updated_at is not None else created_at,
    )
    return Task(
        id=task_id,
        text=text,
        page_index=int(page_index),
        created_at=created_at,
        state=state,
        details=details,
        updated_at=updated_at,
    )


def parse_document(doc: Any) -> ImportPatch:
    """Validate an import document and return the fields it carries."""
    if not isinstance(doc, dict):
        raise MalformedImportError("import document must be an object")

    version = doc.get("version")
    if version is not None and (not _is_int(version) or version > SNAPSHOT_VERSION):
        raise MalformedImportError(f"unsupported document version: {version!r}")

    tasks: list[Task] | None = None
    raw_tasks = doc.get("tasks")
    if raw_tasks is not None:
        if not isinstance(raw_tasks, list):
            raise MalformedImportError("tasks must be a list")
        tasks = []
        seen: set[str] = set()
        for i, raw in enumerate(raw_tasks):
            task = task_from_dict(raw, where=f"tasks[{i}]")
            if task.id in seen:
                raise MalformedImportError(f"tasks[{i}]: duplicate id {task.id}")
            seen.add(task.id)
            tasks.append(task)

    page_size: int | None = None
    font_size: int | None = None
    raw_settings = doc.get("settings")
    if raw_settings is not None:
        if not isinstance(raw_settings, dict):
            raise MalformedImportError("settings must be an object")
        if raw_settings.get("pageSize") is not None:
            page_size = _positive_int(raw_settings["pageSize"], "settings.pageSize")
        if raw_settings.get("fontSize") is not None:
            font_size = _positive_int(raw_settings["fontSize"], "settings.fontSize")

    page_capacities: dict[int, int] | None = None
    raw_caps = doc.get("pageCapacities")
    if raw_caps is not None:
        if not isinstance(raw_caps, dict):
            raise MalformedImportError("pageCapacities must be an object")
        page_capacities = {}
        for key, value in raw_caps.items():
            try:
                page = int(key)
            except (TypeError, ValueError):
                raise MalformedImportError(f"pageCapacities: invalid page key {key!r}") from None
            if page < 0:
                raise MalformedImportError(f"pageCapacities: invalid page key {key!r}")
            page_capacities[page] = _positive_int(value, f"pageCapacities[{key}]")

    closed_pages: list[int] | None = None
    raw_closed = doc.get("closedPages")
    if raw_closed is not None:
        if not isinstance(raw_closed, list):
            raise MalformedImportError("closedPages must be a list")
        closed_pages = []
        for v in raw_closed:
            if not _is_int(v) or v < 0:
                raise MalformedImportError("closedPages must contain non-negative integers")
            if v not in closed_pages:
                closed_pages.append(int(v))

    return ImportPatch(
        tasks=tasks,
        page_size=page_size,
        font_size=font_size,
        page_capacities=page_capacities,
        closed_pages=closed_pages,
    )
