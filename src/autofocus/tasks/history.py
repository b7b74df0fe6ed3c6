# src/autofocus/tasks/history.py

"""
Monthly log of finished work.

A finished task is filed under the moment it finished: completed_at, else
dismissed_at, else created_at. Entries for one calendar month come back
newest first.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, tzinfo

from .errors import ValidationError
from .task_models import Task, TaskStatus


@dataclass(frozen=True, slots=True)
class LogEntry:
    task: Task
    at: datetime

    @property
    def dismissed(self) -> bool:
        return self.task.status == TaskStatus.DISMISSED


def log_timestamp(task: Task) -> int:
    return task.completed_at or task.dismissed_at or task.created_at


def _local(ms: int, tz: tzinfo | None) -> datetime:
    if tz is None:
        return datetime.fromtimestamp(ms / 1000).astimezone()
    return datetime.fromtimestamp(ms / 1000, tz)


def history(
    tasks: Iterable[Task],
    year: int,
    month: int,
    *,
    tz: tzinfo | None = None,
) -> list[LogEntry]:
    """
    Completed and dismissed tasks filed in `year`-`month` (month is 1..12).

    tz=None uses the local time zone.
    """
    if not 1 <= month <= 12:
        raise ValidationError(f"month must be 1..12, got {month}")

    entries = []
    for task in tasks:
        if task.is_active:
            continue
        at = _local(log_timestamp(task), tz)
        if at.year == year and at.month == month:
            entries.append(LogEntry(task=task, at=at))

    entries.sort(key=lambda e: log_timestamp(e.task), reverse=True)
    return entries
