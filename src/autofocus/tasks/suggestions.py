# src/autofocus/tasks/suggestions.py

"""
Recall suggestions mined from finished work.

Matches come back in store order (first seen), not by recency.
"""

from __future__ import annotations

from collections.abc import Iterable

from .task_models import Task, TaskStatus

MIN_QUERY_LENGTH = 2
MAX_SUGGESTIONS = 5

_HISTORY_STATUSES = (TaskStatus.COMPLETED, TaskStatus.DISMISSED)


def get_suggestions(query: str, tasks: Iterable[Task], *, limit: int = MAX_SUGGESTIONS) -> list[str]:
    if not query or len(query) < MIN_QUERY_LENGTH:
        return []
    needle = query.lower()

    out: list[str] = []
    seen: set[str] = set()
    for task in tasks:
        if task.status not in _HISTORY_STATUSES:
            continue
        if needle not in task.text.lower() or task.text in seen:
            continue
        seen.add(task.text)
        out.append(task.text)
        if len(out) >= limit:
            break
    return out


def check_dismissed_warning(query: str, tasks: Iterable[Task]) -> bool:
    """True if `query` is, ignoring case and surrounding whitespace, a task that was dismissed before."""
    needle = (query or "").lower().strip()
    return any(
        t.status == TaskStatus.DISMISSED and t.text.lower().strip() == needle for t in tasks
    )
