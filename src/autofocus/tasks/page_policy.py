# src/autofocus/tasks/page_policy.py

"""
Page policy.

Pages are not stored: a page is the group of tasks sharing a page_index,
combined with the per-page overrides in NotebookSettings. Everything here
is a pure function of (tasks, settings); nothing is cached.

Fullness counts every task ever placed on a page (active, completed and
dismissed alike): a page that filled up stays full after its items are
struck through, like a sheet of paper.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .task_models import NotebookSettings, Task


@dataclass(frozen=True, slots=True)
class PageView:
    index: int
    capacity: int
    item_count: int
    active_count: int
    full: bool
    closed: bool


def item_count(tasks: Iterable[Task], page_index: int) -> int:
    return sum(1 for t in tasks if t.page_index == page_index)


def page_capacity(settings: NotebookSettings, page_index: int) -> int:
    return settings.page_capacities.get(page_index, settings.page_size)


def is_page_closed(settings: NotebookSettings, page_index: int) -> bool:
    return page_index in settings.closed_pages


def is_page_full(tasks: Iterable[Task], settings: NotebookSettings, page_index: int) -> bool:
    return item_count(tasks, page_index) >= page_capacity(settings, page_index)


def max_page_index(tasks: Iterable[Task]) -> int:
    """Greatest page index in use (the frontier page); 0 for an empty store."""
    return max((t.page_index for t in tasks), default=0)


def first_active_page_index(tasks: Iterable[Task]) -> int | None:
    """Lowest page index holding at least one active task, or None."""
    return min((t.page_index for t in tasks if t.is_active), default=None)


def page_indices(tasks: Iterable[Task]) -> list[int]:
    return sorted({t.page_index for t in tasks})


def placement_page(tasks: Iterable[Task], settings: NotebookSettings) -> int:
    """
    Page that receives the next new task.

    The frontier page while it is open and has room, otherwise a fresh page
    right after it.
    """
    items = list(tasks)
    if not items:
        return 0
    last = max_page_index(items)
    if not is_page_closed(settings, last) and not is_page_full(items, settings, last):
        return last
    return last + 1


def next_page_index(tasks: Iterable[Task], current: int, max_index: int) -> int:
    """
    Where an advance from `current` lands.

    From the frontier page (or beyond it) wrap to the first page that still
    has active work, staying on the frontier when there is none. From any
    earlier page move strictly forward by one.
    """
    if current >= max_index:
        first = first_active_page_index(tasks)
        return max_index if first is None else first
    return current + 1


def reconcile_page_size(
    tasks: Iterable[Task],
    settings: NotebookSettings,
    new_size: int,
) -> NotebookSettings:
    """
    Return the settings after changing the default page size.

    Only the frontier page reacts: it is sealed when it already holds more
    items than the new size allows, otherwise it adopts the new size and is
    reopened. Every other page keeps its frozen capacity.
    """
    items = list(tasks)
    out = settings.copy()
    out.page_size = new_size

    last = max_page_index(items)
    count = item_count(items, last)

    if new_size < count:
        if last not in out.closed_pages:
            out.closed_pages.append(last)
    else:
        out.page_capacities[last] = new_size
        out.closed_pages = [p for p in out.closed_pages if p != last]
    return out


def describe_page(tasks: Iterable[Task], settings: NotebookSettings, page_index: int) -> PageView:
    on_page = [t for t in tasks if t.page_index == page_index]
    capacity = page_capacity(settings, page_index)
    return PageView(
        index=page_index,
        capacity=capacity,
        item_count=len(on_page),
        active_count=sum(1 for t in on_page if t.is_active),
        full=len(on_page) >= capacity,
        closed=is_page_closed(settings, page_index),
    )
