# tests/test_page_policy.py

from __future__ import annotations

from autofocus.tasks import page_policy
from autofocus.tasks.task_models import Completed, Dismissed, NotebookSettings, Task


def _task(tid: str, page: int, state=None) -> Task:
    if state is None:
        return Task(id=tid, text=tid, page_index=page, created_at=1)
    return Task(id=tid, text=tid, page_index=page, created_at=1, state=state)


def _page(page: int, count: int, start: int = 0) -> list[Task]:
    return [_task(f"p{page}-{i}", page) for i in range(start, start + count)]


def test_item_count_includes_finished_tasks() -> None:
    tasks = [
        _task("a", 0),
        _task("b", 0, Completed(2)),
        _task("c", 0, Dismissed(3)),
        _task("d", 1),
    ]
    assert page_policy.item_count(tasks, 0) == 3
    assert page_policy.item_count(tasks, 1) == 1
    assert page_policy.item_count(tasks, 2) == 0


def test_capacity_prefers_frozen_override() -> None:
    settings = NotebookSettings(page_size=5, page_capacities={0: 3})
    assert page_policy.page_capacity(settings, 0) == 3
    assert page_policy.page_capacity(settings, 1) == 5

    tasks = _page(0, 3)
    assert page_policy.is_page_full(tasks, settings, 0)


def test_full_page_stays_full_after_strike_through() -> None:
    settings = NotebookSettings(page_size=2, page_capacities={0: 2})
    tasks = [_task("a", 0, Completed(1)), _task("b", 0, Dismissed(2))]
    assert page_policy.is_page_full(tasks, settings, 0)

    tasks.append(_task("c", 0))
    assert page_policy.is_page_full(tasks, settings, 0)


def test_placement_on_empty_store_is_page_zero() -> None:
    assert page_policy.placement_page([], NotebookSettings()) == 0


def test_placement_stays_on_open_frontier_with_room() -> None:
    settings = NotebookSettings(page_size=5, page_capacities={0: 5, 1: 5})
    tasks = _page(0, 5) + _page(1, 2)
    assert page_policy.placement_page(tasks, settings) == 1


def test_placement_moves_past_full_or_closed_frontier() -> None:
    settings = NotebookSettings(page_size=5, page_capacities={0: 5})
    assert page_policy.placement_page(_page(0, 5), settings) == 1

    closed = NotebookSettings(page_size=5, page_capacities={0: 5}, closed_pages=[0])
    assert page_policy.placement_page(_page(0, 1), closed) == 1


def test_placement_never_returns_closed_or_full_existing_page() -> None:
    settings = NotebookSettings(page_size=3, page_capacities={0: 3, 1: 3, 2: 6}, closed_pages=[2])
    tasks = _page(0, 3) + _page(1, 1) + _page(2, 4)
    target = page_policy.placement_page(tasks, settings)
    assert target == 3
    assert page_policy.item_count(tasks, target) == 0


def test_max_and_first_active_page() -> None:
    assert page_policy.max_page_index([]) == 0
    assert page_policy.first_active_page_index([]) is None

    tasks = [_task("a", 0, Completed(1)), _task("b", 1, Dismissed(1)), _task("c", 2), _task("d", 3)]
    assert page_policy.max_page_index(tasks) == 3
    assert page_policy.first_active_page_index(tasks) == 2


def test_next_page_index_linear_before_frontier() -> None:
    tasks = _page(0, 1) + _page(1, 1) + _page(2, 1)
    assert page_policy.next_page_index(tasks, 0, 2) == 1
    assert page_policy.next_page_index(tasks, 1, 2) == 2


def test_next_page_index_wraps_from_frontier() -> None:
    tasks = [_task("a", 0, Completed(1)), _task("b", 1), _task("c", 2)]
    assert page_policy.next_page_index(tasks, 2, 2) == 1


def test_next_page_index_stays_when_nothing_active() -> None:
    tasks = [_task("a", 0, Completed(1)), _task("b", 1, Dismissed(1)), _task("c", 2, Completed(1))]
    assert page_policy.next_page_index(tasks, 2, 2) == 2


def test_reconcile_closes_overfull_last_page() -> None:
    settings = NotebookSettings(page_size=5, page_capacities={0: 5})
    out = page_policy.reconcile_page_size(_page(0, 5), settings, 3)
    assert out.page_size == 3
    assert out.closed_pages == [0]
    assert out.page_capacities == {0: 5}
    # the input is untouched
    assert settings.page_size == 5 and settings.closed_pages == []


def test_reconcile_adopts_size_and_reopens() -> None:
    settings = NotebookSettings(page_size=2, page_capacities={0: 5, 1: 5}, closed_pages=[1])
    tasks = _page(0, 5) + _page(1, 3)
    out = page_policy.reconcile_page_size(tasks, settings, 4)
    assert out.page_capacities == {0: 5, 1: 4}
    assert out.closed_pages == []


def test_reconcile_equal_count_adopts() -> None:
    settings = NotebookSettings(page_size=5, page_capacities={0: 5})
    out = page_policy.reconcile_page_size(_page(0, 3), settings, 3)
    assert out.page_capacities[0] == 3
    assert 0 not in out.closed_pages
    assert page_policy.is_page_full(_page(0, 3), out, 0)


def test_reconcile_leaves_earlier_pages_alone() -> None:
    settings = NotebookSettings(page_size=5, page_capacities={0: 5, 1: 5})
    tasks = _page(0, 5) + _page(1, 1)
    out = page_policy.reconcile_page_size(tasks, settings, 10)
    assert out.page_capacities == {0: 5, 1: 10}


def test_closing_is_not_duplicated() -> None:
    settings = NotebookSettings(page_size=5, page_capacities={0: 5}, closed_pages=[0])
    out = page_policy.reconcile_page_size(_page(0, 5), settings, 2)
    assert out.closed_pages == [0]


def test_describe_page() -> None:
    settings = NotebookSettings(page_size=3, page_capacities={0: 3}, closed_pages=[0])
    tasks = [_task("a", 0), _task("b", 0, Completed(1)), _task("c", 0, Dismissed(1))]
    view = page_policy.describe_page(tasks, settings, 0)
    assert view == page_policy.PageView(
        index=0, capacity=3, item_count=3, active_count=1, full=True, closed=True
    )
