# tests/test_lifecycle.py

from __future__ import annotations

import pytest

from autofocus.core.changes import CursorMoved, NotebookReplaced, SettingsSaved, TaskDeleted, TasksUpserted
from autofocus.core.notebook import Notebook
from autofocus.tasks.errors import NotFoundError, ValidationError
from autofocus.tasks.task_models import LEGACY_PAGE_SIZE, NotebookSettings, Task, TaskStatus

from .fakes import FakeClock, SequentialIds, add_many


def _assert_timestamps_consistent(tasks) -> None:
    for t in tasks:
        assert t.status in set(TaskStatus)
        if t.status is TaskStatus.ACTIVE:
            assert t.completed_at is None and t.dismissed_at is None
        elif t.status is TaskStatus.COMPLETED:
            assert t.completed_at is not None and t.dismissed_at is None
        else:
            assert t.dismissed_at is not None and t.completed_at is None


# ---- add ----


def test_add_task_rejects_blank_text(notebook: Notebook) -> None:
    for text in ("", "   ", "\n\t"):
        with pytest.raises(ValidationError):
            notebook.add_task(text)
    assert notebook.tasks == ()
    assert notebook.settings.page_capacities == {}


def test_add_task_creates_active_task(notebook: Notebook, clock: FakeClock) -> None:
    task = notebook.add_task("  Buy milk ", details="2 liters")
    assert task.text == "Buy milk"
    assert task.details == "2 liters"
    assert task.status is TaskStatus.ACTIVE
    assert task.page_index == 0
    assert task.created_at == task.updated_at == clock.now
    assert notebook.get_task(task.id) == task


def test_scenario_sixth_task_opens_new_page(notebook: Notebook) -> None:
    first = add_many(notebook, 5)
    assert {t.page_index for t in first} == {0}
    assert notebook.is_page_full(0)

    sixth = notebook.add_task("sixth")
    assert sixth.page_index == 1
    assert notebook.is_page_full(0)
    assert not notebook.is_page_full(1)
    assert notebook.settings.page_capacities == {0: 5, 1: 5}


def test_scenario_shrink_closes_page_and_new_task_goes_to_fresh_page(notebook: Notebook) -> None:
    tasks = add_many(notebook, 5)
    notebook.complete_task(tasks[0].id)
    notebook.complete_task(tasks[1].id)
    notebook.update_task(tasks[2].id, text="still active")
    notebook.complete_task(tasks[3].id)
    active = [t for t in notebook.tasks if t.is_active]
    assert len(active) == 2

    notebook.set_page_size(3)
    settings = notebook.settings
    assert 0 in settings.closed_pages
    assert settings.page_capacities[0] == 5

    new = notebook.add_task("after shrink")
    assert new.page_index == 1
    assert notebook.settings.page_capacities[1] == 3


def test_closed_page_stays_closed_even_with_room(notebook: Notebook) -> None:
    add_many(notebook, 3)
    notebook.set_page_size(2)  # 3 > 2 -> page 0 closed although capacity 5 has room
    assert notebook.add_task("x").page_index == 1


def test_grow_adopts_on_last_page_only(notebook: Notebook) -> None:
    add_many(notebook, 6)  # page 0 full (5), page 1 has 1
    notebook.set_page_size(8)
    caps = notebook.settings.page_capacities
    assert caps == {0: 5, 1: 8}
    assert add_many(notebook, 7)[-1].page_index == 1
    assert notebook.add_task("overflow").page_index == 2
    assert notebook.settings.page_capacities[2] == 8


def test_shrink_then_grow_reopens_last_page(notebook: Notebook) -> None:
    add_many(notebook, 4)
    notebook.set_page_size(2)
    assert notebook.settings.closed_pages == [0]
    notebook.set_page_size(6)
    assert notebook.settings.closed_pages == []
    assert notebook.settings.page_capacities[0] == 6
    assert notebook.add_task("fits").page_index == 0


def test_set_page_size_validates(notebook: Notebook) -> None:
    for bad in (0, -1, True, "3"):
        with pytest.raises(ValidationError):
            notebook.set_page_size(bad)  # type: ignore[arg-type]
    assert notebook.settings.page_size == 5


def test_add_task_moves_cursor_to_placement_page(notebook: Notebook) -> None:
    add_many(notebook, 5)
    assert notebook.current_page_index == 0
    notebook.add_task("next page")
    assert notebook.current_page_index == 1


# ---- complete ----


def test_complete_task_sets_timestamp_and_action_flag(notebook: Notebook, clock: FakeClock) -> None:
    task = notebook.add_task("a")
    assert not notebook.action_taken

    done = notebook.complete_task(task.id)
    assert done.status is TaskStatus.COMPLETED
    assert done.completed_at == clock.now
    assert done.updated_at == clock.now
    assert notebook.action_taken


def test_complete_unknown_task_raises(notebook: Notebook) -> None:
    with pytest.raises(NotFoundError) as exc:
        notebook.complete_task("missing")
    assert exc.value.task_id == "missing"


def test_complete_is_noop_for_finished_tasks(notebook: Notebook) -> None:
    task = notebook.add_task("a")
    done = notebook.complete_task(task.id)
    assert notebook.complete_task(task.id) == done

    other = notebook.add_task("b")
    notebook.dismiss_page_tasks(0)
    gone = notebook.get_task(other.id)
    assert notebook.complete_task(other.id) == gone
    assert gone.status is TaskStatus.DISMISSED


# ---- dismiss ----


def test_dismiss_page_only_touches_active_tasks_on_that_page(notebook: Notebook, clock: FakeClock) -> None:
    tasks = add_many(notebook, 7)
    notebook.complete_task(tasks[0].id)
    completed_before = notebook.get_task(tasks[0].id)

    fired = notebook.dismiss_page_tasks(0)
    assert [t.id for t in fired] == [t.id for t in tasks[1:5]]
    assert all(t.dismissed_at == fired[0].dismissed_at for t in fired)
    assert notebook.get_task(tasks[0].id) == completed_before
    assert all(notebook.get_task(t.id).is_active for t in tasks[5:])


def test_dismiss_page_is_idempotent(notebook: Notebook) -> None:
    add_many(notebook, 3)
    notebook.dismiss_page_tasks(0)
    once = notebook.tasks
    assert notebook.dismiss_page_tasks(0) == []
    assert notebook.tasks == once


def test_dismiss_current_page_counts_as_action(notebook: Notebook) -> None:
    add_many(notebook, 2)
    notebook.dismiss_page_tasks(3)
    assert not notebook.action_taken
    notebook.dismiss_page_tasks(0)
    assert notebook.action_taken


# ---- update / delete ----


def test_update_task_changes_only_given_fields(notebook: Notebook) -> None:
    task = notebook.add_task("a", details="d")
    updated = notebook.update_task(task.id, text="b")
    assert updated.text == "b" and updated.details == "d"
    assert updated.page_index == task.page_index
    assert updated.status is task.status
    assert updated.updated_at > task.updated_at

    cleared = notebook.update_task(task.id, details=None)
    assert cleared.details is None and cleared.text == "b"


def test_update_allowed_in_terminal_status(notebook: Notebook) -> None:
    task = notebook.add_task("a")
    notebook.complete_task(task.id)
    updated = notebook.update_task(task.id, text="renamed")
    assert updated.status is TaskStatus.COMPLETED
    assert updated.completed_at == notebook.get_task(task.id).completed_at


def test_update_rejects_empty_text(notebook: Notebook) -> None:
    task = notebook.add_task("a")
    with pytest.raises(ValidationError):
        notebook.update_task(task.id, text="  ")
    assert notebook.get_task(task.id) == task
    with pytest.raises(NotFoundError):
        notebook.update_task("missing", text="x")


def test_delete_from_any_status(notebook: Notebook) -> None:
    a, b, c = add_many(notebook, 3)
    notebook.complete_task(b.id)
    notebook.dismiss_page_tasks(0)

    for t in (a, b, c):
        notebook.delete_task(t.id)
    assert notebook.tasks == ()
    with pytest.raises(NotFoundError):
        notebook.delete_task(a.id)


def test_page_index_never_changes(notebook: Notebook) -> None:
    tasks = add_many(notebook, 8)
    notebook.set_page_size(2)
    for t in tasks:
        notebook.update_task(t.id, text=t.text + "!")
    notebook.dismiss_page_tasks(1)
    assert [t.page_index for t in notebook.tasks] == [t.page_index for t in tasks]


def test_timestamps_match_status(notebook: Notebook) -> None:
    tasks = add_many(notebook, 12)
    notebook.complete_task(tasks[1].id)
    notebook.complete_task(tasks[6].id)
    notebook.dismiss_page_tasks(0)
    notebook.go_to_page(1)
    notebook.advance_page()
    _assert_timestamps_consistent(notebook.tasks)


# ---- settings / reset ----


def test_font_size_is_pass_through(notebook: Notebook) -> None:
    notebook.set_font_size(22)
    assert notebook.settings.font_size == 22
    with pytest.raises(ValidationError):
        notebook.set_font_size(0)


def test_reset_all_restores_defaults() -> None:
    nb = Notebook(default_page_size=3, default_font_size=14, clock=FakeClock(), id_factory=SequentialIds())
    add_many(nb, 7)
    nb.set_page_size(2)
    nb.set_font_size(20)
    nb.reset_all()

    assert nb.tasks == ()
    assert nb.settings == NotebookSettings(page_size=3, font_size=14)
    assert nb.current_page_index == 0
    assert not nb.action_taken
    assert nb.add_task("fresh").page_index == 0


# ---- change notifications ----


def test_changes_are_published_per_mutation(notebook: Notebook) -> None:
    seen: list = []
    notebook.subscribe(seen.append)

    tasks = add_many(notebook, 6)
    kinds = [type(c) for c in seen]
    # first task registers page 0, sixth registers page 1 and moves the cursor
    assert kinds.count(TasksUpserted) == 6
    assert kinds.count(SettingsSaved) == 2
    assert kinds.count(CursorMoved) == 1

    seen.clear()
    notebook.dismiss_page_tasks(0)
    assert len(seen) == 1
    assert isinstance(seen[0], TasksUpserted)
    assert len(seen[0].tasks) == 5

    seen.clear()
    notebook.delete_task(tasks[0].id)
    notebook.reset_all()
    assert isinstance(seen[0], TaskDeleted)
    assert isinstance(seen[1], NotebookReplaced)


def test_listener_failure_does_not_roll_back(notebook: Notebook) -> None:
    def broken(_change) -> None:
        raise RuntimeError("storage down")

    notebook.subscribe(broken)
    task = notebook.add_task("survives")
    notebook.complete_task(task.id)
    assert notebook.get_task(task.id).status is TaskStatus.COMPLETED


# ---- restore ----


def test_restore_migrates_legacy_capacities(notebook: Notebook) -> None:
    legacy = [
        Task(id="a", text="a", page_index=0, created_at=1),
        Task(id="b", text="b", page_index=2, created_at=2),
    ]
    notebook.restore(legacy, NotebookSettings(page_size=8), current_page=2)
    assert notebook.settings.page_capacities == {0: LEGACY_PAGE_SIZE, 2: LEGACY_PAGE_SIZE}
    assert notebook.settings.page_size == 8
    assert notebook.current_page_index == 2


def test_restore_keeps_existing_capacities_and_publishes_nothing(notebook: Notebook) -> None:
    seen: list = []
    notebook.subscribe(seen.append)
    tasks = [Task(id="a", text="a", page_index=0, created_at=1)]
    notebook.restore(tasks, NotebookSettings(page_size=4, page_capacities={0: 3}))
    assert notebook.settings.page_capacities == {0: 3}
    assert seen == []


def test_emptied_closed_page_reopens_when_placed_again(notebook: Notebook) -> None:
    tasks = add_many(notebook, 7)  # page 0 full, page 1 holds 2
    notebook.set_page_size(1)
    assert notebook.settings.closed_pages == [1]

    notebook.delete_task(tasks[5].id)
    notebook.delete_task(tasks[6].id)
    again = notebook.add_task("back on page 2")

    assert again.page_index == 1
    settings = notebook.settings
    assert 1 not in settings.closed_pages
    assert settings.page_capacities[1] == 1
    assert notebook.add_task("overflow").page_index == 2
