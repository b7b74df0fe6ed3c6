# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from autofocus.core.notebook import Notebook
from autofocus.core.state import AppState

from .fakes import FakeClock, FakeNotebookRepo, SequentialIds


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="autofocus-test",
        data_dir=tmp_path,
        db_path=tmp_path / "notebook.sqlite3",
        backup_dir=tmp_path / "backups",
        default_page_size=5,
        default_font_size=18,
        persist_interval_seconds=0.01,
        persist_retry_delay_seconds=0.01,
        persistence_enabled=False,
        console_enabled=False,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def notebook(clock: FakeClock) -> Notebook:
    """Fresh notebook (page size 5) with deterministic time and ids."""
    return Notebook(clock=clock, id_factory=SequentialIds())


@pytest.fixture()
def repo() -> FakeNotebookRepo:
    return FakeNotebookRepo()


@pytest.fixture()
def state(settings: SimpleNamespace, notebook: Notebook, repo: FakeNotebookRepo) -> AppState:
    """
    AppState wired like the bootstrap does it, but with an in-memory repo.
    """
    st = AppState(settings=settings, notebook=notebook, repo=repo)
    notebook.subscribe(st.changes.publish)
    return st
