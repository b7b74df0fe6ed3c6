# src/autofocus/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the notebook, the durable store and the change queue into AppState,
- restores the saved notebook before any change is published.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.notebook import Notebook
from ..core.state import AppState
from ..persistence.worker import flush_pending
from ..storage.sqlite_store import SqliteNotebookStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.backup_dir.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    notebook = Notebook(
        default_page_size=settings.default_page_size,
        default_font_size=settings.default_font_size,
    )
    repo = SqliteNotebookStore(settings.db_path) if settings.persistence_enabled else None

    state = AppState(settings=settings, notebook=notebook, repo=repo)
    load_notebook(state)
    notebook.subscribe(state.changes.publish)
    return state


def load_notebook(state: AppState) -> None:
    """Restore the saved notebook (best-effort: a broken store leaves a fresh notebook)."""
    if state.repo is None:
        return
    try:
        stored = state.repo.load()
    except Exception:
        logger.exception("Failed to load saved notebook; starting empty.")
        return

    state.notebook.restore(stored.tasks, stored.settings, current_page=stored.current_page)
    logger.info(
        "Loaded notebook: %d task(s), %d page(s)",
        len(stored.tasks),
        state.notebook.max_page_index + 1 if stored.tasks else 0,
    )


def shutdown_persistence(state: AppState) -> None:
    """Last synchronous flush once the background worker is gone."""
    if state.repo is None:
        return
    if not flush_pending(state.changes, state.repo):
        logger.error("Unsaved changes remain after shutdown: %d", len(state.changes))
