# src/autofocus/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .changes import ChangeQueue
from .notebook import Notebook
from .ports import NotebookRepo


@dataclass
class AppState:
    """
    Explicitly owned application state handed to every collaborator.

    Presentation code reads through `notebook` and mutates only via its
    operations; `changes` is what the persistence worker drains.
    """

    # Store Settings on the state for easy access in other modules.
    settings: Any

    notebook: Notebook
    repo: NotebookRepo | None = None
    changes: ChangeQueue = field(default_factory=ChangeQueue)
