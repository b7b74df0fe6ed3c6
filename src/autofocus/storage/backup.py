# src/autofocus/storage/backup.py

"""File plumbing for JSON export / import of a notebook."""

from __future__ import annotations

import contextlib
import json
import logging
import os
from datetime import date
from pathlib import Path
from typing import Any

from ..core.notebook import Notebook
from ..tasks.errors import MalformedImportError

logger = logging.getLogger(__name__)


def backup_filename(day: date | None = None) -> str:
    day = day or date.today()
    return f"autofocus-backup-{day.isoformat()}.json"


def export_to_file(notebook: Notebook, target: str | Path) -> Path:
    """
    Write the export document as pretty JSON.

    A directory target gets the dated default file name.
    """
    path = Path(target).expanduser()
    if path.is_dir():
        path = path / backup_filename()

    doc = notebook.export_document()
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(doc, ensure_ascii=False, indent=2), "utf-8")
    os.replace(tmp, path)
    with contextlib.suppress(OSError):
        # Task text can be personal; keep the file private on disk.
        os.chmod(path, 0o600)

    logger.info("Exported %d task(s) to %s", len(doc["tasks"]), path)
    return path


def _reject_constant(name: str) -> Any:
    raise MalformedImportError(f"not valid JSON: {name} is not a number")


def read_import_file(source: str | Path) -> Any:
    path = Path(source).expanduser()
    try:
        raw = path.read_text("utf-8")
    except FileNotFoundError:
        raise MalformedImportError(f"file not found: {path}") from None
    try:
        return json.loads(raw, parse_constant=_reject_constant)
    except json.JSONDecodeError as e:
        raise MalformedImportError(f"not valid JSON: {e.msg} (line {e.lineno})") from None


def import_from_file(notebook: Notebook, source: str | Path) -> int:
    """Import a backup file into the notebook; returns the resulting task count."""
    doc = read_import_file(source)
    notebook.import_document(doc)
    count = len(notebook.tasks)
    logger.info("Imported %s (tasks=%d)", source, count)
    return count
