# src/autofocus/logging_setup.py

"""
Logging for the autofocus process.

Two sinks:
- stderr, shaped by whether the console REPL is running. While it is, the
  prompt shares the terminal, so records are short (the REPL prints its own
  timestamps) and the background persistence thread only speaks up on
  WARNING+. Headless runs print everything from autofocus with timestamps.
- <data_dir>/autofocus.log with full records at the configured file level.

Only handlers installed here are replaced on a second call, so handlers
added by a host (pytest's caplog, for one) are left alone.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

LOG_FILE_NAME = "autofocus.log"

_APP_PREFIX = "autofocus."
_WORKER_PREFIX = "autofocus.persistence."
_OWNED = "_autofocus_handler"

_FULL_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
_SHORT_FORMAT = "%(levelname)s %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_level(name: Any, default: int) -> int:
    """'debug' / 'INFO' / '20' -> logging level; anything else -> default."""
    raw = str(name or "").strip().upper()
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else default


class _ConsoleNoiseFilter(logging.Filter):
    """Third-party loggers and captured warnings reach stderr only at ERROR+."""

    def __init__(self, *, interactive: bool) -> None:
        super().__init__()
        self.interactive = interactive

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if not name.startswith(_APP_PREFIX):
            return record.levelno >= logging.ERROR
        if self.interactive and name.startswith(_WORKER_PREFIX):
            return record.levelno >= logging.WARNING
        return True


def _own(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _OWNED, True)
    return handler


def setup_logging(
    *,
    log_dir: str | Path = ".local/autofocus",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    interactive: bool = True,
) -> Path:
    """Install the stderr and file handlers; returns the log file path."""
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    for h in [h for h in root.handlers if getattr(h, _OWNED, False)]:
        root.removeHandler(h)
        h.close()
    root.setLevel(min(console_level, file_level))

    console = _own(logging.StreamHandler(sys.stderr))
    console.setLevel(console_level)
    console.setFormatter(
        logging.Formatter(_SHORT_FORMAT) if interactive else logging.Formatter(_FULL_FORMAT, _DATE_FORMAT)
    )
    console.addFilter(_ConsoleNoiseFilter(interactive=interactive))
    root.addHandler(console)

    file_handler = _own(logging.FileHandler(str(log_file), encoding="utf-8"))
    file_handler.setLevel(file_level)
    file_handler.setFormatter(logging.Formatter(_FULL_FORMAT, _DATE_FORMAT))
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    return log_file


def setup_logging_from_settings(settings) -> Path:
    """Configure logging from Settings (log_level, file_log_level, console_enabled, data_dir)."""
    return setup_logging(
        log_dir=settings.data_dir,
        console_level=parse_level(getattr(settings, "log_level", "INFO"), logging.INFO),
        file_level=parse_level(getattr(settings, "file_log_level", "DEBUG"), logging.DEBUG),
        interactive=bool(getattr(settings, "console_enabled", True)),
    )
