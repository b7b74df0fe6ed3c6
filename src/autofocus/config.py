# src/autofocus/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Nothing required at import time; every value has a default.
- Everything else receives settings by injection (see cli/bootstrap.py).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .tasks.task_models import DEFAULT_FONT_SIZE, DEFAULT_PAGE_SIZE

ENV_PREFIX = "AUTOFOCUS"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_positive_int(name: str, default: int) -> int:
    value = _env_int(name, default)
    return value if value > 0 else default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    file_log_level: str

    # ---- Connector / worker switches ----
    console_enabled: bool
    persistence_enabled: bool

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path
    backup_dir: Path

    # ---- Notebook defaults (used for a fresh notebook and after a reset) ----
    default_page_size: int
    default_font_size: int

    # ---- Persistence worker tuning ----
    persist_interval_seconds: float
    persist_retry_delay_seconds: float

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "autofocus").strip() or "autofocus"
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        file_log_level = _env(_k("FILE_LOG_LEVEL"), "DEBUG")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)
        persistence_enabled = _env_bool(_k("PERSISTENCE_ENABLED"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/autofocus"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "notebook.sqlite3")
        backup_dir = _env_path(_k("BACKUP_DIR"), data_dir / "backups")

        default_page_size = _env_positive_int(_k("PAGE_SIZE"), DEFAULT_PAGE_SIZE)
        default_font_size = _env_positive_int(_k("FONT_SIZE"), DEFAULT_FONT_SIZE)

        persist_interval_seconds = _env_float(_k("PERSIST_INTERVAL_SECONDS"), 0.5)
        persist_retry_delay_seconds = _env_float(_k("PERSIST_RETRY_DELAY_SECONDS"), 5.0)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            file_log_level=file_log_level,
            console_enabled=console_enabled,
            persistence_enabled=persistence_enabled,
            data_dir=data_dir,
            db_path=db_path,
            backup_dir=backup_dir,
            default_page_size=default_page_size,
            default_font_size=default_font_size,
            persist_interval_seconds=persist_interval_seconds,
            persist_retry_delay_seconds=persist_retry_delay_seconds,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
