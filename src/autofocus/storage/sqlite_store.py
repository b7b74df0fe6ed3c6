# src/autofocus/storage/sqlite_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from collections.abc import Sequence
from pathlib import Path

from ..core.ports import StoredNotebook
from ..tasks.task_models import NotebookSettings, Task, TaskStatus, build_state

logger = logging.getLogger(__name__)

_KEY_PAGE_SIZE = "page_size"
_KEY_FONT_SIZE = "font_size"
_KEY_CURRENT_PAGE = "current_page"


class SqliteNotebookStore:
    """
    SQLite notebook store.

    The schema is intentionally simple and migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Task rows are written with last-write-wins on updated_at, so an older
    copy of a task never overwrites a newer one.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "notebook.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except Exception:
            total = -1
        logger.info("SqliteNotebookStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    text TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'active',
                    page_index INTEGER NOT NULL DEFAULT 0,
                    created_at INTEGER NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value INTEGER NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS page_capacities (
                    page_index INTEGER PRIMARY KEY,
                    capacity INTEGER NOT NULL
                )
                """
            )
            cur.execute("CREATE TABLE IF NOT EXISTS closed_pages (page_index INTEGER PRIMARY KEY)")

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("SqliteNotebookStore migration: added column %s", name)

            add_col("details", "TEXT")
            add_col("completed_at", "INTEGER")
            add_col("dismissed_at", "INTEGER")
            add_col("updated_at", "INTEGER NOT NULL DEFAULT 0")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_page_status ON tasks(page_index, status)")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        created_at = int(row["created_at"] or 0)
        updated_at = int(row["updated_at"]) if row["updated_at"] else None
        try:
            status = TaskStatus.parse(row["status"])
        except ValueError:
            logger.warning("Unknown status %r for task %s; treating as active", row["status"], row["id"])
            status = TaskStatus.ACTIVE
        return Task(
            id=str(row["id"]),
            text=str(row["text"] or ""),
            details=row["details"],
            page_index=int(row["page_index"] or 0),
            created_at=created_at,
            state=build_state(
                status,
                completed_at=row["completed_at"],
                dismissed_at=row["dismissed_at"],
                fallback_at=updated_at or created_at,
            ),
            updated_at=updated_at,
        )

    @staticmethod
    def _task_params(task: Task) -> tuple:
        return (
            task.id,
            task.text,
            task.details,
            task.status.value,
            task.page_index,
            task.created_at,
            task.completed_at,
            task.dismissed_at,
            task.updated_at if task.updated_at is not None else task.created_at,
        )

    @staticmethod
    def _write_settings(cur: sqlite3.Cursor, settings: NotebookSettings) -> None:
        cur.executemany(
            "INSERT INTO settings(key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            [(_KEY_PAGE_SIZE, settings.page_size), (_KEY_FONT_SIZE, settings.font_size)],
        )
        cur.execute("DELETE FROM page_capacities")
        cur.executemany(
            "INSERT INTO page_capacities(page_index, capacity) VALUES (?, ?)",
            sorted(settings.page_capacities.items()),
        )
        cur.execute("DELETE FROM closed_pages")
        cur.executemany(
            "INSERT INTO closed_pages(page_index) VALUES (?)",
            [(p,) for p in settings.closed_pages],
        )

    @staticmethod
    def _write_current_page(cur: sqlite3.Cursor, page_index: int) -> None:
        cur.execute(
            "INSERT INTO settings(key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (_KEY_CURRENT_PAGE, int(page_index)),
        )

    # ---- public API ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT COUNT(*) FROM tasks")
            (n,) = cur.fetchone()
            return int(n)
        finally:
            conn.close()

    def load(self) -> StoredNotebook:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM tasks ORDER BY rowid ASC")
            tasks = [self._row_to_task(r) for r in cur.fetchall()]

            cur.execute("SELECT key, value FROM settings")
            kv = {row["key"]: int(row["value"]) for row in cur.fetchall()}

            cur.execute("SELECT page_index, capacity FROM page_capacities ORDER BY page_index")
            caps = {int(r["page_index"]): int(r["capacity"]) for r in cur.fetchall()}

            cur.execute("SELECT page_index FROM closed_pages ORDER BY page_index")
            closed = [int(r["page_index"]) for r in cur.fetchall()]
        finally:
            conn.close()

        settings: NotebookSettings | None = None
        if _KEY_PAGE_SIZE in kv or caps or closed:
            settings = NotebookSettings(page_capacities=caps, closed_pages=closed)
            if kv.get(_KEY_PAGE_SIZE, 0) > 0:
                settings.page_size = kv[_KEY_PAGE_SIZE]
            if kv.get(_KEY_FONT_SIZE, 0) > 0:
                settings.font_size = kv[_KEY_FONT_SIZE]

        logger.debug("Loaded notebook tasks=%d settings=%s", len(tasks), settings is not None)
        return StoredNotebook(tasks=tasks, settings=settings, current_page=kv.get(_KEY_CURRENT_PAGE, 0))

    def upsert_tasks(self, tasks: Sequence[Task]) -> int:
        """
        Write a batch of tasks in one transaction.

        Rows whose stored updated_at is newer than the incoming copy are kept.
        Returns the number of rows written.
        """
        if not tasks:
            return 0

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            written = 0
            for task in tasks:
                cur.execute(
                    """
                    INSERT INTO tasks(
                        id, text, details, status, page_index,
                        created_at, completed_at, dismissed_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        text = excluded.text,
                        details = excluded.details,
                        status = excluded.status,
                        page_index = excluded.page_index,
                        created_at = excluded.created_at,
                        completed_at = excluded.completed_at,
                        dismissed_at = excluded.dismissed_at,
                        updated_at = excluded.updated_at
                    WHERE excluded.updated_at >= tasks.updated_at
                    """,
                    self._task_params(task),
                )
                written += cur.rowcount
            conn.commit()
            logger.debug("Upserted %d/%d task(s)", written, len(tasks))
            return written
        finally:
            conn.close()

    def delete_task(self, task_id: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            conn.commit()
        finally:
            conn.close()

    def save_settings(self, settings: NotebookSettings) -> None:
        conn = self._get_conn()
        try:
            self._write_settings(conn.cursor(), settings)
            conn.commit()
        finally:
            conn.close()

    def save_current_page(self, page_index: int) -> None:
        conn = self._get_conn()
        try:
            self._write_current_page(conn.cursor(), page_index)
            conn.commit()
        finally:
            conn.close()

    def replace_all(
        self,
        tasks: Sequence[Task],
        settings: NotebookSettings,
        *,
        current_page: int = 0,
    ) -> None:
        """Swap the whole stored notebook in one transaction (reset / import)."""
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("DELETE FROM tasks")
            cur.executemany(
                """
                INSERT INTO tasks(
                    id, text, details, status, page_index,
                    created_at, completed_at, dismissed_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [self._task_params(t) for t in tasks],
            )
            self._write_settings(cur, settings)
            self._write_current_page(cur, current_page)
            conn.commit()
            logger.info("Replaced stored notebook tasks=%d", len(tasks))
        finally:
            conn.close()
