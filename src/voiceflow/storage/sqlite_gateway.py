# src/voiceflow/storage/sqlite_gateway.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import sqlite3
from datetime import date, timedelta
from pathlib import Path

from ..core.errors import FetchFailure, MutationFailure
from ..tasks.task_models import Task, TaskPayload, TaskPriority, TaskStatus

logger = logging.getLogger(__name__)

# (title, description, priority, status, due offset in days from today)
SAMPLE_TASKS: tuple[tuple[str, str, str, str, int], ...] = (
    ("Complete project proposal", "Write and submit the Q1 project proposal to stakeholders", "high", "in_progress", 3),
    ("Review code changes", "Review pull requests from the team", "medium", "todo", 1),
    ("Update documentation", "Update API documentation with new endpoints", "low", "todo", 7),
    ("Fix bug in login flow", "Users reporting issues with password reset", "urgent", "in_progress", 0),
    ("Team meeting preparation", "Prepare slides for weekly team sync", "medium", "done", -1),
    ("Database optimization", "Optimize slow queries in production", "high", "todo", 5),
)


class SqliteTaskGateway:
    """
    Local persistence backend (used when no REST API is configured).

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each call opens its own SQLite connection
    - blocking work runs in a worker thread via asyncio.to_thread
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3", *, seed_sample_data: bool = True) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        if seed_sample_data:
            self._seed_if_empty()
        logger.info("SqliteTaskGateway ready db=%s total=%s", self._db_path, self.count_tasks())

    async def aclose(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL CHECK (length(trim(title)) > 0),
                    description TEXT,
                    priority TEXT NOT NULL DEFAULT 'medium'
                        CHECK (priority IN ('low', 'medium', 'high', 'urgent')),
                    status TEXT NOT NULL DEFAULT 'todo'
                        CHECK (status IN ('todo', 'in_progress', 'done')),
                    due_date TEXT,
                    created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now')),
                    updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
                )
                """
            )

            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("SqliteTaskGateway migration: added column %s", name)

            # ALTER TABLE cannot add columns with non-constant defaults.
            add_col("description", "TEXT")
            add_col("priority", "TEXT NOT NULL DEFAULT 'medium'")
            add_col("status", "TEXT NOT NULL DEFAULT 'todo'")
            add_col("due_date", "TEXT")
            add_col("created_at", "TEXT NOT NULL DEFAULT ''")
            add_col("updated_at", "TEXT NOT NULL DEFAULT ''")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_priority ON tasks(priority)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_due_date ON tasks(due_date)")
            cur.execute(
                """
                CREATE TRIGGER IF NOT EXISTS trg_tasks_touch
                AFTER UPDATE ON tasks
                FOR EACH ROW WHEN NEW.updated_at = OLD.updated_at
                BEGIN
                    UPDATE tasks SET updated_at = strftime('%Y-%m-%dT%H:%M:%S', 'now')
                    WHERE id = NEW.id;
                END
                """
            )
            conn.commit()
        finally:
            conn.close()

    def _seed_if_empty(self) -> None:
        if self.count_tasks() > 0:
            return
        today = date.today()
        rows = [
            (title, desc, prio, status, (today + timedelta(days=offset)).isoformat())
            for title, desc, prio, status, offset in SAMPLE_TASKS
        ]
        conn = self._get_conn()
        try:
            conn.executemany(
                "INSERT INTO tasks(title, description, priority, status, due_date) VALUES (?, ?, ?, ?, ?)",
                rows,
            )
            conn.commit()
        finally:
            conn.close()
        logger.info("Seeded %d sample tasks", len(rows))

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task.from_dict(dict(row))

    # ---- synchronous API (runs in a worker thread) ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)
        finally:
            conn.close()

    def _list_sync(self) -> list[Task]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM tasks ORDER BY created_at DESC, id DESC").fetchall()
            return [self._row_to_task(r) for r in rows]
        finally:
            conn.close()

    def _get_sync(self, conn: sqlite3.Connection, task_id: int) -> Task | None:
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),)).fetchone()
        return self._row_to_task(row) if row else None

    def _create_sync(self, payload: TaskPayload) -> Task:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                INSERT INTO tasks(title, description, priority, status, due_date)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    payload.title.strip(),
                    payload.description,
                    (payload.priority or TaskPriority.MEDIUM).value,
                    (payload.status or TaskStatus.TODO).value,
                    payload.due_date.isoformat() if payload.due_date else None,
                ),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for tasks insert")
            task = self._get_sync(conn, int(rowid))
            if task is None:
                raise RuntimeError(f"inserted task id={rowid} vanished")
            return task
        finally:
            conn.close()

    def _update_sync(self, task_id: int, payload: TaskPayload) -> Task:
        # Unset fields keep their stored value; `clear` empties them.
        fields = ["title = ?"]
        params: list[object] = [payload.title.strip()]
        values: dict[str, object] = {
            "description": payload.description,
            "priority": payload.priority.value if payload.priority is not None else None,
            "status": payload.status.value if payload.status is not None else None,
            "due_date": payload.due_date.isoformat() if payload.due_date is not None else None,
        }
        for column, value in values.items():
            if value is not None or column in payload.clear:
                fields.append(f"{column} = ?")
                params.append(value)
        params.append(int(task_id))

        conn = self._get_conn()
        try:
            cur = conn.execute(f"UPDATE tasks SET {', '.join(fields)} WHERE id = ?", params)
            conn.commit()
            if cur.rowcount != 1:
                raise LookupError(f"task id={task_id} not found")
            task = self._get_sync(conn, task_id)
            if task is None:
                raise LookupError(f"task id={task_id} not found")
            return task
        finally:
            conn.close()

    def _delete_sync(self, task_id: int) -> None:
        conn = self._get_conn()
        try:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (int(task_id),))
            conn.commit()
            if cur.rowcount != 1:
                raise LookupError(f"task id={task_id} not found")
        finally:
            conn.close()

    # ---- TaskGateway ----

    async def list_tasks(self) -> list[Task]:
        try:
            return await asyncio.to_thread(self._list_sync)
        except sqlite3.Error as exc:
            raise FetchFailure(f"database error ({exc})") from exc

    async def create_task(self, payload: TaskPayload) -> Task:
        if not payload.has_title():
            raise MutationFailure("Task payload must carry a non-empty title.")
        try:
            task = await asyncio.to_thread(self._create_sync, payload)
        except (sqlite3.Error, RuntimeError) as exc:
            raise MutationFailure(f"Failed to create task ({exc}).") from exc
        logger.debug("Task added id=%s priority=%s status=%s", task.id, task.priority, task.status)
        return task

    async def update_task(self, task_id: int, payload: TaskPayload) -> Task:
        if not payload.has_title():
            raise MutationFailure("Task payload must carry a non-empty title.")
        try:
            return await asyncio.to_thread(self._update_sync, task_id, payload)
        except LookupError as exc:
            raise MutationFailure(f"Failed to update task ({exc}).") from exc
        except sqlite3.Error as exc:
            raise MutationFailure(f"Failed to update task ({exc}).") from exc

    async def delete_task(self, task_id: int) -> None:
        try:
            await asyncio.to_thread(self._delete_sync, task_id)
        except LookupError as exc:
            raise MutationFailure(f"Failed to delete task ({exc}).") from exc
        except sqlite3.Error as exc:
            raise MutationFailure(f"Failed to delete task ({exc}).") from exc
