# src/gobii_tasks/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
import uuid
from collections.abc import Iterable
from pathlib import Path

from .output_schema import OutputSchema, SchemaError, schema_from_json, schema_to_json
from .task_models import TaskRecord, TaskStatus

logger = logging.getLogger(__name__)

# Keeps a patch call from touching a column when the caller did not pass it.
_UNSET = object()


class TaskNotFoundError(LookupError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Unknown task: {task_id}")
        self.task_id = task_id


class TaskStore:
    """
    SQLite task store.

    Two write paths:
    - save_tasks(): whole-collection replace (one transaction)
    - update_task_fields() / replace_task_id(): per-task patches used by the poller
      and the run flow, so concurrent pollers never overwrite each other's rows

    The schema is migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except sqlite3.Error:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    @property
    def db_path(self) -> Path:
        return self._db_path

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
                    position INTEGER NOT NULL DEFAULT 0,
                    name TEXT NOT NULL DEFAULT '',
                    prompt TEXT NOT NULL DEFAULT '',
                    output_schema TEXT,
                    status TEXT,
                    last_result TEXT,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("position", "INTEGER NOT NULL DEFAULT 0")
            add_col("name", "TEXT NOT NULL DEFAULT ''")
            add_col("prompt", "TEXT NOT NULL DEFAULT ''")
            add_col("output_schema", "TEXT")
            add_col("status", "TEXT")
            add_col("last_result", "TEXT")
            add_col("created_at", "REAL NOT NULL DEFAULT 0")
            add_col("updated_at", "REAL NOT NULL DEFAULT 0")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_position ON tasks(position)")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _str_to_schema(s: str | None, task_id: str) -> OutputSchema | None:
        try:
            return schema_from_json(s)
        except SchemaError:
            logger.warning("Dropping unreadable output schema for task_id=%s", task_id)
            return None

    def _row_to_task(self, row: sqlite3.Row) -> TaskRecord:
        task_id = str(row["id"])
        return TaskRecord(
            id=task_id,
            name=str(row["name"] or ""),
            prompt=str(row["prompt"] or ""),
            output_schema=self._str_to_schema(row["output_schema"], task_id),
            status=TaskStatus.from_db(row["status"]),
            last_result=row["last_result"],
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
        )

    @staticmethod
    def _status_to_db(status: TaskStatus | None) -> str | None:
        return status.value if status is not None else None

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

    def load_tasks(self) -> list[TaskRecord]:
        """All tasks in insertion order."""
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM tasks ORDER BY position ASC, created_at ASC")
            return [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def save_tasks(self, tasks: Iterable[TaskRecord]) -> None:
        """
        Replace the whole stored collection with `tasks`.

        List order becomes the stored order. Timestamps are kept as given
        (a zero created_at/updated_at is filled with "now").
        """
        items = list(tasks)
        now = time.time()

        conn = self._get_conn()
        try:
            with conn:
                conn.execute("DELETE FROM tasks")
                conn.executemany(
                    """
                    INSERT INTO tasks(
                        id, position, name, prompt, output_schema,
                        status, last_result, created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        (
                            t.id,
                            pos,
                            t.name,
                            t.prompt,
                            schema_to_json(t.output_schema),
                            self._status_to_db(t.status),
                            t.last_result,
                            t.created_at or now,
                            t.updated_at or now,
                        )
                        for pos, t in enumerate(items)
                    ],
                )
            logger.debug("Saved task collection total=%s", len(items))
        finally:
            conn.close()

    def get_task(self, task_id: str) -> TaskRecord | None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM tasks WHERE id = ?", (task_id,))
            row = cur.fetchone()
            return self._row_to_task(row) if row else None
        finally:
            conn.close()

    def add_task(
        self,
        *,
        name: str = "",
        prompt: str = "",
        output_schema: OutputSchema | None = None,
        task_id: str | None = None,
    ) -> TaskRecord:
        """Append a new, never-submitted task. Without task_id a local placeholder id is generated."""
        task_id = task_id or uuid.uuid4().hex
        now = time.time()

        conn = self._get_conn()
        try:
            with conn:
                conn.execute(
                    """
                    INSERT INTO tasks(
                        id, position, name, prompt, output_schema,
                        status, last_result, created_at, updated_at
                    )
                    VALUES (?, (SELECT COALESCE(MAX(position), -1) + 1 FROM tasks), ?, ?, ?, NULL, NULL, ?, ?)
                    """,
                    (task_id, name, prompt, schema_to_json(output_schema), now, now),
                )
            logger.debug("Task added id=%s name=%r", task_id, name)
        finally:
            conn.close()

        return TaskRecord(
            id=task_id,
            name=name,
            prompt=prompt,
            output_schema=output_schema,
            created_at=now,
            updated_at=now,
        )

    def update_task(self, task: TaskRecord) -> bool:
        """
        Persist user edits (name/prompt/schema) of an existing task.

        Status and result are owned by the poller and are not written here.
        """
        conn = self._get_conn()
        try:
            with conn:
                cur = conn.execute(
                    """
                    UPDATE tasks
                    SET name = ?, prompt = ?, output_schema = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (task.name, task.prompt, schema_to_json(task.output_schema), time.time(), task.id),
                )
            return cur.rowcount == 1
        finally:
            conn.close()

    def update_task_fields(
        self,
        task_id: str,
        *,
        status: TaskStatus | None | object = _UNSET,
        last_result: str | None | object = _UNSET,
    ) -> bool:
        """
        Patch status and/or last_result of one task; always bumps updated_at.

        Returns False if the task no longer exists.
        """
        fields: list[str] = []
        params: list[object] = []

        if status is not _UNSET:
            fields.append("status = ?")
            params.append(self._status_to_db(status))  # type: ignore[arg-type]

        if last_result is not _UNSET:
            fields.append("last_result = ?")
            params.append(last_result)

        fields.append("updated_at = ?")
        params.append(time.time())
        params.append(task_id)

        sql = f"UPDATE tasks SET {', '.join(fields)} WHERE id = ?"

        conn = self._get_conn()
        try:
            with conn:
                cur = conn.execute(sql, params)
            return cur.rowcount == 1
        finally:
            conn.close()

    def replace_task_id(self, old_id: str, new_id: str, *, status: TaskStatus | None) -> bool:
        """
        Re-key a task with the id assigned by the server (position is kept).

        Returns False if old_id does not exist.
        """
        conn = self._get_conn()
        try:
            with conn:
                cur = conn.execute(
                    "UPDATE tasks SET id = ?, status = ?, updated_at = ? WHERE id = ?",
                    (new_id, self._status_to_db(status), time.time(), old_id),
                )
            if cur.rowcount == 1:
                logger.debug("Task re-keyed %s -> %s", old_id, new_id)
            return cur.rowcount == 1
        finally:
            conn.close()

    def delete_task(self, task_id: str) -> bool:
        conn = self._get_conn()
        try:
            with conn:
                cur = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            return cur.rowcount == 1
        finally:
            conn.close()

    def list_tasks_by_status(self, statuses: Iterable[TaskStatus]) -> list[TaskRecord]:
        wanted = [s.value for s in statuses]
        if not wanted:
            return []

        conn = self._get_conn()
        try:
            placeholders = ",".join("?" for _ in wanted)
            cur = conn.cursor()
            cur.execute(
                f"""
                SELECT *
                FROM tasks
                WHERE status IN ({placeholders})
                ORDER BY position ASC, created_at ASC
                """,
                wanted,
            )
            return [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()
