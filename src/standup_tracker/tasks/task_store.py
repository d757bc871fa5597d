# src/standup_tracker/tasks/task_store.py

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import sqlite3
import time
import uuid
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from .task_models import UPDATABLE_FIELDS, Task, normalize_tags

logger = logging.getLogger(__name__)


class TaskStore:
    """
    SQLite task store (the persistence gateway).

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection

    The public API is async: every call runs the blocking SQLite work in a
    worker thread so concurrent updates from one gesture can overlap.
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
                    owner_id TEXT NOT NULL,
                    date TEXT NOT NULL,
                    text TEXT NOT NULL,
                    completed INTEGER NOT NULL DEFAULT 0,
                    task_order INTEGER NOT NULL DEFAULT 1,
                    blocker TEXT,
                    tags TEXT NOT NULL DEFAULT '[]',
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

            add_col("completed", "INTEGER NOT NULL DEFAULT 0")
            add_col("task_order", "INTEGER NOT NULL DEFAULT 1")
            add_col("blocker", "TEXT")
            add_col("tags", "TEXT NOT NULL DEFAULT '[]'")
            add_col("updated_at", "REAL NOT NULL DEFAULT 0")

            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_tasks_partition "
                "ON tasks(owner_id, date, task_order, created_at)"
            )

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _tags_to_str(tags: list[str] | None) -> str:
        return json.dumps(normalize_tags(tags), ensure_ascii=False)

    @staticmethod
    def _str_to_tags(s: str | None) -> list[str]:
        if not s:
            return []
        try:
            val = json.loads(s)
        except ValueError:
            return []
        return normalize_tags(val) if isinstance(val, list) else []

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        return Task(
            id=str(row["id"]),
            text=str(row["text"] or ""),
            completed=bool(row["completed"]),
            date=str(row["date"]),
            created_at=float(row["created_at"] or 0.0),
            owner_id=str(row["owner_id"]),
            order=int(row["task_order"] or 0),
            blocker=row["blocker"],
            tags=self._str_to_tags(row["tags"]),
            updated_at=float(row["updated_at"] or 0.0),
        )

    # ---- sync API ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT COUNT(*) FROM tasks")
            (n,) = cur.fetchone()
            return int(n)
        finally:
            conn.close()

    def get_task(self, task_id: str) -> Task | None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM tasks WHERE id = ?", (str(task_id),))
            row = cur.fetchone()
            return self._row_to_task(row) if row else None
        finally:
            conn.close()

    def list_partition_sync(self, owner_id: str, date: str) -> list[Task]:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT *
                FROM tasks
                WHERE owner_id = ?
                  AND date = ?
                ORDER BY task_order ASC, created_at ASC
                """,
                (owner_id, date),
            )
            return [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def insert_sync(self, owner_id: str, date: str, text: str) -> Task:
        if not owner_id or not owner_id.strip():
            raise ValueError("owner_id is required")
        if not text or not text.strip():
            raise ValueError("text is required")

        now = time.time()
        task_id = uuid.uuid4().hex

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "SELECT COALESCE(MAX(task_order), 0) FROM tasks WHERE owner_id = ? AND date = ?",
                (owner_id, date),
            )
            (max_order,) = cur.fetchone()
            next_order = int(max_order) + 1
            cur.execute(
                """
                INSERT INTO tasks(
                    id, owner_id, date, text, completed,
                    task_order, blocker, tags, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, 0, ?, NULL, '[]', ?, ?)
                """,
                (task_id, owner_id, date, text.strip(), next_order, now, now),
            )
            conn.commit()
            logger.debug("Task added id=%s date=%s order=%s", task_id, date, next_order)
        finally:
            conn.close()

        return Task(
            id=task_id,
            text=text.strip(),
            completed=False,
            date=date,
            created_at=now,
            owner_id=owner_id,
            order=next_order,
            updated_at=now,
        )

    def update_sync(self, task_id: str, fields: Mapping[str, Any]) -> bool:
        sets: list[str] = []
        params: list[Any] = []

        for name, value in fields.items():
            if name not in UPDATABLE_FIELDS:
                raise ValueError(f"field {name!r} is not updatable")
            if name == "text":
                if not value or not str(value).strip():
                    raise ValueError("text must not be empty")
                sets.append("text = ?")
                params.append(str(value).strip())
            elif name == "completed":
                sets.append("completed = ?")
                params.append(1 if value else 0)
            elif name == "order":
                sets.append("task_order = ?")
                params.append(int(value))
            elif name == "tags":
                sets.append("tags = ?")
                params.append(self._tags_to_str(value))
            else:
                sets.append(f"{name} = ?")
                params.append(value)

        if not sets:
            return True

        sets.append("updated_at = ?")
        params.append(time.time())
        params.append(str(task_id))

        sql = f"UPDATE tasks SET {', '.join(sets)} WHERE id = ?"

        conn = self._get_conn()
        try:
            cur = conn.execute(sql, params)
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    def delete_sync(self, task_id: str) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (str(task_id),))
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    def list_distinct_dates_sync(self, owner_id: str) -> list[str]:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "SELECT DISTINCT date FROM tasks WHERE owner_id = ? ORDER BY date DESC",
                (owner_id,),
            )
            return [str(r["date"]) for r in cur.fetchall()]
        finally:
            conn.close()

    # ---- gateway API (async) ----

    async def list_by_partition(self, owner_id: str, date: str) -> list[Task]:
        return await asyncio.to_thread(self.list_partition_sync, owner_id, date)

    async def insert(self, owner_id: str, date: str, text: str) -> Task:
        return await asyncio.to_thread(self.insert_sync, owner_id, date, text)

    async def update(self, task_id: str, fields: Mapping[str, Any]) -> bool:
        return await asyncio.to_thread(self.update_sync, task_id, dict(fields))

    async def delete(self, task_id: str) -> bool:
        return await asyncio.to_thread(self.delete_sync, task_id)

    async def list_distinct_dates(self, owner_id: str) -> list[str]:
        return await asyncio.to_thread(self.list_distinct_dates_sync, owner_id)
