# src/standup_tracker/tasks/tag_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from pathlib import Path

logger = logging.getLogger(__name__)


class TagStore:
    """
    Per-owner tag vocabulary (the tags offered when annotating a task).

    Lives in the same SQLite file as the tasks table but is independent of it:
    removing a tag here does not strip it from tasks that already carry it.
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS user_tags (
                    owner_id TEXT NOT NULL,
                    tag TEXT NOT NULL,
                    created_at REAL NOT NULL,
                    PRIMARY KEY (owner_id, tag)
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    def list_tags(self, owner_id: str) -> list[str]:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "SELECT tag FROM user_tags WHERE owner_id = ? ORDER BY created_at ASC, tag ASC",
                (owner_id,),
            )
            return [str(r["tag"]) for r in cur.fetchall()]
        finally:
            conn.close()

    def add_tag(self, owner_id: str, tag: str) -> bool:
        """Returns False when the tag already exists."""
        tag = (tag or "").strip()
        if not tag:
            raise ValueError("tag is required")
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "INSERT OR IGNORE INTO user_tags(owner_id, tag, created_at) VALUES (?, ?, ?)",
                (owner_id, tag, time.time()),
            )
            conn.commit()
            added = cur.rowcount == 1
        finally:
            conn.close()
        if added:
            logger.debug("Tag added owner=%s tag=%s", owner_id, tag)
        return added

    def remove_tag(self, owner_id: str, tag: str) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "DELETE FROM user_tags WHERE owner_id = ? AND tag = ?",
                (owner_id, (tag or "").strip()),
            )
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()
