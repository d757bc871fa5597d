# tests/test_task_store.py

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from standup_tracker.tasks.tag_store import TagStore
from standup_tracker.tasks.task_store import TaskStore


def test_insert_assigns_next_order_per_partition(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")

    a = store.insert_sync("u1", "2026-10-19", " first ")
    b = store.insert_sync("u1", "2026-10-19", "second")
    other_day = store.insert_sync("u1", "2026-10-20", "elsewhere")
    other_owner = store.insert_sync("u2", "2026-10-19", "not mine")

    assert (a.order, b.order) == (1, 2)
    assert other_day.order == 1
    assert other_owner.order == 1
    assert a.text == "first"
    assert store.count_tasks() == 4

    listed = store.list_partition_sync("u1", "2026-10-19")
    assert [t.id for t in listed] == [a.id, b.id]


def test_insert_rejects_blank_text_and_owner(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")
    with pytest.raises(ValueError):
        store.insert_sync("u1", "2026-10-19", "   ")
    with pytest.raises(ValueError):
        store.insert_sync("", "2026-10-19", "x")


def test_insert_after_gap_uses_max_plus_one(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")
    a = store.insert_sync("u1", "2026-10-19", "a")
    store.update_sync(a.id, {"order": 7})

    assert store.insert_sync("u1", "2026-10-19", "b").order == 8


def test_update_whitelists_fields_and_reports_missing_rows(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")
    t = store.insert_sync("u1", "2026-10-18", "carry me")

    assert store.update_sync(
        t.id,
        {"date": "2026-10-19", "completed": True, "order": 3, "tags": ["a", "a", " b "], "blocker": "infra"},
    )
    got = store.get_task(t.id)
    assert got is not None
    assert (got.date, got.completed, got.order) == ("2026-10-19", True, 3)
    assert got.tags == ["a", "b"]
    assert got.blocker == "infra"
    assert got.updated_at >= t.updated_at

    assert store.update_sync("missing", {"order": 1}) is False
    with pytest.raises(ValueError):
        store.update_sync(t.id, {"owner_id": "u2"})
    with pytest.raises(ValueError):
        store.update_sync(t.id, {"text": " "})


def test_delete_and_distinct_dates(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")
    a = store.insert_sync("u1", "2026-10-16", "a")
    store.insert_sync("u1", "2026-10-19", "b")
    store.insert_sync("u1", "2026-10-19", "c")
    store.insert_sync("u2", "2026-10-20", "d")

    assert store.list_distinct_dates_sync("u1") == ["2026-10-19", "2026-10-16"]

    assert store.delete_sync(a.id) is True
    assert store.delete_sync(a.id) is False
    assert store.list_distinct_dates_sync("u1") == ["2026-10-19"]


def test_old_schema_is_migrated(tmp_path: Path) -> None:
    db = tmp_path / "tasks.sqlite3"
    conn = sqlite3.connect(db)
    conn.execute(
        "CREATE TABLE tasks (id TEXT PRIMARY KEY, owner_id TEXT NOT NULL, date TEXT NOT NULL, "
        "text TEXT NOT NULL, created_at REAL NOT NULL)"
    )
    conn.execute("INSERT INTO tasks VALUES ('old', 'u1', '2026-10-19', 'legacy', 1.0)")
    conn.commit()
    conn.close()

    store = TaskStore(db)
    (task,) = store.list_partition_sync("u1", "2026-10-19")

    assert task.id == "old"
    assert task.completed is False
    assert task.order == 1
    assert task.tags == []


@pytest.mark.asyncio
async def test_async_gateway_round_trip(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")

    t = await store.insert("u1", "2026-10-19", "async")
    assert await store.update(t.id, {"completed": True}) is True
    (listed,) = await store.list_by_partition("u1", "2026-10-19")

    assert listed.completed is True
    assert await store.list_distinct_dates("u1") == ["2026-10-19"]
    assert await store.delete(t.id) is True


def test_tag_vocabulary_is_per_owner(tmp_path: Path) -> None:
    tags = TagStore(tmp_path / "tasks.sqlite3")

    assert tags.add_tag("u1", " ops ") is True
    assert tags.add_tag("u1", "ops") is False
    assert tags.add_tag("u1", "infra") is True
    tags.add_tag("u2", "private")

    assert sorted(tags.list_tags("u1")) == ["infra", "ops"]
    assert tags.remove_tag("u1", "ops") is True
    assert tags.remove_tag("u1", "ops") is False
    assert tags.list_tags("u1") == ["infra"]

    with pytest.raises(ValueError):
        tags.add_tag("u1", "  ")


def test_tag_store_shares_file_with_tasks(tmp_path: Path) -> None:
    db = tmp_path / "tasks.sqlite3"
    store = TaskStore(db)
    tags = TagStore(db)

    store.insert_sync("u1", "2026-10-19", "x")
    tags.add_tag("u1", "ops")

    assert store.count_tasks() == 1
    assert tags.list_tags("u1") == ["ops"]
