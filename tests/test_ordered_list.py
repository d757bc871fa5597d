# tests/test_ordered_list.py

from __future__ import annotations

import pytest

from standup_tracker.tasks.ordered_list import OrderedTaskList
from standup_tracker.tasks.partition import partition_key
from standup_tracker.tasks.task_models import ListId

from .fakes import make_task


def _list(*orders: int) -> OrderedTaskList:
    tasks = [make_task(f"t{i}", "2026-10-19", o) for i, o in enumerate(orders, start=1)]
    return OrderedTaskList(ListId.TODAY, "2026-10-19", tasks)


def test_sorted_by_order_then_created_at() -> None:
    tasks = [
        make_task("b", "2026-10-19", 2, created_at=5.0),
        make_task("a2", "2026-10-19", 1, created_at=9.0),
        make_task("a1", "2026-10-19", 1, created_at=3.0),
    ]
    lst = OrderedTaskList(ListId.TODAY, "2026-10-19", tasks)
    assert [t.id for t in lst] == ["a1", "a2", "b"]


def test_insert_at_end_uses_max_plus_one() -> None:
    lst = OrderedTaskList(ListId.TODAY, "2026-10-19")
    assert lst.insert_at_end(make_task("x", "2026-10-19", 99)) == 1

    gappy = _list(1, 4)
    assert gappy.insert_at_end(make_task("y", "2026-10-19", 0)) == 5


def test_remove_leaves_gap_until_reindex() -> None:
    lst = _list(1, 2, 3)
    removed = lst.remove("t2")
    assert removed.id == "t2"
    assert lst.orders() == [1, 3]

    assert lst.reindex() == {"t3": 2}
    assert lst.orders() == [1, 2]
    assert lst.reindex() == {}

    with pytest.raises(KeyError):
        lst.remove("missing")


def test_move_within_is_array_move_and_reports_changes() -> None:
    lst = _list(1, 2, 3, 4)
    changed = lst.move_within(0, 2)

    assert [t.id for t in lst] == ["t2", "t3", "t1", "t4"]
    assert lst.orders() == [1, 2, 3, 4]
    assert changed == {"t2": 1, "t3": 2, "t1": 3}

    with pytest.raises(IndexError):
        lst.move_within(0, 4)


def test_snapshot_restore_round_trip_isolated() -> None:
    lst = _list(1, 2)
    snap = lst.snapshot()
    lst.move_within(0, 1)
    lst.tasks[0].completed = True

    lst.restore(snap)
    assert [t.id for t in lst] == ["t1", "t2"]
    assert not any(t.completed for t in lst)


def test_partition_key_normalizes_and_shifts() -> None:
    key = partition_key(" u1 ", "2026-10-19")
    assert key.owner_id == "u1"
    assert key.shifted(-1).date == "2026-10-18"

    with pytest.raises(ValueError):
        partition_key("", "2026-10-19")
