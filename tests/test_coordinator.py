# tests/test_coordinator.py

from __future__ import annotations

import pytest

from standup_tracker.core.errors import InvalidGesture
from standup_tracker.tasks.coordinator import ReorderTransferCoordinator
from standup_tracker.tasks.ordered_list import OrderedTaskList
from standup_tracker.tasks.task_models import Gesture, ListId

from .fakes import make_task

TODAY = "2026-10-19"
REF = "2026-10-16"


def _setup(ref_completed: tuple[bool, ...] = (False, True, False, True), today_n: int = 2):
    ref = OrderedTaskList(
        ListId.REFERENCE,
        REF,
        [make_task(f"r{i}", REF, i, completed=c) for i, c in enumerate(ref_completed, start=1)],
    )
    today = OrderedTaskList(
        ListId.TODAY,
        TODAY,
        [make_task(f"t{i}", TODAY, i, completed=(i == 2)) for i in range(1, today_n + 1)],
    )
    return today, ref, ReorderTransferCoordinator(today, ref, owner_id="u1")


def _dense(lst: OrderedTaskList) -> bool:
    return lst.orders() == list(range(1, len(lst) + 1))


def test_reorder_to_same_position_is_noop() -> None:
    today, _, coord = _setup()
    assert coord.handle_gesture(Gesture("t1", ListId.TODAY, ListId.TODAY, "t1")) == []
    assert [t.id for t in today] == ["t1", "t2"]


def test_reorder_emits_one_mutation_per_changed_order() -> None:
    _, ref, coord = _setup()
    muts = coord.handle_gesture(Gesture("r4", ListId.REFERENCE, ListId.REFERENCE, "r2"))

    assert [t.id for t in ref] == ["r1", "r4", "r2", "r3"]
    assert [(m.task_id, dict(m.fields)) for m in muts] == [
        ("r4", {"order": 2}),
        ("r2", {"order": 3}),
        ("r3", {"order": 4}),
    ]
    assert all(m.list_id == ListId.REFERENCE for m in muts)
    assert _dense(ref)


def test_container_drop_in_same_list_moves_to_end() -> None:
    _, ref, coord = _setup()
    muts = coord.handle_gesture(Gesture("r1", ListId.REFERENCE, ListId.REFERENCE, None))
    assert [t.id for t in ref] == ["r2", "r3", "r4", "r1"]
    assert len(muts) == 4


def test_transfer_reference_to_today_clears_completion_and_appends() -> None:
    today, ref, coord = _setup()
    # Dropped near a sibling in the other list: the container still wins.
    muts = coord.handle_gesture(Gesture("r3", ListId.REFERENCE, ListId.TODAY, "t1"))

    moved = today.get("r3")
    assert moved is not None
    assert (moved.date, moved.order, moved.completed) == (TODAY, 3, False)
    assert [t.id for t in today] == ["t1", "t2", "r3"]
    assert muts[0].task_id == "r3"
    assert dict(muts[0].fields) == {"date": TODAY, "completed": False, "order": 3}
    # Source closes its gap: r4 moves from 4 to 3.
    assert [(m.task_id, dict(m.fields)) for m in muts[1:]] == [("r4", {"order": 3})]
    assert _dense(ref) and _dense(today)


def test_transfer_today_to_reference_preserves_completion() -> None:
    today, ref, coord = _setup()
    muts = coord.handle_gesture(Gesture("t2", ListId.TODAY, ListId.REFERENCE))

    moved = ref.get("t2")
    assert moved is not None
    assert moved.completed is True
    assert moved.date == REF
    assert moved.order == 5
    assert "completed" not in muts[0].fields
    assert _dense(today)


def test_completed_reference_task_cannot_be_carried_forward() -> None:
    today, ref, coord = _setup()
    with pytest.raises(InvalidGesture):
        coord.handle_gesture(Gesture("r2", ListId.REFERENCE, ListId.TODAY))
    assert "r2" in ref
    assert len(today) == 2


@pytest.mark.parametrize(
    "gesture",
    [
        Gesture("nope", ListId.TODAY, ListId.TODAY, "t1"),
        Gesture("t1", ListId.REFERENCE, ListId.TODAY),
        Gesture("t1", ListId.TODAY, ListId.TODAY, "r1"),
    ],
)
def test_invalid_gestures_raise(gesture: Gesture) -> None:
    _, _, coord = _setup()
    with pytest.raises(InvalidGesture):
        coord.handle_gesture(gesture)


def test_bulk_transfer_moves_exactly_incomplete_in_order() -> None:
    today, ref, coord = _setup(ref_completed=(False, True, False, True, False))
    muts = coord.bulk_transfer_incomplete(ListId.REFERENCE, ListId.TODAY)

    assert [m.task_id for m in muts] == ["r1", "r3", "r5"]
    assert [t.id for t in today] == ["t1", "t2", "r1", "r3", "r5"]
    assert [t.order for t in today] == [1, 2, 3, 4, 5]
    assert all(not t.completed and t.date == TODAY for t in today.tasks[2:])
    # Completed leftovers keep their original orders.
    assert [(t.id, t.order) for t in ref] == [("r2", 2), ("r4", 4)]


def test_bulk_transfer_with_nothing_incomplete() -> None:
    _, _, coord = _setup(ref_completed=(True, True))
    assert coord.bulk_transfer_incomplete(ListId.REFERENCE, ListId.TODAY) == []
