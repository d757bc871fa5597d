# src/standup_tracker/tasks/coordinator.py

from __future__ import annotations

"""
Reorder / transfer coordinator.

Turns a gesture descriptor into order (and date) changes on the two in-memory
lists and returns them as mutations for the sync engine to persist.

Target resolution:
- the gesture crosses lists  -> the destination container wins and the task is
  appended to the end, whatever sibling it was dropped near;
- the gesture stays in a list -> the sibling under the drop is the target; a
  drop on the container itself moves the task to the end.
"""

import logging

from ..core.errors import InvalidGesture
from .ordered_list import OrderedTaskList
from .partition import partition_key
from .task_models import Gesture, ListId, Mutation, Task

logger = logging.getLogger(__name__)


def _order_mutations(lst: OrderedTaskList, changed: dict[str, int]) -> list[Mutation]:
    # Emit in list order so persistence calls are issued top to bottom.
    return [
        Mutation(t.id, lst.list_id, {"order": t.order})
        for t in lst.tasks
        if t.id in changed
    ]


class ReorderTransferCoordinator:
    def __init__(self, today: OrderedTaskList, reference: OrderedTaskList, *, owner_id: str) -> None:
        self._lists = {ListId.TODAY: today, ListId.REFERENCE: reference}
        self._owner_id = owner_id

    def list_for(self, list_id: ListId) -> OrderedTaskList:
        return self._lists[ListId(list_id)]

    def _dest_date(self, dest: OrderedTaskList) -> str:
        return partition_key(self._owner_id, dest.date).date

    def handle_gesture(self, gesture: Gesture) -> list[Mutation]:
        source = self.list_for(gesture.source_list)
        if gesture.source_task_id not in source:
            raise InvalidGesture(
                f"task {gesture.source_task_id} is not in the {gesture.source_list.value} list"
            )
        if gesture.crosses_lists:
            return self.transfer(gesture.source_task_id, gesture.source_list, gesture.dest_list)
        return self._reorder(source, gesture.source_task_id, gesture.dest_task_id)

    def _reorder(self, lst: OrderedTaskList, task_id: str, dest_task_id: str | None) -> list[Mutation]:
        from_index = lst.index_of(task_id)
        if dest_task_id is None:
            to_index = len(lst) - 1
        else:
            to_index = lst.index_of(dest_task_id)
            if to_index < 0:
                raise InvalidGesture(f"drop target {dest_task_id} is not in the {lst.list_id.value} list")

        if from_index == to_index:
            # Dropping back in place must not rewrite anything, even a stale gap.
            return []

        changed = lst.move_within(from_index, to_index)
        logger.debug("Reorder %s: %s %d->%d, %d changed", lst.list_id.value, task_id, from_index, to_index, len(changed))
        return _order_mutations(lst, changed)

    def _move_to(self, task: Task, dest: OrderedTaskList, *, clear_completed: bool) -> Mutation:
        task.date = self._dest_date(dest)
        fields: dict[str, object] = {"date": task.date}
        if clear_completed:
            task.completed = False
            fields["completed"] = False
        fields["order"] = dest.insert_at_end(task)
        return Mutation(task.id, dest.list_id, fields)

    def transfer(self, task_id: str, source_id: ListId, dest_id: ListId) -> list[Mutation]:
        if source_id == dest_id:
            raise InvalidGesture("transfer needs two different lists")
        source = self.list_for(source_id)
        dest = self.list_for(dest_id)

        task = source.get(task_id)
        if task is None:
            raise InvalidGesture(f"task {task_id} is not in the {source_id.value} list")

        into_today = dest_id == ListId.TODAY
        if into_today and task.completed:
            # Already resolved; nothing to carry forward.
            raise InvalidGesture(f"task {task_id} is completed and cannot be carried forward")

        source.remove(task_id)
        moved = self._move_to(task, dest, clear_completed=into_today)
        closed = source.reindex()

        logger.debug("Transfer %s: %s -> %s order=%s", task_id, source_id.value, dest_id.value, task.order)
        return [moved, *_order_mutations(source, closed)]

    def bulk_transfer_incomplete(self, source_id: ListId, dest_id: ListId) -> list[Mutation]:
        """
        Move every unfinished task of source to the end of dest, keeping their
        relative order. Tasks left in source keep their order values.
        """
        if source_id == dest_id:
            raise InvalidGesture("bulk transfer needs two different lists")
        source = self.list_for(source_id)
        dest = self.list_for(dest_id)

        pending = [t for t in source.tasks if not t.completed]
        mutations: list[Mutation] = []
        for task in pending:
            source.remove(task.id)
            mutations.append(self._move_to(task, dest, clear_completed=True))

        if mutations:
            logger.debug("Bulk transfer %d tasks %s -> %s", len(mutations), source_id.value, dest_id.value)
        return mutations
