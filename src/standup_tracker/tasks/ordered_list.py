# src/standup_tracker/tasks/ordered_list.py

from __future__ import annotations

from collections.abc import Iterable, Iterator

from .task_models import ListId, Task


class OrderedTaskList:
    """
    In-memory tasks of one partition, kept in display order.

    Positions (indices) and order values are different things: positions are
    0-based slots in the sequence, order values are the persisted 1-based ranks.
    remove() leaves a gap in the order values; reindex() closes it.
    """

    def __init__(self, list_id: ListId, date: str, tasks: Iterable[Task] = ()) -> None:
        self.list_id = list_id
        self.date = date
        self._items: list[Task] = sorted(tasks, key=lambda t: (t.order, t.created_at))

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Task]:
        return iter(list(self._items))

    def __contains__(self, task_id: object) -> bool:
        return any(t.id == task_id for t in self._items)

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        return f"OrderedTaskList({self.list_id.value}, {self.date}, n={len(self._items)})"

    @property
    def tasks(self) -> tuple[Task, ...]:
        return tuple(self._items)

    def orders(self) -> list[int]:
        return [t.order for t in self._items]

    def index_of(self, task_id: str) -> int:
        for i, t in enumerate(self._items):
            if t.id == task_id:
                return i
        return -1

    def get(self, task_id: str) -> Task | None:
        i = self.index_of(task_id)
        return self._items[i] if i >= 0 else None

    def insert_at_end(self, task: Task) -> int:
        task.order = max((t.order for t in self._items), default=0) + 1
        self._items.append(task)
        return task.order

    def remove(self, task_id: str) -> Task:
        i = self.index_of(task_id)
        if i < 0:
            raise KeyError(task_id)
        return self._items.pop(i)

    def reindex(self) -> dict[str, int]:
        changed: dict[str, int] = {}
        for position, task in enumerate(self._items, start=1):
            if task.order != position:
                task.order = position
                changed[task.id] = position
        return changed

    def move_within(self, from_index: int, to_index: int) -> dict[str, int]:
        n = len(self._items)
        if not (0 <= from_index < n) or not (0 <= to_index < n):
            raise IndexError(f"move {from_index}->{to_index} out of range for {n} tasks")
        task = self._items.pop(from_index)
        self._items.insert(to_index, task)
        return self.reindex()

    def replace(self, tasks: Iterable[Task], *, date: str | None = None) -> None:
        """Swap in authoritative state (after a load or reload)."""
        if date is not None:
            self.date = date
        self._items = sorted(tasks, key=lambda t: (t.order, t.created_at))

    def snapshot(self) -> tuple[str, list[Task]]:
        return self.date, [t.copy() for t in self._items]

    def restore(self, snap: tuple[str, list[Task]]) -> None:
        self.date, items = snap
        self._items = [t.copy() for t in items]
