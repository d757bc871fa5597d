# tests/fakes.py

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Mapping
from typing import Any

from standup_tracker.tasks.task_models import Task


def make_task(
    task_id: str,
    date: str,
    order: int,
    *,
    completed: bool = False,
    owner_id: str = "u1",
    text: str | None = None,
    created_at: float | None = None,
    tags: list[str] | None = None,
) -> Task:
    return Task(
        id=task_id,
        text=text or f"task {task_id}",
        completed=completed,
        date=date,
        created_at=float(order) if created_at is None else created_at,
        owner_id=owner_id,
        order=order,
        tags=list(tags or []),
    )


class FakeAuth:
    def __init__(self, owner_id: str | None = "u1") -> None:
        self.owner_id = owner_id

    def current_owner_id(self) -> str | None:
        return self.owner_id


class FakeTaskGateway:
    """
    In-memory TaskGateway used by engine unit tests.

    Stores copies, so the engine's in-memory objects and "storage" never alias.
    Failure injection:
    - fail_reads: every list_by_partition raises
    - fail_update_ids: update() returns False for these ids
    - raise_update_ids: update() raises for these ids
    - hang_updates: update() never completes (timeout path)
    - gated_update_ids: update() for these ids waits for update_gate, then succeeds
    """

    def __init__(self, tasks: list[Task] | None = None) -> None:
        self.tasks: dict[str, Task] = {t.id: t.copy() for t in tasks or []}
        self.fail_reads = False
        self.fail_update_ids: set[str] = set()
        self.raise_update_ids: set[str] = set()
        self.hang_updates = False
        self.gated_update_ids: set[str] = set()
        self.update_gate = asyncio.Event()
        self.fail_deletes = False
        self.reads: list[tuple[str, str]] = []
        self.updates: list[tuple[str, dict[str, Any]]] = []
        self.deletes: list[str] = []
        self._ids = itertools.count(1)

    def partition(self, owner_id: str, date: str) -> list[Task]:
        out = [t.copy() for t in self.tasks.values() if t.owner_id == owner_id and t.date == date]
        out.sort(key=lambda t: (t.order, t.created_at))
        return out

    async def list_by_partition(self, owner_id: str, date: str) -> list[Task]:
        self.reads.append((owner_id, date))
        if self.fail_reads:
            raise ConnectionError("storage unreachable")
        return self.partition(owner_id, date)

    async def insert(self, owner_id: str, date: str, text: str) -> Task:
        existing = self.partition(owner_id, date)
        task = Task(
            id=f"new{next(self._ids)}",
            text=text,
            completed=False,
            date=date,
            created_at=1000.0 + len(self.tasks),
            owner_id=owner_id,
            order=max((t.order for t in existing), default=0) + 1,
        )
        self.tasks[task.id] = task.copy()
        return task

    async def update(self, task_id: str, fields: Mapping[str, Any]) -> bool:
        self.updates.append((task_id, dict(fields)))
        if task_id in self.gated_update_ids:
            await self.update_gate.wait()
        if self.hang_updates:
            await asyncio.sleep(3600)
        if task_id in self.raise_update_ids:
            raise ConnectionError(f"write failed for {task_id}")
        if task_id in self.fail_update_ids or task_id not in self.tasks:
            return False
        self.tasks[task_id].apply(fields)
        return True

    async def delete(self, task_id: str) -> bool:
        self.deletes.append(task_id)
        if self.fail_deletes:
            return False
        return self.tasks.pop(task_id, None) is not None

    async def list_distinct_dates(self, owner_id: str) -> list[str]:
        return sorted({t.date for t in self.tasks.values() if t.owner_id == owner_id}, reverse=True)
