# src/standup_tracker/tasks/sync_engine.py

from __future__ import annotations

"""
Sync engine.

Owns the two in-memory lists (today and the reference day) and runs every
change through one cycle:

    IDLE -> APPLYING -> PERSISTING -> SETTLED
                                   -> ROLLED_BACK -> IDLE

- APPLYING: mutate memory synchronously and notify listeners.
- PERSISTING: write every changed task concurrently; any failure, exception or
  timeout fails the whole gesture.
- ROLLED_BACK: drop the optimistic state and reload both lists from storage.

Writes are never retried. Invalid gestures are dropped without a notice.
"""

import asyncio
import itertools
import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import StrEnum
from typing import Any

from ..core.errors import InvalidGesture, NotAuthenticated, ReadFailure, StandupError, TaskBusy, WriteFailure
from ..core.ports import AuthProvider, TaskGateway
from .coordinator import ReorderTransferCoordinator
from .day_resolver import DEFAULT_LOOKBACK_DAYS, YESTERDAY_LABEL, DayResolver
from .ordered_list import OrderedTaskList
from .partition import iso_day, partition_key
from .task_models import Gesture, ListId, Mutation, Task, merge_mutations, normalize_tags

logger = logging.getLogger(__name__)

# Fields callers may edit directly; order and date belong to the engine.
EDITABLE_FIELDS: frozenset[str] = frozenset({"text", "completed", "blocker", "tags"})


class GesturePhase(StrEnum):
    IDLE = "idle"
    APPLYING = "applying"
    PERSISTING = "persisting"
    SETTLED = "settled"
    ROLLED_BACK = "rolled_back"


_TRANSITIONS: dict[GesturePhase, frozenset[GesturePhase]] = {
    GesturePhase.IDLE: frozenset({GesturePhase.APPLYING}),
    # APPLYING -> IDLE when the apply produced nothing or was rejected.
    GesturePhase.APPLYING: frozenset({GesturePhase.PERSISTING, GesturePhase.IDLE}),
    GesturePhase.PERSISTING: frozenset({GesturePhase.SETTLED, GesturePhase.ROLLED_BACK}),
    GesturePhase.ROLLED_BACK: frozenset({GesturePhase.IDLE}),
    GesturePhase.SETTLED: frozenset(),
}


@dataclass(slots=True)
class GestureTracker:
    gesture_id: int
    label: str
    phase: GesturePhase = GesturePhase.IDLE
    task_ids: frozenset[str] = frozenset()
    history: list[GesturePhase] = field(default_factory=lambda: [GesturePhase.IDLE])

    def advance(self, to: GesturePhase) -> None:
        if to not in _TRANSITIONS[self.phase]:
            raise RuntimeError(f"gesture {self.gesture_id}: illegal transition {self.phase} -> {to}")
        logger.debug("gesture %s (%s): %s -> %s", self.gesture_id, self.label, self.phase.value, to.value)
        self.phase = to
        self.history.append(to)


class NoticeLevel(StrEnum):
    INFO = "info"
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class Notice:
    title: str
    message: str
    level: NoticeLevel = NoticeLevel.INFO


class EventKind(StrEnum):
    TODAY_CHANGED = "today_changed"
    REFERENCE_CHANGED = "reference_changed"
    LABEL_CHANGED = "label_changed"
    NOTICE = "notice"


@dataclass(slots=True, frozen=True)
class EngineEvent:
    kind: EventKind
    notice: Notice | None = None


@dataclass(slots=True, frozen=True)
class GestureOutcome:
    """Result of one optimistic cycle. phase is SETTLED, ROLLED_BACK or IDLE (ignored / no-op)."""

    phase: GesturePhase
    mutations: tuple[Mutation, ...] = ()
    notice: Notice | None = None
    history: tuple[GesturePhase, ...] = ()

    @property
    def settled(self) -> bool:
        return self.phase == GesturePhase.SETTLED

    @property
    def rolled_back(self) -> bool:
        return self.phase == GesturePhase.ROLLED_BACK


EngineListener = Callable[[EngineEvent], None]


def _same_value(name: str, current: Any, new: Any) -> bool:
    if name == "tags":
        # Membership is what counts; order is not.
        return set(current) == set(new)
    return current == new

_LIST_EVENTS = {ListId.TODAY: EventKind.TODAY_CHANGED, ListId.REFERENCE: EventKind.REFERENCE_CHANGED}


class SyncEngine:
    def __init__(
        self,
        gateway: TaskGateway,
        auth: AuthProvider,
        *,
        anchor: date,
        resolver: DayResolver | None = None,
        lookback_days: int = DEFAULT_LOOKBACK_DAYS,
        persist_timeout: float = 10.0,
    ) -> None:
        self._gateway = gateway
        self._auth = auth
        self._resolver = resolver or DayResolver(gateway, max_lookback_days=lookback_days)
        self._persist_timeout = max(0.01, float(persist_timeout))

        self._anchor = anchor
        self._today = OrderedTaskList(ListId.TODAY, anchor.isoformat())
        self._reference = OrderedTaskList(ListId.REFERENCE, (anchor - timedelta(days=1)).isoformat())
        self._label = YESTERDAY_LABEL

        self._listeners: list[EngineListener] = []
        self._in_flight: dict[int, GestureTracker] = {}
        self._seq = itertools.count(1)
        # Bumped by every load(); a gesture that saw it change while persisting reloads.
        self._load_gen = 0
        self.last_error: StandupError | None = None

    # ---- read side ----

    @property
    def anchor(self) -> date:
        return self._anchor

    @property
    def reference_label(self) -> str:
        return self._label

    @property
    def reference_date(self) -> str:
        return self._reference.date

    def get_today_list(self) -> tuple[Task, ...]:
        return self._today.tasks

    def get_reference_list(self) -> tuple[Task, ...]:
        return self._reference.tasks

    def list_for(self, list_id: ListId) -> OrderedTaskList:
        return self._today if ListId(list_id) == ListId.TODAY else self._reference

    def find(self, task_id: str) -> tuple[OrderedTaskList, Task] | None:
        for lst in (self._today, self._reference):
            task = lst.get(task_id)
            if task is not None:
                return lst, task
        return None

    def in_flight_task_ids(self) -> set[str]:
        busy: set[str] = set()
        for tracker in self._in_flight.values():
            busy |= tracker.task_ids
        return busy

    # ---- notifications ----

    def subscribe(self, listener: EngineListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, kind: EventKind, notice: Notice | None = None) -> None:
        event = EngineEvent(kind, notice)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Engine listener failed on %s", kind.value)

    def _notify(self, notice: Notice | None) -> None:
        if notice is not None:
            self._emit(EventKind.NOTICE, notice)

    def _emit_lists(self, list_ids: Iterable[ListId]) -> None:
        wanted = set(list_ids)
        for list_id in (ListId.TODAY, ListId.REFERENCE):
            if list_id in wanted:
                self._emit(_LIST_EVENTS[list_id])

    # ---- loading ----

    def _owner(self) -> str:
        owner = self._auth.current_owner_id()
        if not owner or not owner.strip():
            raise NotAuthenticated()
        return owner.strip()

    async def _read_partition(self, owner_id: str, day: date | str) -> list[Task]:
        key = partition_key(owner_id, day)
        try:
            return await self._gateway.list_by_partition(key.owner_id, key.date)
        except Exception as exc:
            logger.exception("Reading partition %s failed", key.date)
            raise ReadFailure(f"Failed to load tasks for {key.date}") from exc

    async def load(self) -> bool:
        """
        (Re)load both lists from storage.

        On a read failure both lists are emptied (never left stale) and an error
        notice is emitted; returns False in that case.
        """
        owner = self._owner()
        try:
            today_tasks, ref = await asyncio.gather(
                self._read_partition(owner, self._anchor),
                self._resolver.resolve(owner, self._anchor),
            )
        except ReadFailure as exc:
            self.last_error = exc
            self._load_gen += 1
            self._today.replace([], date=self._anchor.isoformat())
            self._reference.replace([])
            self._emit_lists((ListId.TODAY, ListId.REFERENCE))
            self._notify(Notice("Error", "Failed to load tasks", NoticeLevel.ERROR))
            return False

        self._load_gen += 1
        self._today.replace(today_tasks, date=self._anchor.isoformat())
        self._reference.replace(ref.tasks, date=ref.date)
        self._emit_lists((ListId.TODAY, ListId.REFERENCE))
        if ref.label != self._label:
            self._label = ref.label
            self._emit(EventKind.LABEL_CHANGED)

        logger.info(
            "Loaded %s: today=%d reference=%s (%s) n=%d",
            self._anchor,
            len(today_tasks),
            ref.date,
            ref.label,
            len(ref.tasks),
        )
        return True

    async def on_anchor_date_change(self, day: date | str) -> bool:
        self._anchor = date.fromisoformat(iso_day(day))
        return await self.load()

    async def tasks_for_day(self, day: date | str) -> list[Task]:
        """Read any partition without touching the loaded lists (plan-ahead / overview)."""
        return await self._read_partition(self._owner(), day)

    # ---- optimistic cycle ----

    async def _persist(self, mutations: Sequence[Mutation], deletes: Sequence[str]) -> None:
        ids = [m.task_id for m in mutations] + list(deletes)
        calls = [self._gateway.update(m.task_id, m.fields) for m in mutations]
        calls += [self._gateway.delete(task_id) for task_id in deletes]

        try:
            results = await asyncio.wait_for(
                asyncio.gather(*calls, return_exceptions=True),
                timeout=self._persist_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise WriteFailure("persistence timed out", task_ids=tuple(ids)) from exc

        failed: list[str] = []
        for task_id, result in zip(ids, results):
            if isinstance(result, BaseException):
                logger.error("Write failed task_id=%s: %r", task_id, result)
                failed.append(task_id)
            elif not result:
                logger.error("Write rejected task_id=%s", task_id)
                failed.append(task_id)
        if failed:
            raise WriteFailure(f"{len(failed)} of {len(ids)} writes failed", task_ids=tuple(failed))

    async def _run(
        self,
        label: str,
        apply: Callable[[], list[Mutation]],
        *,
        lists: Iterable[ListId],
        success: Notice | Callable[[list[Mutation]], Notice | None] | None,
        failure: Notice,
        deletes: Sequence[str] = (),
    ) -> GestureOutcome:
        self._owner()
        tracker = GestureTracker(next(self._seq), label)
        tracker.advance(GesturePhase.APPLYING)

        snaps = {lst.list_id: lst.snapshot() for lst in (self._today, self._reference)}

        def _undo() -> None:
            self._today.restore(snaps[ListId.TODAY])
            self._reference.restore(snaps[ListId.REFERENCE])

        try:
            mutations = merge_mutations(apply())
            touched = {m.task_id for m in mutations} | set(deletes)
            busy = touched & self.in_flight_task_ids()
            if busy:
                raise TaskBusy(busy)
        except InvalidGesture as exc:
            _undo()
            tracker.advance(GesturePhase.IDLE)
            logger.debug("Ignored %s: %s", label, exc)
            return GestureOutcome(GesturePhase.IDLE, history=tuple(tracker.history))

        if not touched:
            tracker.advance(GesturePhase.IDLE)
            return GestureOutcome(GesturePhase.IDLE, history=tuple(tracker.history))

        tracker.task_ids = frozenset(touched)
        self._in_flight[tracker.gesture_id] = tracker
        self._emit_lists(lists)

        tracker.advance(GesturePhase.PERSISTING)
        load_gen = self._load_gen
        try:
            await self._persist(mutations, deletes)
        except WriteFailure as exc:
            tracker.advance(GesturePhase.ROLLED_BACK)
            self.last_error = exc
            logger.warning("%s rolled back: %s", label, exc)
            await self.load()
            tracker.advance(GesturePhase.IDLE)
            self._notify(failure)
            return GestureOutcome(
                GesturePhase.ROLLED_BACK, tuple(mutations), failure, tuple(tracker.history)
            )
        finally:
            self._in_flight.pop(tracker.gesture_id, None)

        tracker.advance(GesturePhase.SETTLED)
        if self._load_gen != load_gen:
            # A reload replaced the lists with a read taken before these writes landed.
            logger.info("%s settled after a reload; reloading again", label)
            await self.load()
        notice = success(mutations) if callable(success) else success
        self._notify(notice)
        logger.info("%s settled (%d writes)", label, len(mutations) + len(deletes))
        return GestureOutcome(GesturePhase.SETTLED, tuple(mutations), notice, tuple(tracker.history))

    # ---- gestures ----

    async def on_gesture(self, gesture: Gesture) -> GestureOutcome:
        coordinator = ReorderTransferCoordinator(self._today, self._reference, owner_id=self._owner())

        if not gesture.crosses_lists:
            return await self._run(
                f"reorder {gesture.source_list.value}",
                lambda: coordinator.handle_gesture(gesture),
                lists=(gesture.source_list,),
                success=Notice("Tasks reordered", "Task order has been saved"),
                failure=Notice("Error", "Failed to save task order", NoticeLevel.ERROR),
            )

        if gesture.dest_list == ListId.TODAY:
            moved_msg = "Task has been moved to today's list"
        else:
            moved_msg = f"Task has been moved to {self._label.lower()}"
        return await self._run(
            f"transfer {gesture.source_list.value}->{gesture.dest_list.value}",
            lambda: coordinator.handle_gesture(gesture),
            lists=(gesture.source_list, gesture.dest_list),
            success=Notice("Task transferred", moved_msg),
            failure=Notice("Error", "Failed to transfer task", NoticeLevel.ERROR),
        )

    async def transfer_task(self, task_id: str) -> GestureOutcome:
        """Move a task to the other list, whichever it is in now."""
        found = self.find(task_id)
        if found is None:
            self._owner()
            logger.debug("transfer_task: %s not loaded", task_id)
            return GestureOutcome(GesturePhase.IDLE)
        lst, _ = found
        return await self.on_gesture(Gesture(task_id, lst.list_id, lst.list_id.other))

    async def on_bulk_transfer(self) -> GestureOutcome:
        coordinator = ReorderTransferCoordinator(self._today, self._reference, owner_id=self._owner())

        if not any(not t.completed for t in self._reference.tasks):
            notice = Notice("No tasks to transfer", "All tasks in the reference list are already completed")
            self._notify(notice)
            return GestureOutcome(GesturePhase.IDLE, notice=notice)

        def _moved(mutations: list[Mutation]) -> Notice:
            n = len(mutations)
            return Notice("Tasks transferred", f"{n} incomplete task{'' if n == 1 else 's'} moved to today")

        return await self._run(
            "bulk transfer",
            lambda: coordinator.bulk_transfer_incomplete(ListId.REFERENCE, ListId.TODAY),
            lists=(ListId.REFERENCE, ListId.TODAY),
            success=_moved,
            failure=Notice("Error", "Failed to transfer tasks", NoticeLevel.ERROR),
        )

    # ---- task CRUD (same cycle) ----

    async def add_task(self, text: str, *, day: date | str | None = None) -> Task | None:
        """
        Create a task at the end of a day's partition (today by default).

        Not optimistic: the store assigns id, timestamp and order.
        """
        owner = self._owner()
        text = (text or "").strip()
        if not text:
            raise ValueError("text is required")
        target = iso_day(day) if day is not None else self._anchor.isoformat()

        try:
            task = await asyncio.wait_for(
                self._gateway.insert(owner, target, text), timeout=self._persist_timeout
            )
        except Exception as exc:
            logger.exception("insert failed date=%s", target)
            self.last_error = WriteFailure(f"insert failed: {exc!r}")
            self._notify(Notice("Error", "Failed to add task", NoticeLevel.ERROR))
            return None

        for lst in (self._today, self._reference):
            if lst.date == task.date:
                lst.replace([*lst.tasks, task])
                self._emit_lists((lst.list_id,))
                break

        if target == self._anchor.isoformat():
            self._notify(Notice("Task added", "Your task has been added successfully"))
        else:
            self._notify(Notice("Task planned", f"Your task has been planned for {target}"))
        return task

    async def update_task(self, task_id: str, **fields: Any) -> GestureOutcome:
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"not editable: {', '.join(sorted(unknown))}")
        if "text" in fields:
            fields["text"] = str(fields["text"] or "").strip()
            if not fields["text"]:
                raise ValueError("text must not be empty")
        if "tags" in fields:
            fields["tags"] = normalize_tags(fields["tags"])
        if "blocker" in fields:
            fields["blocker"] = str(fields["blocker"] or "").strip() or None

        found = self.find(task_id)
        if found is None:
            self._owner()
            return GestureOutcome(GesturePhase.IDLE)
        lst, task = found

        def _apply() -> list[Mutation]:
            changed = {k: v for k, v in fields.items() if not _same_value(k, getattr(task, k), v)}
            task.apply(changed)
            return [Mutation(task.id, lst.list_id, changed)] if changed else []

        if fields.get("blocker"):
            success: Notice | None = Notice("Blocker added", "Task blocker has been recorded")
        elif set(fields) <= {"completed", "tags"}:
            success = None
        else:
            success = Notice("Task updated", "Your task has been updated successfully")

        return await self._run(
            f"update {task_id}",
            _apply,
            lists=(lst.list_id,),
            success=success,
            failure=Notice("Error", "Failed to update task", NoticeLevel.ERROR),
        )

    async def toggle_task(self, task_id: str) -> GestureOutcome:
        found = self.find(task_id)
        if found is None:
            self._owner()
            return GestureOutcome(GesturePhase.IDLE)
        return await self.update_task(task_id, completed=not found[1].completed)

    async def set_blocker(self, task_id: str, blocker: str | None) -> GestureOutcome:
        return await self.update_task(task_id, blocker=blocker)

    async def set_tags(self, task_id: str, tags: Iterable[str]) -> GestureOutcome:
        return await self.update_task(task_id, tags=list(tags))

    async def delete_task(self, task_id: str) -> GestureOutcome:
        """Delete a task and close the gap it leaves in its partition."""
        found = self.find(task_id)
        if found is None:
            self._owner()
            return GestureOutcome(GesturePhase.IDLE)
        lst, _ = found

        def _apply() -> list[Mutation]:
            lst.remove(task_id)
            changed = lst.reindex()
            return [Mutation(t.id, lst.list_id, {"order": t.order}) for t in lst.tasks if t.id in changed]

        return await self._run(
            f"delete {task_id}",
            _apply,
            lists=(lst.list_id,),
            success=Notice("Task deleted", "Task has been deleted"),
            failure=Notice("Error", "Failed to delete task", NoticeLevel.ERROR),
            deletes=(task_id,),
        )
