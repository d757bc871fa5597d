# src/standup_tracker/tasks/day_resolver.py

from __future__ import annotations

"""
Reference day resolution.

Finds the most recent prior day with recorded tasks, relative to an explicit
anchor date, and derives the label shown above that list.

Monday is special: an empty weekend should not show up as "yesterday", so
Sunday, Saturday and Friday are checked (in that order) before falling back to
the bounded scan. Every other weekday checks only the previous calendar day.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta

from ..core.errors import ReadFailure
from ..core.ports import TaskGateway
from .partition import partition_key
from .task_models import Task

logger = logging.getLogger(__name__)

YESTERDAY_LABEL = "Yesterday's Tasks"
NO_PREVIOUS_LABEL = "No Previous Tasks"
DEFAULT_LOOKBACK_DAYS = 30

# (days back, label) checked when the anchor is a Monday.
_MONDAY_CANDIDATES: tuple[tuple[int, str], ...] = (
    (1, YESTERDAY_LABEL),
    (2, "Saturday's Tasks"),
    (3, "Friday's Tasks"),
)
_WEEKDAY_CANDIDATES: tuple[tuple[int, str], ...] = ((1, YESTERDAY_LABEL),)


@dataclass(slots=True, frozen=True)
class ReferenceDay:
    date: str
    label: str
    tasks: list[Task] = field(default_factory=list)


def scan_label(day: date, days_back: int) -> str:
    """Label for a day found by the backward scan."""
    if days_back == 1:
        return YESTERDAY_LABEL
    if days_back <= 7:
        return f"{day:%A}'s Tasks"
    return f"{day:%b} {day.day} Tasks"


class DayResolver:
    def __init__(self, gateway: TaskGateway, *, max_lookback_days: int = DEFAULT_LOOKBACK_DAYS) -> None:
        self._gateway = gateway
        self._max_lookback = max(1, int(max_lookback_days))

    async def _read(self, owner_id: str, day: date) -> list[Task]:
        key = partition_key(owner_id, day)
        try:
            return await self._gateway.list_by_partition(key.owner_id, key.date)
        except Exception as exc:
            logger.exception("Reading partition %s failed", key.date)
            raise ReadFailure(f"Failed to load tasks for {key.date}") from exc

    async def resolve(self, owner_id: str, anchor: date) -> ReferenceDay:
        candidates = _MONDAY_CANDIDATES if anchor.weekday() == 0 else _WEEKDAY_CANDIDATES

        for days_back, label in candidates:
            day = anchor - timedelta(days=days_back)
            tasks = await self._read(owner_id, day)
            if tasks:
                logger.debug("Reference day %s (%s) via fast path", day, label)
                return ReferenceDay(day.isoformat(), label, tasks)

        # Days the fast path already saw empty are not read again.
        for days_back in range(len(candidates) + 1, self._max_lookback + 1):
            day = anchor - timedelta(days=days_back)
            tasks = await self._read(owner_id, day)
            if tasks:
                label = scan_label(day, days_back)
                logger.debug("Reference day %s (%s) found %d days back", day, label, days_back)
                return ReferenceDay(day.isoformat(), label, tasks)

        fallback = anchor - timedelta(days=1)
        logger.debug("No tasks within %d days of %s", self._max_lookback, anchor)
        return ReferenceDay(fallback.isoformat(), NO_PREVIOUS_LABEL, [])
