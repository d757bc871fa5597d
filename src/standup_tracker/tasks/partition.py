# src/standup_tracker/tasks/partition.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta


def to_day(value: date | str) -> date:
    """Accept a date or an ISO YYYY-MM-DD string."""
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip())


def iso_day(value: date | str) -> str:
    return to_day(value).isoformat()


@dataclass(slots=True, frozen=True)
class PartitionKey:
    """Identity of one (owner, calendar day) task partition."""

    owner_id: str
    date: str

    @property
    def day(self) -> date:
        return date.fromisoformat(self.date)

    def shifted(self, days: int) -> PartitionKey:
        return PartitionKey(self.owner_id, (self.day + timedelta(days=days)).isoformat())


def partition_key(owner_id: str, day: date | str) -> PartitionKey:
    if not owner_id or not owner_id.strip():
        raise ValueError("owner_id is required")
    return PartitionKey(owner_id.strip(), iso_day(day))
