# src/standup_tracker/tasks/task_models.py

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

# Fields a gateway update may touch. Anything else is rejected by the stores.
UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {"text", "completed", "blocker", "tags", "order", "date"}
)


class ListId(StrEnum):
    """The two lists the engine keeps in memory."""

    TODAY = "today"
    REFERENCE = "reference"

    @property
    def other(self) -> ListId:
        return ListId.REFERENCE if self is ListId.TODAY else ListId.TODAY


def normalize_tags(tags: Iterable[str] | None) -> list[str]:
    """Strip, drop blanks and duplicates (first occurrence wins)."""
    out: list[str] = []
    seen: set[str] = set()
    for raw in tags or ():
        tag = str(raw).strip()
        if not tag or tag in seen:
            continue
        seen.add(tag)
        out.append(tag)
    return out


@dataclass(slots=True)
class Task:
    id: str
    text: str
    completed: bool
    date: str
    created_at: float
    owner_id: str
    order: int

    blocker: str | None = None
    tags: list[str] = field(default_factory=list)
    updated_at: float = 0.0

    def copy(self) -> Task:
        return Task(
            id=self.id,
            text=self.text,
            completed=self.completed,
            date=self.date,
            created_at=self.created_at,
            owner_id=self.owner_id,
            order=self.order,
            blocker=self.blocker,
            tags=list(self.tags),
            updated_at=self.updated_at,
        )

    def apply(self, fields: Mapping[str, Any]) -> None:
        """Write a partial update (the same shape the gateway accepts) in place."""
        for name, value in fields.items():
            if name not in UPDATABLE_FIELDS:
                raise ValueError(f"field {name!r} is not updatable")
            if name == "tags":
                value = normalize_tags(value)
            setattr(self, name, value)


@dataclass(slots=True, frozen=True)
class Gesture:
    """
    A reorder / transfer intent, already stripped of pointer geometry.

    dest_task_id names the sibling the task was dropped onto; None means the
    drop landed on the list container itself.
    """

    source_task_id: str
    source_list: ListId
    dest_list: ListId
    dest_task_id: str | None = None

    @property
    def crosses_lists(self) -> bool:
        return self.source_list != self.dest_list


@dataclass(slots=True, frozen=True)
class Mutation:
    """One task's persisted-field changes, tagged with the list it ends up in."""

    task_id: str
    list_id: ListId
    fields: Mapping[str, Any]


def merge_mutations(mutations: Iterable[Mutation]) -> list[Mutation]:
    """
    Fold several mutations of the same task into one, keeping first-seen order.

    Later fields override earlier ones; the list id of the last mutation wins.
    """
    merged: dict[str, Mutation] = {}
    for m in mutations:
        prev = merged.get(m.task_id)
        if prev is None:
            merged[m.task_id] = Mutation(m.task_id, m.list_id, dict(m.fields))
            continue
        fields = dict(prev.fields)
        fields.update(m.fields)
        merged[m.task_id] = Mutation(m.task_id, m.list_id, fields)
    return list(merged.values())
