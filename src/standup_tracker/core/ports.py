# src/standup_tracker/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The engine depends on Protocols instead of concrete implementations.
This keeps storage/auth swappable and makes testing easier.
"""

from collections.abc import Mapping
from typing import Any, Protocol

from ..tasks.task_models import Task


class TaskGateway(Protocol):
    """
    Persistence gateway for task records.

    Reads raise on storage errors. Writes return False (or raise) on failure;
    the engine treats both the same way.
    """

    async def list_by_partition(self, owner_id: str, date: str) -> list[Task]: ...

    async def insert(self, owner_id: str, date: str, text: str) -> Task: ...

    async def update(self, task_id: str, fields: Mapping[str, Any]) -> bool: ...

    async def delete(self, task_id: str) -> bool: ...

    async def list_distinct_dates(self, owner_id: str) -> list[str]: ...


class AuthProvider(Protocol):
    def current_owner_id(self) -> str | None: ...


class TagRepo(Protocol):
    def list_tags(self, owner_id: str) -> list[str]: ...
    def add_tag(self, owner_id: str, tag: str) -> bool: ...
    def remove_tag(self, owner_id: str, tag: str) -> bool: ...
