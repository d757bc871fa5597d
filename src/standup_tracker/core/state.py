# src/standup_tracker/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field

from ..tasks.sync_engine import Notice, SyncEngine
from .auth import SettingsAuthProvider
from .ports import TagRepo, TaskGateway


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    gateway: TaskGateway
    tag_store: TagRepo
    auth: SettingsAuthProvider
    engine: SyncEngine

    # Notices emitted by the engine since the presentation layer last drained them.
    notices: list[Notice] = field(default_factory=list)

    def owner_id(self) -> str | None:
        return self.auth.current_owner_id()

    def drain_notices(self) -> list[Notice]:
        out, self.notices = self.notices, []
        return out
