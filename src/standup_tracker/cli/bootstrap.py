# src/standup_tracker/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (task store, tag store, auth, engine).
"""

from __future__ import annotations

import logging
from datetime import date

from ..config import get_settings
from ..core.auth import SettingsAuthProvider
from ..core.state import AppState
from ..tasks.sync_engine import EngineEvent, EventKind, SyncEngine
from ..tasks.tag_store import TagStore
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, anchor: date | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings and the anchor date injectable makes the app easier to test
    and keeps wall-clock reads at the edge. If settings is None, falls back to
    get_settings(); if anchor is None, today's local date is used.
    """
    if settings is None:
        settings = get_settings()
    if anchor is None:
        anchor = date.today()

    _ensure_local_dirs(settings)

    store = TaskStore(settings.tasks_db_path)
    auth = SettingsAuthProvider(getattr(settings, "owner_id", None))
    engine = SyncEngine(
        store,
        auth,
        anchor=anchor,
        lookback_days=int(getattr(settings, "lookback_days", 30)),
        persist_timeout=float(getattr(settings, "persist_timeout_seconds", 10.0)),
    )

    state = AppState(
        settings=settings,
        gateway=store,
        tag_store=TagStore(settings.tasks_db_path),
        auth=auth,
        engine=engine,
    )

    def _collect(event: EngineEvent) -> None:
        if event.kind == EventKind.NOTICE and event.notice is not None:
            state.notices.append(event.notice)

    engine.subscribe(_collect)
    logger.debug("State wired: db=%s owner=%s anchor=%s", settings.tasks_db_path, auth.current_owner_id(), anchor)
    return state
