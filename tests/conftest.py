# tests/conftest.py

from __future__ import annotations

from datetime import date
from pathlib import Path
from types import SimpleNamespace

import pytest

from standup_tracker.cli.bootstrap import create_initial_state
from standup_tracker.core.state import AppState

from .fakes import FakeAuth, FakeTaskGateway, make_task

# A Monday; the weekday layout of the surrounding days is what most tests lean on.
MONDAY = date(2026, 10, 19)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="standup-test",
        log_level="DEBUG",
        owner_id="u1",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        export_dir=tmp_path / "exports",
        lookback_days=30,
        persist_timeout_seconds=2.0,
    )


@pytest.fixture()
def state(settings: SimpleNamespace) -> AppState:
    """
    AppState wired through the real bootstrap.

    NOTE: We keep the real SQLite stores here because their correctness is
    part of what we want to test.
    """
    return create_initial_state(settings=settings, anchor=MONDAY)


@pytest.fixture()
def auth() -> FakeAuth:
    return FakeAuth("u1")


@pytest.fixture()
def gateway() -> FakeTaskGateway:
    """Sunday has a mixed list, today (Monday) has two tasks."""
    return FakeTaskGateway(
        [
            make_task("r1", "2026-10-18", 1),
            make_task("r2", "2026-10-18", 2, completed=True),
            make_task("r3", "2026-10-18", 3),
            make_task("t1", "2026-10-19", 1),
            make_task("t2", "2026-10-19", 2, completed=True),
        ]
    )
