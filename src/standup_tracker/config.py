# src/standup_tracker/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Paths default to a gitignored local data dir.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "STANDUP"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Identity ----
    owner_id: str | None

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path
    export_dir: Path

    # ---- Sync tuning ----
    lookback_days: int
    persist_timeout_seconds: float

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "standup") or "standup"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        # Fall back to the login name so a fresh local install is usable.
        owner_id = _first_env(_k("OWNER_ID"), "USER", "USERNAME", default=None)
        owner_id = owner_id.strip() if owner_id else None

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/standup"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")
        export_dir = _env_path(_k("EXPORT_DIR"), data_dir / "exports")

        lookback_days = max(1, _env_int(_k("LOOKBACK_DAYS"), 30))
        persist_timeout_seconds = max(0.1, _env_float(_k("PERSIST_TIMEOUT_SECONDS"), 10.0))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            owner_id=owner_id,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            export_dir=export_dir,
            lookback_days=lookback_days,
            persist_timeout_seconds=persist_timeout_seconds,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
