# src/standup_tracker/core/auth.py

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class SettingsAuthProvider:
    """Owner identity taken from settings (single local user)."""

    def __init__(self, owner_id: str | None) -> None:
        self._owner_id = (owner_id or "").strip() or None

    def current_owner_id(self) -> str | None:
        return self._owner_id

    def sign_in(self, owner_id: str) -> None:
        owner_id = (owner_id or "").strip()
        if not owner_id:
            raise ValueError("owner_id is required")
        logger.info("Signed in as %s", owner_id)
        self._owner_id = owner_id

    def sign_out(self) -> None:
        logger.info("Signed out (was %s)", self._owner_id)
        self._owner_id = None
