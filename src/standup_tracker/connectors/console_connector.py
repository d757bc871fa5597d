# src/standup_tracker/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..cli.commands import render_lists
from ..core.errors import NotAuthenticated
from ..core.state import AppState
from ..tasks.sync_engine import NoticeLevel

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def _flush_notices(state: AppState, *, reply: str | None = None) -> None:
    # Command replies already echo the notice of the gesture they ran;
    # only errors not in the reply (e.g. a failed reload during rollback) are printed.
    for notice in state.drain_notices():
        text = f"{notice.title}: {notice.message}"
        if reply is not None and (notice.level == NoticeLevel.INFO or text in reply):
            continue
        _print_ts(f"[{notice.level.value.upper()}] {text}")


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (owner=%s).", state.owner_id())
    _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.\n")

    def emit(text: str) -> None:
        # Immediate user-visible feedback for long operations (e.g. exports)
        print(f"[{_ts_local()}] {text}", flush=True)

    if state.owner_id():
        try:
            await state.engine.load()
        except NotAuthenticated:
            pass
        _flush_notices(state)
        print(render_lists(state))
    else:
        _print_ts("Not signed in. Use /login <name>.")

    while True:
        try:
            user_input = (await asyncio.to_thread(input, ">>> ")).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        if not user_input.startswith("/"):
            # Plain text is a shortcut for /add.
            user_input = f"/add {user_input}"

        try:
            reply = await command_registry.handle(state, user_input, emit=emit)
        except NotAuthenticated:
            reply = "Not signed in. Use /login <name>."
        except ValueError as e:
            reply = f"Invalid input: {e}"
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        _flush_notices(state, reply=reply or "")
        if reply is not None:
            print(f"[{_ts_local()}] {reply}")

    logger.info("Console connector finished.")
