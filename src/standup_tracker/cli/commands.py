# src/standup_tracker/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import date, timedelta
from pathlib import Path
from typing import cast

from ..core.errors import ReadFailure
from ..core.state import AppState
from ..tasks.report import (
    build_summary,
    export_range,
    load_overview,
    render_overview,
    tasks_to_csv,
    write_csv_export,
)
from ..tasks.sync_engine import GestureOutcome
from ..tasks.task_models import Gesture, ListId, Task

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], Awaitable[str]]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], Awaitable[str]]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, /move, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return await h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return await h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        lines.append("Task refs: 3 = third task of today, r3 = third task of the reference list.")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def _format_task(prefix: str, task: Task) -> str:
    mark = "x" if task.completed else " "
    line = f"  {prefix}. [{mark}] {task.text}"
    if task.tags:
        line += "  " + " ".join(f"#{t}" for t in task.tags)
    if task.blocker:
        line += f"  (blocker: {task.blocker})"
    return line


def render_lists(state: AppState) -> str:
    engine = state.engine
    lines = [f"{engine.reference_label} ({engine.reference_date}):"]
    ref = engine.get_reference_list()
    if not ref:
        lines.append("  (no tasks recorded)")
    lines.extend(_format_task(f"r{i}", t) for i, t in enumerate(ref, start=1))

    lines.append(f"Today ({engine.anchor.isoformat()}):")
    today = engine.get_today_list()
    if not today:
        lines.append("  (no tasks planned for today)")
    lines.extend(_format_task(str(i), t) for i, t in enumerate(today, start=1))
    return "\n".join(lines)


def _resolve_ref(state: AppState, token: str) -> tuple[ListId, Task] | None:
    """'3' -> third task of today; 'r3' -> third task of the reference list."""
    token = token.strip().lower()
    list_id = ListId.TODAY
    if token.startswith("r"):
        list_id = ListId.REFERENCE
        token = token[1:]
    if not token.isdigit():
        return None
    tasks = state.engine.list_for(list_id).tasks
    idx = int(token) - 1
    if idx < 0 or idx >= len(tasks):
        return None
    return list_id, tasks[idx]


def _parse_day(token: str, base: date) -> date | None:
    """today / tomorrow / yesterday relative to base, or an ISO date."""
    token = token.strip().lower()
    if token == "today":
        return base
    if token == "tomorrow":
        return base + timedelta(days=1)
    if token == "yesterday":
        return base - timedelta(days=1)
    try:
        return date.fromisoformat(token)
    except ValueError:
        return None


def _parse_range(state: AppState, args: list[str]) -> tuple[str, str]:
    """
    []              -> this week
    [option]        -> this-week | this-month
    [start, end]    -> custom inclusive range
    Raises ValueError on a bad option or dates.
    """
    anchor = state.engine.anchor
    if not args:
        return export_range("this-week", anchor)
    if len(args) == 1:
        return export_range(args[0].lower(), anchor)
    return export_range("custom", anchor, start=args[0], end=args[1])


def _outcome_reply(state: AppState, outcome: GestureOutcome, fallback: str) -> str:
    if outcome.notice is not None:
        return f"{outcome.notice.title}: {outcome.notice.message}\n{render_lists(state)}"
    if outcome.settled:
        return render_lists(state)
    return fallback


# ---- handlers ----


async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_status(state: AppState, args: list[str]) -> str:
    engine = state.engine
    owner = state.owner_id() or "(not signed in)"
    db = getattr(state.settings, "tasks_db_path", "?")
    return (
        "Status:\n"
        f"  Owner: {owner}\n"
        f"  Anchor date: {engine.anchor.isoformat()}\n"
        f"  Reference: {engine.reference_label} ({engine.reference_date})\n"
        f"  Tasks: today={len(engine.get_today_list())} reference={len(engine.get_reference_list())}\n"
        f"  Database: {db}"
    )


async def cmd_list(state: AppState, args: list[str]) -> str:
    return render_lists(state)


async def cmd_reload(state: AppState, args: list[str]) -> str:
    ok = await state.engine.load()
    return render_lists(state) if ok else "Failed to load tasks."


async def cmd_add(state: AppState, args: list[str]) -> str:
    text = " ".join(args).strip()
    if not text:
        return "Usage: /add <task text>"
    task = await state.engine.add_task(text)
    return render_lists(state) if task else "Failed to add task."


async def cmd_plan(state: AppState, args: list[str]) -> str:
    """
    /plan <day>         -> list tasks planned for that day
    /plan <day> <text>  -> plan a task for that day (day: tomorrow | YYYY-MM-DD)
    """
    if not args:
        return "Usage: /plan <tomorrow|YYYY-MM-DD> [task text]"
    day = _parse_day(args[0], state.engine.anchor)
    if day is None:
        return f"Invalid date: {args[0]}"

    text = " ".join(args[1:]).strip()
    if text:
        task = await state.engine.add_task(text, day=day)
        if task is None:
            return "Failed to plan task."

    try:
        tasks = await state.engine.tasks_for_day(day)
    except ReadFailure:
        return f"Failed to load tasks for {day.isoformat()}."
    if not tasks:
        return f"No tasks planned for {day.isoformat()}."
    lines = [f"Tasks for {day.isoformat()}:"]
    lines.extend(_format_task(str(i), t) for i, t in enumerate(tasks, start=1))
    return "\n".join(lines)


async def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /done <ref>"
    ref = _resolve_ref(state, args[0])
    if ref is None:
        return f"No task {args[0]}."
    outcome = await state.engine.toggle_task(ref[1].id)
    return _outcome_reply(state, outcome, "Nothing changed.")


async def cmd_edit(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /edit <ref> <new text>"
    ref = _resolve_ref(state, args[0])
    if ref is None:
        return f"No task {args[0]}."
    outcome = await state.engine.update_task(ref[1].id, text=" ".join(args[1:]))
    return _outcome_reply(state, outcome, "Nothing changed.")


async def cmd_del(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /del <ref>"
    ref = _resolve_ref(state, args[0])
    if ref is None:
        return f"No task {args[0]}."
    outcome = await state.engine.delete_task(ref[1].id)
    return _outcome_reply(state, outcome, "Nothing changed.")


async def cmd_move(state: AppState, args: list[str]) -> str:
    """
    /move <ref> <position|end>  -> reorder within the task's own list
    """
    if len(args) < 2:
        return "Usage: /move <ref> <position|end>"
    ref = _resolve_ref(state, args[0])
    if ref is None:
        return f"No task {args[0]}."
    list_id, task = ref

    dest_task_id: str | None = None
    if args[1].lower() != "end":
        prefix = "r" if list_id == ListId.REFERENCE else ""
        dest = _resolve_ref(state, prefix + args[1].lstrip("rR"))
        if dest is None:
            return f"No position {args[1]} in that list."
        dest_task_id = dest[1].id

    outcome = await state.engine.on_gesture(Gesture(task.id, list_id, list_id, dest_task_id))
    return _outcome_reply(state, outcome, "Task is already there.")


async def cmd_transfer(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /transfer <ref>"
    ref = _resolve_ref(state, args[0])
    if ref is None:
        return f"No task {args[0]}."
    list_id, task = ref
    if list_id == ListId.REFERENCE and task.completed:
        return "Completed tasks are not carried forward."
    outcome = await state.engine.on_gesture(Gesture(task.id, list_id, list_id.other))
    return _outcome_reply(state, outcome, "Nothing to transfer.")


async def cmd_carryall(state: AppState, args: list[str]) -> str:
    outcome = await state.engine.on_bulk_transfer()
    return _outcome_reply(state, outcome, "Nothing to transfer.")


async def cmd_blocker(state: AppState, args: list[str]) -> str:
    """
    /blocker <ref> <text> -> record a blocker
    /blocker <ref>        -> clear it
    """
    if not args:
        return "Usage: /blocker <ref> [text]"
    ref = _resolve_ref(state, args[0])
    if ref is None:
        return f"No task {args[0]}."
    outcome = await state.engine.set_blocker(ref[1].id, " ".join(args[1:]))
    return _outcome_reply(state, outcome, "Nothing changed.")


async def cmd_tag(state: AppState, args: list[str]) -> str:
    """
    /tag <ref> <tag> [tag...] -> replace the task's tags (new ones join the tag list)
    /tag <ref>                -> clear the task's tags
    """
    if not args:
        return "Usage: /tag <ref> [tags...]"
    ref = _resolve_ref(state, args[0])
    if ref is None:
        return f"No task {args[0]}."
    tags = [t.lstrip("#") for t in args[1:]]
    owner = state.owner_id()
    if owner:
        for tag in tags:
            if tag:
                state.tag_store.add_tag(owner, tag)
    outcome = await state.engine.set_tags(ref[1].id, tags)
    return _outcome_reply(state, outcome, "Nothing changed.")


async def cmd_tags(state: AppState, args: list[str]) -> str:
    """
    /tags            -> list your tags
    /tags add <tag>  -> add a tag
    /tags rm <tag>   -> remove a tag
    """
    owner = state.owner_id()
    if not owner:
        return "Not signed in. Use /login <name>."

    if len(args) >= 2 and args[0].lower() in ("add", "rm", "remove"):
        tag = " ".join(args[1:]).lstrip("#")
        if args[0].lower() == "add":
            added = state.tag_store.add_tag(owner, tag)
            return f"Tag {tag} added." if added else f"Tag {tag} already exists."
        removed = state.tag_store.remove_tag(owner, tag)
        return f"Tag {tag} removed." if removed else f"No tag {tag}."

    tags = state.tag_store.list_tags(owner)
    if not tags:
        return "No tags yet. Use /tags add <tag>."
    return "Tags: " + ", ".join(f"#{t}" for t in tags)


async def cmd_date(state: AppState, args: list[str]) -> str:
    if not args:
        return f"Anchor date is {state.engine.anchor.isoformat()}. Use /date <today|tomorrow|yesterday|YYYY-MM-DD>."
    # Relative words mean the real calendar here, not the day being viewed.
    day = _parse_day(args[0], date.today())
    if day is None:
        return f"Invalid date: {args[0]}"
    ok = await state.engine.on_anchor_date_change(day)
    return render_lists(state) if ok else "Failed to load tasks."


async def cmd_summary(state: AppState, args: list[str]) -> str:
    engine = state.engine
    summary = build_summary(engine.get_reference_list(), engine.get_today_list(), engine.reference_label)
    return summary.render()


async def cmd_overview(state: AppState, args: list[str]) -> str:
    """
    /overview                   -> every recorded day, newest first
    /overview this-week         -> Monday to the anchor date
    /overview this-month        -> this month
    /overview <start> <end>     -> custom inclusive range
    """
    owner = state.owner_id()
    if not owner:
        return "Not signed in. Use /login <name>."

    start: str | None = None
    end: str | None = None
    if args:
        try:
            start, end = _parse_range(state, args)
        except ValueError as e:
            return f"Invalid range: {e}"

    try:
        overview = await load_overview(state.gateway, owner)
    except Exception:
        logger.exception("Overview load failed")
        return "Failed to load tasks overview."

    text = render_overview(overview, state.engine.anchor, start=start, end=end)
    return text if text is not None else "No tasks found."


async def cmd_export(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /export                  -> this week (Monday to the anchor date)
    /export this-month       -> this month
    /export <start> <end>    -> custom inclusive range
    """
    owner = state.owner_id()
    if not owner:
        return "Not signed in. Use /login <name>."

    try:
        start, end = _parse_range(state, args)
    except ValueError as e:
        return f"Invalid range: {e}"

    if emit:
        emit(f"Exporting tasks {start} .. {end} ...")

    try:
        overview = await load_overview(state.gateway, owner)
    except Exception:
        logger.exception("Overview load failed")
        return "Failed to load tasks overview."

    text = tasks_to_csv(overview, start, end)
    if text is None:
        return "No tasks found in the selected date range."

    export_dir = Path(getattr(state.settings, "export_dir", Path(".local/standup/exports")))
    path = write_csv_export(text, export_dir, start, end)
    return f"Tasks exported to {path}"


async def cmd_login(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /login <name>"
    state.auth.sign_in(args[0])
    ok = await state.engine.load()
    return render_lists(state) if ok else "Signed in, but failed to load tasks."


async def cmd_logout(state: AppState, args: list[str]) -> str:
    state.auth.sign_out()
    return "Signed out."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show owner, anchor date and reference day.")
registry.register("list", cmd_list, help_text="Show the reference list and today's list.", aliases=["ls", "today", "ref"])
registry.register("reload", cmd_reload, help_text="Reload both lists from storage.")
registry.register("add", cmd_add, help_text="Add a task to today: /add <text>.")
registry.register("plan", cmd_plan, help_text="Plan ahead: /plan <tomorrow|YYYY-MM-DD> [text].")
registry.register("done", cmd_done, help_text="Toggle completion: /done <ref>.")
registry.register("edit", cmd_edit, help_text="Edit task text: /edit <ref> <text>.")
registry.register("del", cmd_del, help_text="Delete a task: /del <ref>.", aliases=["rm"])
registry.register("move", cmd_move, help_text="Reorder within a list: /move <ref> <position|end>.")
registry.register(
    "transfer", cmd_transfer, help_text="Move a task to the other list: /transfer <ref>.", aliases=["carry", "back"]
)
registry.register("carryall", cmd_carryall, help_text="Carry every unfinished reference task to today.")
registry.register("blocker", cmd_blocker, help_text="Set or clear a blocker: /blocker <ref> [text].")
registry.register("tag", cmd_tag, help_text="Set task tags: /tag <ref> [tags...].")
registry.register("tags", cmd_tags, help_text="Tag list: /tags | /tags add <tag> | /tags rm <tag>.")
registry.register("date", cmd_date, help_text="Change the anchor date: /date <today|tomorrow|yesterday|YYYY-MM-DD>.")
registry.register("summary", cmd_summary, help_text="Stand-up summary.")
registry.register(
    "overview", cmd_overview, help_text="All tasks by day: /overview [this-week|this-month|<start> <end>]."
)
registry.register("export", cmd_export, help_text="CSV export: /export [this-week|this-month|<start> <end>].")
registry.register("login", cmd_login, help_text="Sign in: /login <name>.")
registry.register("logout", cmd_logout, help_text="Sign out.")
