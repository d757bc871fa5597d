# src/standup_tracker/tasks/report.py

from __future__ import annotations

"""
Read-only views over tasks: the stand-up summary card and the overview /
CSV export across all recorded days.
"""

import csv
import io
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path

from ..core.ports import TaskGateway
from .partition import iso_day, to_day
from .task_models import Task

logger = logging.getLogger(__name__)

CSV_HEADERS: tuple[str, ...] = ("Date", "Task", "Tag", "Task Status")


@dataclass(slots=True, frozen=True)
class StandupSummary:
    day_name: str
    reference_completed: int
    reference_total: int
    today_completed: int
    today_total: int

    @property
    def completion_rate(self) -> float:
        if self.reference_total == 0:
            return 0.0
        return self.reference_completed / self.reference_total * 100.0

    @property
    def insight(self) -> tuple[str, str]:
        rate = self.completion_rate
        if rate >= 80:
            return "Excellent!", "You're crushing your goals!"
        if rate >= 60:
            return "Good pace", "Solid progress yesterday"
        if rate >= 40:
            return "Building momentum", "Every step counts"
        if self.reference_total == 0:
            return "Fresh start", "Ready to begin tracking"
        return "Keep pushing", "Room for improvement"

    def render(self) -> str:
        if self.reference_total == 0:
            ref_line = "No tasks recorded"
        else:
            ref_line = f"{round(self.completion_rate)}% completed"
        if self.today_total == 0:
            today_line = "No tasks planned yet"
        else:
            today_line = f"{self.today_total} task{'' if self.today_total == 1 else 's'} planned"
        headline, detail = self.insight
        return (
            "Stand-up Summary:\n"
            f"  {self.day_name}: {self.reference_completed} / {self.reference_total} ({ref_line})\n"
            f"  Today: {self.today_completed} / {self.today_total} ({today_line})\n"
            f"  Insight: {headline} {detail}"
        )


def day_name_from_label(label: str) -> str:
    """Saturday's Tasks -> Saturday; Sep 3 Tasks -> Sep 3."""
    return label.replace("'s Tasks", "").replace(" Tasks", "")


def build_summary(reference: Sequence[Task], today: Sequence[Task], reference_label: str) -> StandupSummary:
    return StandupSummary(
        day_name=day_name_from_label(reference_label),
        reference_completed=sum(1 for t in reference if t.completed),
        reference_total=len(reference),
        today_completed=sum(1 for t in today if t.completed),
        today_total=len(today),
    )


def export_range(option: str, anchor: date, *, start: str | None = None, end: str | None = None) -> tuple[str, str]:
    """
    Resolve an export range to inclusive ISO bounds.

    option: "this-week" (Monday-start), "this-month" or "custom" (needs start/end).
    """
    if option == "this-week":
        return (anchor - timedelta(days=anchor.weekday())).isoformat(), anchor.isoformat()
    if option == "this-month":
        return anchor.replace(day=1).isoformat(), anchor.isoformat()
    if option == "custom":
        if not start or not end:
            raise ValueError("custom range needs start and end dates")
        lo, hi = iso_day(start), iso_day(end)
        if lo > hi:
            raise ValueError(f"start {lo} is after end {hi}")
        return lo, hi
    raise ValueError(f"unknown range option: {option!r}")


async def load_overview(gateway: TaskGateway, owner_id: str) -> dict[str, list[Task]]:
    """Every non-empty day for the owner, newest first."""
    out: dict[str, list[Task]] = {}
    for day in await gateway.list_distinct_dates(owner_id):
        tasks = await gateway.list_by_partition(owner_id, day)
        if tasks:
            out[day] = tasks
    return out


def overview_heading(day: str, anchor: date) -> str:
    """Today / Yesterday relative to the anchor, otherwise e.g. "Friday, Oct 16"."""
    d = to_day(day)
    if d == anchor:
        return "Today"
    if d == anchor - timedelta(days=1):
        return "Yesterday"
    return f"{d:%A}, {d:%b} {d.day}"


def render_overview(
    tasks_by_date: dict[str, list[Task]],
    anchor: date,
    *,
    start: str | None = None,
    end: str | None = None,
) -> str | None:
    """Days newest first, each with its completed/total count; None when nothing is in range."""
    days = sorted(
        (d for d in tasks_by_date if (start is None or d >= start) and (end is None or d <= end)),
        reverse=True,
    )
    lines: list[str] = []
    for day in days:
        tasks = sorted(tasks_by_date[day], key=lambda t: (t.order, t.created_at))
        done = sum(1 for t in tasks if t.completed)
        lines.append(f"{overview_heading(day, anchor)} ({day}) - {done}/{len(tasks)} completed")
        for task in tasks:
            line = f"  [{'x' if task.completed else ' '}] {task.text}"
            if task.tags:
                line += "  " + " ".join(f"#{t}" for t in task.tags)
            lines.append(line)
    return "\n".join(lines) if lines else None


def tasks_to_csv(tasks_by_date: dict[str, list[Task]], start: str, end: str) -> str | None:
    """CSV text for days within [start, end]; None when nothing falls in range."""
    lo, hi = to_day(start).isoformat(), to_day(end).isoformat()
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADERS)

    rows = 0
    for day in sorted(d for d in tasks_by_date if lo <= d <= hi):
        for task in sorted(tasks_by_date[day], key=lambda t: (t.order, t.created_at)):
            writer.writerow(
                (
                    day,
                    task.text,
                    "; ".join(task.tags),
                    "Completed" if task.completed else "Pending",
                )
            )
            rows += 1

    if rows == 0:
        return None
    return buf.getvalue()


def write_csv_export(text: str, export_dir: Path, start: str, end: str) -> Path:
    export_dir.mkdir(parents=True, exist_ok=True)
    path = export_dir / f"tasks-export-{start}-to-{end}.csv"
    path.write_text(text, "utf-8")
    logger.info("Exported tasks %s..%s to %s", start, end, path)
    return path
