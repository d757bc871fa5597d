# tests/test_day_resolver.py

from __future__ import annotations

from datetime import date

import pytest

from standup_tracker.core.errors import ReadFailure
from standup_tracker.tasks.day_resolver import DayResolver, scan_label

from .fakes import FakeTaskGateway, make_task


@pytest.mark.asyncio
async def test_monday_skips_empty_weekend_to_friday() -> None:
    gw = FakeTaskGateway([make_task("f1", "2026-10-16", 1), make_task("f2", "2026-10-16", 2)])
    ref = await DayResolver(gw).resolve("u1", date(2026, 10, 19))

    assert ref.date == "2026-10-16"
    assert ref.label == "Friday's Tasks"
    assert [t.id for t in ref.tasks] == ["f1", "f2"]
    # Sunday, Saturday, Friday: nothing else read.
    assert [d for _, d in gw.reads] == ["2026-10-18", "2026-10-17", "2026-10-16"]


@pytest.mark.asyncio
async def test_monday_prefers_sunday_then_saturday() -> None:
    gw = FakeTaskGateway([make_task("s1", "2026-10-17", 1), make_task("su", "2026-10-18", 1)])
    ref = await DayResolver(gw).resolve("u1", date(2026, 10, 19))
    assert (ref.date, ref.label) == ("2026-10-18", "Yesterday's Tasks")

    gw = FakeTaskGateway([make_task("s1", "2026-10-17", 1)])
    ref = await DayResolver(gw).resolve("u1", date(2026, 10, 19))
    assert (ref.date, ref.label) == ("2026-10-17", "Saturday's Tasks")


@pytest.mark.asyncio
async def test_wednesday_falls_back_to_weekday_name() -> None:
    gw = FakeTaskGateway([make_task("x", "2026-10-16", 1)])
    ref = await DayResolver(gw).resolve("u1", date(2026, 10, 21))

    assert ref.date == "2026-10-16"
    assert ref.label == "Friday's Tasks"
    assert len(ref.tasks) == 1


@pytest.mark.asyncio
async def test_tuesday_with_nothing_in_range_returns_empty_previous_day() -> None:
    gw = FakeTaskGateway([make_task("old", "2026-09-01", 1)])
    ref = await DayResolver(gw).resolve("u1", date(2026, 10, 20))

    assert ref.date == "2026-10-19"
    assert ref.tasks == []
    assert ref.label == "No Previous Tasks"
    assert len(gw.reads) == 30


@pytest.mark.asyncio
async def test_far_result_uses_month_day_label() -> None:
    gw = FakeTaskGateway([make_task("a", "2026-10-03", 1)])
    ref = await DayResolver(gw).resolve("u1", date(2026, 10, 21))

    assert ref.date == "2026-10-03"
    assert ref.label == "Oct 3 Tasks"


@pytest.mark.asyncio
async def test_other_owners_partitions_are_invisible() -> None:
    gw = FakeTaskGateway([make_task("a", "2026-10-20", 1, owner_id="someone-else")])
    ref = await DayResolver(gw).resolve("u1", date(2026, 10, 21))
    assert ref.label == "No Previous Tasks"


@pytest.mark.asyncio
async def test_read_failure_aborts_resolution() -> None:
    gw = FakeTaskGateway([make_task("a", "2026-10-20", 1)])
    gw.fail_reads = True
    with pytest.raises(ReadFailure):
        await DayResolver(gw).resolve("u1", date(2026, 10, 21))


def test_scan_label_boundaries() -> None:
    assert scan_label(date(2026, 10, 20), 1) == "Yesterday's Tasks"
    assert scan_label(date(2026, 10, 14), 7) == "Wednesday's Tasks"
    assert scan_label(date(2026, 10, 13), 8) == "Oct 13 Tasks"
