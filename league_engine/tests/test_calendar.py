"""
Tests for the temporal slot allocator: window, rest day, spacing, rollovers.
2026-10-17 is a Saturday; Sunday is the default rest day.
"""
from __future__ import annotations

from datetime import datetime, time, timedelta
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from league_engine.config import CalendarRules
from league_engine.services.calendar import (
    allocate,
    first_slot_at_or_after,
    is_valid_slot,
    next_weekday_at,
    round_anchor,
)
from league_engine.services.errors import InvalidInput, SchedulingDeadlock
from league_engine.services.scheduling import generate_double_round_robin

KST = ZoneInfo("Asia/Seoul")


def kst(*args) -> datetime:
    return datetime(*args, tzinfo=KST)


@pytest.fixture
def rules():
    return CalendarRules()


def test_default_window_has_fourteen_slots(rules):
    assert rules.slots_per_day() == 14


def test_ten_team_division_scenario(rules):
    """90 fixtures; after the Saturday fills up, Sunday is skipped and Monday starts at 17:00."""
    pairings = generate_double_round_robin([f"T{i}" for i in range(10)])
    assert len(pairings) == 90
    placed = allocate(pairings, kst(2026, 10, 17, 17, 0), rules)
    instants = [at for _, at in placed]
    assert instants[0] == kst(2026, 10, 17, 17, 0)
    assert instants[13] == kst(2026, 10, 17, 23, 30)
    assert instants[14] == kst(2026, 10, 19, 17, 0)
    assert [p for p, _ in placed] == pairings


def test_slots_are_valid_and_unique(rules):
    pairings = generate_double_round_robin([f"T{i}" for i in range(12)])
    instants = [at for _, at in allocate(pairings, kst(2026, 10, 14, 20, 10), rules)]
    assert len(set(instants)) == len(instants)
    for at in instants:
        assert is_valid_slot(at, rules)
        assert at.astimezone(KST).weekday() != 6
    for earlier, later in zip(instants, instants[1:]):
        gap = later - earlier
        assert gap == rules.interval or later.date() != earlier.date()


def test_start_mid_grid_rounds_up(rules):
    assert first_slot_at_or_after(kst(2026, 10, 17, 17, 10), rules) == kst(2026, 10, 17, 17, 30)
    assert first_slot_at_or_after(kst(2026, 10, 17, 17, 30), rules) == kst(2026, 10, 17, 17, 30)


def test_start_before_window_snaps_to_open(rules):
    placed = allocate(["x"], kst(2026, 10, 16, 9, 0), rules)
    assert placed[0][1] == kst(2026, 10, 16, 17, 0)


def test_start_after_close_on_saturday_skips_rest_day(rules):
    placed = allocate(["x", "y"], kst(2026, 10, 17, 23, 45), rules)
    assert placed[0][1] == kst(2026, 10, 19, 17, 0)
    assert placed[1][1] == kst(2026, 10, 19, 17, 30)


def test_start_on_rest_day(rules):
    placed = allocate(["x"], kst(2026, 10, 18, 18, 0), rules)
    assert placed[0][1] == kst(2026, 10, 19, 17, 0)


def test_start_in_other_timezone_is_converted(rules):
    utc_start = datetime(2026, 10, 16, 8, 0, tzinfo=ZoneInfo("UTC"))  # 17:00 KST Friday
    placed = allocate(["x"], utc_start, rules)
    assert placed[0][1] == kst(2026, 10, 16, 17, 0)


def test_no_rest_day(rules):
    open_every_day = CalendarRules(rest_day_of_week=None)
    placed = allocate(["x"], kst(2026, 10, 18, 18, 0), open_every_day)
    assert placed[0][1] == kst(2026, 10, 18, 18, 0)


def test_empty_pairings(rules):
    assert allocate([], kst(2026, 10, 17, 17, 0), rules) == []


def test_inverted_window_deadlocks():
    broken = CalendarRules(open_time=time(23, 0), close_time=time(17, 0))
    with pytest.raises(SchedulingDeadlock):
        allocate(["x"], kst(2026, 10, 16, 12, 0), broken)


def test_naive_start_rejected(rules):
    with pytest.raises(InvalidInput):
        allocate(["x"], datetime(2026, 10, 16, 17, 0), rules)


def test_non_positive_interval_rejected():
    with pytest.raises(InvalidInput):
        allocate(["x"], kst(2026, 10, 16, 17, 0), CalendarRules(interval=timedelta(0)))


def test_round_anchor_opens_window_offset_days_later(rules):
    assert round_anchor(kst(2026, 10, 19, 18, 0), 3, rules) == kst(2026, 10, 22, 17, 0)


def test_next_weekday_at_is_strictly_after():
    monday_midnight = kst(2026, 10, 26, 0, 0)
    assert next_weekday_at(kst(2026, 10, 21, 10, 0), 0, time(0, 0), KST) == monday_midnight
    assert next_weekday_at(monday_midnight, 0, time(0, 0), KST) == kst(2026, 11, 2, 0, 0)
