"""
Temporal slot allocation: turn an ordered pairing list into concrete instants.

Walks the pairings in order with a cursor that starts on the first grid slot
(open_time + k * interval) at or after start_after. A cursor on the rest day
or past close_time rolls to the next day's open_time; before open_time it
snaps to that day's open_time. Rollovers per fixture are bounded by
rules.max_day_advances so malformed rules fail with SchedulingDeadlock
instead of looping.

Pure and deterministic: same pairings + start + rules => same instants.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Sequence, TypeVar
from zoneinfo import ZoneInfo

from league_engine.config import CalendarRules
from league_engine.services.errors import InvalidInput, SchedulingDeadlock

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _day_open(day: date, rules: CalendarRules) -> datetime:
    return datetime.combine(day, rules.open_time, tzinfo=rules.timezone)


def _check_rules(rules: CalendarRules) -> None:
    if rules.interval <= timedelta(0):
        raise InvalidInput(f"interval must be positive (got {rules.interval})")
    if rules.rest_day_of_week is not None and not 0 <= rules.rest_day_of_week <= 6:
        raise InvalidInput(f"rest_day_of_week must be 0-6 (got {rules.rest_day_of_week})")
    if rules.max_day_advances < 1:
        raise InvalidInput("max_day_advances must be >= 1")
    if rules.slots_per_day() == 0:
        raise SchedulingDeadlock(f"Daily window {rules.open_time}-{rules.close_time} holds no slot")


def first_slot_at_or_after(moment: datetime, rules: CalendarRules) -> datetime:
    """First grid instant of moment's local day at or after moment (may sit past close_time)."""
    if moment.tzinfo is None:
        raise InvalidInput("start instant must be timezone-aware")
    local = moment.astimezone(rules.timezone)
    day_open = _day_open(local.date(), rules)
    if local <= day_open:
        return day_open
    steps, remainder = divmod(local - day_open, rules.interval)
    if remainder:
        steps += 1
    return day_open + steps * rules.interval


def next_valid_slot(cursor: datetime, rules: CalendarRules) -> datetime:
    """
    Move cursor forward to the first instant satisfying the day/window rules.
    Raises SchedulingDeadlock after rules.max_day_advances day rollovers.
    """
    advances = 0
    while True:
        local = cursor.astimezone(rules.timezone)
        clock = local.time()
        if rules.rest_day_of_week is not None and local.weekday() == rules.rest_day_of_week:
            reason = "rest day"
        elif clock > rules.close_time:
            reason = "window closed"
        elif clock < rules.open_time:
            cursor = _day_open(local.date(), rules)
            continue
        else:
            return local
        advances += 1
        if advances > rules.max_day_advances:
            raise SchedulingDeadlock(
                f"No valid slot within {rules.max_day_advances} days after {cursor.isoformat()} "
                f"(window {rules.open_time}-{rules.close_time}, rest day {rules.rest_day_of_week})"
            )
        cursor = _day_open(local.date() + timedelta(days=1), rules)
        logger.debug("Slot cursor rolled to %s (%s)", cursor.isoformat(), reason)


def allocate(
    pairings: Sequence[T],
    start_after: datetime,
    rules: CalendarRules,
) -> list[tuple[T, datetime]]:
    """
    Assign each pairing a scheduled instant, preserving input order.
    Consecutive instants are exactly rules.interval apart unless a day
    rollover happened in between; no two share an instant.
    """
    _check_rules(rules)
    cursor = first_slot_at_or_after(start_after, rules)
    result: list[tuple[T, datetime]] = []
    for pairing in pairings:
        cursor = next_valid_slot(cursor, rules)
        result.append((pairing, cursor))
        cursor = cursor + rules.interval
    return result


def is_valid_slot(moment: datetime, rules: CalendarRules) -> bool:
    """True if moment is outside the rest day and inside the daily window."""
    local = moment.astimezone(rules.timezone)
    if rules.rest_day_of_week is not None and local.weekday() == rules.rest_day_of_week:
        return False
    return rules.open_time <= local.time() <= rules.close_time


def round_anchor(previous_first_match: datetime, offset_days: int, rules: CalendarRules) -> datetime:
    """Window opening on the day offset_days after the previous round's first match."""
    local = previous_first_match.astimezone(rules.timezone)
    return _day_open(local.date() + timedelta(days=offset_days), rules)


def next_weekday_at(moment: datetime, weekday: int, at: time, tz: ZoneInfo) -> datetime:
    """Smallest instant strictly after moment that falls on weekday at wall-clock time `at`."""
    local = moment.astimezone(tz)
    days_ahead = (weekday - local.weekday()) % 7
    candidate = datetime.combine(local.date() + timedelta(days=days_ahead), at, tzinfo=tz)
    if candidate <= local:
        candidate += timedelta(days=7)
    return candidate
