"""
Engine configuration: tiers and capacities, calendar rules, bracket shapes,
promotion/relegation counts and prize tables.

Defaults mirror the live league (one region, three tiers, evening window in
KST). Environment variables override the calendar for deployments.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import time, timedelta
from zoneinfo import ZoneInfo

from league_engine.models import CompetitionKind, RoundLabel

DEFAULT_TIMEZONE = "Asia/Seoul"


@dataclass(frozen=True)
class CalendarRules:
    """
    When fixtures may be played.
    rest_day_of_week uses datetime.weekday() numbering (0 = Monday); None = no rest day.
    The daily window [open_time, close_time] is inclusive and read in `timezone`.
    """
    rest_day_of_week: int | None = 6
    open_time: time = time(17, 0)
    close_time: time = time(23, 30)
    interval: timedelta = timedelta(minutes=30)
    timezone: ZoneInfo = field(default_factory=lambda: ZoneInfo(DEFAULT_TIMEZONE))
    max_day_advances: int = 14

    def slots_per_day(self) -> int:
        """Number of fixtures that fit in one day's window."""
        if self.close_time < self.open_time or self.interval <= timedelta(0):
            return 0
        open_s = self.open_time.hour * 3600 + self.open_time.minute * 60 + self.open_time.second
        close_s = self.close_time.hour * 3600 + self.close_time.minute * 60 + self.close_time.second
        return (close_s - open_s) // int(self.interval.total_seconds()) + 1


@dataclass(frozen=True)
class TierSpec:
    name: str
    capacity: int


@dataclass(frozen=True)
class BracketConfig:
    """
    Shape of one knockout competition.
    round_offsets_days: days between the first match of the previous round
    and the start of the keyed round (hard-coded per label in the live game).
    qualifying_ranks: final placings that earn a QualificationRecord.
    """
    kind: CompetitionKind
    round_sequence: tuple[str, ...]
    round_offsets_days: dict[str, int]
    field_size: int = 0  # 0 = take every eligible entrant
    qualifying_ranks: tuple[int, ...] = ()
    destination: str = "WORLDS"
    calendar: CalendarRules | None = None  # None = league calendar


PLAYOFF_SEQUENCE: tuple[str, ...] = (RoundLabel.WILDCARD.value, RoundLabel.SEMI.value, RoundLabel.FINAL.value)
CUP_SEQUENCE: tuple[str, ...] = (
    RoundLabel.ROUND_32.value,
    RoundLabel.ROUND_16.value,
    RoundLabel.QUARTER.value,
    RoundLabel.SEMI.value,
    RoundLabel.FINAL.value,
)

# Placeholder club names for synthetic teams (suffixed once the pool wraps).
SYNTHETIC_TEAM_NAMES: tuple[str, ...] = (
    "Dragon Esports", "Phoenix Esports", "Thunder Esports", "Titan Esports",
    "Storm Esports", "Shadow Esports", "Blaze Esports", "Frost Esports",
    "Nova Esports", "Apex Esports", "Golden Lions", "Silver Knights",
    "Dark Ravens", "White Tigers", "Blue Dolphins", "Red Wolves",
    "Green Vipers", "Black Panthers", "Sky Hawks", "Ocean Sharks",
    "Mountain Bears", "Desert Foxes", "Iron Giants", "Crystal Dragons",
    "Neon Ninjas", "Cyber Samurai", "Royal Guard", "Elite Force",
    "Prime Legion", "Victory Squad", "Glory Hunters", "Rising Stars",
)


def _default_regions() -> dict[str, tuple[TierSpec, ...]]:
    return {
        "LPO": (TierSpec("SUPER", 10), TierSpec("FIRST", 10), TierSpec("SECOND", 12)),
    }


def _default_playoff() -> BracketConfig:
    return BracketConfig(
        kind=CompetitionKind.PLAYOFF,
        round_sequence=PLAYOFF_SEQUENCE,
        round_offsets_days={RoundLabel.SEMI.value: 3, RoundLabel.FINAL.value: 3},
        field_size=6,
        qualifying_ranks=(1, 2, 3),
        destination="WORLDS",
    )


def _default_cup() -> BracketConfig:
    return BracketConfig(
        kind=CompetitionKind.CUP,
        round_sequence=CUP_SEQUENCE,
        round_offsets_days={
            RoundLabel.ROUND_16.value: 7,
            RoundLabel.QUARTER.value: 7,
            RoundLabel.SEMI.value: 3,
            RoundLabel.FINAL.value: 3,
        },
    )


@dataclass(frozen=True)
class EngineConfig:
    """
    Everything the engine decides with. regions maps a region name to its
    tiers, top tier first.
    """
    regions: dict[str, tuple[TierSpec, ...]] = field(default_factory=_default_regions)
    calendar: CalendarRules = field(default_factory=CalendarRules)
    promotion_relegation_count: int = 2
    promotion_relegation_overrides: dict[tuple[str, str], int] = field(default_factory=dict)
    playoff: BracketConfig = field(default_factory=_default_playoff)
    cup: BracketConfig = field(default_factory=_default_cup)
    # (competition kind value, final rank) -> amount
    prize_table: dict[tuple[str, int], int] = field(default_factory=lambda: {
        (CompetitionKind.PLAYOFF.value, 1): 100_000_000,
        (CompetitionKind.CUP.value, 1): 550_000_000,
    })
    # Playoff champion prize by tier; wins over prize_table
    playoff_prize_by_tier: dict[str, int] = field(default_factory=lambda: {
        "SUPER": 500_000_000,
        "FIRST": 250_000_000,
        "SECOND": 100_000_000,
    })
    points_for_win: int = 3
    points_for_draw: int = 1
    fixture_legs: int = 2
    # Weekly boundary for the time-triggered rollover (Monday 00:00)
    rollover_weekday: int = 0
    rollover_time: time = time(0, 0)
    synthetic_name_pool: tuple[str, ...] = SYNTHETIC_TEAM_NAMES

    def tiers(self, region: str) -> tuple[TierSpec, ...]:
        try:
            return self.regions[region]
        except KeyError:
            raise KeyError(f"Unknown region: {region}") from None

    def movement_count(self, upper_tier: str, lower_tier: str) -> int:
        return self.promotion_relegation_overrides.get((upper_tier, lower_tier), self.promotion_relegation_count)

    def bracket(self, kind: CompetitionKind | str) -> BracketConfig:
        return self.playoff if CompetitionKind(kind) == CompetitionKind.PLAYOFF else self.cup

    def bracket_calendar(self, kind: CompetitionKind | str) -> CalendarRules:
        return self.bracket(kind).calendar or self.calendar

    def prize_for(self, kind: CompetitionKind | str, final_rank: int, tier: str | None = None) -> int:
        kind_value = CompetitionKind(kind).value
        if kind_value == CompetitionKind.PLAYOFF.value and final_rank == 1 and tier in self.playoff_prize_by_tier:
            return self.playoff_prize_by_tier[tier]
        return self.prize_table.get((kind_value, final_rank), 0)


def _parse_hhmm(value: str) -> time:
    hours, minutes = value.split(":", 1)
    return time(int(hours), int(minutes))


def load_config() -> EngineConfig:
    """Default config with calendar overrides from the environment."""
    base = CalendarRules()
    tz_name = os.environ.get("LEAGUE_TIMEZONE", DEFAULT_TIMEZONE)
    interval_minutes = int(os.environ.get("LEAGUE_MATCH_INTERVAL_MINUTES", "30"))
    rest_raw = os.environ.get("LEAGUE_REST_DAY")
    if rest_raw is None:
        rest_day = base.rest_day_of_week
    elif rest_raw.strip().lower() in ("", "none"):
        rest_day = None
    else:
        rest_day = int(rest_raw)
    calendar = CalendarRules(
        rest_day_of_week=rest_day,
        open_time=_parse_hhmm(os.environ.get("LEAGUE_WINDOW_OPEN", "17:00")),
        close_time=_parse_hhmm(os.environ.get("LEAGUE_WINDOW_CLOSE", "23:30")),
        interval=timedelta(minutes=interval_minutes),
        timezone=ZoneInfo(tz_name),
    )
    return EngineConfig(calendar=calendar)
