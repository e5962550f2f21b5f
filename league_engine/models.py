"""
Data models for the league engine.
Domain objects only, no persistence or API logic.

Season-centric architecture: a competition track has one current season;
seasons own divisions; divisions own memberships (with standings) and
fixtures; brackets (playoff, cup) own seeds and bracket matches.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any


# ---------- Division stage (state machine) ----------
class DivisionStage(str, Enum):
    """Division lifecycle: regular → playoff → offseason (→ regular of next season)."""
    REGULAR = "regular"
    PLAYOFF = "playoff"
    OFFSEASON = "offseason"


class SeasonStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"  # immutable after this


# ---------- Fixture status ----------
class FixtureStatus(str, Enum):
    SCHEDULED = "scheduled"
    LIVE = "live"
    FINISHED = "finished"


# ---------- Brackets ----------
class CompetitionKind(str, Enum):
    PLAYOFF = "playoff"
    CUP = "cup"


class RoundLabel(str, Enum):
    WILDCARD = "wildcard"
    ROUND_32 = "round_32"
    ROUND_16 = "round_16"
    QUARTER = "quarter"
    SEMI = "semi"
    FINAL = "final"


class BracketStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class BracketMatchStatus(str, Enum):
    PENDING = "pending"  # at least one participant still TBD
    SCHEDULED = "scheduled"
    LIVE = "live"
    FINISHED = "finished"


class MovementKind(str, Enum):
    PROMOTION = "promotion"
    RELEGATION = "relegation"


# ---------- Team ----------
@dataclass
class Team:
    """
    A club. Synthetic teams are placeholders created to keep divisions full;
    they are the first to be replaced when a real team needs a slot.
    """
    id: str
    name: str
    region: str
    is_synthetic: bool = False
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "region": self.region,
            "is_synthetic": self.is_synthetic,
        }
        if self.created_at is not None:
            d["created_at"] = self.created_at.isoformat()
        return d


# ---------- Season ----------
@dataclass
class Season:
    """Integer-ordered epoch of a competition track. Closed seasons are never mutated."""
    id: str
    track: str
    season_number: int
    status: str  # SeasonStatus value
    created_at: datetime
    closed_at: datetime | None = None

    @property
    def is_closed(self) -> bool:
        return self.status == SeasonStatus.CLOSED

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "track": self.track,
            "season_number": self.season_number,
            "status": self.status,
            "created_at": self.created_at.isoformat(),
        }
        if self.closed_at is not None:
            d["closed_at"] = self.closed_at.isoformat()
        return d


# ---------- Division ----------
@dataclass
class Division:
    """
    A fixed-capacity group within one (region, tier) of a season.
    tier_level 1 is the top tier. stage drives the per-division state machine.
    """
    id: str
    season_id: str
    region: str
    tier: str
    tier_level: int
    name: str
    capacity: int
    stage: str  # DivisionStage value
    created_at: datetime
    offseason_started_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "season_id": self.season_id,
            "region": self.region,
            "tier": self.tier,
            "tier_level": self.tier_level,
            "name": self.name,
            "capacity": self.capacity,
            "stage": self.stage,
            "created_at": self.created_at.isoformat(),
        }
        if self.offseason_started_at is not None:
            d["offseason_started_at"] = self.offseason_started_at.isoformat()
        return d


# ---------- Standing ----------
@dataclass(frozen=True)
class Standing:
    """Running record of a team inside one division for one season."""
    wins: int = 0
    losses: int = 0
    draws: int = 0
    points: int = 0
    goal_difference: int = 0

    @property
    def played(self) -> int:
        return self.wins + self.losses + self.draws

    def plus(self, *, wins: int = 0, losses: int = 0, draws: int = 0, points: int = 0, goal_difference: int = 0) -> Standing:
        return replace(
            self,
            wins=self.wins + wins,
            losses=self.losses + losses,
            draws=self.draws + draws,
            points=self.points + points,
            goal_difference=self.goal_difference + goal_difference,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "wins": self.wins,
            "losses": self.losses,
            "draws": self.draws,
            "points": self.points,
            "goal_difference": self.goal_difference,
            "played": self.played,
        }


# ---------- TeamMembership ----------
@dataclass
class Membership:
    """
    A team's seat in a division for one season. Fresh per season: only the
    carried outcome (promoted / relegated) crosses the season boundary.
    """
    division_id: str
    team_id: str
    standing: Standing = field(default_factory=Standing)
    is_synthetic: bool = False
    carried_outcome: str | None = None  # MovementKind value from previous season
    joined_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "division_id": self.division_id,
            "team_id": self.team_id,
            "is_synthetic": self.is_synthetic,
            **self.standing.to_dict(),
        }
        if self.carried_outcome is not None:
            d["carried_outcome"] = self.carried_outcome
        return d


# ---------- Fixture ----------
@dataclass
class Fixture:
    """
    A regular-season match. Identity is fixed at creation; scheduled_at and
    status are the only fields that move (plus the result once FINISHED).
    """
    id: str
    division_id: str
    round_label: str
    sequence: int  # position in the generated fixture list
    home_team_id: str
    away_team_id: str
    scheduled_at: datetime
    status: str  # FixtureStatus value
    created_at: datetime
    home_score: int | None = None
    away_score: int | None = None
    completed_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "division_id": self.division_id,
            "round_label": self.round_label,
            "sequence": self.sequence,
            "home_team_id": self.home_team_id,
            "away_team_id": self.away_team_id,
            "scheduled_at": self.scheduled_at.isoformat(),
            "status": self.status,
        }
        if self.status == FixtureStatus.FINISHED:
            d["home_score"] = self.home_score
            d["away_score"] = self.away_score
            if self.completed_at is not None:
                d["completed_at"] = self.completed_at.isoformat()
        return d


# ---------- Brackets ----------
@dataclass
class BracketInstance:
    """
    One knockout competition. round_sequence holds the labels actually used,
    first round first. current_round only advances once every match of the
    round is FINISHED.
    """
    id: str
    season_id: str
    competition_kind: str  # CompetitionKind value
    round_sequence: tuple[str, ...]
    current_round: str
    status: str  # BracketStatus value
    created_at: datetime
    division_id: str | None = None  # None for the cup
    completed_at: datetime | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == BracketStatus.COMPLETED

    @property
    def is_final_round(self) -> bool:
        return self.current_round == self.round_sequence[-1]

    def next_round_label(self) -> str | None:
        idx = self.round_sequence.index(self.current_round)
        if idx + 1 >= len(self.round_sequence):
            return None
        return self.round_sequence[idx + 1]

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "season_id": self.season_id,
            "competition_kind": self.competition_kind,
            "round_sequence": list(self.round_sequence),
            "current_round": self.current_round,
            "status": self.status,
            "created_at": self.created_at.isoformat(),
        }
        if self.division_id is not None:
            d["division_id"] = self.division_id
        if self.completed_at is not None:
            d["completed_at"] = self.completed_at.isoformat()
        return d


@dataclass(frozen=True)
class Seed:
    """A bracket entrant's rank. has_bye = enters in the second round."""
    bracket_id: str
    team_id: str
    seed_rank: int
    has_bye: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "team_id": self.team_id,
            "seed_rank": self.seed_rank,
            "has_bye": self.has_bye,
        }


@dataclass
class BracketMatch:
    """Participants stay None (TBD) until the prior round resolves them."""
    id: str
    bracket_id: str
    round: str
    match_number: int  # 1-based within the round
    status: str  # BracketMatchStatus value
    home_team_id: str | None = None
    away_team_id: str | None = None
    winner_team_id: str | None = None
    home_score: int | None = None
    away_score: int | None = None
    scheduled_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def loser_team_id(self) -> str | None:
        if self.winner_team_id is None:
            return None
        return self.away_team_id if self.winner_team_id == self.home_team_id else self.home_team_id

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "bracket_id": self.bracket_id,
            "round": self.round,
            "match_number": self.match_number,
            "status": self.status,
            "home_team_id": self.home_team_id,
            "away_team_id": self.away_team_id,
            "winner_team_id": self.winner_team_id,
        }
        if self.scheduled_at is not None:
            d["scheduled_at"] = self.scheduled_at.isoformat()
        if self.status == BracketMatchStatus.FINISHED:
            d["home_score"] = self.home_score
            d["away_score"] = self.away_score
        return d


@dataclass
class QualificationRecord:
    """Append-only: a team earned entry into an external competition."""
    id: str
    season_id: str
    bracket_id: str
    team_id: str
    final_rank: int
    destination: str
    created_at: datetime
    division_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "season_id": self.season_id,
            "bracket_id": self.bracket_id,
            "team_id": self.team_id,
            "final_rank": self.final_rank,
            "destination": self.destination,
            "created_at": self.created_at.isoformat(),
        }
        if self.division_id is not None:
            d["division_id"] = self.division_id
        return d


# ---------- Season boundary records ----------
@dataclass
class Movement:
    """Promotion or relegation of one team at season close."""
    season_id: str
    team_id: str
    region: str
    from_tier: str
    to_tier: str
    kind: str  # MovementKind value

    def to_dict(self) -> dict[str, Any]:
        return {
            "season_id": self.season_id,
            "team_id": self.team_id,
            "region": self.region,
            "from_tier": self.from_tier,
            "to_tier": self.to_tier,
            "kind": self.kind,
        }


@dataclass
class SyntheticReplacement:
    """A real team took over a synthetic team's seat (and its record)."""
    synthetic_team_id: str
    team_id: str
    division_id: str
    inherited: Standing

    def to_dict(self) -> dict[str, Any]:
        return {
            "synthetic_team_id": self.synthetic_team_id,
            "team_id": self.team_id,
            "division_id": self.division_id,
            "inherited": self.inherited.to_dict(),
        }
