"""
Division membership planning: synthetic backfill, promotion/relegation,
synthetic replacement and initial placement.

Pure functions over in-memory memberships. The orchestrator persists the
plans inside one transaction, so capacity holds at every committed boundary.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from league_engine.config import SYNTHETIC_TEAM_NAMES, TierSpec
from league_engine.models import Membership, MovementKind, Team
from league_engine.services.errors import InvalidInput, InvariantViolation
from league_engine.services.standings import standings_order


def synthetic_team_id(index: int) -> str:
    return f"syn-{index:05d}"


def synthetic_team_name(index: int, name_pool: Sequence[str] = SYNTHETIC_TEAM_NAMES) -> str:
    """Pool name for the index-th synthetic team; numbered once the pool wraps."""
    if not name_pool:
        return f"Synthetic {index + 1}"
    base = name_pool[index % len(name_pool)]
    cycle = index // len(name_pool)
    return base if cycle == 0 else f"{base} {cycle + 1}"


def plan_backfill(
    real_team_count: int,
    capacity: int,
    next_index: int,
    region: str,
    name_pool: Sequence[str] = SYNTHETIC_TEAM_NAMES,
) -> tuple[list[Team], int]:
    """
    Synthetic teams needed to bring a division to exactly `capacity`.
    Returns (teams, next counter value). Names come from an explicit counter
    so repeated runs never collide.
    """
    if real_team_count > capacity:
        raise InvariantViolation(f"{real_team_count} teams exceed capacity {capacity}")
    teams: list[Team] = []
    index = next_index
    for _ in range(capacity - real_team_count):
        teams.append(
            Team(
                id=synthetic_team_id(index),
                name=synthetic_team_name(index, name_pool),
                region=region,
                is_synthetic=True,
            )
        )
        index += 1
    return teams, index


@dataclass
class MovementPlan:
    relegated: list[str]  # upper -> lower
    promoted: list[str]  # lower -> upper

    @property
    def count(self) -> int:
        return len(self.promoted)


def plan_promotion_relegation(
    upper: Sequence[Membership],
    lower: Sequence[Membership],
    k: int,
) -> MovementPlan:
    """
    Bottom k of upper go down, top k real teams of lower go up. Synthetic
    teams are never promoted; when fewer than k real teams are eligible, only
    that many move each way so both divisions keep their size.
    """
    if k < 0:
        raise InvalidInput(f"Movement count must be >= 0 (got {k})")
    promoted = [m.team_id for m in standings_order(lower) if not m.is_synthetic][:k]
    moves = min(len(promoted), len(upper))
    promoted = promoted[:moves]
    relegated = [m.team_id for m in standings_order(upper)[len(upper) - moves:]] if moves else []
    return MovementPlan(relegated=relegated, promoted=promoted)


def movement_kind(from_level: int, to_level: int) -> MovementKind:
    return MovementKind.PROMOTION if to_level < from_level else MovementKind.RELEGATION


def pick_synthetic_to_replace(memberships: Sequence[Membership]) -> Membership | None:
    """Lowest-standing synthetic occupant, or None when the division is all real."""
    synthetic = [m for m in memberships if m.is_synthetic]
    if not synthetic:
        return None
    return min(
        synthetic,
        key=lambda m: (m.standing.points, m.standing.goal_difference, m.standing.wins, m.team_id),
    )


def distribute_teams(team_ids: Sequence[str], tiers: Sequence[TierSpec]) -> dict[str, list[str]]:
    """
    Initial placement: teams ordered strongest first fill the top tier, then
    the next. Raises InvalidInput if the region cannot hold them all.
    """
    if len(set(team_ids)) != len(team_ids):
        raise InvalidInput("Duplicate team IDs")
    total = sum(t.capacity for t in tiers)
    if len(team_ids) > total:
        raise InvalidInput(f"{len(team_ids)} teams exceed region capacity {total}")
    placement: dict[str, list[str]] = {}
    start = 0
    for spec in tiers:
        placement[spec.name] = list(team_ids[start:start + spec.capacity])
        start += spec.capacity
    return placement
