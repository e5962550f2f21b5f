"""
Tests for membership planning: backfill capacity, promotion/relegation,
synthetic replacement choice and initial distribution.
"""
from __future__ import annotations

from pathlib import Path

import pytest

import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from league_engine.config import TierSpec
from league_engine.models import Membership, MovementKind, Standing
from league_engine.services.errors import InvalidInput, InvariantViolation
from league_engine.services.membership import (
    distribute_teams,
    movement_kind,
    pick_synthetic_to_replace,
    plan_backfill,
    plan_promotion_relegation,
    synthetic_team_name,
)


def _seat(team_id: str, points: int, synthetic: bool = False, gd: int = 0, division: str = "d") -> Membership:
    return Membership(division, team_id, Standing(points=points, goal_difference=gd), is_synthetic=synthetic)


@pytest.mark.parametrize("capacity", [1, 6, 10, 12])
def test_backfill_fills_exactly_to_capacity(capacity):
    for real in range(capacity + 1):
        teams, next_index = plan_backfill(real, capacity, 0, "LPO")
        assert real + len(teams) == capacity
        assert next_index == capacity - real
        assert all(t.is_synthetic for t in teams)
        assert len({t.id for t in teams}) == len(teams)


def test_backfill_counter_is_threaded():
    first, next_index = plan_backfill(0, 3, 0, "LPO")
    second, final_index = plan_backfill(1, 3, next_index, "LPO")
    assert final_index == 5
    assert not {t.id for t in first} & {t.id for t in second}


def test_backfill_over_capacity_rejected():
    with pytest.raises(InvariantViolation):
        plan_backfill(11, 10, 0, "LPO")


def test_synthetic_names_wrap_with_suffix():
    assert synthetic_team_name(0) == "Dragon Esports"
    assert synthetic_team_name(31) == "Rising Stars"
    assert synthetic_team_name(32) == "Dragon Esports 2"


def test_promotion_relegation_swaps_k_each_way():
    upper = [_seat(f"u{i}", 30 - i) for i in range(10)]
    lower = [_seat("syn-top", 40, synthetic=True)] + [_seat(f"l{i}", 20 - i) for i in range(11)]
    plan = plan_promotion_relegation(upper, lower, 2)
    assert plan.relegated == ["u8", "u9"]
    assert plan.promoted == ["l0", "l1"]
    assert plan.count == 2


def test_synthetic_can_be_relegated():
    upper = [_seat("u0", 10), _seat("u1", 8), _seat("syn", 1, synthetic=True)]
    lower = [_seat("l0", 9), _seat("l1", 3)]
    plan = plan_promotion_relegation(upper, lower, 1)
    assert plan.relegated == ["syn"]
    assert plan.promoted == ["l0"]


def test_movement_limited_by_eligible_real_teams():
    upper = [_seat(f"u{i}", 10 - i) for i in range(4)]
    lower = [_seat("real", 1)] + [_seat(f"syn{i}", 9, synthetic=True) for i in range(3)]
    plan = plan_promotion_relegation(upper, lower, 2)
    assert plan.promoted == ["real"]
    assert plan.relegated == ["u3"]


def test_no_real_teams_no_movement():
    upper = [_seat("u0", 5), _seat("u1", 3)]
    lower = [_seat("syn", 9, synthetic=True)]
    plan = plan_promotion_relegation(upper, lower, 2)
    assert plan.promoted == [] and plan.relegated == []


def test_movement_kind():
    assert movement_kind(2, 1) == MovementKind.PROMOTION
    assert movement_kind(1, 2) == MovementKind.RELEGATION


def test_pick_lowest_standing_synthetic():
    seats = [
        _seat("real", 0),
        _seat("syn-a", 4, synthetic=True),
        _seat("syn-b", 1, synthetic=True, gd=2),
        _seat("syn-c", 1, synthetic=True, gd=-1),
    ]
    assert pick_synthetic_to_replace(seats).team_id == "syn-c"


def test_pick_returns_none_when_all_real():
    assert pick_synthetic_to_replace([_seat("a", 0), _seat("b", 1)]) is None


def test_distribute_fills_top_tier_first():
    tiers = (TierSpec("SUPER", 10), TierSpec("FIRST", 10), TierSpec("SECOND", 12))
    teams = [f"t{i:02d}" for i in range(25)]
    placement = distribute_teams(teams, tiers)
    assert placement["SUPER"] == teams[:10]
    assert placement["FIRST"] == teams[10:20]
    assert placement["SECOND"] == teams[20:]


def test_distribute_over_region_capacity_rejected():
    with pytest.raises(InvalidInput):
        distribute_teams([f"t{i}" for i in range(5)], (TierSpec("A", 2), TierSpec("B", 2)))
