"""
Tests for standings arithmetic and table ordering.
"""
from __future__ import annotations

from pathlib import Path

import pytest

import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from league_engine.models import Membership, Standing
from league_engine.services.errors import InvalidInput
from league_engine.services.standings import apply_result, standings_order


def test_home_win():
    home, away = apply_result(Standing(), Standing(), 3, 1)
    assert home == Standing(wins=1, points=3, goal_difference=2)
    assert away == Standing(losses=1, goal_difference=-2)


def test_away_win():
    home, away = apply_result(Standing(), Standing(), 0, 2)
    assert home == Standing(losses=1, goal_difference=-2)
    assert away == Standing(wins=1, points=3, goal_difference=2)


def test_draw():
    home, away = apply_result(Standing(wins=1, points=3), Standing(), 1, 1)
    assert home == Standing(wins=1, draws=1, points=4)
    assert away == Standing(draws=1, points=1)
    assert home.played == 2


def test_custom_points():
    home, _ = apply_result(Standing(), Standing(), 1, 0, points_for_win=2)
    assert home.points == 2


def test_negative_score_rejected():
    with pytest.raises(InvalidInput):
        apply_result(Standing(), Standing(), -1, 0)


def test_results_commute():
    a, b, c = Standing(), Standing(), Standing()
    a1, b1 = apply_result(a, b, 2, 0)
    a2, c1 = apply_result(a1, c, 1, 1)
    a_alt, c_alt = apply_result(a, c, 1, 1)
    a_alt2, _ = apply_result(a_alt, b, 2, 0)
    assert a2 == a_alt2


def test_standings_order_tiebreaks():
    table = [
        Membership("d", "c", Standing(wins=2, points=6, goal_difference=1)),
        Membership("d", "a", Standing(wins=2, points=6, goal_difference=1)),
        Membership("d", "b", Standing(wins=2, points=6, goal_difference=4)),
        Membership("d", "e", Standing(wins=1, draws=3, points=6, goal_difference=1)),
        Membership("d", "f", Standing(points=9)),
    ]
    assert [m.team_id for m in standings_order(table)] == ["f", "b", "a", "c", "e"]
