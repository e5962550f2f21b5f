"""
Standings arithmetic: apply one fixture result to the two standings it
touches, and order a division's table.

All updates are additive, so results of different fixtures commute; each
fixture is applied exactly once because its FINISHED transition is a
compare-and-set (see FixtureRepository.finish).
"""
from __future__ import annotations

from typing import Iterable

from league_engine.models import Membership, Standing
from league_engine.services.errors import InvalidInput


def check_scores(home_score: int, away_score: int) -> None:
    if home_score < 0 or away_score < 0:
        raise InvalidInput(f"Scores must be non-negative (got {home_score}-{away_score})")


def apply_result(
    home: Standing,
    away: Standing,
    home_score: int,
    away_score: int,
    points_for_win: int = 3,
    points_for_draw: int = 1,
) -> tuple[Standing, Standing]:
    """Return (new_home, new_away) after one match."""
    check_scores(home_score, away_score)
    diff = home_score - away_score
    if diff > 0:
        return (
            home.plus(wins=1, points=points_for_win, goal_difference=diff),
            away.plus(losses=1, goal_difference=-diff),
        )
    if diff < 0:
        return (
            home.plus(losses=1, goal_difference=diff),
            away.plus(wins=1, points=points_for_win, goal_difference=-diff),
        )
    return (
        home.plus(draws=1, points=points_for_draw),
        away.plus(draws=1, points=points_for_draw),
    )


def standing_key(m: Membership) -> tuple[int, int, int, str]:
    """Sort key, best first: points desc, goal difference desc, wins desc, team id asc."""
    s = m.standing
    return (-s.points, -s.goal_difference, -s.wins, m.team_id)


def standings_order(memberships: Iterable[Membership]) -> list[Membership]:
    """Final standings order used for playoffs, promotion and relegation."""
    return sorted(memberships, key=standing_key)
