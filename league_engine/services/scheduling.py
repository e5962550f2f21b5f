"""
Deterministic double round-robin fixture generation for divisions.

Circle method: fix the first slot, rotate the others once per round. When the
number of teams is odd a virtual BYE joins the rotation and every pairing
with it is dropped, so each team simply sits out one round per leg.

Home/away alternates by round parity inside the first leg; the second leg
replays the same rounds with every pairing flipped. Same team list ordering
yields the same schedule (deterministic for persistence).
"""
from __future__ import annotations

from collections import Counter
from typing import Sequence

from league_engine.services.errors import InvalidInput

# Sentinel for bye when number of teams is odd
BYE = "BYE"


def _check_team_ids(team_ids: Sequence[str]) -> list[str]:
    ids = list(team_ids)
    if len(set(ids)) != len(ids):
        dupes = sorted(t for t, count in Counter(ids).items() if count > 1)
        raise InvalidInput(f"Duplicate team IDs: {dupes}")
    if BYE in ids:
        raise InvalidInput(f"'{BYE}' is reserved and cannot be a team ID")
    return ids


def single_round_robin(team_ids: Sequence[str]) -> list[list[tuple[str, str]]]:
    """
    One full round-robin split into rounds of (home, away) pairs.
    Each team plays at most once per round; every pair meets exactly once.
    """
    ids = _check_team_ids(team_ids)
    if len(ids) < 2:
        return []
    if len(ids) % 2 == 1:
        ids.append(BYE)
    n = len(ids)  # n is even
    order = list(range(n))
    rounds: list[list[tuple[str, str]]] = []
    for round_idx in range(n - 1):
        games: list[tuple[str, str]] = []
        # Pair order[0] with order[n-1], order[1] with order[n-2], ...
        for i in range(n // 2):
            home, away = ids[order[i]], ids[order[n - 1 - i]]
            if home == BYE or away == BYE:
                continue
            if round_idx % 2 == 1:
                home, away = away, home
            games.append((home, away))
        rounds.append(games)
        # Rotate: keep 0, then order[n-1], order[1], ..., order[n-2]
        order = [order[0], order[n - 1], *order[1 : n - 1]]
    return rounds


def round_robin_rounds(team_ids: Sequence[str], legs: int = 2) -> list[list[tuple[str, str]]]:
    """
    Rounds for `legs` passes over the single round-robin. Odd legs keep the
    first-leg orientation, even legs flip every pairing.
    """
    if legs < 1:
        raise InvalidInput(f"legs must be >= 1 (got {legs})")
    base = single_round_robin(team_ids)
    rounds: list[list[tuple[str, str]]] = []
    for leg in range(legs):
        flip = leg % 2 == 1
        for games in base:
            rounds.append([(a, h) for h, a in games] if flip else list(games))
    return rounds


def generate_double_round_robin(team_ids: Sequence[str], legs: int = 2) -> list[tuple[str, str]]:
    """
    Flat, ordered (home, away) list. With the default two legs the result has
    N*(N-1) pairs, each unordered pair twice with opposite orientation.
    N < 2 returns an empty list.
    """
    return [game for games in round_robin_rounds(team_ids, legs) for game in games]


def matchday_label(index: int) -> str:
    """Round label for the index-th (0-based) round of a regular season."""
    return f"MD{index + 1:02d}"


def labelled_fixtures(team_ids: Sequence[str], legs: int = 2) -> list[tuple[str, str, str]]:
    """(round_label, home, away) triples in schedule order."""
    return [
        (matchday_label(idx), home, away)
        for idx, games in enumerate(round_robin_rounds(team_ids, legs))
        for home, away in games
    ]


def pair_adjacent(team_ids: Sequence[str]) -> list[tuple[str, str]]:
    """Knockout pairing: (t0, t1), (t2, t3), ... First of each pair is home."""
    ids = _check_team_ids(team_ids)
    if len(ids) % 2 == 1:
        raise InvalidInput(f"Cannot pair an odd number of teams ({len(ids)})")
    return [(ids[i], ids[i + 1]) for i in range(0, len(ids), 2)]
