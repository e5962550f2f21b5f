"""
Knockout bracket engine: seeding, round advancement and final placings.

Stateless. The orchestrator loads a bracket and its matches, asks the engine
what the next round looks like, and persists the answer. Two seeding
policies are provided:

ByeSeededPolicy (playoffs)
    Bracket size P is the next power of two >= N. The top P - N seeds get a
    bye and wait in pre-created second-round matches with a TBD away slot;
    the rest play first-round matches paired outside-in (3v6, 4v5). Seed k
    of the bye group meets the k-th winner counted from the end, so seed 1
    gets the winner of the lowest-seeded first-round match.

CupReseedPolicy (cup)
    Round one pairs higher-tier teams against the lowest ("amateur") tier;
    every later round is a random redraw of the winners through the
    injected RandomSource.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Protocol, Sequence

from league_engine.models import BracketInstance, BracketMatch, BracketMatchStatus
from league_engine.services.errors import (
    InsufficientParticipants,
    InvalidInput,
    InvariantViolation,
    LifecycleError,
    RoundIncomplete,
)
from league_engine.services.rng import RandomSource, SeededRNG
from league_engine.services.scheduling import pair_adjacent


@dataclass(frozen=True)
class Entrant:
    """A team entering a bracket. rank is 1-based; tier is the tier level (1 = top)."""
    team_id: str
    rank: int
    tier: int | None = None


@dataclass(frozen=True)
class PlannedSeed:
    team_id: str
    seed_rank: int
    has_bye: bool = False


@dataclass(frozen=True)
class PlannedMatch:
    """A match to create or update. None = participant still TBD."""
    round: str
    match_number: int
    home_team_id: str | None
    away_team_id: str | None

    @property
    def is_ready(self) -> bool:
        return self.home_team_id is not None and self.away_team_id is not None


@dataclass
class SeedingPlan:
    round_sequence: tuple[str, ...]
    seeds: list[PlannedSeed]
    matches: list[PlannedMatch]

    @property
    def first_round(self) -> str:
        return self.round_sequence[0]


@dataclass
class RoundAdvance:
    """Next round's matches, keyed by match_number (existing pending ones are updated)."""
    round_label: str
    matches: list[PlannedMatch]


@dataclass
class BracketCompletion:
    champion_team_id: str
    runner_up_team_id: str
    placings: dict[str, int] = field(default_factory=dict)


def labels_for_field(field_size: int, round_sequence: Sequence[str]) -> tuple[str, ...]:
    """The last ceil(log2 N) labels of round_sequence."""
    if field_size < 2:
        raise InsufficientParticipants(f"A bracket needs at least 2 entrants (got {field_size})")
    rounds = math.ceil(math.log2(field_size))
    if rounds > len(round_sequence):
        raise InvalidInput(
            f"{field_size} entrants need {rounds} rounds but only {len(round_sequence)} labels are configured"
        )
    return tuple(round_sequence[len(round_sequence) - rounds:])


def _check_entrants(entrants: Sequence[Entrant]) -> None:
    if len(entrants) < 2:
        raise InsufficientParticipants(f"A bracket needs at least 2 entrants (got {len(entrants)})")
    ids = [e.team_id for e in entrants]
    if len(set(ids)) != len(ids):
        raise InvalidInput("Duplicate team IDs among bracket entrants")


def pair_outside_in(team_ids: Sequence[str]) -> list[tuple[str, str]]:
    """(t0, t[-1]), (t1, t[-2]), ... Higher seed (earlier in the list) at home."""
    if len(team_ids) % 2 == 1:
        raise InvalidInput(f"Cannot pair an odd number of teams ({len(team_ids)})")
    half = len(team_ids) // 2
    return [(team_ids[i], team_ids[len(team_ids) - 1 - i]) for i in range(half)]


class SeedingPolicy(Protocol):
    def seed(self, entrants: Sequence[Entrant], round_sequence: Sequence[str]) -> SeedingPlan: ...

    def pair_next(
        self,
        round_label: str,
        winners: list[str],
        pending: list[BracketMatch],
        rng: RandomSource,
    ) -> list[PlannedMatch]: ...


class ByeSeededPolicy:
    """Top seeds skip round one; first-round pairs are built outside-in."""

    def seed(self, entrants: Sequence[Entrant], round_sequence: Sequence[str]) -> SeedingPlan:
        _check_entrants(entrants)
        ranked = sorted(entrants, key=lambda e: (e.rank, e.team_id))
        n = len(ranked)
        labels = labels_for_field(n, round_sequence)
        size = 1 << (n - 1).bit_length()
        bye_count = size - n
        bye_ids = [e.team_id for e in ranked[:bye_count]]
        playing_ids = [e.team_id for e in ranked[bye_count:]]

        seeds = [PlannedSeed(e.team_id, idx + 1, idx < bye_count) for idx, e in enumerate(ranked)]
        matches = [
            PlannedMatch(labels[0], number, home, away)
            for number, (home, away) in enumerate(pair_outside_in(playing_ids), start=1)
        ]
        if bye_count:
            first_round_winners = len(matches)
            waiting = bye_ids[:first_round_winners]
            leftover = bye_ids[first_round_winners:]
            number = 0
            for number, team_id in enumerate(waiting, start=1):
                matches.append(PlannedMatch(labels[1], number, team_id, None))
            for offset, (home, away) in enumerate(pair_outside_in(leftover), start=number + 1):
                matches.append(PlannedMatch(labels[1], offset, home, away))
        return SeedingPlan(round_sequence=labels, seeds=seeds, matches=matches)

    def pair_next(
        self,
        round_label: str,
        winners: list[str],
        pending: list[BracketMatch],
        rng: RandomSource,
    ) -> list[PlannedMatch]:
        waiting = sorted(
            (m for m in pending if m.away_team_id is None),
            key=lambda m: m.match_number,
        )
        if len(waiting) > len(winners):
            raise InvariantViolation(
                f"{len(waiting)} TBD slots in {round_label} but only {len(winners)} winners"
            )
        planned: list[PlannedMatch] = []
        for k, match in enumerate(waiting):
            planned.append(PlannedMatch(round_label, match.match_number, match.home_team_id, winners[-1 - k]))
        remaining = winners[: len(winners) - len(waiting)]
        next_number = max((m.match_number for m in pending), default=0) + 1
        for offset, (home, away) in enumerate(pair_adjacent(remaining)):
            planned.append(PlannedMatch(round_label, next_number + offset, home, away))
        return planned


class CupReseedPolicy:
    """Tiered first-round draw, random redraw in every later round."""

    def seed(self, entrants: Sequence[Entrant], round_sequence: Sequence[str]) -> SeedingPlan:
        _check_entrants(entrants)
        n = len(entrants)
        if n & (n - 1):
            raise InvalidInput(f"Cup field must be a power of two (got {n})")
        if any(e.tier is None for e in entrants):
            raise InvalidInput("Cup entrants need a tier")
        labels = labels_for_field(n, round_sequence)
        amateur_tier = max(e.tier for e in entrants)
        higher = sorted((e for e in entrants if e.tier != amateur_tier), key=lambda e: (e.tier, e.rank, e.team_id))
        amateurs = sorted((e for e in entrants if e.tier == amateur_tier), key=lambda e: (e.rank, e.team_id))

        pairs = [(h.team_id, a.team_id) for h, a in zip(higher, amateurs)]
        leftover = higher[len(amateurs):] + amateurs[len(higher):]
        pairs.extend(pair_adjacent([e.team_id for e in leftover]))

        ordered = higher + amateurs
        seeds = [PlannedSeed(e.team_id, idx + 1) for idx, e in enumerate(ordered)]
        matches = [
            PlannedMatch(labels[0], number, home, away)
            for number, (home, away) in enumerate(pairs, start=1)
        ]
        return SeedingPlan(round_sequence=labels, seeds=seeds, matches=matches)

    def pair_next(
        self,
        round_label: str,
        winners: list[str],
        pending: list[BracketMatch],
        rng: RandomSource,
    ) -> list[PlannedMatch]:
        if pending:
            raise InvariantViolation(f"Cup round {round_label} already has matches")
        drawn = rng.shuffled(winners)
        return [
            PlannedMatch(round_label, number, home, away)
            for number, (home, away) in enumerate(pair_adjacent(drawn), start=1)
        ]


def round_winners(round_matches: Sequence[BracketMatch], round_label: str) -> list[str]:
    """Winners in match_number order; raises RoundIncomplete on any unresolved match."""
    if not round_matches:
        raise InvariantViolation(f"Round {round_label} has no matches")
    winners: list[str] = []
    for match in sorted(round_matches, key=lambda m: m.match_number):
        if match.status != BracketMatchStatus.FINISHED or match.winner_team_id is None:
            raise RoundIncomplete(f"Match {match.match_number} of {round_label} has no winner yet")
        if match.winner_team_id not in (match.home_team_id, match.away_team_id):
            raise InvariantViolation(f"Winner of match {match.id} did not play in it")
        winners.append(match.winner_team_id)
    return winners


def final_placings(matches: Sequence[BracketMatch], round_sequence: Sequence[str]) -> dict[str, int]:
    """
    Champion 1, runner-up 2; losers of the round k steps before the final
    share rank 2**k + 1 (semifinal losers 3, quarterfinal losers 5, ...).
    """
    placings: dict[str, int] = {}
    last = len(round_sequence) - 1
    for match in matches:
        if match.status != BracketMatchStatus.FINISHED or match.winner_team_id is None:
            continue
        steps_before_final = last - round_sequence.index(match.round)
        loser = match.loser_team_id
        if loser is not None:
            placings[loser] = 2 ** steps_before_final + 1
        if steps_before_final == 0:
            placings[match.winner_team_id] = 1
    return placings


def qualifiers(placings: dict[str, int], qualifying_ranks: Sequence[int]) -> list[tuple[str, int]]:
    """(team_id, rank) for every placing in qualifying_ranks, best first."""
    wanted = set(qualifying_ranks)
    return sorted(((t, r) for t, r in placings.items() if r in wanted), key=lambda item: (item[1], item[0]))


class BracketEngine:
    """Plans seedings and round transitions for one seeding policy."""

    def __init__(self, policy: SeedingPolicy) -> None:
        self.policy = policy

    def seed(self, entrants: Sequence[Entrant], round_sequence: Sequence[str]) -> SeedingPlan:
        return self.policy.seed(entrants, round_sequence)

    def plan_next_round(
        self,
        bracket: BracketInstance,
        matches: Sequence[BracketMatch],
        rng: RandomSource | None = None,
    ) -> RoundAdvance | BracketCompletion:
        """
        matches: every match of the bracket. Raises RoundIncomplete if the
        current round still has an unresolved match.
        """
        if bracket.is_completed:
            raise LifecycleError(f"Bracket {bracket.id} is already completed")
        current = [m for m in matches if m.round == bracket.current_round]
        winners = round_winners(current, bracket.current_round)

        if bracket.is_final_round:
            if len(current) != 1:
                raise InvariantViolation(f"Final of bracket {bracket.id} has {len(current)} matches")
            final = current[0]
            return BracketCompletion(
                champion_team_id=final.winner_team_id,
                runner_up_team_id=final.loser_team_id,
                placings=final_placings(matches, bracket.round_sequence),
            )

        next_label = bracket.next_round_label()
        pending = [m for m in matches if m.round == next_label]
        planned = self.policy.pair_next(next_label, winners, pending, rng or SeededRNG())
        teams = [t for m in planned for t in (m.home_team_id, m.away_team_id)]
        if None in teams or len(set(teams)) != len(teams):
            raise InvariantViolation(f"Round {next_label} of bracket {bracket.id} is not fully resolved")
        return RoundAdvance(round_label=next_label, matches=planned)
