"""
Season lifecycle service: division state machine, idempotent generation,
result ingestion, brackets, mid-season admission and rollover.

Division stages: regular -> playoff -> offseason, then the whole season rolls
over into season + 1. Every generation step claims a (season, scope, stage)
key in generation_log inside the same transaction as its writes, so a
retried trigger finds the key taken and returns DuplicateGenerationAttempt.
"""
from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Sequence

from league_engine.config import EngineConfig
from league_engine.models import (
    BracketInstance,
    BracketMatch,
    BracketMatchStatus,
    CompetitionKind,
    Division,
    DivisionStage,
    Fixture,
    Membership,
    Movement,
    QualificationRecord,
    Season,
    Seed,
    SyntheticReplacement,
    Team,
)
from league_engine.persistence.db import transaction
from league_engine.persistence.repositories import (
    BracketMatchRepository,
    BracketRepository,
    DivisionRepository,
    FixtureRepository,
    GenerationLogRepository,
    MembershipRepository,
    MovementRepository,
    QualificationRepository,
    ReplacementRepository,
    SeasonRepository,
    SequenceRepository,
    TeamRepository,
)
from league_engine.services.bracket import (
    BracketCompletion,
    BracketEngine,
    ByeSeededPolicy,
    CupReseedPolicy,
    Entrant,
    PlannedMatch,
    qualifiers,
)
from league_engine.services.calendar import allocate, next_weekday_at, round_anchor
from league_engine.services.collaborators import LoggingNotifier, PrizeLedger, ScheduleNotifier, SqlitePrizeLedger
from league_engine.services.errors import (
    DuplicateGenerationAttempt,
    EngineError,
    InsufficientParticipants,
    InvalidInput,
    InvariantViolation,
    LifecycleError,
    NoVacancy,
    NotFound,
)
from league_engine.services.membership import (
    distribute_teams,
    movement_kind,
    pick_synthetic_to_replace,
    plan_backfill,
    plan_promotion_relegation,
)
from league_engine.services.rng import RandomSource, SeededRNG
from league_engine.services.scheduling import labelled_fixtures
from league_engine.services.standings import apply_result, check_scores, standings_order

logger = logging.getLogger(__name__)

SYNTHETIC_SEQUENCE = "synthetic_team"
SEASON_SCOPE = ""


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AdvanceOutcome:
    bracket_id: str
    from_round: str
    to_round: str | None = None
    completed: bool = False
    duplicate: bool = False
    champion_team_id: str | None = None


@dataclass
class CycleReport:
    """What one run_cycle pass did. failures maps a division/bracket id to its error."""
    season_id: str
    transitions: list[tuple[str, str, str]] = field(default_factory=list)
    advanced: list[AdvanceOutcome] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)
    rolled_over_to: str | None = None


class SeasonService:
    """
    Orchestrates divisions and brackets of one competition track.
    Persistence is delegated to repositories; every public operation runs in
    one transaction and takes explicit season/division ids.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        prize_ledger: PrizeLedger | None = None,
        notifier: ScheduleNotifier | None = None,
        rng: RandomSource | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.prize_ledger = prize_ledger or SqlitePrizeLedger()
        self.notifier = notifier or LoggingNotifier()
        self.rng = rng or SeededRNG()
        self._team_repo = TeamRepository()
        self._season_repo = SeasonRepository()
        self._division_repo = DivisionRepository()
        self._membership_repo = MembershipRepository()
        self._fixture_repo = FixtureRepository()
        self._bracket_repo = BracketRepository()
        self._match_repo = BracketMatchRepository()
        self._qualification_repo = QualificationRepository()
        self._movement_repo = MovementRepository()
        self._replacement_repo = ReplacementRepository()
        self._generation_repo = GenerationLogRepository()
        self._sequence_repo = SequenceRepository()

    # ---------- Lookups ----------

    def _get_season(self, conn: sqlite3.Connection, season_id: str) -> Season:
        season = self._season_repo.get(conn, season_id)
        if season is None:
            raise NotFound(f"Season not found: {season_id}")
        return season

    def _get_open_season(self, conn: sqlite3.Connection, season_id: str) -> Season:
        season = self._get_season(conn, season_id)
        if season.is_closed:
            raise LifecycleError(f"Season {season_id} is closed")
        return season

    def _get_division(self, conn: sqlite3.Connection, season_id: str, division_id: str) -> Division:
        division = self._division_repo.get(conn, division_id)
        if division is None:
            raise NotFound(f"Division not found: {division_id}")
        if division.season_id != season_id:
            raise InvalidInput(f"Division {division_id} does not belong to season {season_id}")
        return division

    def _get_bracket(self, conn: sqlite3.Connection, bracket_id: str) -> BracketInstance:
        bracket = self._bracket_repo.get(conn, bracket_id)
        if bracket is None:
            raise NotFound(f"Bracket not found: {bracket_id}")
        return bracket

    def _engine_for(self, kind: str) -> BracketEngine:
        if CompetitionKind(kind) == CompetitionKind.CUP:
            return BracketEngine(CupReseedPolicy())
        return BracketEngine(ByeSeededPolicy())

    def get_standings(self, conn: sqlite3.Connection, division_id: str) -> list[Membership]:
        if self._division_repo.get(conn, division_id) is None:
            raise NotFound(f"Division not found: {division_id}")
        return standings_order(self._membership_repo.list_by_division(conn, division_id))

    def list_fixtures(self, conn: sqlite3.Connection, division_id: str) -> list[Fixture]:
        if self._division_repo.get(conn, division_id) is None:
            raise NotFound(f"Division not found: {division_id}")
        return self._fixture_repo.list_by_division(conn, division_id)

    def list_divisions(self, conn: sqlite3.Connection, season_id: str) -> list[Division]:
        self._get_season(conn, season_id)
        return self._division_repo.list_by_season(conn, season_id)

    def get_bracket_view(self, conn: sqlite3.Connection, bracket_id: str) -> tuple[BracketInstance, list[Seed], list[BracketMatch]]:
        bracket = self._get_bracket(conn, bracket_id)
        return bracket, self._bracket_repo.list_seeds(conn, bracket_id), self._match_repo.list_by_bracket(conn, bracket_id)

    def list_brackets(self, conn: sqlite3.Connection, season_id: str) -> list[BracketInstance]:
        self._get_season(conn, season_id)
        return self._bracket_repo.list_by_season(conn, season_id)

    def list_qualifications(self, conn: sqlite3.Connection, season_id: str) -> list[QualificationRecord]:
        return self._qualification_repo.list_by_season(conn, season_id)

    def list_movements(self, conn: sqlite3.Connection, season_id: str) -> list[Movement]:
        return self._movement_repo.list_by_season(conn, season_id)

    # ---------- Season creation ----------

    def _backfill(self, conn: sqlite3.Connection, division: Division, real_team_count: int) -> list[Team]:
        start = self._sequence_repo.current(conn, SYNTHETIC_SEQUENCE)
        teams, next_index = plan_backfill(
            real_team_count, division.capacity, start, division.region, self.config.synthetic_name_pool
        )
        for team in teams:
            self._team_repo.ensure(conn, team)
            self._membership_repo.add(conn, division.id, team.id, is_synthetic=True)
        self._sequence_repo.set(conn, SYNTHETIC_SEQUENCE, next_index)
        return teams

    def _create_divisions(
        self,
        conn: sqlite3.Connection,
        season: Season,
        placement: dict[str, dict[str, list[tuple[str, bool, str | None]]]],
    ) -> list[Division]:
        """placement: region -> tier -> [(team_id, is_synthetic, carried_outcome)]."""
        divisions: list[Division] = []
        for region, tiers in self.config.regions.items():
            for level, spec in enumerate(tiers, start=1):
                division = self._division_repo.create(
                    conn, season.id, region, spec.name, level, f"{region} {spec.name}", spec.capacity,
                )
                seats = placement.get(region, {}).get(spec.name, [])
                if len(seats) > spec.capacity:
                    raise InvariantViolation(
                        f"{len(seats)} teams assigned to {division.name} with capacity {spec.capacity}"
                    )
                for team_id, is_synthetic, carried in seats:
                    self._membership_repo.add(conn, division.id, team_id, is_synthetic=is_synthetic, carried_outcome=carried)
                self._backfill(conn, division, len(seats))
                divisions.append(division)
        return divisions

    def initialize_season(
        self,
        conn: sqlite3.Connection,
        track: str,
        season_number: int,
        teams: Sequence[Team],
        start_after: datetime,
    ) -> Season:
        """
        Create a season with one division per configured (region, tier).
        teams are real clubs ordered strongest first; they fill the top tier
        of their region first, synthetic teams fill the rest. Every division
        enters regular with its fixtures generated.
        """
        by_region: dict[str, list[Team]] = {}
        for team in teams:
            if team.region not in self.config.regions:
                raise InvalidInput(f"Team {team.id} has unknown region {team.region}")
            by_region.setdefault(team.region, []).append(team)

        with transaction(conn):
            if self._season_repo.get_by_number(conn, track, season_number) is not None:
                raise LifecycleError(f"Season {season_number} of {track} already exists")
            season = self._season_repo.create(conn, track, season_number)
            placement: dict[str, dict[str, list[tuple[str, bool, str | None]]]] = {}
            for region, region_teams in by_region.items():
                for team in region_teams:
                    self._team_repo.ensure(conn, team)
                tiers = distribute_teams([t.id for t in region_teams], self.config.tiers(region))
                placement[region] = {tier: [(tid, False, None) for tid in ids] for tier, ids in tiers.items()}
            divisions = self._create_divisions(conn, season, placement)
            scheduled = [(d.id, self._generate_fixtures(conn, season, d, start_after)) for d in divisions]

        logger.info("Season %d of %s initialized with %d divisions", season_number, track, len(divisions))
        for division_id, fixtures in scheduled:
            if fixtures:
                self.notifier.fixtures_scheduled(division_id, fixtures)
        return season

    # ---------- Regular season ----------

    def _generate_fixtures(
        self,
        conn: sqlite3.Connection,
        season: Season,
        division: Division,
        start_after: datetime,
    ) -> list[Fixture] | DuplicateGenerationAttempt:
        if division.stage != DivisionStage.REGULAR:
            raise LifecycleError(f"Division {division.id} is {division.stage}, not regular")
        key = (season.id, division.id, DivisionStage.REGULAR.value)
        if not self._generation_repo.claim(conn, *key):
            logger.warning("Duplicate fixture generation for division %s ignored", division.id)
            return DuplicateGenerationAttempt(key)
        members = self._membership_repo.list_by_division(conn, division.id)
        if len(members) != division.capacity:
            raise InvariantViolation(
                f"Division {division.id} has {len(members)} members, capacity {division.capacity}"
            )
        triples = labelled_fixtures(sorted(m.team_id for m in members), self.config.fixture_legs)
        placed = allocate(triples, start_after, self.config.calendar)
        fixtures = self._fixture_repo.create_many(
            conn, division.id, [(label, home, away, at) for (label, home, away), at in placed]
        )
        logger.info("Generated %d fixtures for division %s", len(fixtures), division.id)
        return fixtures

    def enter_regular(
        self,
        conn: sqlite3.Connection,
        season_id: str,
        division_id: str,
        start_after: datetime,
    ) -> list[Fixture] | DuplicateGenerationAttempt:
        """Generate and schedule the division's fixtures once. Repeats return DuplicateGenerationAttempt."""
        with transaction(conn):
            season = self._get_open_season(conn, season_id)
            division = self._get_division(conn, season_id, division_id)
            result = self._generate_fixtures(conn, season, division, start_after)
        if result:
            self.notifier.fixtures_scheduled(division_id, result)
        return result

    def mark_fixture_live(self, conn: sqlite3.Connection, fixture_id: str) -> bool:
        with transaction(conn):
            if self._fixture_repo.get(conn, fixture_id) is None:
                raise NotFound(f"Fixture not found: {fixture_id}")
            return self._fixture_repo.mark_live(conn, fixture_id)

    def record_fixture_result(
        self,
        conn: sqlite3.Connection,
        fixture_id: str,
        home_score: int,
        away_score: int,
        completed_at: datetime,
    ) -> bool:
        """
        Apply one result exactly once. The fixture's finished transition and
        both standing updates commit together; a replay returns False.
        """
        check_scores(home_score, away_score)
        with transaction(conn):
            fixture = self._fixture_repo.get(conn, fixture_id)
            if fixture is None:
                raise NotFound(f"Fixture not found: {fixture_id}")
            division = self._division_repo.get(conn, fixture.division_id)
            self._get_open_season(conn, division.season_id)
            if not self._fixture_repo.finish(conn, fixture_id, home_score, away_score, completed_at):
                logger.warning("Result for fixture %s already recorded", fixture_id)
                return False
            home = self._membership_repo.get(conn, fixture.division_id, fixture.home_team_id)
            away = self._membership_repo.get(conn, fixture.division_id, fixture.away_team_id)
            if home is None or away is None:
                raise InvariantViolation(f"Fixture {fixture_id} references a team without a seat")
            new_home, new_away = apply_result(
                home.standing, away.standing, home_score, away_score,
                self.config.points_for_win, self.config.points_for_draw,
            )
            self._membership_repo.update_standing(conn, fixture.division_id, home.team_id, new_home)
            self._membership_repo.update_standing(conn, fixture.division_id, away.team_id, new_away)
        return True

    # ---------- Brackets ----------

    def _schedule_round(
        self,
        conn: sqlite3.Connection,
        bracket: BracketInstance,
        round_label: str,
        start_after: datetime,
    ) -> list[BracketMatch]:
        matches = [m for m in self._match_repo.list_round(conn, bracket.id, round_label) if m.status == BracketMatchStatus.SCHEDULED]
        placed = allocate(matches, start_after, self.config.bracket_calendar(bracket.competition_kind))
        for match, at in placed:
            self._match_repo.set_scheduled_at(conn, match.id, at)
            match.scheduled_at = at
        return matches

    def _store_matches(self, conn: sqlite3.Connection, bracket_id: str, planned: Sequence[PlannedMatch]) -> None:
        for m in planned:
            self._match_repo.upsert(conn, bracket_id, m.round, m.match_number, m.home_team_id, m.away_team_id)

    def _create_bracket(
        self,
        conn: sqlite3.Connection,
        season: Season,
        kind: CompetitionKind,
        entrants: Sequence[Entrant],
        start_after: datetime,
        division_id: str | None = None,
    ) -> tuple[BracketInstance, list[BracketMatch]]:
        plan = self._engine_for(kind).seed(entrants, self.config.bracket(kind).round_sequence)
        bracket = self._bracket_repo.create(conn, season.id, kind.value, plan.round_sequence, division_id=division_id)
        self._bracket_repo.add_seeds(
            conn, [Seed(bracket.id, s.team_id, s.seed_rank, s.has_bye) for s in plan.seeds]
        )
        self._store_matches(conn, bracket.id, plan.matches)
        self._generation_repo.claim(conn, season.id, bracket.id, plan.first_round)
        scheduled = self._schedule_round(conn, bracket, plan.first_round, start_after)
        logger.info(
            "Created %s bracket %s with %d entrants, first round %s",
            kind.value, bracket.id, len(entrants), plan.first_round,
        )
        return bracket, scheduled

    def playoff_minimum(self) -> int:
        return max(2, self.config.playoff.field_size)

    def start_playoff(
        self,
        conn: sqlite3.Connection,
        season_id: str,
        division_id: str,
        start_after: datetime,
    ) -> BracketInstance | DuplicateGenerationAttempt:
        """
        regular -> playoff. Needs every fixture finished and at least the
        playoff field in the division; seeds the top of the final standings.
        """
        with transaction(conn):
            season = self._get_open_season(conn, season_id)
            division = self._get_division(conn, season_id, division_id)
            key = (season.id, division.id, DivisionStage.PLAYOFF.value)
            if not self._generation_repo.claim(conn, *key):
                logger.warning("Duplicate playoff start for division %s ignored", division.id)
                return DuplicateGenerationAttempt(key)
            division = self._get_division(conn, season_id, division_id)
            if division.stage != DivisionStage.REGULAR:
                raise LifecycleError(f"Division {division.id} is {division.stage}, not regular")
            unfinished = self._fixture_repo.count_unfinished(conn, division.id)
            if unfinished:
                raise LifecycleError(f"Division {division.id} still has {unfinished} unfinished fixtures")
            table = self.get_standings(conn, division.id)
            if len(table) < self.playoff_minimum():
                raise InsufficientParticipants(
                    f"Division {division.id} has {len(table)} teams, playoff needs {self.playoff_minimum()}"
                )
            if not self._division_repo.transition_stage(conn, division.id, DivisionStage.REGULAR, DivisionStage.PLAYOFF):
                raise LifecycleError(f"Division {division.id} left regular during playoff start")
            field_size = self.config.playoff.field_size or len(table)
            entrants = [
                Entrant(m.team_id, rank, division.tier_level)
                for rank, m in enumerate(table[:field_size], start=1)
            ]
            bracket, scheduled = self._create_bracket(
                conn, season, CompetitionKind.PLAYOFF, entrants, start_after, division_id=division.id
            )
        logger.info("Division %s entered playoff", division_id)
        self.notifier.bracket_round_scheduled(bracket.id, bracket.current_round, scheduled)
        return bracket

    def start_cup(
        self,
        conn: sqlite3.Connection,
        season_id: str,
        start_after: datetime,
    ) -> BracketInstance | DuplicateGenerationAttempt:
        """Seed the season's cup from every division (tier-aware first round)."""
        with transaction(conn):
            season = self._get_open_season(conn, season_id)
            key = (season.id, SEASON_SCOPE, CompetitionKind.CUP.value)
            if not self._generation_repo.claim(conn, *key):
                logger.warning("Duplicate cup start for season %s ignored", season_id)
                return DuplicateGenerationAttempt(key)
            entrants: list[Entrant] = []
            for division in self._division_repo.list_by_season(conn, season.id):
                for rank, m in enumerate(self.get_standings(conn, division.id), start=1):
                    entrants.append(Entrant(m.team_id, rank, division.tier_level))
            field_size = self.config.cup.field_size
            if field_size:
                entrants = sorted(entrants, key=lambda e: (e.tier, e.rank))[:field_size]
            bracket, scheduled = self._create_bracket(conn, season, CompetitionKind.CUP, entrants, start_after)
        self.notifier.bracket_round_scheduled(bracket.id, bracket.current_round, scheduled)
        return bracket

    def mark_bracket_match_live(self, conn: sqlite3.Connection, match_id: str) -> bool:
        with transaction(conn):
            if self._match_repo.get(conn, match_id) is None:
                raise NotFound(f"Bracket match not found: {match_id}")
            return self._match_repo.mark_live(conn, match_id)

    def record_bracket_result(
        self,
        conn: sqlite3.Connection,
        match_id: str,
        home_score: int,
        away_score: int,
        completed_at: datetime,
    ) -> bool:
        """Knockout result; ties are rejected. A replay returns False."""
        check_scores(home_score, away_score)
        if home_score == away_score:
            raise InvalidInput("Knockout matches cannot end in a draw")
        with transaction(conn):
            match = self._match_repo.get(conn, match_id)
            if match is None:
                raise NotFound(f"Bracket match not found: {match_id}")
            if match.status == BracketMatchStatus.PENDING:
                raise LifecycleError(f"Bracket match {match_id} still has a TBD participant")
            winner = match.home_team_id if home_score > away_score else match.away_team_id
            if not self._match_repo.finish(conn, match_id, home_score, away_score, winner, completed_at):
                logger.warning("Result for bracket match %s already recorded", match_id)
                return False
        return True

    def _next_round_start(self, bracket: BracketInstance, current: Sequence[BracketMatch], next_label: str) -> datetime:
        """Later of the configured offset anchor and one interval after the round's last match."""
        rules = self.config.bracket_calendar(bracket.competition_kind)
        instants = [m.scheduled_at for m in current if m.scheduled_at is not None]
        if not instants:
            raise InvariantViolation(f"Round {bracket.current_round} of bracket {bracket.id} was never scheduled")
        offset = self.config.bracket(bracket.competition_kind).round_offsets_days.get(next_label, 0)
        anchor = round_anchor(min(instants), offset, rules)
        return max(anchor, max(instants) + rules.interval)

    def _complete_bracket(
        self,
        conn: sqlite3.Connection,
        bracket: BracketInstance,
        completion: BracketCompletion,
        now: datetime,
    ) -> bool:
        if not self._bracket_repo.complete(conn, bracket.id, now):
            return False
        bracket_config = self.config.bracket(bracket.competition_kind)
        for team_id, rank in qualifiers(completion.placings, bracket_config.qualifying_ranks):
            self._qualification_repo.add(
                conn, bracket.season_id, bracket.id, team_id, rank, bracket_config.destination,
                division_id=bracket.division_id,
            )
        tier = None
        if bracket.division_id is not None:
            division = self._division_repo.get(conn, bracket.division_id)
            tier = division.tier if division else None
        amount = self.config.prize_for(bracket.competition_kind, 1, tier)
        if amount:
            self.prize_ledger.pay(
                conn, bracket.id, completion.champion_team_id, amount,
                f"{bracket.competition_kind} champion",
            )
        if bracket.division_id is not None:
            self._division_repo.transition_stage(
                conn, bracket.division_id, DivisionStage.PLAYOFF, DivisionStage.OFFSEASON, at=now
            )
        logger.info("Bracket %s completed, champion %s", bracket.id, completion.champion_team_id)
        return True

    def advance_bracket(
        self,
        conn: sqlite3.Connection,
        bracket_id: str,
        from_round: str | None = None,
        rng: RandomSource | None = None,
        now: datetime | None = None,
    ) -> AdvanceOutcome:
        """
        Generate the next round once the current one is resolved, or complete
        the bracket after the final. Stale or repeated triggers are no-ops.
        """
        scheduled: list[BracketMatch] = []
        with transaction(conn):
            bracket = self._get_bracket(conn, bracket_id)
            current_label = bracket.current_round
            if bracket.is_completed or (from_round is not None and from_round != current_label):
                logger.warning("Stale advance of bracket %s from %s ignored", bracket_id, from_round)
                return AdvanceOutcome(bracket_id, from_round or current_label, duplicate=True)
            self._get_open_season(conn, bracket.season_id)
            matches = self._match_repo.list_by_bracket(conn, bracket_id)
            result = self._engine_for(bracket.competition_kind).plan_next_round(bracket, matches, rng or self.rng)

            if isinstance(result, BracketCompletion):
                if not self._complete_bracket(conn, bracket, result, now or _now()):
                    return AdvanceOutcome(bracket_id, current_label, duplicate=True)
                return AdvanceOutcome(
                    bracket_id, current_label, completed=True, champion_team_id=result.champion_team_id
                )

            next_label = result.round_label
            if not self._generation_repo.claim(conn, bracket.season_id, bracket.id, next_label):
                return AdvanceOutcome(bracket_id, current_label, duplicate=True)
            if not self._bracket_repo.advance_round(conn, bracket.id, current_label, next_label):
                raise InvariantViolation(f"Bracket {bracket.id} moved off {current_label} during advance")
            self._store_matches(conn, bracket.id, result.matches)
            current = [m for m in matches if m.round == current_label]
            start = self._next_round_start(bracket, current, next_label)
            scheduled = self._schedule_round(conn, bracket, next_label, start)
        logger.info("Bracket %s advanced %s -> %s", bracket_id, current_label, next_label)
        self.notifier.bracket_round_scheduled(bracket_id, next_label, scheduled)
        return AdvanceOutcome(bracket_id, current_label, to_round=next_label)

    def _round_resolved(self, conn: sqlite3.Connection, bracket: BracketInstance) -> bool:
        current = self._match_repo.list_round(conn, bracket.id, bracket.current_round)
        return bool(current) and all(m.status == BracketMatchStatus.FINISHED for m in current)

    # ---------- Mid-season admission ----------

    def admit_real_team(
        self,
        conn: sqlite3.Connection,
        season_id: str,
        team_id: str,
        region: str,
        name: str | None = None,
    ) -> SyntheticReplacement:
        """
        Seat a real team by replacing the lowest-standing synthetic team,
        starting in the region's lowest tier and moving up while divisions
        are full of real teams. The newcomer inherits the seat's record and
        its unplayed fixtures.
        """
        if region not in self.config.regions:
            raise InvalidInput(f"Unknown region: {region}")
        with transaction(conn):
            self._get_open_season(conn, season_id)
            team = self._team_repo.get(conn, team_id)
            if team is None:
                if name is None:
                    raise NotFound(f"Team not found: {team_id}")
                team = self._team_repo.create(conn, name, region, id=team_id)
            if team.is_synthetic:
                raise InvalidInput(f"Team {team_id} is synthetic")
            if self._membership_repo.find_in_season(conn, season_id, team_id) is not None:
                raise InvalidInput(f"Team {team_id} already plays in season {season_id}")
            divisions = [
                d for d in self._division_repo.list_by_season(conn, season_id)
                if d.region == region and d.stage == DivisionStage.REGULAR
            ]
            for division in sorted(divisions, key=lambda d: d.tier_level, reverse=True):
                victim = self._take_synthetic_seat(conn, division, team_id)
                if victim is None:
                    continue
                moved = self._fixture_repo.reassign_unplayed(conn, division.id, victim.team_id, team_id)
                replacement = SyntheticReplacement(
                    synthetic_team_id=victim.team_id,
                    team_id=team_id,
                    division_id=division.id,
                    inherited=victim.standing,
                )
                self._replacement_repo.add(conn, replacement)
                logger.info(
                    "Team %s replaced synthetic %s in %s (%d fixtures reassigned)",
                    team_id, victim.team_id, division.name, moved,
                )
                return replacement
            raise NoVacancy(f"No synthetic seat left in region {region}")

    def _take_synthetic_seat(self, conn: sqlite3.Connection, division: Division, team_id: str) -> Membership | None:
        """Hand the lowest synthetic seat to team_id; re-picks if the chosen seat changed hands meanwhile."""
        while True:
            victim = pick_synthetic_to_replace(self._membership_repo.list_by_division(conn, division.id))
            if victim is None:
                return None
            if self._membership_repo.replace_team(conn, division.id, victim.team_id, team_id):
                return victim
            logger.warning("Seat of %s in %s was already taken, picking again", victim.team_id, division.name)

    # ---------- Cycle & rollover ----------

    def _check_division(self, conn: sqlite3.Connection, season: Season, division: Division, now: datetime, report: CycleReport) -> None:
        if division.stage == DivisionStage.REGULAR:
            if not self._generation_repo.exists(conn, season.id, division.id, DivisionStage.REGULAR.value):
                return
            if self._fixture_repo.count_unfinished(conn, division.id):
                return
            if self._membership_repo.count(conn, division.id) >= self.playoff_minimum():
                result = self.start_playoff(conn, season.id, division.id, now)
                if result:
                    report.transitions.append((division.id, DivisionStage.REGULAR.value, DivisionStage.PLAYOFF.value))
            else:
                with transaction(conn):
                    moved = self._division_repo.transition_stage(
                        conn, division.id, DivisionStage.REGULAR, DivisionStage.OFFSEASON, at=now
                    )
                if moved:
                    report.transitions.append((division.id, DivisionStage.REGULAR.value, DivisionStage.OFFSEASON.value))
        elif division.stage == DivisionStage.PLAYOFF:
            bracket = self._bracket_repo.get_for_division(conn, division.id)
            if bracket is None:
                raise InvariantViolation(f"Division {division.id} is in playoff without a bracket")
            if bracket.is_completed or not self._round_resolved(conn, bracket):
                return
            outcome = self.advance_bracket(conn, bracket.id, from_round=bracket.current_round, now=now)
            report.advanced.append(outcome)
            if outcome.completed:
                report.transitions.append((division.id, DivisionStage.PLAYOFF.value, DivisionStage.OFFSEASON.value))

    def rollover_due(self, conn: sqlite3.Connection, season_id: str, now: datetime) -> bool:
        """True once every division is in offseason, no bracket is live and the weekly boundary has passed."""
        if now.tzinfo is None:
            raise InvalidInput("now must be timezone-aware")
        divisions = self._division_repo.list_by_season(conn, season_id)
        if not divisions or any(d.stage != DivisionStage.OFFSEASON for d in divisions):
            return False
        if any(not b.is_completed for b in self._bracket_repo.list_by_season(conn, season_id)):
            return False
        started = max(d.offseason_started_at or d.created_at for d in divisions)
        boundary = next_weekday_at(
            started, self.config.rollover_weekday, self.config.rollover_time, self.config.calendar.timezone
        )
        return now >= boundary

    def run_cycle(self, conn: sqlite3.Connection, season_id: str, now: datetime) -> CycleReport:
        """
        One pass of the external trigger. Each division and the cup are
        checked independently: an EngineError in one is logged and reported,
        the others still run.
        """
        if now.tzinfo is None:
            raise InvalidInput("now must be timezone-aware")
        season = self._get_season(conn, season_id)
        report = CycleReport(season_id=season_id)
        if season.is_closed:
            return report
        for division in self._division_repo.list_by_season(conn, season_id):
            try:
                self._check_division(conn, season, division, now, report)
            except EngineError as exc:
                logger.exception("Cycle failed for division %s", division.id)
                report.failures[division.id] = str(exc)
        for bracket in self._bracket_repo.list_by_season(conn, season_id):
            if bracket.division_id is not None or bracket.is_completed:
                continue
            try:
                if self._round_resolved(conn, bracket):
                    report.advanced.append(
                        self.advance_bracket(conn, bracket.id, from_round=bracket.current_round, now=now)
                    )
            except EngineError as exc:
                logger.exception("Cycle failed for bracket %s", bracket.id)
                report.failures[bracket.id] = str(exc)
        if not report.failures and self.rollover_due(conn, season_id, now):
            result = self.rollover_season(conn, season_id, now)
            if result:
                report.rolled_over_to = result.id
        return report

    def rollover_season(
        self,
        conn: sqlite3.Connection,
        season_id: str,
        start_after: datetime,
    ) -> Season | DuplicateGenerationAttempt:
        """
        Close the season, apply promotion/relegation per adjacent tier pair
        and open season + 1 with fresh standings and generated fixtures.
        """
        with transaction(conn):
            season = self._get_season(conn, season_id)
            key = (season.id, SEASON_SCOPE, "ROLLOVER")
            # First write of the transaction: a concurrent rollover waits here, then sees the key taken
            if not self._generation_repo.claim(conn, *key):
                logger.warning("Duplicate rollover of season %s ignored", season_id)
                return DuplicateGenerationAttempt(key)
            season = self._get_season(conn, season_id)
            if season.is_closed:
                raise LifecycleError(f"Season {season_id} is already closed")
            divisions = self._division_repo.list_by_season(conn, season_id)
            pending = [d.id for d in divisions if d.stage != DivisionStage.OFFSEASON]
            if pending:
                raise LifecycleError(f"Divisions not in offseason: {pending}")

            placement: dict[str, dict[str, list[tuple[str, bool, str | None]]]] = {}
            for region in self.config.regions:
                placement[region] = self._plan_region_rollover(
                    conn, season, [d for d in divisions if d.region == region]
                )
            if not self._season_repo.close(conn, season.id, start_after):
                raise LifecycleError(f"Season {season_id} was closed during rollover")
            if self._season_repo.get_by_number(conn, season.track, season.season_number + 1) is not None:
                raise LifecycleError(f"Season {season.season_number + 1} of {season.track} already exists")
            next_season = self._season_repo.create(conn, season.track, season.season_number + 1)
            new_divisions = self._create_divisions(conn, next_season, placement)
            scheduled = [(d.id, self._generate_fixtures(conn, next_season, d, start_after)) for d in new_divisions]

        logger.info("Season %s closed, season %d opened", season_id, next_season.season_number)
        for division_id, fixtures in scheduled:
            if fixtures:
                self.notifier.fixtures_scheduled(division_id, fixtures)
        self.notifier.season_rolled_over(season.track, next_season.season_number, start_after)
        return next_season

    def _plan_region_rollover(
        self,
        conn: sqlite3.Connection,
        season: Season,
        divisions: list[Division],
    ) -> dict[str, list[tuple[str, bool, str | None]]]:
        """Next season's seats per tier of one region; movements are logged as they are planned."""
        divisions = sorted(divisions, key=lambda d: d.tier_level)
        tables = {d.id: self.get_standings(conn, d.id) for d in divisions}
        seats: dict[str, list[Membership]] = {d.tier: list(tables[d.id]) for d in divisions}
        outcome: dict[str, str] = {}
        moving: list[tuple[Membership, Division, Division]] = []
        for upper, lower in zip(divisions, divisions[1:]):
            plan = plan_promotion_relegation(tables[upper.id], tables[lower.id], self.config.movement_count(upper.tier, lower.tier))
            logger.info("%s / %s: %d teams move each way", upper.name, lower.name, plan.count)
            members = {m.team_id: m for m in tables[upper.id] + tables[lower.id]}
            for team_id in plan.relegated:
                moving.append((members[team_id], upper, lower))
            for team_id in plan.promoted:
                moving.append((members[team_id], lower, upper))
        moved_ids = [m.team_id for m, _, _ in moving]
        if len(set(moved_ids)) != len(moved_ids):
            raise InvariantViolation(f"A team would move twice in region {divisions[0].region}")
        for member, src, dst in moving:
            kind = movement_kind(src.tier_level, dst.tier_level)
            seats[src.tier] = [m for m in seats[src.tier] if m.team_id != member.team_id]
            seats[dst.tier].append(member)
            outcome[member.team_id] = kind.value
            self._movement_repo.add(conn, Movement(season.id, member.team_id, src.region, src.tier, dst.tier, kind.value))
        return {
            tier: [(m.team_id, m.is_synthetic, outcome.get(m.team_id)) for m in members]
            for tier, members in seats.items()
        }
