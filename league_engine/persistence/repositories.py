"""
Repository interfaces for league engine data.
No business logic, only read/write operations. Repositories never commit;
callers wrap related writes in persistence.db.transaction.
"""
from __future__ import annotations

import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Sequence

from league_engine.models import (
    BracketInstance,
    BracketMatch,
    BracketMatchStatus,
    BracketStatus,
    Division,
    DivisionStage,
    Fixture,
    FixtureStatus,
    Membership,
    Movement,
    QualificationRecord,
    Season,
    SeasonStatus,
    Seed,
    Standing,
    SyntheticReplacement,
    Team,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(dt: datetime) -> str:
    """UTC ISO string; naive datetimes are taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def _parse_datetime(s: str | None) -> datetime:
    if s is None:
        raise ValueError("expected datetime string")
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


def _parse_optional(s: str | None) -> datetime | None:
    return _parse_datetime(s) if s else None


# ---------- TeamRepository ----------


class TeamRepository:
    """CRUD for teams (real and synthetic)."""

    def create(
        self,
        conn: sqlite3.Connection,
        name: str,
        region: str,
        is_synthetic: bool = False,
        id: str | None = None,
    ) -> Team:
        tid = id or str(uuid.uuid4())
        now = _now()
        conn.execute(
            "INSERT INTO teams (id, name, region, is_synthetic, created_at) VALUES (?, ?, ?, ?, ?)",
            (tid, name, region, 1 if is_synthetic else 0, _iso(now)),
        )
        return Team(id=tid, name=name, region=region, is_synthetic=is_synthetic, created_at=now)

    def ensure(self, conn: sqlite3.Connection, team: Team) -> Team:
        """Insert the team if its id is unknown; return the stored row."""
        existing = self.get(conn, team.id)
        if existing is not None:
            return existing
        return self.create(conn, team.name, team.region, team.is_synthetic, id=team.id)

    def get(self, conn: sqlite3.Connection, team_id: str) -> Team | None:
        row = conn.execute(
            "SELECT id, name, region, is_synthetic, created_at FROM teams WHERE id = ?",
            (team_id,),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_team(row)

    @staticmethod
    def _row_to_team(row) -> Team:
        return Team(
            id=row["id"],
            name=row["name"],
            region=row["region"],
            is_synthetic=bool(row["is_synthetic"]),
            created_at=_parse_datetime(row["created_at"]),
        )


# ---------- SeasonRepository ----------


class SeasonRepository:
    """CRUD for seasons. Closed seasons are never updated again."""

    def create(self, conn: sqlite3.Connection, track: str, season_number: int, id: str | None = None) -> Season:
        sid = id or str(uuid.uuid4())
        now = _now()
        conn.execute(
            "INSERT INTO seasons (id, track, season_number, status, created_at) VALUES (?, ?, ?, ?, ?)",
            (sid, track, season_number, SeasonStatus.OPEN.value, _iso(now)),
        )
        return Season(id=sid, track=track, season_number=season_number, status=SeasonStatus.OPEN.value, created_at=now)

    def get(self, conn: sqlite3.Connection, season_id: str) -> Season | None:
        row = conn.execute(
            "SELECT id, track, season_number, status, created_at, closed_at FROM seasons WHERE id = ?",
            (season_id,),
        ).fetchone()
        return self._row_to_season(row) if row else None

    def get_by_number(self, conn: sqlite3.Connection, track: str, season_number: int) -> Season | None:
        row = conn.execute(
            "SELECT id, track, season_number, status, created_at, closed_at FROM seasons "
            "WHERE track = ? AND season_number = ?",
            (track, season_number),
        ).fetchone()
        return self._row_to_season(row) if row else None

    def close(self, conn: sqlite3.Connection, season_id: str, closed_at: datetime) -> bool:
        """open -> closed. Returns False if the season was already closed."""
        cur = conn.execute(
            "UPDATE seasons SET status = ?, closed_at = ? WHERE id = ? AND status = ?",
            (SeasonStatus.CLOSED.value, _iso(closed_at), season_id, SeasonStatus.OPEN.value),
        )
        return cur.rowcount == 1

    @staticmethod
    def _row_to_season(row) -> Season:
        return Season(
            id=row["id"],
            track=row["track"],
            season_number=row["season_number"],
            status=row["status"],
            created_at=_parse_datetime(row["created_at"]),
            closed_at=_parse_optional(row["closed_at"]),
        )


# ---------- DivisionRepository ----------


class DivisionRepository:
    """CRUD for divisions plus the stage compare-and-set."""

    _COLS = "id, season_id, region, tier, tier_level, name, capacity, stage, created_at, offseason_started_at"

    def create(
        self,
        conn: sqlite3.Connection,
        season_id: str,
        region: str,
        tier: str,
        tier_level: int,
        name: str,
        capacity: int,
        stage: str = DivisionStage.REGULAR,
        id: str | None = None,
    ) -> Division:
        did = id or str(uuid.uuid4())
        now = _now()
        stage_value = DivisionStage(stage).value
        conn.execute(
            "INSERT INTO divisions (id, season_id, region, tier, tier_level, name, capacity, stage, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (did, season_id, region, tier, tier_level, name, capacity, stage_value, _iso(now)),
        )
        return Division(
            id=did, season_id=season_id, region=region, tier=tier, tier_level=tier_level,
            name=name, capacity=capacity, stage=stage_value, created_at=now,
        )

    def get(self, conn: sqlite3.Connection, division_id: str) -> Division | None:
        row = conn.execute(f"SELECT {self._COLS} FROM divisions WHERE id = ?", (division_id,)).fetchone()
        return self._row_to_division(row) if row else None

    def list_by_season(self, conn: sqlite3.Connection, season_id: str) -> list[Division]:
        rows = conn.execute(
            f"SELECT {self._COLS} FROM divisions WHERE season_id = ? ORDER BY region, tier_level",
            (season_id,),
        ).fetchall()
        return [self._row_to_division(r) for r in rows]

    def transition_stage(
        self,
        conn: sqlite3.Connection,
        division_id: str,
        from_stage: str,
        to_stage: str,
        at: datetime | None = None,
    ) -> bool:
        """Compare-and-set on stage. Returns False if the division was not in from_stage."""
        to_value = DivisionStage(to_stage).value
        offseason_at = _iso(at or _now()) if to_value == DivisionStage.OFFSEASON.value else None
        cur = conn.execute(
            "UPDATE divisions SET stage = ?, offseason_started_at = COALESCE(?, offseason_started_at) "
            "WHERE id = ? AND stage = ?",
            (to_value, offseason_at, division_id, DivisionStage(from_stage).value),
        )
        return cur.rowcount == 1

    @staticmethod
    def _row_to_division(row) -> Division:
        return Division(
            id=row["id"],
            season_id=row["season_id"],
            region=row["region"],
            tier=row["tier"],
            tier_level=row["tier_level"],
            name=row["name"],
            capacity=row["capacity"],
            stage=row["stage"],
            created_at=_parse_datetime(row["created_at"]),
            offseason_started_at=_parse_optional(row["offseason_started_at"]),
        )


# ---------- MembershipRepository ----------


class MembershipRepository:
    """Division seats and standings."""

    _COLS = "division_id, team_id, wins, losses, draws, points, goal_difference, is_synthetic, carried_outcome, joined_at"

    def add(
        self,
        conn: sqlite3.Connection,
        division_id: str,
        team_id: str,
        is_synthetic: bool = False,
        carried_outcome: str | None = None,
        standing: Standing | None = None,
    ) -> Membership:
        s = standing or Standing()
        now = _now()
        conn.execute(
            "INSERT INTO memberships (division_id, team_id, wins, losses, draws, points, goal_difference, "
            "is_synthetic, carried_outcome, joined_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (division_id, team_id, s.wins, s.losses, s.draws, s.points, s.goal_difference,
             1 if is_synthetic else 0, carried_outcome, _iso(now)),
        )
        return Membership(
            division_id=division_id, team_id=team_id, standing=s, is_synthetic=is_synthetic,
            carried_outcome=carried_outcome, joined_at=now,
        )

    def get(self, conn: sqlite3.Connection, division_id: str, team_id: str) -> Membership | None:
        row = conn.execute(
            f"SELECT {self._COLS} FROM memberships WHERE division_id = ? AND team_id = ?",
            (division_id, team_id),
        ).fetchone()
        return self._row_to_membership(row) if row else None

    def list_by_division(self, conn: sqlite3.Connection, division_id: str) -> list[Membership]:
        rows = conn.execute(
            f"SELECT {self._COLS} FROM memberships WHERE division_id = ? ORDER BY team_id",
            (division_id,),
        ).fetchall()
        return [self._row_to_membership(r) for r in rows]

    def count(self, conn: sqlite3.Connection, division_id: str) -> int:
        row = conn.execute("SELECT COUNT(*) FROM memberships WHERE division_id = ?", (division_id,)).fetchone()
        return row[0]

    def find_in_season(self, conn: sqlite3.Connection, season_id: str, team_id: str) -> Membership | None:
        row = conn.execute(
            f"SELECT {', '.join('m.' + c.strip() for c in self._COLS.split(','))} FROM memberships m "
            "JOIN divisions d ON d.id = m.division_id WHERE d.season_id = ? AND m.team_id = ?",
            (season_id, team_id),
        ).fetchone()
        return self._row_to_membership(row) if row else None

    def update_standing(self, conn: sqlite3.Connection, division_id: str, team_id: str, standing: Standing) -> None:
        conn.execute(
            "UPDATE memberships SET wins = ?, losses = ?, draws = ?, points = ?, goal_difference = ? "
            "WHERE division_id = ? AND team_id = ?",
            (standing.wins, standing.losses, standing.draws, standing.points, standing.goal_difference,
             division_id, team_id),
        )

    def replace_team(
        self,
        conn: sqlite3.Connection,
        division_id: str,
        old_team_id: str,
        new_team_id: str,
        is_synthetic: bool = False,
    ) -> bool:
        """Hand a seat (and its standing) to another team. False if old_team_id held no seat."""
        cur = conn.execute(
            "UPDATE memberships SET team_id = ?, is_synthetic = ?, joined_at = ? "
            "WHERE division_id = ? AND team_id = ?",
            (new_team_id, 1 if is_synthetic else 0, _iso(_now()), division_id, old_team_id),
        )
        return cur.rowcount == 1

    @staticmethod
    def _row_to_membership(row) -> Membership:
        return Membership(
            division_id=row["division_id"],
            team_id=row["team_id"],
            standing=Standing(
                wins=row["wins"],
                losses=row["losses"],
                draws=row["draws"],
                points=row["points"],
                goal_difference=row["goal_difference"],
            ),
            is_synthetic=bool(row["is_synthetic"]),
            carried_outcome=row["carried_outcome"],
            joined_at=_parse_optional(row["joined_at"]),
        )


# ---------- FixtureRepository ----------


class FixtureRepository:
    """Regular-season fixtures. finish() is the single-application guard for results."""

    _COLS = ("id, division_id, round_label, sequence, home_team_id, away_team_id, scheduled_at, status, "
             "home_score, away_score, completed_at, created_at")

    def create_many(
        self,
        conn: sqlite3.Connection,
        division_id: str,
        rows: Sequence[tuple[str, str, str, datetime]],
    ) -> list[Fixture]:
        """rows: (round_label, home_team_id, away_team_id, scheduled_at) in sequence order."""
        now = _now()
        created: list[Fixture] = []
        for sequence, (round_label, home, away, scheduled_at) in enumerate(rows, start=1):
            fid = str(uuid.uuid4())
            conn.execute(
                "INSERT INTO fixtures (id, division_id, round_label, sequence, home_team_id, away_team_id, "
                "scheduled_at, status, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (fid, division_id, round_label, sequence, home, away, _iso(scheduled_at),
                 FixtureStatus.SCHEDULED.value, _iso(now)),
            )
            created.append(Fixture(
                id=fid, division_id=division_id, round_label=round_label, sequence=sequence,
                home_team_id=home, away_team_id=away, scheduled_at=scheduled_at,
                status=FixtureStatus.SCHEDULED.value, created_at=now,
            ))
        return created

    def get(self, conn: sqlite3.Connection, fixture_id: str) -> Fixture | None:
        row = conn.execute(f"SELECT {self._COLS} FROM fixtures WHERE id = ?", (fixture_id,)).fetchone()
        return self._row_to_fixture(row) if row else None

    def list_by_division(self, conn: sqlite3.Connection, division_id: str) -> list[Fixture]:
        rows = conn.execute(
            f"SELECT {self._COLS} FROM fixtures WHERE division_id = ? ORDER BY sequence",
            (division_id,),
        ).fetchall()
        return [self._row_to_fixture(r) for r in rows]

    def count_unfinished(self, conn: sqlite3.Connection, division_id: str) -> int:
        row = conn.execute(
            "SELECT COUNT(*) FROM fixtures WHERE division_id = ? AND status != ?",
            (division_id, FixtureStatus.FINISHED.value),
        ).fetchone()
        return row[0]

    def mark_live(self, conn: sqlite3.Connection, fixture_id: str) -> bool:
        cur = conn.execute(
            "UPDATE fixtures SET status = ? WHERE id = ? AND status = ?",
            (FixtureStatus.LIVE.value, fixture_id, FixtureStatus.SCHEDULED.value),
        )
        return cur.rowcount == 1

    def finish(
        self,
        conn: sqlite3.Connection,
        fixture_id: str,
        home_score: int,
        away_score: int,
        completed_at: datetime,
    ) -> bool:
        """scheduled|live -> finished. Returns False if the fixture was already finished."""
        cur = conn.execute(
            "UPDATE fixtures SET status = ?, home_score = ?, away_score = ?, completed_at = ? "
            "WHERE id = ? AND status IN (?, ?)",
            (FixtureStatus.FINISHED.value, home_score, away_score, _iso(completed_at), fixture_id,
             FixtureStatus.SCHEDULED.value, FixtureStatus.LIVE.value),
        )
        return cur.rowcount == 1

    def reassign_unplayed(self, conn: sqlite3.Connection, division_id: str, old_team_id: str, new_team_id: str) -> int:
        """Swap a team in every unplayed fixture of a division. Returns the number of fixtures touched."""
        touched = 0
        for column in ("home_team_id", "away_team_id"):
            cur = conn.execute(
                f"UPDATE fixtures SET {column} = ? WHERE division_id = ? AND {column} = ? AND status != ?",
                (new_team_id, division_id, old_team_id, FixtureStatus.FINISHED.value),
            )
            touched += cur.rowcount
        return touched

    @staticmethod
    def _row_to_fixture(row) -> Fixture:
        return Fixture(
            id=row["id"],
            division_id=row["division_id"],
            round_label=row["round_label"],
            sequence=row["sequence"],
            home_team_id=row["home_team_id"],
            away_team_id=row["away_team_id"],
            scheduled_at=_parse_datetime(row["scheduled_at"]),
            status=row["status"],
            home_score=row["home_score"],
            away_score=row["away_score"],
            completed_at=_parse_optional(row["completed_at"]),
            created_at=_parse_datetime(row["created_at"]),
        )


# ---------- BracketRepository ----------


class BracketRepository:
    """Bracket instances and their seeds."""

    _COLS = "id, season_id, division_id, competition_kind, round_sequence, current_round, status, created_at, completed_at"

    def create(
        self,
        conn: sqlite3.Connection,
        season_id: str,
        competition_kind: str,
        round_sequence: Sequence[str],
        division_id: str | None = None,
        id: str | None = None,
    ) -> BracketInstance:
        bid = id or str(uuid.uuid4())
        now = _now()
        labels = tuple(round_sequence)
        conn.execute(
            "INSERT INTO brackets (id, season_id, division_id, competition_kind, round_sequence, current_round, "
            "status, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (bid, season_id, division_id, competition_kind, ",".join(labels), labels[0],
             BracketStatus.ACTIVE.value, _iso(now)),
        )
        return BracketInstance(
            id=bid, season_id=season_id, competition_kind=competition_kind, round_sequence=labels,
            current_round=labels[0], status=BracketStatus.ACTIVE.value, created_at=now, division_id=division_id,
        )

    def get(self, conn: sqlite3.Connection, bracket_id: str) -> BracketInstance | None:
        row = conn.execute(f"SELECT {self._COLS} FROM brackets WHERE id = ?", (bracket_id,)).fetchone()
        return self._row_to_bracket(row) if row else None

    def list_by_season(self, conn: sqlite3.Connection, season_id: str) -> list[BracketInstance]:
        rows = conn.execute(
            f"SELECT {self._COLS} FROM brackets WHERE season_id = ? ORDER BY created_at, id",
            (season_id,),
        ).fetchall()
        return [self._row_to_bracket(r) for r in rows]

    def get_for_division(self, conn: sqlite3.Connection, division_id: str) -> BracketInstance | None:
        row = conn.execute(
            f"SELECT {self._COLS} FROM brackets WHERE division_id = ? ORDER BY created_at LIMIT 1",
            (division_id,),
        ).fetchone()
        return self._row_to_bracket(row) if row else None

    def advance_round(self, conn: sqlite3.Connection, bracket_id: str, from_round: str, to_round: str) -> bool:
        """Compare-and-set on current_round."""
        cur = conn.execute(
            "UPDATE brackets SET current_round = ? WHERE id = ? AND current_round = ? AND status = ?",
            (to_round, bracket_id, from_round, BracketStatus.ACTIVE.value),
        )
        return cur.rowcount == 1

    def complete(self, conn: sqlite3.Connection, bracket_id: str, completed_at: datetime) -> bool:
        cur = conn.execute(
            "UPDATE brackets SET status = ?, completed_at = ? WHERE id = ? AND status = ?",
            (BracketStatus.COMPLETED.value, _iso(completed_at), bracket_id, BracketStatus.ACTIVE.value),
        )
        return cur.rowcount == 1

    def add_seeds(self, conn: sqlite3.Connection, seeds: Sequence[Seed]) -> None:
        conn.executemany(
            "INSERT INTO bracket_seeds (bracket_id, team_id, seed_rank, has_bye) VALUES (?, ?, ?, ?)",
            [(s.bracket_id, s.team_id, s.seed_rank, 1 if s.has_bye else 0) for s in seeds],
        )

    def list_seeds(self, conn: sqlite3.Connection, bracket_id: str) -> list[Seed]:
        rows = conn.execute(
            "SELECT bracket_id, team_id, seed_rank, has_bye FROM bracket_seeds WHERE bracket_id = ? ORDER BY seed_rank",
            (bracket_id,),
        ).fetchall()
        return [Seed(r["bracket_id"], r["team_id"], r["seed_rank"], bool(r["has_bye"])) for r in rows]

    @staticmethod
    def _row_to_bracket(row) -> BracketInstance:
        return BracketInstance(
            id=row["id"],
            season_id=row["season_id"],
            competition_kind=row["competition_kind"],
            round_sequence=tuple(row["round_sequence"].split(",")),
            current_round=row["current_round"],
            status=row["status"],
            created_at=_parse_datetime(row["created_at"]),
            division_id=row["division_id"],
            completed_at=_parse_optional(row["completed_at"]),
        )


# ---------- BracketMatchRepository ----------


class BracketMatchRepository:
    """Bracket matches. A (bracket, round, match_number) slot exists at most once."""

    _COLS = ("id, bracket_id, round, match_number, status, home_team_id, away_team_id, winner_team_id, "
             "home_score, away_score, scheduled_at, completed_at")

    def upsert(
        self,
        conn: sqlite3.Connection,
        bracket_id: str,
        round_label: str,
        match_number: int,
        home_team_id: str | None,
        away_team_id: str | None,
    ) -> BracketMatch:
        """Create the slot, or fill the participants of an existing pending one."""
        status = (BracketMatchStatus.SCHEDULED if home_team_id and away_team_id else BracketMatchStatus.PENDING).value
        existing = self.get_slot(conn, bracket_id, round_label, match_number)
        if existing is None:
            mid = str(uuid.uuid4())
            conn.execute(
                "INSERT INTO bracket_matches (id, bracket_id, round, match_number, status, home_team_id, away_team_id) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (mid, bracket_id, round_label, match_number, status, home_team_id, away_team_id),
            )
            return BracketMatch(
                id=mid, bracket_id=bracket_id, round=round_label, match_number=match_number, status=status,
                home_team_id=home_team_id, away_team_id=away_team_id,
            )
        conn.execute(
            "UPDATE bracket_matches SET home_team_id = ?, away_team_id = ?, status = ? WHERE id = ? AND status = ?",
            (home_team_id, away_team_id, status, existing.id, BracketMatchStatus.PENDING.value),
        )
        return self.get(conn, existing.id)

    def set_scheduled_at(self, conn: sqlite3.Connection, match_id: str, scheduled_at: datetime) -> None:
        conn.execute("UPDATE bracket_matches SET scheduled_at = ? WHERE id = ?", (_iso(scheduled_at), match_id))

    def get(self, conn: sqlite3.Connection, match_id: str) -> BracketMatch | None:
        row = conn.execute(f"SELECT {self._COLS} FROM bracket_matches WHERE id = ?", (match_id,)).fetchone()
        return self._row_to_match(row) if row else None

    def get_slot(self, conn: sqlite3.Connection, bracket_id: str, round_label: str, match_number: int) -> BracketMatch | None:
        row = conn.execute(
            f"SELECT {self._COLS} FROM bracket_matches WHERE bracket_id = ? AND round = ? AND match_number = ?",
            (bracket_id, round_label, match_number),
        ).fetchone()
        return self._row_to_match(row) if row else None

    def list_by_bracket(self, conn: sqlite3.Connection, bracket_id: str) -> list[BracketMatch]:
        rows = conn.execute(
            f"SELECT {self._COLS} FROM bracket_matches WHERE bracket_id = ? ORDER BY round, match_number",
            (bracket_id,),
        ).fetchall()
        return [self._row_to_match(r) for r in rows]

    def list_round(self, conn: sqlite3.Connection, bracket_id: str, round_label: str) -> list[BracketMatch]:
        rows = conn.execute(
            f"SELECT {self._COLS} FROM bracket_matches WHERE bracket_id = ? AND round = ? ORDER BY match_number",
            (bracket_id, round_label),
        ).fetchall()
        return [self._row_to_match(r) for r in rows]

    def mark_live(self, conn: sqlite3.Connection, match_id: str) -> bool:
        cur = conn.execute(
            "UPDATE bracket_matches SET status = ? WHERE id = ? AND status = ?",
            (BracketMatchStatus.LIVE.value, match_id, BracketMatchStatus.SCHEDULED.value),
        )
        return cur.rowcount == 1

    def finish(
        self,
        conn: sqlite3.Connection,
        match_id: str,
        home_score: int,
        away_score: int,
        winner_team_id: str,
        completed_at: datetime,
    ) -> bool:
        """scheduled|live -> finished. False if already finished (or still pending)."""
        cur = conn.execute(
            "UPDATE bracket_matches SET status = ?, home_score = ?, away_score = ?, winner_team_id = ?, "
            "completed_at = ? WHERE id = ? AND status IN (?, ?)",
            (BracketMatchStatus.FINISHED.value, home_score, away_score, winner_team_id, _iso(completed_at),
             match_id, BracketMatchStatus.SCHEDULED.value, BracketMatchStatus.LIVE.value),
        )
        return cur.rowcount == 1

    @staticmethod
    def _row_to_match(row) -> BracketMatch:
        return BracketMatch(
            id=row["id"],
            bracket_id=row["bracket_id"],
            round=row["round"],
            match_number=row["match_number"],
            status=row["status"],
            home_team_id=row["home_team_id"],
            away_team_id=row["away_team_id"],
            winner_team_id=row["winner_team_id"],
            home_score=row["home_score"],
            away_score=row["away_score"],
            scheduled_at=_parse_optional(row["scheduled_at"]),
            completed_at=_parse_optional(row["completed_at"]),
        )


# ---------- QualificationRepository ----------


class QualificationRepository:
    """Append-only qualification records."""

    def add(
        self,
        conn: sqlite3.Connection,
        season_id: str,
        bracket_id: str,
        team_id: str,
        final_rank: int,
        destination: str,
        division_id: str | None = None,
    ) -> QualificationRecord | None:
        """Returns None if the team already holds a record for this bracket."""
        qid = str(uuid.uuid4())
        now = _now()
        cur = conn.execute(
            "INSERT OR IGNORE INTO qualification_records "
            "(id, season_id, bracket_id, division_id, team_id, final_rank, destination, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (qid, season_id, bracket_id, division_id, team_id, final_rank, destination, _iso(now)),
        )
        if cur.rowcount != 1:
            return None
        return QualificationRecord(
            id=qid, season_id=season_id, bracket_id=bracket_id, team_id=team_id, final_rank=final_rank,
            destination=destination, created_at=now, division_id=division_id,
        )

    def list_by_season(self, conn: sqlite3.Connection, season_id: str) -> list[QualificationRecord]:
        rows = conn.execute(
            "SELECT id, season_id, bracket_id, division_id, team_id, final_rank, destination, created_at "
            "FROM qualification_records WHERE season_id = ? ORDER BY bracket_id, final_rank, team_id",
            (season_id,),
        ).fetchall()
        return [
            QualificationRecord(
                id=r["id"], season_id=r["season_id"], bracket_id=r["bracket_id"], team_id=r["team_id"],
                final_rank=r["final_rank"], destination=r["destination"],
                created_at=_parse_datetime(r["created_at"]), division_id=r["division_id"],
            )
            for r in rows
        ]


# ---------- MovementRepository ----------


class MovementRepository:
    """Promotion/relegation log."""

    def add(self, conn: sqlite3.Connection, movement: Movement) -> None:
        conn.execute(
            "INSERT INTO movements (season_id, team_id, region, from_tier, to_tier, kind) VALUES (?, ?, ?, ?, ?, ?)",
            (movement.season_id, movement.team_id, movement.region, movement.from_tier, movement.to_tier,
             movement.kind),
        )

    def list_by_season(self, conn: sqlite3.Connection, season_id: str) -> list[Movement]:
        rows = conn.execute(
            "SELECT season_id, team_id, region, from_tier, to_tier, kind FROM movements "
            "WHERE season_id = ? ORDER BY region, kind, team_id",
            (season_id,),
        ).fetchall()
        return [
            Movement(r["season_id"], r["team_id"], r["region"], r["from_tier"], r["to_tier"], r["kind"])
            for r in rows
        ]


# ---------- ReplacementRepository ----------


class ReplacementRepository:
    """Synthetic-to-real seat handovers."""

    def add(self, conn: sqlite3.Connection, replacement: SyntheticReplacement) -> None:
        s = replacement.inherited
        conn.execute(
            "INSERT INTO synthetic_replacements (synthetic_team_id, team_id, division_id, wins, losses, draws, "
            "points, goal_difference, replaced_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (replacement.synthetic_team_id, replacement.team_id, replacement.division_id,
             s.wins, s.losses, s.draws, s.points, s.goal_difference, _iso(_now())),
        )

    def list_by_division(self, conn: sqlite3.Connection, division_id: str) -> list[SyntheticReplacement]:
        rows = conn.execute(
            "SELECT synthetic_team_id, team_id, division_id, wins, losses, draws, points, goal_difference "
            "FROM synthetic_replacements WHERE division_id = ? ORDER BY replaced_at",
            (division_id,),
        ).fetchall()
        return [
            SyntheticReplacement(
                synthetic_team_id=r["synthetic_team_id"],
                team_id=r["team_id"],
                division_id=r["division_id"],
                inherited=Standing(r["wins"], r["losses"], r["draws"], r["points"], r["goal_difference"]),
            )
            for r in rows
        ]


# ---------- PrizePayoutRepository ----------


class PrizePayoutRepository:
    """One payout per (bracket, team)."""

    def add(
        self,
        conn: sqlite3.Connection,
        bracket_id: str,
        team_id: str,
        amount: int,
        reason: str,
    ) -> bool:
        cur = conn.execute(
            "INSERT OR IGNORE INTO prize_payouts (bracket_id, team_id, amount, reason, paid_at) VALUES (?, ?, ?, ?, ?)",
            (bracket_id, team_id, amount, reason, _iso(_now())),
        )
        return cur.rowcount == 1

    def list_by_team(self, conn: sqlite3.Connection, team_id: str) -> list[dict]:
        rows = conn.execute(
            "SELECT bracket_id, team_id, amount, reason, paid_at FROM prize_payouts WHERE team_id = ? ORDER BY paid_at",
            (team_id,),
        ).fetchall()
        return [dict(r) for r in rows]


# ---------- GenerationLogRepository ----------


class GenerationLogRepository:
    """Idempotency keys for generation steps."""

    def claim(self, conn: sqlite3.Connection, season_id: str, scope_id: str, stage: str) -> bool:
        """Atomically claim (season, scope, stage). False if it was claimed before."""
        cur = conn.execute(
            "INSERT OR IGNORE INTO generation_log (season_id, scope_id, stage, created_at) VALUES (?, ?, ?, ?)",
            (season_id, scope_id, stage, _iso(_now())),
        )
        return cur.rowcount == 1

    def exists(self, conn: sqlite3.Connection, season_id: str, scope_id: str, stage: str) -> bool:
        row = conn.execute(
            "SELECT 1 FROM generation_log WHERE season_id = ? AND scope_id = ? AND stage = ?",
            (season_id, scope_id, stage),
        ).fetchone()
        return row is not None


# ---------- SequenceRepository ----------


class SequenceRepository:
    """Named counters."""

    def current(self, conn: sqlite3.Connection, name: str) -> int:
        row = conn.execute("SELECT value FROM sequences WHERE name = ?", (name,)).fetchone()
        return row[0] if row else 0

    def set(self, conn: sqlite3.Connection, name: str, value: int) -> None:
        conn.execute(
            "INSERT INTO sequences (name, value) VALUES (?, ?) ON CONFLICT(name) DO UPDATE SET value = excluded.value",
            (name, value),
        )
