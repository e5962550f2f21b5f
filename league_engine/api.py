"""
REST API for the league engine.
Thin wrappers around SeasonService and persistence.
"""
from __future__ import annotations

from contextlib import asynccontextmanager, contextmanager
from datetime import datetime
from typing import Any, AsyncGenerator, Generator

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from league_engine.config import load_config
from league_engine.models import Team
from league_engine.persistence import get_connection, init_db
from league_engine.persistence.db import get_db_path
from league_engine.services import (
    EngineError,
    InsufficientParticipants,
    InvalidInput,
    LifecycleError,
    NoVacancy,
    NotFound,
    RoundIncomplete,
    SchedulingDeadlock,
    SeasonService,
    SeededRNG,
)


@contextmanager
def db_conn() -> Generator:
    """Yield a DB connection, ensure close on exit."""
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


_service: SeasonService | None = None


def get_service() -> SeasonService:
    global _service
    if _service is None:
        _service = SeasonService(config=load_config())
    return _service


def set_service(service: SeasonService | None) -> None:
    """Swap the service (tests inject a config or a seeded RNG)."""
    global _service
    _service = service


# ---------- Lifespan ----------
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    init_db(db_path=get_db_path())
    yield


# ---------- FastAPI app ----------
app = FastAPI(
    title="League Engine API",
    description="Season lifecycle, fixtures, brackets and divisions",
    version="0.1.0",
    lifespan=lifespan,
)


def _http_error(exc: EngineError) -> HTTPException:
    if isinstance(exc, NotFound):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (LifecycleError, RoundIncomplete, NoVacancy)):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, (InvalidInput, InsufficientParticipants, SchedulingDeadlock)):
        return HTTPException(status_code=400, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


# ---------- Request/Response models ----------


class TeamIn(BaseModel):
    id: str
    name: str
    region: str


class InitSeasonRequest(BaseModel):
    track: str
    season_number: int = Field(1, ge=1)
    teams: list[TeamIn] = Field(default_factory=list, description="Real teams, strongest first")
    start_after: datetime


class ResultRequest(BaseModel):
    home_score: int = Field(..., ge=0)
    away_score: int = Field(..., ge=0)
    completed_at: datetime


class StartRequest(BaseModel):
    start_after: datetime


class AdvanceRequest(BaseModel):
    from_round: str | None = None
    seed: int | None = Field(None, description="Seed for the cup redraw (replayable)")


class AdmitTeamRequest(BaseModel):
    team_id: str
    region: str
    name: str | None = None


class CycleRequest(BaseModel):
    now: datetime


# ---------- Seasons ----------


@app.post("/seasons")
def initialize_season(req: InitSeasonRequest) -> dict[str, Any]:
    teams = [Team(id=t.id, name=t.name, region=t.region) for t in req.teams]
    with db_conn() as conn:
        try:
            season = get_service().initialize_season(conn, req.track, req.season_number, teams, req.start_after)
        except EngineError as e:
            raise _http_error(e)
        divisions = get_service().list_divisions(conn, season.id)
    return {"season": season.to_dict(), "divisions": [d.to_dict() for d in divisions]}


@app.get("/seasons/{season_id}/divisions")
def list_divisions(season_id: str) -> list[dict[str, Any]]:
    with db_conn() as conn:
        try:
            return [d.to_dict() for d in get_service().list_divisions(conn, season_id)]
        except EngineError as e:
            raise _http_error(e)


@app.post("/seasons/{season_id}/cycle")
def run_cycle(season_id: str, req: CycleRequest) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            report = get_service().run_cycle(conn, season_id, req.now)
        except EngineError as e:
            raise _http_error(e)
    return {
        "season_id": report.season_id,
        "transitions": [list(t) for t in report.transitions],
        "advanced": [
            {"bracket_id": a.bracket_id, "from_round": a.from_round, "to_round": a.to_round,
             "completed": a.completed, "duplicate": a.duplicate}
            for a in report.advanced
        ],
        "failures": report.failures,
        "rolled_over_to": report.rolled_over_to,
    }


@app.post("/seasons/{season_id}/rollover")
def rollover_season(season_id: str, req: StartRequest) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            result = get_service().rollover_season(conn, season_id, req.start_after)
        except EngineError as e:
            raise _http_error(e)
    if not result:
        return {"duplicate": True}
    return {"duplicate": False, "season": result.to_dict()}


@app.post("/seasons/{season_id}/cup")
def start_cup(season_id: str, req: StartRequest) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            result = get_service().start_cup(conn, season_id, req.start_after)
        except EngineError as e:
            raise _http_error(e)
    if not result:
        return {"duplicate": True}
    return {"duplicate": False, "bracket": result.to_dict()}


@app.post("/seasons/{season_id}/teams")
def admit_team(season_id: str, req: AdmitTeamRequest) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            replacement = get_service().admit_real_team(conn, season_id, req.team_id, req.region, name=req.name)
        except EngineError as e:
            raise _http_error(e)
    return replacement.to_dict()


# ---------- Divisions ----------


@app.get("/divisions/{division_id}/standings")
def standings(division_id: str) -> list[dict[str, Any]]:
    with db_conn() as conn:
        try:
            table = get_service().get_standings(conn, division_id)
        except EngineError as e:
            raise _http_error(e)
    return [{"rank": i, **m.to_dict()} for i, m in enumerate(table, start=1)]


@app.get("/divisions/{division_id}/fixtures")
def fixtures(division_id: str) -> list[dict[str, Any]]:
    with db_conn() as conn:
        try:
            return [f.to_dict() for f in get_service().list_fixtures(conn, division_id)]
        except EngineError as e:
            raise _http_error(e)


@app.post("/seasons/{season_id}/divisions/{division_id}/playoff")
def start_playoff(season_id: str, division_id: str, req: StartRequest) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            result = get_service().start_playoff(conn, season_id, division_id, req.start_after)
        except EngineError as e:
            raise _http_error(e)
    if not result:
        return {"duplicate": True}
    return {"duplicate": False, "bracket": result.to_dict()}


@app.post("/fixtures/{fixture_id}/result")
def record_fixture_result(fixture_id: str, req: ResultRequest) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            applied = get_service().record_fixture_result(
                conn, fixture_id, req.home_score, req.away_score, req.completed_at
            )
        except EngineError as e:
            raise _http_error(e)
    return {"fixture_id": fixture_id, "applied": applied}


# ---------- Brackets ----------


@app.get("/brackets/{bracket_id}")
def get_bracket(bracket_id: str) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            bracket, seeds, matches = get_service().get_bracket_view(conn, bracket_id)
        except EngineError as e:
            raise _http_error(e)
    return {
        **bracket.to_dict(),
        "seeds": [s.to_dict() for s in seeds],
        "matches": [m.to_dict() for m in matches],
    }


@app.post("/brackets/{bracket_id}/advance")
def advance_bracket(bracket_id: str, req: AdvanceRequest) -> dict[str, Any]:
    rng = SeededRNG(req.seed) if req.seed is not None else None
    with db_conn() as conn:
        try:
            outcome = get_service().advance_bracket(conn, bracket_id, from_round=req.from_round, rng=rng)
        except EngineError as e:
            raise _http_error(e)
    return {
        "bracket_id": outcome.bracket_id,
        "from_round": outcome.from_round,
        "to_round": outcome.to_round,
        "completed": outcome.completed,
        "duplicate": outcome.duplicate,
        "champion_team_id": outcome.champion_team_id,
    }


@app.post("/bracket-matches/{match_id}/result")
def record_bracket_result(match_id: str, req: ResultRequest) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            applied = get_service().record_bracket_result(
                conn, match_id, req.home_score, req.away_score, req.completed_at
            )
        except EngineError as e:
            raise _http_error(e)
    return {"match_id": match_id, "applied": applied}


# ---------- Run with: uvicorn league_engine.api:app --reload ----------
