#!/usr/bin/env python3
"""
Season walkthrough: initialize → play regular season → playoffs → cup → rollover.
Random scores stand in for the external match-result feed.
Run from project root: python3 scripts/run_season.py [--seed 7] [--teams 12]
"""
from __future__ import annotations

import argparse
import logging
import random
import sys
from datetime import datetime, timedelta
from pathlib import Path

# Ensure project root on path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from league_engine.config import load_config
from league_engine.models import BracketMatchStatus, FixtureStatus, Team
from league_engine.persistence import get_connection, init_db
from league_engine.persistence.db import set_db_path
from league_engine.services import SeasonService, SeededRNG


def _play_fixtures(service: SeasonService, conn, season_id: str, rng: random.Random) -> int:
    played = 0
    for division in service.list_divisions(conn, season_id):
        for fixture in service.list_fixtures(conn, division.id):
            if fixture.status == FixtureStatus.FINISHED:
                continue
            service.record_fixture_result(
                conn, fixture.id, rng.randint(0, 3), rng.randint(0, 3), fixture.scheduled_at + timedelta(minutes=25)
            )
            played += 1
    return played


def _play_brackets(service: SeasonService, conn, season_id: str, rng: random.Random) -> int:
    played = 0
    for bracket in service.list_brackets(conn, season_id):
        _, _, matches = service.get_bracket_view(conn, bracket.id)
        for match in matches:
            if match.status != BracketMatchStatus.SCHEDULED:
                continue
            home = rng.randint(0, 3)
            away = rng.choice([s for s in range(4) if s != home])
            service.record_bracket_result(conn, match.id, home, away, match.scheduled_at + timedelta(minutes=25))
            played += 1
    return played


def main() -> None:
    parser = argparse.ArgumentParser(description="Run one full season of the league engine")
    parser.add_argument("--seed", type=int, default=7, help="Seed for scores and cup draws")
    parser.add_argument("--teams", type=int, default=12, help="Number of real teams to register")
    parser.add_argument("--db", type=Path, default=PROJECT_ROOT / "data" / "run_season.db")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.db.exists():
        args.db.unlink()
    set_db_path(args.db)
    init_db(db_path=args.db)

    config = load_config()
    region = next(iter(config.regions))
    service = SeasonService(config=config, rng=SeededRNG(args.seed))
    rng = random.Random(args.seed)
    start = datetime(2026, 3, 2, 12, 0, tzinfo=config.calendar.timezone)
    teams = [Team(id=f"club-{i:02d}", name=f"Club {i:02d}", region=region) for i in range(1, args.teams + 1)]

    conn = get_connection()
    try:
        season = service.initialize_season(conn, "main", 1, teams, start)
        print(f"Season {season.season_number} ({season.id}) initialized")
        cup = service.start_cup(conn, season.id, start)
        print(f"Cup bracket {cup.id} seeded")

        now = start
        for cycle in range(1, 200):
            played = _play_fixtures(service, conn, season.id, rng) + _play_brackets(service, conn, season.id, rng)
            now += timedelta(days=7)
            report = service.run_cycle(conn, season.id, now)
            print(f"Cycle {cycle}: {played} results, {len(report.transitions)} transitions, "
                  f"{len(report.advanced)} bracket advances")
            for scope, error in report.failures.items():
                print(f"  failure in {scope}: {error}")
            if report.rolled_over_to:
                print(f"Rolled over to season {report.rolled_over_to}")
                break

        for record in service.list_qualifications(conn, season.id):
            print(f"Qualified: {record.team_id} (rank {record.final_rank}) -> {record.destination}")
        for movement in service.list_movements(conn, season.id):
            print(f"{movement.kind}: {movement.team_id} {movement.from_tier} -> {movement.to_tier}")
    finally:
        conn.close()


if __name__ == "__main__":
    main()
