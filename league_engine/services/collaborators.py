"""
Outbound collaborators the orchestrator talks to: the prize ledger (team
finances live elsewhere) and the schedule notifier.
"""
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Protocol, Sequence

from league_engine.models import BracketMatch, Fixture
from league_engine.persistence.repositories import PrizePayoutRepository

logger = logging.getLogger(__name__)


class PrizeLedger(Protocol):
    def pay(self, conn: sqlite3.Connection, bracket_id: str, team_id: str, amount: int, reason: str) -> bool: ...


class SqlitePrizeLedger:
    """Records payouts in prize_payouts; a bracket pays a team at most once."""

    def __init__(self) -> None:
        self._repo = PrizePayoutRepository()

    def pay(self, conn: sqlite3.Connection, bracket_id: str, team_id: str, amount: int, reason: str) -> bool:
        paid = self._repo.add(conn, bracket_id, team_id, amount, reason)
        if paid:
            logger.info("Paid %s to %s (%s)", amount, team_id, reason)
        else:
            logger.warning("Prize for bracket %s already paid to %s", bracket_id, team_id)
        return paid


class ScheduleNotifier(Protocol):
    def fixtures_scheduled(self, division_id: str, fixtures: Sequence[Fixture]) -> None: ...

    def bracket_round_scheduled(self, bracket_id: str, round_label: str, matches: Sequence[BracketMatch]) -> None: ...

    def season_rolled_over(self, track: str, season_number: int, at: datetime) -> None: ...


class LoggingNotifier:
    """Default notifier: log lines only."""

    def fixtures_scheduled(self, division_id: str, fixtures: Sequence[Fixture]) -> None:
        if fixtures:
            logger.info(
                "Division %s: %d fixtures scheduled (%s .. %s)",
                division_id, len(fixtures),
                fixtures[0].scheduled_at.isoformat(), fixtures[-1].scheduled_at.isoformat(),
            )

    def bracket_round_scheduled(self, bracket_id: str, round_label: str, matches: Sequence[BracketMatch]) -> None:
        logger.info("Bracket %s: %s scheduled with %d matches", bracket_id, round_label, len(matches))

    def season_rolled_over(self, track: str, season_number: int, at: datetime) -> None:
        logger.info("Track %s rolled over to season %d at %s", track, season_number, at.isoformat())
