"""
Persistence layer for league engine data.
Read/write interfaces only; scheduling and lifecycle rules live in services.
"""
from .db import get_connection, init_db, set_db_path, transaction
from .repositories import (
    BracketMatchRepository,
    BracketRepository,
    DivisionRepository,
    FixtureRepository,
    GenerationLogRepository,
    MembershipRepository,
    MovementRepository,
    PrizePayoutRepository,
    QualificationRepository,
    ReplacementRepository,
    SeasonRepository,
    SequenceRepository,
    TeamRepository,
)

__all__ = [
    "get_connection",
    "init_db",
    "set_db_path",
    "transaction",
    "BracketMatchRepository",
    "BracketRepository",
    "DivisionRepository",
    "FixtureRepository",
    "GenerationLogRepository",
    "MembershipRepository",
    "MovementRepository",
    "PrizePayoutRepository",
    "QualificationRepository",
    "ReplacementRepository",
    "SeasonRepository",
    "SequenceRepository",
    "TeamRepository",
]
