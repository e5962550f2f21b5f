"""
Service layer: fixture generation, slot allocation, brackets, membership and
the season state machine. Pure planning lives in scheduling/calendar/bracket/
membership; season_service orchestrates persistence.
"""
from .errors import (
    DuplicateGenerationAttempt,
    EngineError,
    InsufficientParticipants,
    InvalidInput,
    InvariantViolation,
    LifecycleError,
    NoVacancy,
    NotFound,
    RoundIncomplete,
    SchedulingDeadlock,
)
from .rng import RandomSource, SeededRNG
from .season_service import AdvanceOutcome, CycleReport, SeasonService

__all__ = [
    "AdvanceOutcome",
    "CycleReport",
    "DuplicateGenerationAttempt",
    "EngineError",
    "InsufficientParticipants",
    "InvalidInput",
    "InvariantViolation",
    "LifecycleError",
    "NoVacancy",
    "NotFound",
    "RandomSource",
    "RoundIncomplete",
    "SchedulingDeadlock",
    "SeasonService",
    "SeededRNG",
]
