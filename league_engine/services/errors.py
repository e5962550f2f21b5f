"""
Engine exceptions. Generation functions raise before any row is written, so a
rejected call never leaves partial fixtures or bracket matches behind.
"""
from __future__ import annotations


class EngineError(Exception):
    """Base for everything the engine raises on purpose."""


class InvalidInput(EngineError, ValueError):
    """Malformed input (duplicate team IDs, bad scores, unknown labels)."""


class SchedulingDeadlock(EngineError):
    """Calendar rules cannot place a fixture within the bounded search."""


class RoundIncomplete(EngineError):
    """Advance requested while matches of the current round are unresolved."""


class InsufficientParticipants(EngineError):
    """Fewer teams than a bracket or schedule needs."""


class InvariantViolation(EngineError):
    """Stored state contradicts an engine invariant (e.g. capacity mismatch)."""


class LifecycleError(EngineError):
    """Transition invoked from the wrong stage."""


class NotFound(EngineError, LookupError):
    """Referenced season, division, fixture or bracket does not exist."""


class NoVacancy(EngineError):
    """No synthetic seat left for a real team to take."""


class DuplicateGenerationAttempt:
    """
    Returned (not raised) when an idempotency key was already claimed.
    Retried triggers are a no-op success.
    """

    def __init__(self, key: tuple[str, str, str]) -> None:
        self.key = key

    def __repr__(self) -> str:
        return f"DuplicateGenerationAttempt({self.key!r})"

    def __bool__(self) -> bool:
        return False
