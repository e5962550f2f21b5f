"""
Injectable random source for bracket reseeding.
Seeded in tests (replayable draws), unseeded in production.
"""
from __future__ import annotations

import random
from typing import Protocol, Sequence, TypeVar

T = TypeVar("T")


class RandomSource(Protocol):
    def shuffled(self, items: Sequence[T]) -> list[T]: ...


class SeededRNG:
    """Wrapper around random.Random for reproducible draws."""

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)

    def shuffled(self, items: Sequence[T]) -> list[T]:
        """Return a uniformly shuffled copy (Fisher-Yates); input untouched."""
        result = list(items)
        self._rng.shuffle(result)
        return result
