"""Deterministic RNG wrapper built on top of random.Random."""
from __future__ import annotations

from random import Random
from typing import Sequence


class RNG:
    """Wrapper around random.Random that provides deterministic helpers."""

    def __init__(self, seed: int | None = None) -> None:
        self._random = Random(seed)

    def randint(self, a: int, b: int) -> int:
        """Return a random integer N such that a <= N <= b."""
        return self._random.randint(a, b)

    def random(self) -> float:
        """Return the next random floating point number in the range [0.0, 1.0)."""
        return self._random.random()

    def weighted_index(self, weights: Sequence[float]) -> int:
        """Return an index drawn proportionally to the given non-negative weights.

        A sequence whose weights sum to zero falls back to a uniform draw.
        """
        if not weights:
            raise ValueError("Cannot choose from an empty weight list.")
        if any(weight < 0 for weight in weights):
            raise ValueError("Weights must be non-negative.")
        total = float(sum(weights))
        if total <= 0:
            return self._random.randrange(len(weights))
        roll = self._random.random() * total
        cumulative = 0.0
        for index, weight in enumerate(weights):
            cumulative += weight
            if roll < cumulative:
                return index
        return len(weights) - 1
