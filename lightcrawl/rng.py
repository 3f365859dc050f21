"""Seedable random number generator.

Every random decision in level generation and orb placement goes through a
:class:`GameRNG` instance handed in by the caller, so a level can be rebuilt
exactly from its seed.  The generator wraps :func:`numpy.random.default_rng`.
"""

from __future__ import annotations

import random
from typing import Optional, Sequence, TypeVar

import numpy as np
import structlog

log = structlog.get_logger()

T = TypeVar("T")


class GameRNG:
    def __init__(self, seed: Optional[int] = None) -> None:
        self.initial_seed = seed if seed is not None else random.randint(0, 2**32 - 1)
        self.rng = np.random.default_rng(self.initial_seed)

    # ------------------------------------------------------------------
    # basic random helpers
    # ------------------------------------------------------------------
    def get_int(self, a: int, b: int) -> int:
        """Uniform integer in the inclusive range ``[a, b]``."""
        if a > b:
            raise ValueError("a <= b")
        return int(self.rng.integers(a, b + 1))

    def get_float(self, a: float = 0.0, b: float = 1.0) -> float:
        """Uniform float in ``[a, b)``."""
        if a > b:
            raise ValueError("a <= b")
        return a + (b - a) * float(self.rng.random())

    def chance(self, probability: float) -> bool:
        """Return ``True`` with the given probability."""
        if not 0.0 <= probability <= 1.0:
            raise ValueError("probability out of range")
        return self.get_float() < probability

    def coin_flip(self, heads_probability: float = 0.5) -> str:
        return "heads" if self.chance(heads_probability) else "tails"

    def choice(self, seq: Sequence[T]) -> T:
        """Return a random element from *seq*."""
        if not seq:
            raise ValueError("cannot choose from an empty sequence")
        return seq[self.get_int(0, len(seq) - 1)]

    def spawn(self) -> "GameRNG":
        """Derive an independent generator, e.g. one per level."""
        child = GameRNG(seed=self.get_int(0, 2**32 - 1))
        log.debug("GameRNG spawned", parent=self.initial_seed, seed=child.initial_seed)
        return child


__all__ = ["GameRNG"]
