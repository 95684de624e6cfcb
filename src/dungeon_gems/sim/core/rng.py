"""Seeded random source for card draws, dice rolls, and hit checks.

Every draw in the package goes through :meth:`GameRNG.random_float`, a
uniform value on ``[0.0, 1.0)``.  Integer rolls, choices, and weighted
picks are derived from it, so a test can subclass ``GameRNG`` and script
``random_float`` alone to pin any outcome.

Sub-systems (room generation, combat, agents, ...) should use a *forked*
RNG so that consuming random values in one system does not perturb another.
"""

from __future__ import annotations

import hashlib
import random
from typing import Sequence, TypeVar

T = TypeVar("T")


class GameRNG:
    """Deterministic RNG that can be forked into independent sub-streams.

    Parameters
    ----------
    seed:
        Integer seed for the underlying Mersenne Twister.
    """

    def __init__(self, seed: int) -> None:
        self._seed = seed
        self._rng = random.Random(seed)

    # -- public properties ---------------------------------------------------

    @property
    def seed(self) -> int:
        """Return the seed this RNG was initialised with."""
        return self._seed

    # -- core random methods -------------------------------------------------

    def random_float(self) -> float:
        """Return a random float in the half-open interval ``[0.0, 1.0)``."""
        return self._rng.random()

    def random_int(self, low: int, high: int) -> int:
        """Return a random integer *N* such that ``low <= N <= high``.

        Computed as ``low + floor(r * (high - low + 1))`` from a single
        :meth:`random_float` draw.
        """
        if high < low:
            raise ValueError(f"random_int range is empty: [{low}, {high}]")
        span = high - low + 1
        return low + min(int(self.random_float() * span), span - 1)

    def random_choice(self, seq: Sequence[T]) -> T:
        """Return a random element from a non-empty sequence."""
        if not seq:
            raise IndexError("cannot choose from an empty sequence")
        return seq[self.random_int(0, len(seq) - 1)]

    def weighted_choice(self, seq: Sequence[T], weights: Sequence[float]) -> T:
        """Return an element of *seq* picked with probability proportional
        to its weight."""
        if not seq or len(seq) != len(weights):
            raise ValueError("weighted_choice needs one weight per element")
        total = float(sum(weights))
        if total <= 0:
            raise ValueError("weights must sum to a positive value")
        roll = self.random_float() * total
        cumulative = 0.0
        for item, weight in zip(seq, weights):
            cumulative += weight
            if roll < cumulative:
                return item
        return seq[-1]

    # -- forking -------------------------------------------------------------

    def fork(self, name: str) -> GameRNG:
        """Create a child RNG whose seed is derived from this RNG's seed and
        *name*.

        Forking with the same *name* always produces the same child seed,
        so ``"rooms"``, ``"combat"`` and ``"agent"`` each get a stable,
        independent stream.
        """
        digest = hashlib.sha256(f"{self._seed}:{name}".encode()).digest()
        child_seed = int.from_bytes(digest[:8], "big")
        return GameRNG(child_seed)

    # -- dunder helpers ------------------------------------------------------

    def __repr__(self) -> str:
        return f"GameRNG(seed={self._seed})"
