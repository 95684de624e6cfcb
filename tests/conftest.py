"""Shared fixtures: a scripted random source and an in-memory ledger."""

from __future__ import annotations

from typing import Callable, Sequence

import pytest

from dungeon_gems.config import GameConfig
from dungeon_gems.ledger.memory import InMemoryLedger, LedgerStore
from dungeon_gems.sim.core.rng import GameRNG

WEEK_MS = 7 * 24 * 60 * 60 * 1000


class ScriptedRNG(GameRNG):
    """GameRNG that replays a fixed list of floats.

    ``fork`` returns the same instance, so every sub-system reads from one
    script in call order.
    """

    def __init__(self, values: Sequence[float] = ()) -> None:
        super().__init__(seed=0)
        self.values = list(values)

    def random_float(self) -> float:
        if not self.values:
            raise AssertionError("scripted RNG ran out of values")
        return self.values.pop(0)

    def fork(self, name: str) -> GameRNG:
        return self

    def extend(self, values: Sequence[float]) -> None:
        self.values.extend(values)


def card_draws(category: str, magnitude: int | None = None) -> list[float]:
    """Floats that make ``generate_card`` produce *category* / *magnitude*."""
    config = GameConfig()
    if category == "trap":
        return [0.05]
    table, roll = {
        "potion": (config.potion_amounts, 0.15),
        "treasure": (config.treasure_rewards, 0.35),
        "monster": (config.monster_magnitudes, 0.75),
    }[category]
    index = table.index(magnitude)
    return [roll, (index + 0.5) / len(table)]


def room_draws(*cards: tuple[str, int | None]) -> list[float]:
    """Floats for a whole room; pads with 10-gem treasure cards up to four."""
    cards = cards + (("treasure", 10),) * (4 - len(cards))
    draws: list[float] = []
    for category, magnitude in cards:
        draws.extend(card_draws(category, magnitude))
    return draws


@pytest.fixture
def scripted_rng() -> type[ScriptedRNG]:
    return ScriptedRNG


@pytest.fixture
def room() -> Callable[..., list[float]]:
    return room_draws


@pytest.fixture
def week_ms() -> int:
    return WEEK_MS


@pytest.fixture
def store() -> LedgerStore:
    """Ledger store with a frozen clock at the start of week 1."""
    return LedgerStore(page_size=3, clock=lambda: 1_000)


@pytest.fixture
def ledger(store: LedgerStore) -> InMemoryLedger:
    return InMemoryLedger(store, "0xplayer")
