"""Random agent -- flips a random card and pushes on with a fixed probability.

The ``RandomAgent`` is the baseline for batch simulation runs: it proves
the whole run loop works end to end and gives a lower bound on how deep
an uninformed player gets.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dungeon_gems.sim.core.rng import GameRNG
from dungeon_gems.sim.core.session import CardState
from dungeon_gems.sim.play_agents.base import PlayAgent

if TYPE_CHECKING:
    from dungeon_gems.sim.core.session import RunSession


class RandomAgent(PlayAgent):
    """Agent that picks uniformly among hidden cards.

    Parameters
    ----------
    rng:
        Seeded RNG for deterministic randomness.  If ``None``, a default
        ``GameRNG(seed=0)`` is created.
    continue_chance:
        Probability (0.0 -- 1.0) of going to the next room after surviving
        one.  Default is 0.75.
    """

    def __init__(
        self,
        rng: GameRNG | None = None,
        continue_chance: float = 0.75,
    ) -> None:
        self._rng = rng or GameRNG(seed=0)
        self._continue_chance = continue_chance

    def choose_card(self, session: RunSession) -> int:
        hidden = [
            i for i, card in enumerate(session.room_cards)
            if card.state is CardState.HIDDEN
        ]
        return self._rng.random_choice(hidden)

    def choose_continue(self, session: RunSession) -> bool:
        return self._rng.random_float() < self._continue_chance
