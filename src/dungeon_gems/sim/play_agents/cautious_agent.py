"""Cautious agent -- banks gems once HP runs low or a target depth is reached.

Card choice is still random (cards are face down, so there is nothing to
read), but the exit decision looks at the run:

- Exit when HP is at or below ``exit_hp``.
- Exit after clearing ``target_room``.
- Otherwise go deeper.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dungeon_gems.sim.core.rng import GameRNG
from dungeon_gems.sim.core.session import CardState
from dungeon_gems.sim.play_agents.base import PlayAgent

if TYPE_CHECKING:
    from dungeon_gems.sim.core.session import RunSession


class CautiousAgent(PlayAgent):
    """Agent that leaves while it still can."""

    def __init__(
        self,
        rng: GameRNG | None = None,
        exit_hp: int = 1,
        target_room: int = 8,
    ) -> None:
        self._rng = rng or GameRNG(seed=0)
        self.exit_hp = exit_hp
        self.target_room = target_room

    def choose_card(self, session: RunSession) -> int:
        hidden = [
            i for i, card in enumerate(session.room_cards)
            if card.state is CardState.HIDDEN
        ]
        return self._rng.random_choice(hidden)

    def choose_continue(self, session: RunSession) -> bool:
        if session.player.hp <= self.exit_hp:
            return False
        return session.current_room < self.target_room
