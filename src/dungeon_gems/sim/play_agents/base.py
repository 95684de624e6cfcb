"""Base class for agents that play runs without a human.

All play agents must subclass ``PlayAgent`` and implement the two abstract
methods.  The batch runner calls these at the two decision points of a
run: which face-down card to flip, and whether to go deeper.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dungeon_gems.sim.core.session import RunSession


class PlayAgent(ABC):
    """Base class for AI agents that play the game."""

    @abstractmethod
    def choose_card(self, session: RunSession) -> int:
        """Choose which card to flip in the current room.

        Parameters
        ----------
        session:
            Snapshot of the run, state ``in_progress``.

        Returns
        -------
        int
            Index of a hidden card in ``session.room_cards``.
        """

    @abstractmethod
    def choose_continue(self, session: RunSession) -> bool:
        """Decide between the next room (``True``) and exiting (``False``).

        Parameters
        ----------
        session:
            Snapshot of the run, state ``awaiting_decision``.
        """
