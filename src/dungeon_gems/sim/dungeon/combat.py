"""Turn-based combat between the adventurer and one monster.

State machine::

    idle --start_combat--> monster turn <--> player turn
                               |                 |
                               +--> resolved (victory | defeat) --end_combat--> idle

The monster always acts first.  Every action checks the turn and result
and raises :class:`InvalidTransition` when called out of order.

The engine tracks the adventurer's HP inside the fight; writing the final
HP back into :class:`PlayerStats` is the caller's job.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from dungeon_gems.config import GameConfig
from dungeon_gems.errors import InvalidTransition
from dungeon_gems.sim.core.session import (
    CombatLogEntry,
    CombatLogKind,
    CombatResult,
    CombatSession,
    CombatTurn,
)

if TYPE_CHECKING:
    from dungeon_gems.sim.core.entities import Monster, PlayerStats
    from dungeon_gems.sim.core.rng import GameRNG

logger = logging.getLogger(__name__)


class CombatEngine:
    """Runs one fight at a time against a player's stats.

    Parameters
    ----------
    player:
        The adventurer.  ``attack`` and ``defense`` are read on every
        action; ``hp`` is read once at ``start_combat``.
    rng:
        Random source for hit checks and damage rolls.
    config:
        Game rules (player hit chance).
    """

    def __init__(
        self,
        player: PlayerStats,
        rng: GameRNG,
        config: GameConfig | None = None,
    ) -> None:
        self.player = player
        self.rng = rng
        self.config = config or GameConfig()
        self._session: CombatSession | None = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def active(self) -> bool:
        return self._session is not None and self._session.in_combat

    @property
    def state_name(self) -> str:
        session = self._session
        if session is None or not session.in_combat:
            return "idle"
        if session.result is not CombatResult.NONE:
            return f"resolved ({session.result.value})"
        return f"{session.turn.value} turn"

    def snapshot(self) -> CombatSession:
        """Return a copy of the current fight (an idle session when none)."""
        if self._session is None:
            return CombatSession()
        return self._session.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start_combat(self, monster: Monster) -> CombatSession:
        """Begin a fight against *monster*.  The monster acts first."""
        if self.active:
            raise InvalidTransition("start_combat", self.state_name)
        self._session = CombatSession(
            in_combat=True,
            monster=monster.model_copy(deep=True),
            turn=CombatTurn.MONSTER,
            result=CombatResult.NONE,
            player_hp=self.player.hp,
            log=[CombatLogEntry(
                kind=CombatLogKind.START,
                message=f"A {monster.name} appears! ({monster.hp} HP)",
            )],
        )
        logger.debug("Combat started against %s (%d HP)", monster.name, monster.hp)
        return self.snapshot()

    def player_attack(self) -> CombatSession:
        """Swing at the monster: 80 % to hit for the player's ATK."""
        session, monster = self._require_turn("player_attack", CombatTurn.PLAYER)

        if self.rng.random_float() >= self.config.player_hit_chance:
            session.log.append(CombatLogEntry(
                kind=CombatLogKind.MISS,
                actor=CombatTurn.PLAYER,
                message=f"You miss the {monster.name}.",
            ))
            session.turn = CombatTurn.MONSTER
            return self.snapshot()

        dealt = monster.take_damage(self.player.attack)
        session.log.append(CombatLogEntry(
            kind=CombatLogKind.PLAYER_ATTACK,
            actor=CombatTurn.PLAYER,
            damage=dealt,
            message=f"You hit the {monster.name} for {dealt} damage.",
        ))
        if monster.is_dead:
            session.result = CombatResult.VICTORY
            session.log.append(CombatLogEntry(
                kind=CombatLogKind.VICTORY,
                message=f"Defeated {monster.name}!",
            ))
            logger.debug("Combat won against %s", monster.name)
        else:
            session.turn = CombatTurn.MONSTER
        return self.snapshot()

    def monster_attack(self) -> CombatSession:
        """The monster rolls to hit, then rolls damage minus the player's DEF."""
        session, monster = self._require_turn("monster_attack", CombatTurn.MONSTER)

        if self.rng.random_float() >= monster.hit_chance:
            session.log.append(CombatLogEntry(
                kind=CombatLogKind.MISS,
                actor=CombatTurn.MONSTER,
                message=f"The {monster.name} misses.",
            ))
            session.turn = CombatTurn.PLAYER
            return self.snapshot()

        low, high = monster.damage_range
        rolled = self.rng.random_int(low, high)
        damage = max(0, rolled - self.player.defense)
        hp_lost = min(session.player_hp, damage)
        session.player_hp -= hp_lost
        session.log.append(CombatLogEntry(
            kind=CombatLogKind.MONSTER_ATTACK,
            actor=CombatTurn.MONSTER,
            damage=hp_lost,
            roll=rolled,
            message=(
                f"The {monster.name} rolls {rolled}; "
                f"you take {damage} damage after defense."
            ),
        ))
        if session.player_hp <= 0:
            session.result = CombatResult.DEFEAT
            session.log.append(CombatLogEntry(
                kind=CombatLogKind.DEFEAT,
                message=f"Defeated by {monster.name}!",
            ))
            logger.debug("Combat lost against %s", monster.name)
        else:
            session.turn = CombatTurn.PLAYER
        return self.snapshot()

    def end_combat(self) -> CombatSession:
        """Close a resolved fight and return its final, frozen state."""
        final = self._session
        if final is None or not final.in_combat:
            raise InvalidTransition("end_combat", self.state_name)
        if final.result is CombatResult.NONE:
            raise InvalidTransition(
                "end_combat", self.state_name, "the fight has no result yet",
            )
        final.in_combat = False
        self._session = None
        return final.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_turn(
        self, action: str, turn: CombatTurn,
    ) -> tuple[CombatSession, Monster]:
        session = self._session
        if session is None or not session.in_combat or session.monster is None:
            raise InvalidTransition(action, self.state_name)
        if session.result is not CombatResult.NONE:
            raise InvalidTransition(action, self.state_name, "the fight is over")
        if session.turn is not turn:
            raise InvalidTransition(action, self.state_name, "not your turn")
        return session, session.monster
