"""Run and combat session state.

Houses the full state of a run (``RunSession``) and of a single fight
(``CombatSession``), plus the encounter cards dealt into each room.  The
engines own a live session and hand callers deep copies, so UI code can
never mutate game rules by accident.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from dungeon_gems.sim.core.entities import Monster, PlayerStats


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class CardCategory(str, Enum):
    MONSTER = "monster"
    TREASURE = "treasure"
    TRAP = "trap"
    POTION = "potion"


class CardState(str, Enum):
    HIDDEN = "hidden"
    REVEALED = "revealed"
    RESOLVED = "resolved"


class RunState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    AWAITING_DECISION = "awaiting_decision"
    COMPLETED = "completed"
    DIED = "died"

    @property
    def is_terminal(self) -> bool:
        return self in (RunState.COMPLETED, RunState.DIED)


class CombatTurn(str, Enum):
    PLAYER = "player"
    MONSTER = "monster"


class CombatResult(str, Enum):
    NONE = "none"
    VICTORY = "victory"
    DEFEAT = "defeat"


class CombatLogKind(str, Enum):
    START = "start"
    PLAYER_ATTACK = "player_attack"
    MONSTER_ATTACK = "monster_attack"
    MISS = "miss"
    VICTORY = "victory"
    DEFEAT = "defeat"


# ---------------------------------------------------------------------------
# EncounterCard
# ---------------------------------------------------------------------------

class EncounterCard(BaseModel):
    """One face-down card in a room."""

    id: int
    category: CardCategory
    magnitude: int
    """Trap damage, potion restore amount, gem count, or monster ATK."""
    state: CardState = CardState.HIDDEN

    def reveal(self) -> None:
        if self.state is not CardState.HIDDEN:
            raise ValueError(f"card {self.id} is already {self.state.value}")
        self.state = CardState.REVEALED

    def mark_resolved(self) -> None:
        if self.state is not CardState.REVEALED:
            raise ValueError(f"card {self.id} must be revealed before resolving")
        self.state = CardState.RESOLVED


# ---------------------------------------------------------------------------
# Combat
# ---------------------------------------------------------------------------

class CombatLogEntry(BaseModel):
    """One line of the combat log."""

    kind: CombatLogKind
    actor: CombatTurn | None = None
    damage: int = 0
    roll: int | None = None
    """The raw damage roll before mitigation, for monster attacks."""
    message: str


class CombatSession(BaseModel):
    """State of a single fight between the adventurer and one monster."""

    in_combat: bool = False
    monster: Monster | None = None
    turn: CombatTurn = CombatTurn.MONSTER
    result: CombatResult = CombatResult.NONE
    log: list[CombatLogEntry] = Field(default_factory=list)
    player_hp: int = 0
    """Adventurer HP as tracked by the fight (copied back on finish)."""


# ---------------------------------------------------------------------------
# Encounter outcome
# ---------------------------------------------------------------------------

class EncounterOutcome(BaseModel):
    """The effect of resolving one card against the player's stats.

    ``kind`` and ``params`` are the structured form of ``message`` for
    presentation layers that style outcomes themselves.
    """

    new_hp: int
    gems_delta: int = 0
    hp_lost: int = 0
    hp_gained: int = 0
    defeated: bool = False
    message: str
    kind: str
    params: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# RunSession
# ---------------------------------------------------------------------------

class RunLogEntry(BaseModel):
    """One line of the adventure log."""

    kind: str
    """One of ``"start"``, ``"encounter"``, ``"combat"``, ``"room"``,
    ``"exit"``, ``"death"``, ``"ledger"``."""
    room: int
    message: str


class RunSession(BaseModel):
    """Everything about one run, from entry fee to exit or death."""

    state: RunState = RunState.NOT_STARTED
    current_room: int = Field(default=1, ge=1)
    room_cards: list[EncounterCard] = Field(default_factory=list)
    selected_index: int | None = None
    """Card picked in the current room, if any."""
    monsters_defeated_this_room: int = 0
    monsters_defeated_total: int = 0
    run_handle: str | None = None
    """Opaque ledger identifier of the run record."""
    player: PlayerStats
    combat: CombatSession | None = None
    """Active fight, present only while a monster card is being fought."""
    last_outcome: EncounterOutcome | None = None
    log: list[RunLogEntry] = Field(default_factory=list)

    @property
    def in_combat(self) -> bool:
        return self.combat is not None and self.combat.in_combat

    @property
    def total_monsters_defeated(self) -> int:
        """Kills so far including the current, unfolded room."""
        return self.monsters_defeated_total + self.monsters_defeated_this_room
