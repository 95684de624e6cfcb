"""Core primitives: random source, entities, and session state."""

from dungeon_gems.sim.core.entities import BaselineStats, Monster, PlayerStats
from dungeon_gems.sim.core.rng import GameRNG
from dungeon_gems.sim.core.session import (
    CardCategory,
    CardState,
    CombatLogEntry,
    CombatLogKind,
    CombatResult,
    CombatSession,
    CombatTurn,
    EncounterCard,
    EncounterOutcome,
    RunLogEntry,
    RunSession,
    RunState,
)

__all__ = [
    # rng
    "GameRNG",
    # entities
    "BaselineStats",
    "PlayerStats",
    "Monster",
    # session
    "CardCategory",
    "CardState",
    "EncounterCard",
    "EncounterOutcome",
    "CombatLogEntry",
    "CombatLogKind",
    "CombatResult",
    "CombatSession",
    "CombatTurn",
    "RunLogEntry",
    "RunSession",
    "RunState",
]
