"""Dungeon module -- room generation, encounter resolution, combat, and runs."""

from dungeon_gems.sim.dungeon.combat import CombatEngine
from dungeon_gems.sim.dungeon.encounters import generate_card, generate_room, roll_category
from dungeon_gems.sim.dungeon.monsters import MONSTER_TABLE, MonsterTemplate, generate_monster
from dungeon_gems.sim.dungeon.resolver import RoomSummary, resolve_card, summarize_room
from dungeon_gems.sim.dungeon.run_manager import PendingEndRun, RunManager

__all__ = [
    "CombatEngine",
    "MONSTER_TABLE",
    "MonsterTemplate",
    "PendingEndRun",
    "RoomSummary",
    "RunManager",
    "generate_card",
    "generate_monster",
    "generate_room",
    "resolve_card",
    "roll_category",
    "summarize_room",
]
