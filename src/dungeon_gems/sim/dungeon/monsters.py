"""Monster table for turn-based combat.

Values are tuned for a 4-HP, 1-ATK, 1-DEF adventurer: most fights last a
few exchanges and the dangerous monsters hit rarely.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from dungeon_gems.sim.core.entities import Monster

if TYPE_CHECKING:
    from dungeon_gems.sim.core.rng import GameRNG


class MonsterTemplate(BaseModel):
    """Blueprint a :class:`Monster` is rolled from."""

    name: str
    hp_range: tuple[int, int]
    damage_range: tuple[int, int]
    hit_chance: float = Field(gt=0.0, le=1.0)
    weight: float = Field(default=1.0, gt=0.0)


MONSTER_TABLE: tuple[MonsterTemplate, ...] = (
    MonsterTemplate(name="Cave Rat", hp_range=(1, 2), damage_range=(1, 1), hit_chance=0.6, weight=3.0),
    MonsterTemplate(name="Goblin", hp_range=(2, 3), damage_range=(1, 2), hit_chance=0.6, weight=3.0),
    MonsterTemplate(name="Skeleton", hp_range=(2, 4), damage_range=(1, 2), hit_chance=0.5, weight=2.0),
    MonsterTemplate(name="Orc Brute", hp_range=(3, 5), damage_range=(2, 3), hit_chance=0.4, weight=1.0),
    MonsterTemplate(name="Shadow Wraith", hp_range=(4, 6), damage_range=(2, 4), hit_chance=0.35, weight=0.5),
)


def generate_monster(
    rng: GameRNG,
    table: tuple[MonsterTemplate, ...] | list[MonsterTemplate] = MONSTER_TABLE,
) -> Monster:
    """Pick a template by weight and roll its HP.

    Consumes two draws: one for the template, one for HP.
    """
    template = rng.weighted_choice(list(table), [t.weight for t in table])
    low, high = template.hp_range
    hp = rng.random_int(low, high)
    return Monster(
        name=template.name,
        hp=hp,
        max_hp=hp,
        damage_range=template.damage_range,
        hit_chance=template.hit_chance,
    )
