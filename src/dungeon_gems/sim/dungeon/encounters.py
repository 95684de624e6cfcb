"""Room generation: four face-down encounter cards per room.

Category bands, checked smallest slice first against one uniform draw:
- Trap 10 % (``r < 0.10``), always 1 damage.
- Potion 10 % (``r < 0.20``), +1 HP or full restore.
- Treasure 30 % (``r < 0.50``), 10/20/30 gems.
- Monster 50 % (otherwise), ATK 1-3 printed on the card.

A monster card's ATK only matters for the flat/tiered resolution paths;
once combat is engaged the fight uses the combat engine's own monster
table.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dungeon_gems.config import GameConfig
from dungeon_gems.sim.core.session import CardCategory, EncounterCard

if TYPE_CHECKING:
    from dungeon_gems.sim.core.rng import GameRNG


def roll_category(roll: float, config: GameConfig | None = None) -> CardCategory:
    """Map a uniform draw on ``[0, 1)`` to a card category."""
    bands = (config or GameConfig()).category_thresholds
    if roll < bands.trap:
        return CardCategory.TRAP
    elif roll < bands.potion:
        return CardCategory.POTION
    elif roll < bands.treasure:
        return CardCategory.TREASURE
    else:
        return CardCategory.MONSTER


def generate_card(
    card_id: int,
    rng: GameRNG,
    config: GameConfig | None = None,
) -> EncounterCard:
    """Draw a single hidden card.

    Parameters
    ----------
    card_id:
        Position of the card within its room.
    rng:
        Random source; one draw for the category, one more for potions,
        treasure, and monsters to pick the magnitude.
    config:
        Game rules.  Defaults to :class:`GameConfig`.
    """
    config = config or GameConfig()
    category = roll_category(rng.random_float(), config)

    if category is CardCategory.TRAP:
        magnitude = config.trap_damage
    elif category is CardCategory.POTION:
        magnitude = rng.random_choice(config.potion_amounts)
    elif category is CardCategory.TREASURE:
        magnitude = rng.random_choice(config.treasure_rewards)
    else:
        magnitude = rng.random_choice(config.monster_magnitudes)

    return EncounterCard(id=card_id, category=category, magnitude=magnitude)


def generate_room(
    rng: GameRNG,
    config: GameConfig | None = None,
) -> list[EncounterCard]:
    """Deal a fresh room of ``cards_per_room`` hidden cards."""
    config = config or GameConfig()
    return [generate_card(i, rng, config) for i in range(config.cards_per_room)]
