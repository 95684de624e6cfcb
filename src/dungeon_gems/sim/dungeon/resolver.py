"""Encounter resolution: the effect of one card on the adventurer.

``resolve_card`` is a pure function.  It never clamps HP below zero (the
run manager does that when it applies the outcome and checks for death)
and never touches the random source.
"""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel

from dungeon_gems.config import GameConfig
from dungeon_gems.sim.core.session import (
    CardCategory,
    CardState,
    EncounterCard,
    EncounterOutcome,
)


def resolve_card(
    card: EncounterCard,
    player_defense: int,
    player_hp: int,
    player_max_hp: int,
    config: GameConfig | None = None,
) -> EncounterOutcome:
    """Compute the stat delta and log message for *card*.

    Parameters
    ----------
    card:
        The revealed card.
    player_defense:
        Defense used to block monster cards.  Traps ignore it.
    player_hp, player_max_hp:
        Current and maximum HP; potions never heal past ``player_max_hp``.
    config:
        Game rules (trap damage, full-restore sentinel).
    """
    config = config or GameConfig()

    if card.category is CardCategory.MONSTER:
        return _resolve_monster(card.magnitude, player_defense, player_hp)
    elif card.category is CardCategory.TREASURE:
        return EncounterOutcome(
            new_hp=player_hp,
            gems_delta=card.magnitude,
            message=f"You found {card.magnitude} gems!",
            kind="treasure",
            params={"gems": card.magnitude},
        )
    elif card.category is CardCategory.TRAP:
        damage = config.trap_damage
        return EncounterOutcome(
            new_hp=player_hp - damage,
            hp_lost=damage,
            message=f"Trap triggered! You lose {damage} HP.",
            kind="trap",
            params={"damage": damage},
        )
    else:
        return _resolve_potion(
            card.magnitude, player_hp, player_max_hp, config.full_restore_sentinel,
        )


def _resolve_monster(attack: int, defense: int, hp: int) -> EncounterOutcome:
    if defense >= attack:
        return EncounterOutcome(
            new_hp=hp,
            defeated=True,
            message=f"You blocked the Monster (ATK {attack}) with your defense!",
            kind="monster_blocked",
            params={"attack": attack, "defense": defense},
        )
    damage = attack - defense
    return EncounterOutcome(
        new_hp=hp - damage,
        hp_lost=damage,
        message=(
            f"Monster (ATK {attack}) broke through your defense! "
            f"You lose {damage} HP."
        ),
        kind="monster_hit",
        params={"attack": attack, "defense": defense, "damage": damage},
    )


def _resolve_potion(
    amount: int, hp: int, max_hp: int, full_restore: int,
) -> EncounterOutcome:
    if amount == full_restore:
        restored = max(0, max_hp - hp)
        return EncounterOutcome(
            new_hp=max(hp, max_hp),
            hp_gained=restored,
            message=f"Full Restore Potion! HP fully restored (+{restored} HP)!",
            kind="potion_full",
            params={"restored": restored},
        )
    restored = max(0, min(amount, max_hp - hp))
    return EncounterOutcome(
        new_hp=hp + restored,
        hp_gained=restored,
        message=f"Small Potion! Restored {restored} HP.",
        kind="potion_small",
        params={"restored": restored, "amount": amount},
    )


# ---------------------------------------------------------------------------
# Room summary
# ---------------------------------------------------------------------------

class RoomSummary(BaseModel):
    """Tally of the resolved cards in one or more rooms."""

    monsters_defeated: int = 0
    treasures_found: int = 0
    traps_triggered: int = 0
    potions_used: int = 0
    gems_collected: int = 0


def summarize_room(
    cards: Iterable[EncounterCard],
    outcomes: dict[int, EncounterOutcome] | None = None,
) -> RoomSummary:
    """Count what the resolved cards in *cards* did.

    Monster kills come from *outcomes* (keyed by card id) when given,
    since whether a monster was beaten depends on how it was resolved.
    """
    outcomes = outcomes or {}
    summary = RoomSummary()
    for card in cards:
        if card.state is not CardState.RESOLVED:
            continue
        outcome = outcomes.get(card.id)
        if card.category is CardCategory.MONSTER:
            if outcome is not None and outcome.defeated:
                summary.monsters_defeated += 1
        elif card.category is CardCategory.TREASURE:
            summary.treasures_found += 1
            summary.gems_collected += card.magnitude
        elif card.category is CardCategory.TRAP:
            summary.traps_triggered += 1
        else:
            summary.potions_used += 1
    return summary
