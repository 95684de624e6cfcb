"""Telemetry data models for per-run statistics.

``RunTelemetry`` captures what a batch analysis needs without storing the
whole session history: outcome, depth, score, and what each room held.

It is a plain ``dataclass`` (not a Pydantic model) to keep collection
cheap during batch runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class RunTelemetry:
    """Stats from a single run.

    Attributes
    ----------
    seed:
        The master RNG seed used for this run.
    address:
        Wallet address the run was played under.
    final_result:
        ``"completed"`` if the player exited alive, ``"died"`` otherwise.
    rooms_reached:
        Room the run ended in.
    gems_collected:
        Final score.
    monsters_defeated:
        Monsters blocked or beaten across the run.
    fights:
        Number of turn-based fights entered.
    hp_at_each_room:
        HP when each room was dealt.
    encounter_kinds:
        Outcome ``kind`` of the card resolved in each room.
    ledger_errors:
        Ledger operations that failed during the run.
    """

    seed: int
    address: str = ""
    final_result: str = "died"
    rooms_reached: int = 0
    gems_collected: int = 0
    monsters_defeated: int = 0
    fights: int = 0
    traps_triggered: int = 0
    treasures_found: int = 0
    hp_at_each_room: list[int] = field(default_factory=list)
    encounter_kinds: list[str] = field(default_factory=list)
    ledger_errors: list[str] = field(default_factory=list)
