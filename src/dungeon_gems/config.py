"""Game and leaderboard configuration.

Defaults reproduce the live game: four cards per room, a 50/30/10/10
monster/treasure/trap/potion split, 1-HP traps, 80 % player hit chance,
top-10 boards over 7-day windows.  Configs serialise to/from JSON.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator


class MonsterResolution(str, Enum):
    """How a selected monster card is resolved."""

    COMBAT = "combat"
    """Every monster card starts a turn-based combat."""
    TIERED = "tiered"
    """Blocked outright when defense >= magnitude, otherwise combat."""
    FLAT = "flat"
    """Defense-vs-magnitude damage only.  Deprecated."""


class EndRunFailurePolicy(str, Enum):
    """What to do when the close-run submission fails."""

    SURFACE = "surface"
    """Raise ``LedgerUnavailable`` to the caller."""
    DISCARD = "discard"
    """Log a warning and drop the submission."""
    QUEUE = "queue"
    """Keep the submission for a later ``flush_pending()``."""


class CategoryThresholds(BaseModel):
    """Cumulative upper bounds for the card category bands.

    A draw ``r`` is a trap when ``r < trap``, a potion when ``r < potion``,
    treasure when ``r < treasure`` and a monster otherwise.
    """

    trap: float = 0.10
    potion: float = 0.20
    treasure: float = 0.50

    @model_validator(mode="after")
    def _check_order(self) -> CategoryThresholds:
        if not 0.0 <= self.trap <= self.potion <= self.treasure <= 1.0:
            raise ValueError(
                "category thresholds must satisfy 0 <= trap <= potion <= treasure <= 1"
            )
        return self


class GameConfig(BaseModel):
    """Rules for room generation, encounter resolution, and runs."""

    cards_per_room: int = 4
    category_thresholds: CategoryThresholds = Field(default_factory=CategoryThresholds)
    treasure_rewards: tuple[int, ...] = (10, 20, 30)
    potion_amounts: tuple[int, ...] = (1, 999)
    full_restore_sentinel: int = 999
    """Potion magnitude meaning "restore to max HP"."""
    monster_magnitudes: tuple[int, ...] = (1, 2, 3)
    """ATK values printed on monster cards."""
    trap_damage: int = 1
    player_hit_chance: float = 0.8
    monster_resolution: MonsterResolution = MonsterResolution.COMBAT
    pacing_delay: float = 0.0
    """Seconds to wait between revealing and resolving a card."""
    end_run_failure_policy: EndRunFailurePolicy = EndRunFailurePolicy.SURFACE

    @field_validator("treasure_rewards", "potion_amounts", "monster_magnitudes")
    @classmethod
    def _non_empty(cls, value: tuple[int, ...]) -> tuple[int, ...]:
        if not value:
            raise ValueError("magnitude tables must not be empty")
        return value

    @field_validator("player_hit_chance")
    @classmethod
    def _probability(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"player_hit_chance must be in [0, 1], got {value}")
        return value


class LeaderboardConfig(BaseModel):
    """Scan limits, board sizes, and week-window arithmetic."""

    top_n: int = 10
    max_pages: int = 50
    """Safety cap on event pages read per scan."""
    week_length_ms: int = 7 * 24 * 60 * 60 * 1000
    past_seasons: int = 5
    podium_size: int = 3
    prize_shares: tuple[float, ...] = (0.30, 0.20, 0.15)
    distribution_weekday: int = 4
    """Weekday of the weekly payout (Monday is 0)."""
    distribution_hour: int = 16
    distribution_minute: int = 20

    @field_validator("top_n", "max_pages", "week_length_ms")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError(f"must be positive, got {value}")
        return value


class DungeonConfig(BaseModel):
    """Top-level configuration file."""

    game: GameConfig = Field(default_factory=GameConfig)
    leaderboard: LeaderboardConfig = Field(default_factory=LeaderboardConfig)


def load_config(path: Path | str | None = None) -> DungeonConfig:
    """Load a :class:`DungeonConfig` from JSON, or return the defaults."""
    if path is None:
        return DungeonConfig()
    return DungeonConfig.model_validate_json(Path(path).read_text())


def save_config(config: DungeonConfig, path: Path | str) -> Path:
    """Write *config* as indented JSON and return the path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(config.model_dump_json(indent=2))
    return path
