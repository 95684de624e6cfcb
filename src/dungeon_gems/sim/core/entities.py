"""Entity models: the adventurer's stats and the monsters they fight.

All data classes use Pydantic v2 BaseModel for validation and
serialization.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


# ---------------------------------------------------------------------------
# Baseline
# ---------------------------------------------------------------------------

class BaselineStats(BaseModel):
    """Caller-owned character stats a run starts from.

    These come from outside the run (e.g. the adventurer NFT) and survive
    ``reset()``; everything else about the player is run-scoped.
    """

    max_hp: int = Field(default=4, gt=0)
    attack: int = Field(default=1, gt=0)
    defense: int = Field(default=1, ge=0)


# ---------------------------------------------------------------------------
# PlayerStats
# ---------------------------------------------------------------------------

class PlayerStats(BaseModel):
    """The adventurer's live stats during a run."""

    hp: int
    max_hp: int
    attack: int
    defense: int
    gems: int = 0

    @model_validator(mode="after")
    def _check_bounds(self) -> PlayerStats:
        if not 0 <= self.hp <= self.max_hp:
            raise ValueError(f"hp must be within [0, {self.max_hp}], got {self.hp}")
        if self.gems < 0:
            raise ValueError(f"gems must be >= 0, got {self.gems}")
        return self

    @classmethod
    def from_baseline(cls, baseline: BaselineStats) -> PlayerStats:
        """Fresh stats at full HP with no gems."""
        return cls(
            hp=baseline.max_hp,
            max_hp=baseline.max_hp,
            attack=baseline.attack,
            defense=baseline.defense,
            gems=0,
        )

    @property
    def is_dead(self) -> bool:
        return self.hp <= 0

    def set_hp(self, value: int) -> None:
        """Set HP, clamped to ``[0, max_hp]``."""
        self.hp = max(0, min(self.max_hp, value))

    def add_gems(self, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"add_gems amount must be >= 0, got {amount}")
        self.gems += amount


# ---------------------------------------------------------------------------
# Monster
# ---------------------------------------------------------------------------

class Monster(BaseModel):
    """A monster instance, created fresh for a single combat."""

    name: str
    hp: int
    max_hp: int
    damage_range: tuple[int, int]
    """Inclusive ``(min, max)`` damage per successful hit."""
    hit_chance: float = Field(default=1.0, gt=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_ranges(self) -> Monster:
        low, high = self.damage_range
        if low < 0 or high < low:
            raise ValueError(f"invalid damage_range {self.damage_range}")
        if not 0 <= self.hp <= self.max_hp:
            raise ValueError(f"hp must be within [0, {self.max_hp}], got {self.hp}")
        return self

    @property
    def is_dead(self) -> bool:
        return self.hp <= 0

    def take_damage(self, amount: int) -> int:
        """Apply *amount* damage, clamping HP at 0.  Returns HP actually lost."""
        if amount <= 0:
            return 0
        hp_lost = min(self.hp, amount)
        self.hp -= hp_lost
        return hp_lost
