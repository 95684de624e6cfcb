"""Pydantic v2 models for leaderboard output.

Boards are derived, never stored: every query replays the ledger's event
log.  A :class:`BoardResult` always says whether it can be trusted:
``failed`` means the table is empty because the ledger could not be read,
``truncated`` means the scan stopped at its page cap.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from dungeon_gems.ledger.models import RunCompletedEvent


class LeaderboardEntry(BaseModel):
    """One ranked wallet."""

    address: str
    best_rooms_cleared: int = 0
    best_gems_collected: int = 0
    successful_runs: int = 0
    total_runs: int = 0


class WeekWindow(BaseModel):
    """Half-open ``[start_ms, end_ms)`` interval of one season week."""

    week: int
    start_ms: int
    end_ms: int

    def contains(self, timestamp_ms: int) -> bool:
        return self.start_ms <= timestamp_ms < self.end_ms


class EventScan(BaseModel):
    """Validated events from one pass over the ledger."""

    events: list[RunCompletedEvent] = Field(default_factory=list)
    malformed: int = 0
    pages: int = 0
    truncated: bool = False


class BoardResult(BaseModel):
    """A ranked table plus the flags needed to render it honestly."""

    entries: list[LeaderboardEntry] = Field(default_factory=list)
    failed: bool = False
    error: str | None = None
    truncated: bool = False
    malformed: int = 0
    week: int | None = None
    window: WeekWindow | None = None

    @classmethod
    def failure(cls, error: str, week: int | None = None) -> BoardResult:
        return cls(failed=True, error=error, week=week)


class PlayerWeeklyBest(BaseModel):
    """A wallet's best single run in a week; zeros when it has none."""

    address: str
    week: int | None = None
    score: int = 0
    """Gems collected in the best run."""
    rooms: int = 0
    failed: bool = False
    error: str | None = None

    @property
    def has_run(self) -> bool:
        return self.score > 0 or self.rooms > 0


class SeasonSummary(BaseModel):
    """Podium of one completed week."""

    week: int
    window: WeekWindow
    winner: LeaderboardEntry | None = None
    podium: list[LeaderboardEntry] = Field(default_factory=list)


class SeasonsResult(BaseModel):
    """Past completed weeks, newest first."""

    current_week: int | None = None
    seasons: list[SeasonSummary] = Field(default_factory=list)
    failed: bool = False
    error: str | None = None
    truncated: bool = False
