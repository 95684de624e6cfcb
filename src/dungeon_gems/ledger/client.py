"""Base class for ledger clients.

A ledger client submits the economic side of a run (entry fee, room
advances, close-out) and serves the append-only log of completed runs
the leaderboard is rebuilt from.  Every method is a coroutine and may
fail; implementations raise :class:`LedgerUnavailable` (or let transport
errors escape, which callers wrap).
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from dungeon_gems.ledger.models import EventPage, LifetimeTotals, WeekAnchor


class LedgerClient(ABC):
    """Interface the run manager and leaderboard aggregator consume."""

    # ------------------------------------------------------------------
    # Submissions
    # ------------------------------------------------------------------

    @abstractmethod
    async def submit_start_run(self, baseline_hp: int, baseline_atk: int) -> str:
        """Charge the entry fee and create a run record.

        Returns
        -------
        str
            Opaque handle of the new run record.
        """

    @abstractmethod
    async def submit_advance_room(self, run_handle: str, new_hp: int) -> None:
        """Record that the run moved to its next room with *new_hp*."""

    @abstractmethod
    async def submit_end_run(
        self, run_handle: str, survived: bool, gems_collected: int,
    ) -> None:
        """Close the run record and emit a run-completed event."""

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @abstractmethod
    async def query_run_completed_events(
        self, cursor: str | None = None,
    ) -> EventPage:
        """Return the page of events after *cursor* (newest first).

        ``cursor=None`` starts from the most recent event.
        """

    @abstractmethod
    async def query_week_anchor(self) -> WeekAnchor:
        """Return the current week number and its boundary timestamp."""

    @abstractmethod
    async def query_player_lifetime_totals(self, address: str) -> LifetimeTotals:
        """Return lifetime run counters for *address*."""
