"""In-memory ledger for local play, simulation, and tests.

``LedgerStore`` is the shared "chain": an append-only event log, the open
run records, and the season anchor.  ``InMemoryLedger`` is a
:class:`LedgerClient` bound to one wallet address, so several simulated
players can write to the same store.

Failures can be injected per operation name (``"submit_start_run"``,
``"query_run_completed_events"``, ...) to exercise error paths.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable

from dungeon_gems.errors import LedgerUnavailable
from dungeon_gems.ledger.client import LedgerClient
from dungeon_gems.ledger.models import EventPage, LifetimeTotals, WeekAnchor

logger = logging.getLogger(__name__)

_DEFAULT_WEEK_MS = 7 * 24 * 60 * 60 * 1000


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class RunRecord:
    """An open (or closed) run on the ledger."""

    handle: str
    address: str
    hp: int
    attack: int
    rooms: int = 1
    closed: bool = False


class LedgerStore:
    """Shared in-memory state behind one or more :class:`InMemoryLedger`.

    Parameters
    ----------
    page_size:
        Events per page returned by ``query_run_completed_events``.
    clock:
        Callable returning the current time in epoch milliseconds.
    week_length_ms:
        Length of a season week.
    """

    def __init__(
        self,
        page_size: int = 50,
        clock: Callable[[], int] = _wall_clock_ms,
        week_length_ms: int = _DEFAULT_WEEK_MS,
    ) -> None:
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self.page_size = page_size
        self.clock = clock
        self.week_length_ms = week_length_ms
        self.events: list[dict[str, Any]] = []
        self.runs: dict[str, RunRecord] = {}
        self.anchor = WeekAnchor(
            current_week=1,
            week_start_timestamp_ms=clock() + week_length_ms,
        )
        self.fail_on: set[str] = set()
        self.fail_after_pages: int | None = None
        """When set, event queries beyond this many pages fail."""
        self.query_count = 0

    # ------------------------------------------------------------------
    # Seeding helpers
    # ------------------------------------------------------------------

    def record_event(
        self,
        address: str,
        success: bool,
        rooms_reached: int,
        gems_collected: int,
        timestamp_ms: int | None = None,
    ) -> dict[str, Any]:
        """Append a run-completed event and return the raw dict."""
        event = {
            "address": address,
            "success": success,
            "roomsReached": rooms_reached,
            "gemsCollected": gems_collected,
            "timestampMs": self.clock() if timestamp_ms is None else timestamp_ms,
        }
        self.events.append(event)
        return event

    def append_raw(self, event: dict[str, Any]) -> None:
        """Append an arbitrary (possibly malformed) event dict."""
        self.events.append(event)

    def set_week(self, current_week: int, week_start_timestamp_ms: int) -> None:
        self.anchor = WeekAnchor(
            current_week=current_week,
            week_start_timestamp_ms=week_start_timestamp_ms,
        )

    def advance_week(self) -> WeekAnchor:
        """Roll the season over to the next week."""
        self.set_week(
            self.anchor.current_week + 1,
            self.anchor.week_start_timestamp_ms + self.week_length_ms,
        )
        return self.anchor

    # ------------------------------------------------------------------
    # Internals used by InMemoryLedger
    # ------------------------------------------------------------------

    def check(self, operation: str) -> None:
        if operation in self.fail_on:
            raise LedgerUnavailable(operation, "injected failure")

    def page(self, cursor: str | None) -> EventPage:
        self.query_count += 1
        if self.fail_after_pages is not None and self.query_count > self.fail_after_pages:
            raise LedgerUnavailable("query_run_completed_events", "injected failure")
        # Cursor: append-order index of the oldest event already served.
        try:
            end = int(cursor) if cursor is not None else len(self.events)
        except ValueError as exc:
            raise LedgerUnavailable(
                "query_run_completed_events", f"bad cursor {cursor!r}",
            ) from exc
        if not 0 <= end <= len(self.events):
            raise LedgerUnavailable(
                "query_run_completed_events", f"bad cursor {cursor!r}",
            )
        start = max(0, end - self.page_size)
        chunk = self.events[start:end][::-1]
        has_more = start > 0
        return EventPage(
            events=[dict(e) for e in chunk],
            next_cursor=str(start) if has_more else None,
            has_more=has_more,
        )

    def totals_for(self, address: str) -> LifetimeTotals:
        mine = [e for e in self.events if e.get("address") == address]
        return LifetimeTotals(
            total_runs=len(mine),
            successful_runs=sum(1 for e in mine if e.get("success") is True),
        )


class InMemoryLedger(LedgerClient):
    """A :class:`LedgerClient` acting for *address* against a shared store.

    Parameters
    ----------
    store:
        The shared ledger state.
    address:
        Wallet address that signs this client's submissions.
    latency:
        Seconds to sleep inside every call, to surface ordering bugs.
    """

    def __init__(
        self,
        store: LedgerStore,
        address: str,
        latency: float = 0.0,
    ) -> None:
        self.store = store
        self.address = address
        self.latency = latency

    async def _enter(self, operation: str) -> None:
        if self.latency:
            await asyncio.sleep(self.latency)
        self.store.check(operation)

    # ------------------------------------------------------------------
    # Submissions
    # ------------------------------------------------------------------

    async def submit_start_run(self, baseline_hp: int, baseline_atk: int) -> str:
        await self._enter("submit_start_run")
        handle = uuid.uuid4().hex
        self.store.runs[handle] = RunRecord(
            handle=handle, address=self.address, hp=baseline_hp, attack=baseline_atk,
        )
        logger.debug("Run %s opened for %s", handle, self.address)
        return handle

    async def submit_advance_room(self, run_handle: str, new_hp: int) -> None:
        await self._enter("submit_advance_room")
        record = self._open_run("submit_advance_room", run_handle)
        record.rooms += 1
        record.hp = new_hp

    async def submit_end_run(
        self, run_handle: str, survived: bool, gems_collected: int,
    ) -> None:
        await self._enter("submit_end_run")
        record = self._open_run("submit_end_run", run_handle)
        record.closed = True
        self.store.record_event(
            address=record.address,
            success=survived,
            rooms_reached=record.rooms,
            gems_collected=gems_collected,
        )

    def _open_run(self, operation: str, run_handle: str) -> RunRecord:
        record = self.store.runs.get(run_handle)
        if record is None:
            raise LedgerUnavailable(operation, f"unknown run {run_handle!r}")
        if record.closed:
            raise LedgerUnavailable(operation, f"run {run_handle!r} is closed")
        if record.address != self.address:
            raise LedgerUnavailable(operation, f"run {run_handle!r} belongs to another wallet")
        return record

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def query_run_completed_events(
        self, cursor: str | None = None,
    ) -> EventPage:
        await self._enter("query_run_completed_events")
        return self.store.page(cursor)

    async def query_week_anchor(self) -> WeekAnchor:
        await self._enter("query_week_anchor")
        return self.store.anchor.model_copy()

    async def query_player_lifetime_totals(self, address: str) -> LifetimeTotals:
        await self._enter("query_player_lifetime_totals")
        return self.store.totals_for(address)
