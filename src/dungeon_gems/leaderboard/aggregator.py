"""Leaderboard aggregation over the ledger's run-completed event log.

There is no leaderboard table anywhere: each query pages through the
append-only event log (newest first), validates every event, and folds
the survivors into per-wallet bests.

Ranking keys, compared descending with the wallet address ascending as
the final tie-break so the order is total:

- All-time: ``(best rooms, best gems, successful runs)`` over successful
  runs only.  The top rows are enriched with lifetime totals.
- Weekly: best single run by ``(gems, rooms)``, then successful runs in
  the window.  Failed runs count toward the weekly score.

Failures never produce a partial board: a ledger error mid-scan yields an
empty :class:`BoardResult` with ``failed=True``.  Hitting the page cap
yields a bounded board flagged ``truncated``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from pydantic import ValidationError

from dungeon_gems.config import LeaderboardConfig
from dungeon_gems.errors import ExhaustedRetries, LedgerUnavailable, MalformedEvent
from dungeon_gems.leaderboard.models import (
    BoardResult,
    EventScan,
    LeaderboardEntry,
    PlayerWeeklyBest,
    SeasonsResult,
    SeasonSummary,
    WeekWindow,
)
from dungeon_gems.leaderboard.windows import week_for_timestamp, week_window
from dungeon_gems.ledger.models import RunCompletedEvent, WeekAnchor

if TYPE_CHECKING:
    from dungeon_gems.ledger.client import LedgerClient

logger = logging.getLogger(__name__)


@dataclass
class _Tally:
    """Running per-wallet aggregate during a fold."""

    address: str
    best_rooms: int = 0
    best_gems: int = 0
    successful_runs: int = 0
    total_runs: int = 0

    def to_entry(self) -> LeaderboardEntry:
        return LeaderboardEntry(
            address=self.address,
            best_rooms_cleared=self.best_rooms,
            best_gems_collected=self.best_gems,
            successful_runs=self.successful_runs,
            total_runs=self.total_runs,
        )


def parse_event(raw: Any) -> RunCompletedEvent:
    """Validate one raw ledger event.

    Raises
    ------
    MalformedEvent
        If a required field is missing or invalid.
    """
    if not isinstance(raw, dict):
        raise MalformedEvent(raw, f"expected an object, got {type(raw).__name__}")
    try:
        return RunCompletedEvent.model_validate(raw)
    except ValidationError as exc:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
        raise MalformedEvent(raw, f"invalid fields: {fields}") from exc


def rank_all_time(tallies: list[_Tally]) -> list[_Tally]:
    ranked = sorted(tallies, key=lambda t: t.address)
    return sorted(
        ranked,
        key=lambda t: (t.best_rooms, t.best_gems, t.successful_runs),
        reverse=True,
    )


def rank_weekly(tallies: list[_Tally]) -> list[_Tally]:
    ranked = sorted(tallies, key=lambda t: t.address)
    return sorted(
        ranked,
        key=lambda t: (t.best_gems, t.best_rooms, t.successful_runs),
        reverse=True,
    )


def fold_all_time(events: list[RunCompletedEvent]) -> list[_Tally]:
    """Per-wallet maxima over successful runs; wallets without a cleared
    room are dropped."""
    tallies: dict[str, _Tally] = {}
    for event in events:
        tally = tallies.setdefault(event.address, _Tally(event.address))
        tally.total_runs += 1
        if not event.success:
            continue
        tally.successful_runs += 1
        tally.best_rooms = max(tally.best_rooms, event.rooms_reached)
        tally.best_gems = max(tally.best_gems, event.gems_collected)
    return [t for t in tallies.values() if t.best_rooms > 0]


def fold_weekly(
    events: list[RunCompletedEvent],
    window: WeekWindow,
) -> list[_Tally]:
    """Per-wallet best single run inside *window*."""
    tallies: dict[str, _Tally] = {}
    for event in events:
        if not window.contains(event.timestamp_ms):
            continue
        tally = tallies.setdefault(event.address, _Tally(event.address))
        tally.total_runs += 1
        if event.success:
            tally.successful_runs += 1
        if (event.gems_collected, event.rooms_reached) > (tally.best_gems, tally.best_rooms):
            tally.best_gems = event.gems_collected
            tally.best_rooms = event.rooms_reached
    return list(tallies.values())


class LeaderboardAggregator:
    """Builds boards from a :class:`LedgerClient`'s event log.

    Stateless between calls: concurrent queries share nothing but the
    ledger client.

    Parameters
    ----------
    ledger:
        Client used for event pages, the week anchor, and lifetime totals.
    config:
        Board size, page cap, and week length.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        config: LeaderboardConfig | None = None,
    ) -> None:
        self.ledger = ledger
        self.config = config or LeaderboardConfig()

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    async def scan_events(
        self,
        cancel: asyncio.Event | None = None,
    ) -> EventScan:
        """Read the event log until it ends or the page cap is reached.

        Parameters
        ----------
        cancel:
            Checked between pages; once set the scan raises
            :class:`asyncio.CancelledError`.

        Raises
        ------
        LedgerUnavailable
            If any page request fails, or a page claims more events
            without a cursor to reach them.
        """
        scan = EventScan()
        cursor: str | None = None
        while True:
            if cancel is not None and cancel.is_set():
                raise asyncio.CancelledError("leaderboard scan cancelled")
            if scan.pages >= self.config.max_pages:
                scan.truncated = True
                logger.warning("%s; board may be incomplete", ExhaustedRetries(scan.pages))
                break
            page = await self._query("query_run_completed_events",
                                     self.ledger.query_run_completed_events, cursor)
            scan.pages += 1
            for raw in page.events:
                try:
                    scan.events.append(parse_event(raw))
                except MalformedEvent as exc:
                    scan.malformed += 1
                    logger.warning("Skipping event: %s", exc.detail)
            logger.debug("Scanned page %d (%d events)", scan.pages, len(page.events))
            if not page.has_more:
                break
            if page.next_cursor is None:
                raise LedgerUnavailable(
                    "query_run_completed_events", "has_more without cursor",
                )
            cursor = page.next_cursor
        return scan

    # ------------------------------------------------------------------
    # Boards
    # ------------------------------------------------------------------

    async def compute_all_time_board(
        self,
        cancel: asyncio.Event | None = None,
    ) -> BoardResult:
        """Top wallets by deepest successful run."""
        try:
            scan = await self.scan_events(cancel)
        except LedgerUnavailable as exc:
            logger.warning("All-time board unavailable: %s", exc)
            return BoardResult.failure(str(exc))

        top = rank_all_time(fold_all_time(scan.events))[: self.config.top_n]
        entries = await self._enrich([t.to_entry() for t in top])
        return BoardResult(
            entries=entries,
            truncated=scan.truncated,
            malformed=scan.malformed,
        )

    async def compute_weekly_board(
        self,
        week: int | None = None,
        cancel: asyncio.Event | None = None,
    ) -> BoardResult:
        """Top wallets by best single-run score inside one week."""
        try:
            window = await self._window(week)
            scan = await self.scan_events(cancel)
        except LedgerUnavailable as exc:
            logger.warning("Weekly board unavailable: %s", exc)
            return BoardResult.failure(str(exc), week=week)

        top = rank_weekly(fold_weekly(scan.events, window))[: self.config.top_n]
        return BoardResult(
            entries=[t.to_entry() for t in top],
            truncated=scan.truncated,
            malformed=scan.malformed,
            week=window.week,
            window=window,
        )

    async def compute_player_weekly_best(
        self,
        address: str,
        week: int | None = None,
        cancel: asyncio.Event | None = None,
    ) -> PlayerWeeklyBest:
        """Best ``(gems, rooms)`` single run of *address* in one week."""
        try:
            window = await self._window(week)
            scan = await self.scan_events(cancel)
        except LedgerUnavailable as exc:
            logger.warning("Weekly best for %s unavailable: %s", address, exc)
            return PlayerWeeklyBest(address=address, week=week, failed=True, error=str(exc))

        mine = [e for e in scan.events if e.address == address]
        tallies = fold_weekly(mine, window)
        if not tallies:
            return PlayerWeeklyBest(address=address, week=window.week)
        best = tallies[0]
        return PlayerWeeklyBest(
            address=address,
            week=window.week,
            score=best.best_gems,
            rooms=best.best_rooms,
        )

    async def compute_past_seasons(
        self,
        limit: int | None = None,
        cancel: asyncio.Event | None = None,
    ) -> SeasonsResult:
        """Podiums of the most recent completed weeks, newest first.

        One scan serves every week.
        """
        limit = self.config.past_seasons if limit is None else limit
        try:
            anchor = await self._anchor()
            scan = await self.scan_events(cancel)
        except LedgerUnavailable as exc:
            logger.warning("Past seasons unavailable: %s", exc)
            return SeasonsResult(failed=True, error=str(exc))

        last_completed = anchor.current_week - 1
        first = max(1, last_completed - limit + 1)
        by_week: dict[int, list[RunCompletedEvent]] = {}
        for event in scan.events:
            week = week_for_timestamp(anchor, event.timestamp_ms, self.config.week_length_ms)
            if first <= week <= last_completed:
                by_week.setdefault(week, []).append(event)

        seasons: list[SeasonSummary] = []
        for week in range(last_completed, first - 1, -1):
            window = week_window(anchor, week, self.config.week_length_ms)
            ranked = rank_weekly(fold_weekly(by_week.get(week, []), window))
            podium = [t.to_entry() for t in ranked[: self.config.podium_size]]
            seasons.append(SeasonSummary(
                week=week,
                window=window,
                winner=podium[0] if podium else None,
                podium=podium,
            ))
        return SeasonsResult(
            current_week=anchor.current_week,
            seasons=seasons,
            truncated=scan.truncated,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _anchor(self) -> WeekAnchor:
        return await self._query("query_week_anchor", self.ledger.query_week_anchor)

    async def _window(self, week: int | None) -> WeekWindow:
        anchor = await self._anchor()
        return week_window(anchor, week, self.config.week_length_ms)

    async def _enrich(self, entries: list[LeaderboardEntry]) -> list[LeaderboardEntry]:
        """Replace stream tallies with lifetime totals, fetched concurrently.

        A failed lookup keeps the tallies seen in the event log.
        """
        results = await asyncio.gather(
            *(self.ledger.query_player_lifetime_totals(e.address) for e in entries),
            return_exceptions=True,
        )
        enriched: list[LeaderboardEntry] = []
        for entry, totals in zip(entries, results):
            if isinstance(totals, asyncio.CancelledError):
                raise totals
            if isinstance(totals, BaseException):
                logger.warning("Lifetime totals for %s unavailable: %s", entry.address, totals)
                enriched.append(entry)
                continue
            enriched.append(entry.model_copy(update={
                "successful_runs": totals.successful_runs,
                "total_runs": totals.total_runs,
            }))
        return enriched

    async def _query(self, operation: str, call: Callable[..., Any], *args: Any) -> Any:
        try:
            return await call(*args)
        except LedgerUnavailable:
            raise
        except Exception as exc:  # ledger boundary: wrap any transport error
            raise LedgerUnavailable(operation, str(exc)) from exc
