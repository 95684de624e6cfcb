"""Week-window arithmetic and the weekly payout schedule.

The season registry publishes an anchor ``(current_week, anchor_ms)``.
Week ``w`` covers::

    end   = anchor_ms - (current_week - w) * week_length_ms
    start = end - week_length_ms

as a half-open interval ``[start, end)``: an event stamped exactly at a
boundary belongs to the later week.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from dungeon_gems.config import LeaderboardConfig
from dungeon_gems.leaderboard.models import WeekWindow
from dungeon_gems.ledger.models import WeekAnchor


def week_window(
    anchor: WeekAnchor,
    week: int | None = None,
    week_length_ms: int = LeaderboardConfig().week_length_ms,
) -> WeekWindow:
    """Return the window of *week* (default: the anchor's current week)."""
    if week is None:
        week = anchor.current_week
    if week < 1:
        raise ValueError(f"week must be >= 1, got {week}")
    end = anchor.week_start_timestamp_ms - (anchor.current_week - week) * week_length_ms
    return WeekWindow(week=week, start_ms=end - week_length_ms, end_ms=end)


def week_for_timestamp(
    anchor: WeekAnchor,
    timestamp_ms: int,
    week_length_ms: int = LeaderboardConfig().week_length_ms,
) -> int:
    """Return the week number whose window contains *timestamp_ms*.

    May be ``< 1`` (before the first season) or ``> current_week``.
    """
    offset = (anchor.week_start_timestamp_ms - 1 - timestamp_ms) // week_length_ms
    return anchor.current_week - offset


def next_distribution(
    now: datetime,
    config: LeaderboardConfig | None = None,
) -> datetime:
    """Return the next weekly payout time strictly after *now* (UTC).

    Defaults to Fridays at 16:20 UTC.
    """
    config = config or LeaderboardConfig()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    days_ahead = (config.distribution_weekday - now.weekday()) % 7
    candidate = (now + timedelta(days=days_ahead)).replace(
        hour=config.distribution_hour,
        minute=config.distribution_minute,
        second=0,
        microsecond=0,
    )
    if candidate <= now:
        candidate += timedelta(days=7)
    return candidate


def format_countdown(remaining: timedelta) -> str:
    """Render a countdown like ``"2d 3h 4m 5s"``, dropping leading zero units."""
    total = int(remaining.total_seconds())
    if total <= 0:
        return "Distribution ready!"
    days, rest = divmod(total, 86_400)
    hours, rest = divmod(rest, 3_600)
    minutes, seconds = divmod(rest, 60)
    if days > 0:
        return f"{days}d {hours}h {minutes}m {seconds}s"
    if hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    return f"{minutes}m {seconds}s"


def prize_distribution(
    pool_balance: float,
    config: LeaderboardConfig | None = None,
) -> list[float]:
    """Split the weekly pool between the podium (30 / 20 / 15 % by default)."""
    config = config or LeaderboardConfig()
    if pool_balance < 0:
        raise ValueError(f"pool_balance must be >= 0, got {pool_balance}")
    return [pool_balance * share for share in config.prize_shares]
