"""All-time and weekly leaderboards derived from the ledger's event log."""

from dungeon_gems.leaderboard.aggregator import LeaderboardAggregator, parse_event
from dungeon_gems.leaderboard.models import (
    BoardResult,
    EventScan,
    LeaderboardEntry,
    PlayerWeeklyBest,
    SeasonsResult,
    SeasonSummary,
    WeekWindow,
)
from dungeon_gems.leaderboard.report import (
    format_address,
    generate_seasons_report,
    generate_text_report,
    render_markdown,
)
from dungeon_gems.leaderboard.windows import (
    format_countdown,
    next_distribution,
    prize_distribution,
    week_for_timestamp,
    week_window,
)

__all__ = [
    "BoardResult",
    "EventScan",
    "LeaderboardAggregator",
    "LeaderboardEntry",
    "PlayerWeeklyBest",
    "SeasonSummary",
    "SeasonsResult",
    "WeekWindow",
    "format_address",
    "format_countdown",
    "generate_seasons_report",
    "generate_text_report",
    "next_distribution",
    "parse_event",
    "prize_distribution",
    "render_markdown",
    "week_for_timestamp",
    "week_window",
]
