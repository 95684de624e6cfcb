"""Simulate a few weeks of play and render the resulting leaderboards.

Usage:
    python scripts/show_leaderboard.py [--weeks 3] [--runs 200] [--format text|markdown]
                                       [--config dungeon.json]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime, timezone

from dungeon_gems.config import load_config
from dungeon_gems.leaderboard import (
    LeaderboardAggregator,
    format_address,
    format_countdown,
    generate_seasons_report,
    generate_text_report,
    next_distribution,
    prize_distribution,
    render_markdown,
)
from dungeon_gems.ledger import InMemoryLedger, LedgerStore
from dungeon_gems.sim.play_agents import CautiousAgent, RandomAgent
from dungeon_gems.sim.runner import BatchRunner


class SimulatedClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start_ms: int = 0) -> None:
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms


async def build_boards(store: LedgerStore, config) -> tuple:
    aggregator = LeaderboardAggregator(InMemoryLedger(store, "0xviewer"), config.leaderboard)
    return await asyncio.gather(
        aggregator.compute_all_time_board(),
        aggregator.compute_weekly_board(),
        aggregator.compute_past_seasons(),
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Render leaderboards from simulated play")
    parser.add_argument("--weeks", type=int, default=3, help="Season weeks to simulate")
    parser.add_argument("--runs", type=int, default=200, help="Runs per week")
    parser.add_argument("--seed", type=int, default=42, help="Base seed")
    parser.add_argument("--pool", type=float, default=1.0, help="Weekly prize pool")
    parser.add_argument("--format", choices=["text", "markdown"], default="text")
    parser.add_argument("--config", type=str, default=None, help="JSON config file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    config = load_config(args.config)
    week_ms = config.leaderboard.week_length_ms

    clock = SimulatedClock()
    store = LedgerStore(clock=clock, week_length_ms=week_ms)
    addresses = [f"0x{i:040x}" for i in range(1, 13)]

    for week in range(args.weeks):
        if week:
            clock.now_ms += week_ms
            store.advance_week()
        agent_class = RandomAgent if week % 2 == 0 else CautiousAgent
        print(f"Week {store.anchor.current_week}: {args.runs} runs with {agent_class.__name__}...")
        BatchRunner(store, agent_class=agent_class, config=config.game,
                    addresses=addresses).run_batch(args.runs, base_seed=args.seed + week * args.runs)

    all_time, weekly, seasons = asyncio.run(build_boards(store, config))

    print()
    if args.format == "markdown":
        print(render_markdown(all_time))
        print(render_markdown(weekly))
    else:
        print(generate_text_report(all_time))
        print(generate_text_report(weekly))
    print(generate_seasons_report(seasons))

    payout = next_distribution(datetime.now(timezone.utc), config.leaderboard)
    remaining = payout - datetime.now(timezone.utc)
    prizes = prize_distribution(args.pool, config.leaderboard)
    print(f"Next distribution: {payout:%a %Y-%m-%d %H:%M} UTC ({format_countdown(remaining)})")
    for place, (entry, prize) in enumerate(zip(weekly.entries, prizes), start=1):
        print(f"  {place}. {format_address(entry.address)}  {prize:.3f}")


if __name__ == "__main__":
    main()
