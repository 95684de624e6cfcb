"""Compare RandomAgent vs CautiousAgent over many dungeon runs.

Every run is recorded on a shared in-memory ledger, so the script ends by
printing the boards that ledger produces.

Usage:
    python scripts/compare_agents.py [--runs N] [--out PATH]
"""

from __future__ import annotations

import argparse
import asyncio
import time

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from dungeon_gems.leaderboard import LeaderboardAggregator, generate_text_report
from dungeon_gems.ledger import InMemoryLedger, LedgerStore
from dungeon_gems.sim.play_agents import CautiousAgent, RandomAgent
from dungeon_gems.sim.runner import BatchRunner

COLORS = {"RandomAgent": "#e74c3c", "CautiousAgent": "#2ecc71"}


def run_comparison(n_runs: int = 500, out_path: str = "agent_comparison.png") -> None:
    store = LedgerStore()
    results = {}
    for label, agent_class in [("RandomAgent", RandomAgent), ("CautiousAgent", CautiousAgent)]:
        print(f"\nRunning {n_runs} runs with {label}...")
        addresses = [f"0x{label.lower()}{i:02d}" for i in range(8)]
        runner = BatchRunner(store, agent_class=agent_class, addresses=addresses)
        t0 = time.time()
        telemetry = runner.run_batch(n_runs=n_runs, base_seed=0)
        elapsed = time.time() - t0

        escapes = sum(1 for r in telemetry if r.final_result == "completed")
        rooms = np.array([r.rooms_reached for r in telemetry])
        gems = np.array([r.gems_collected for r in telemetry])
        kills = np.array([r.monsters_defeated for r in telemetry])
        banked = np.array([r.gems_collected for r in telemetry if r.final_result == "completed"])

        results[label] = {
            "escape_rate": escapes / n_runs * 100,
            "escapes": escapes,
            "rooms": rooms,
            "gems": gems,
            "kills": kills,
            "banked": banked,
            "elapsed": elapsed,
        }

        print(f"  Time: {elapsed:.1f}s ({elapsed/n_runs*1000:.1f}ms/run)")
        print(f"  Escape rate: {escapes}/{n_runs} ({escapes/n_runs*100:.1f}%)")
        print(f"  Avg rooms: {rooms.mean():.1f} (median {np.median(rooms):.0f}, max {rooms.max()})")
        print(f"  Avg gems: {gems.mean():.1f}")
        if banked.size:
            print(f"  Avg gems banked on escape: {banked.mean():.1f}")
        print(f"  Avg monsters defeated: {kills.mean():.1f}")

    generate_charts(results, n_runs, out_path)
    print_boards(store)


def generate_charts(results: dict, n_runs: int, out_path: str) -> None:
    fig, axes = plt.subplots(2, 2, figsize=(14, 10))
    fig.suptitle(f"RandomAgent vs CautiousAgent, {n_runs} runs each", fontsize=16, fontweight="bold")
    labels = list(results.keys())

    # --- Chart 1: Escape Rate ---
    ax = axes[0, 0]
    rates = [results[l]["escape_rate"] for l in labels]
    bars = ax.bar(labels, rates, color=[COLORS[l] for l in labels], edgecolor="black", linewidth=0.5)
    for bar, rate, label in zip(bars, rates, labels):
        ax.text(bar.get_x() + bar.get_width()/2, bar.get_height() + 0.5,
                f'{rate:.1f}%\n({results[label]["escapes"]}/{n_runs})',
                ha="center", va="bottom", fontsize=11, fontweight="bold")
    ax.set_ylabel("Escape Rate (%)")
    ax.set_title("Runs Ending Alive")
    ax.set_ylim(0, max(rates) * 1.4 + 5)

    # --- Chart 2: Rooms Reached ---
    ax = axes[0, 1]
    max_room = max(int(results[l]["rooms"].max()) for l in labels)
    bins = np.arange(0.5, max_room + 1.5, 1)
    for label in labels:
        rooms = results[label]["rooms"]
        ax.hist(rooms, bins=bins, alpha=0.6, label=f"{label} (avg={rooms.mean():.1f})",
                color=COLORS[label], edgecolor="black", linewidth=0.3)
    ax.set_xlabel("Rooms Reached")
    ax.set_ylabel("Count")
    ax.set_title("Depth Distribution")
    ax.legend()

    # --- Chart 3: Gems Collected ---
    ax = axes[1, 0]
    max_gems = max(int(results[l]["gems"].max()) for l in labels)
    bins = np.arange(-5, max_gems + 15, 10)
    for label in labels:
        gems = results[label]["gems"]
        ax.hist(gems, bins=bins, alpha=0.6, label=f"{label} (avg={gems.mean():.1f})",
                color=COLORS[label], edgecolor="black", linewidth=0.3)
    ax.set_xlabel("Gems Per Run")
    ax.set_ylabel("Count")
    ax.set_title("Score Distribution")
    ax.legend()

    # --- Chart 4: Summary Table ---
    ax = axes[1, 1]
    ax.axis("off")
    row_labels = ["Escape Rate", "Avg Rooms", "Median Rooms", "Max Rooms",
                  "Avg Gems", "Avg Kills", "Time (s)"]
    table_data = []
    for metric in row_labels:
        row = []
        for label in labels:
            r = results[label]
            if metric == "Escape Rate":
                row.append(f'{r["escape_rate"]:.1f}%')
            elif metric == "Avg Rooms":
                row.append(f'{r["rooms"].mean():.1f}')
            elif metric == "Median Rooms":
                row.append(f'{np.median(r["rooms"]):.0f}')
            elif metric == "Max Rooms":
                row.append(f'{r["rooms"].max()}')
            elif metric == "Avg Gems":
                row.append(f'{r["gems"].mean():.1f}')
            elif metric == "Avg Kills":
                row.append(f'{r["kills"].mean():.1f}')
            elif metric == "Time (s)":
                row.append(f'{r["elapsed"]:.1f}')
        table_data.append(row)

    table = ax.table(cellText=table_data, rowLabels=row_labels, colLabels=labels,
                     cellLoc="center", loc="center")
    table.auto_set_font_size(False)
    table.set_fontsize(11)
    table.scale(1.0, 1.6)
    for j, label in enumerate(labels):
        table[0, j].set_facecolor(COLORS[label])
        table[0, j].set_text_props(color="white", fontweight="bold")

    plt.tight_layout()
    plt.savefig(out_path, dpi=150, bbox_inches="tight")
    print(f"\nChart saved to {out_path}")


def print_boards(store: LedgerStore) -> None:
    aggregator = LeaderboardAggregator(InMemoryLedger(store, "0xviewer"))
    print()
    print(generate_text_report(asyncio.run(aggregator.compute_all_time_board())))
    print(generate_text_report(asyncio.run(aggregator.compute_weekly_board())))


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--runs", type=int, default=500, help="Number of runs per agent")
    parser.add_argument("--out", default="agent_comparison.png", help="Chart output path")
    args = parser.parse_args()
    run_comparison(args.runs, args.out)
