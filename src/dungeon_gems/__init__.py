"""Dungeon crawl engine with turn-based combat and a ledger-backed leaderboard.

The run engine (``dungeon_gems.sim``) plays rooms of four face-down cards;
finished runs land on a ledger (``dungeon_gems.ledger``) whose event log
the leaderboard (``dungeon_gems.leaderboard``) replays into all-time and
weekly rankings.
"""

__version__ = "0.1.0"
