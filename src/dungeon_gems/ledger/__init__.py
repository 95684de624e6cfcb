"""Ledger boundary: client interface, event models, and an in-memory ledger."""

from .client import LedgerClient
from .memory import InMemoryLedger, LedgerStore, RunRecord
from .models import EventPage, LifetimeTotals, RunCompletedEvent, WeekAnchor

__all__ = [
    "EventPage",
    "InMemoryLedger",
    "LedgerClient",
    "LedgerStore",
    "LifetimeTotals",
    "RunCompletedEvent",
    "RunRecord",
    "WeekAnchor",
]
