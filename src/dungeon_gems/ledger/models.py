"""Pydantic v2 models for data exchanged with the ledger.

Raw events arrive as plain dicts in the ledger's camelCase JSON
(``roomsReached``, ``timestampMs``); :class:`RunCompletedEvent` accepts
either that or snake_case field names.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _LedgerModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RunCompletedEvent(_LedgerModel):
    """A finished run as recorded on the ledger."""

    address: str = Field(min_length=1)
    success: bool
    rooms_reached: int = Field(ge=0)
    gems_collected: int = Field(ge=0)
    timestamp_ms: int = Field(ge=0)


class EventPage(_LedgerModel):
    """One page of run-completed events, newest first."""

    events: list[dict[str, Any]] = Field(default_factory=list)
    next_cursor: str | None = None
    has_more: bool = False


class WeekAnchor(_LedgerModel):
    """Season registry state used to place week windows.

    The window of ``current_week`` ends at ``week_start_timestamp_ms``;
    every earlier week ends one week length before the next.
    """

    current_week: int = Field(ge=1)
    week_start_timestamp_ms: int


class LifetimeTotals(_LedgerModel):
    """Per-wallet counters kept by the progress registry."""

    total_runs: int = Field(default=0, ge=0)
    successful_runs: int = Field(default=0, ge=0)
