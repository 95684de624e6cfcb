"""Exception hierarchy shared by the run engine, combat engine, and leaderboard.

- **InvalidTransition**: an action was requested in a state that does not
  allow it.  Fatal to the call, not to the session.
- **LedgerUnavailable**: a ledger submission or query failed.  The run
  engine raises it *after* local state has advanced; the leaderboard
  converts it into an empty board with an error flag.
- **ExhaustedRetries**: the event scan hit its page cap.  Reported as a
  ``truncated`` flag, never raised out of the aggregator.
- **MalformedEvent**: a raw ledger event failed validation.  Skipped and
  counted.
"""

from __future__ import annotations

from typing import Any


class DungeonError(Exception):
    """Base class for every error raised by this package."""


class InvalidTransition(DungeonError):
    """An action was called outside the states that accept it.

    Parameters
    ----------
    action:
        Name of the rejected action (e.g. ``"continue_run"``).
    state:
        The state the session or combat was in when the action arrived.
    reason:
        Optional extra detail appended to the message.
    """

    def __init__(self, action: str, state: str, reason: str | None = None) -> None:
        self.action = action
        self.state = state
        self.reason = reason
        message = f"Cannot {action} while {state}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class LedgerUnavailable(DungeonError):
    """A ledger call failed or timed out.

    ``session`` holds the already-advanced run snapshot when the failure
    happened during a run lifecycle call, so callers can keep rendering
    local progress.
    """

    def __init__(
        self,
        operation: str,
        detail: str = "",
        session: Any | None = None,
    ) -> None:
        self.operation = operation
        self.detail = detail
        self.session = session
        message = f"Ledger call {operation} failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ExhaustedRetries(DungeonError):
    """The event scan stopped at its page cap before the stream ended."""

    def __init__(self, pages: int) -> None:
        self.pages = pages
        super().__init__(f"Stopped scanning after {pages} pages")


class MalformedEvent(DungeonError):
    """A ledger event is missing required fields or has invalid values."""

    def __init__(self, raw: Any, detail: str = "") -> None:
        self.raw = raw
        self.detail = detail
        super().__init__(f"Malformed run-completed event: {detail or raw!r}")
