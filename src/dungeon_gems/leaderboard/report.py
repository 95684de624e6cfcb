"""Leaderboard rendering.

Two output formats:
- Text report: fixed-width table for the terminal.
- Markdown: rendered from ``templates/leaderboard.md.j2`` for posting.
"""

from __future__ import annotations

from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from dungeon_gems.leaderboard.models import BoardResult, SeasonsResult

_TEMPLATE_DIR = Path(__file__).parent / "templates"


def format_address(address: str) -> str:
    """Shorten a wallet address to ``0x12ab...cdef``."""
    if len(address) <= 10:
        return address
    return f"{address[:6]}...{address[-4:]}"


def _title(board: BoardResult) -> str:
    if board.week is None:
        return "All-Time Leaderboard"
    return f"Week {board.week} Leaderboard"


def _status_lines(board: BoardResult) -> list[str]:
    lines: list[str] = []
    if board.failed:
        lines.append(f"  Leaderboard unavailable: {board.error}")
    if board.truncated:
        lines.append("  Note: scan hit its page limit; older runs are not counted.")
    if board.malformed:
        lines.append(f"  Note: skipped {board.malformed} malformed event(s).")
    return lines


def generate_text_report(board: BoardResult) -> str:
    """Generate a human-readable table of *board*."""
    lines: list[str] = []

    lines.append("=" * 60)
    lines.append(_title(board))
    if board.window is not None:
        lines.append(f"Window: [{board.window.start_ms}, {board.window.end_ms}) ms")
    lines.append("=" * 60)

    status = _status_lines(board)
    if status:
        lines.append("")
        lines.extend(status)

    if not board.failed:
        lines.append("")
        if not board.entries:
            lines.append("  No runs yet.")
        else:
            lines.append(f"  {'#':>3}  {'Wallet':13s}  {'Rooms':>5}  {'Gems':>5}  {'Wins':>5}  {'Runs':>5}")
            for rank, e in enumerate(board.entries, start=1):
                lines.append(
                    f"  {rank:>3}  {format_address(e.address):13s}"
                    f"  {e.best_rooms_cleared:>5}  {e.best_gems_collected:>5}"
                    f"  {e.successful_runs:>5}  {e.total_runs:>5}"
                )

    lines.append("")
    return "\n".join(lines)


def generate_seasons_report(result: SeasonsResult) -> str:
    """Generate a summary of past season podiums."""
    lines: list[str] = []
    lines.append("=" * 60)
    lines.append("Past Seasons")
    lines.append("=" * 60)

    if result.failed:
        lines.append(f"  Seasons unavailable: {result.error}")
    elif not result.seasons:
        lines.append("  No completed seasons yet.")
    for season in result.seasons:
        lines.append("")
        lines.append(f"## Week {season.week}")
        if not season.podium:
            lines.append("  No runs.")
        for place, e in enumerate(season.podium, start=1):
            lines.append(
                f"  {place}. {format_address(e.address)}"
                f"  gems={e.best_gems_collected}  rooms={e.best_rooms_cleared}"
            )

    lines.append("")
    return "\n".join(lines)


def render_markdown(board: BoardResult) -> str:
    """Render *board* as a Markdown table."""
    env = Environment(
        loader=FileSystemLoader(str(_TEMPLATE_DIR)),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["short_address"] = format_address
    template = env.get_template("leaderboard.md.j2")
    return template.render(
        title=_title(board),
        board=board,
        notes=[line.strip() for line in _status_lines(board)],
    )
