"""Rich formatting helpers for the moderation CLI.

Rich auto-detects TTY and degrades gracefully when piped (no ANSI codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape

if TYPE_CHECKING:
    from moderation.models.result import ConsequenceResult
    from moderation.pending import PendingChange


def get_console() -> Console:
    """Create a Rich Console that auto-detects TTY for graceful pipe degradation."""
    return Console(stderr=False)


def format_change(change: PendingChange, console: Console) -> None:
    """Display one pending change in full."""
    from moderation.formatting import format_timestamp

    info = change.info
    console.print(f"[yellow]#{info.pending_id}[/yellow] [cyan]{info.kind}[/cyan] {escape(info.document)}")
    if info.new_document:
        console.print(f"  Target:  {escape(info.new_document)}")
    console.print(f"  Author:  {escape(info.author_name)}")
    console.print(f"  Time:    {format_timestamp(info.timestamp)}")
    console.print(f"  Status:  {change.status}")
    if info.comment:
        console.print(f"  Comment: {escape(info.comment)}")
    if info.base_rev_id is not None:
        console.print(f"  Base:    r{info.base_rev_id}")
    if info.tags:
        console.print(f"  Tags:    {escape(', '.join(info.tags))}")
    if info.conflict:
        console.print("  [red]Edit conflict: needs manual merge[/red]")


def format_result(pending_id: int, result: ConsequenceResult, console: Console) -> None:
    """Display the outcome of one approval."""
    if result.ok:
        rev = f" as [yellow]r{result.rev_id}[/yellow]" if result.rev_id is not None else ""
        console.print(f"Approved #{pending_id}{rev}")
    else:
        console.print(
            f"[red]Failed[/red] #{pending_id}: {result.failure} ({escape(result.message)})",
            highlight=False,
        )


def format_error(message: str, console: Console) -> None:
    """Display an error message."""
    console.print(f"[red]Error:[/red] {message}", highlight=False)
