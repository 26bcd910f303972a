"""Pretty-print support for moderation output objects.

Uses rich library for formatted terminal output.
All pprint functions accept their target object and print to a rich Console.

To avoid circular imports, this module does NOT import domain models
at module level. Functions access object attributes dynamically.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text


def format_timestamp(ts: datetime, now: datetime | None = None) -> str:
    """Human-readable queue timestamp.

    Only the time ("14:05") when *ts* falls on the same day as *now*,
    otherwise time and date ("14:05, 3 March 2024").  Both are naive UTC.
    """
    if now is None:
        from moderation.storage.documents import utcnow

        now = utcnow()
    if ts.date() == now.date():
        return ts.strftime("%H:%M")
    return f"{ts.strftime('%H:%M')}, {ts.day} {ts.strftime('%B %Y')}"


def _make_console(file: Any = None) -> Console:
    """Create a Console, optionally writing to a file-like object."""
    if file is not None:
        return Console(file=file, force_terminal=True, width=100)
    return Console()


def pprint_result(result: Any, *, file: Any = None) -> None:
    """Pretty-print a ConsequenceResult.

    Args:
        result: A ConsequenceResult instance.
        file: Optional file-like object for output (used in tests).
    """
    console = _make_console(file)
    if result.ok:
        details = ", ".join(f"{k}={v}" for k, v in result.value.items())
        console.print(f"[green]ok[/green] {escape(details)}" if details else "[green]ok[/green]", highlight=False)
    else:
        console.print(f"[red]{result.failure}[/red] {escape(result.message)}", highlight=False)


def pprint_pending(changes: list[Any], *, file: Any = None, now: datetime | None = None) -> None:
    """Pretty-print a list of PendingChange handles as a queue table."""
    format_queue(changes, _make_console(file), now=now)


def format_queue(changes: list[Any], console: Console, *, now: datetime | None = None) -> None:
    """Render a list of PendingChange handles as a table on *console*."""
    if not changes:
        console.print("[dim]No pending changes.[/dim]")
        return

    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("#", style="yellow", justify="right")
    table.add_column("Time", style="dim")
    table.add_column("Kind", style="cyan")
    table.add_column("Document")
    table.add_column("Author")
    table.add_column("Comment")

    for change in changes:
        info = change.info
        document = escape(info.document)
        if info.new_document:
            document += f" -> {escape(info.new_document)}"
        if info.conflict:
            document += " [red](conflict)[/red]"
        table.add_row(
            str(info.pending_id),
            format_timestamp(info.timestamp, now),
            str(info.kind),
            document,
            escape(info.author_name),
            escape(info.comment),
        )
    console.print(table)


def pprint_change_diff(diff: Any, *, file: Any = None) -> None:
    """Pretty-print a ChangeDiff with colored unified diff output.

    Args:
        diff: A ChangeDiff instance.
        file: Optional file-like object for output (used in tests).
    """
    format_change_diff(diff, _make_console(file))


def format_change_diff(diff: Any, console: Console) -> None:
    """Render a ChangeDiff on *console*: green additions, red removals."""
    if diff.nodiff_reason == "move":
        console.print("[dim]Rename only; the text is unchanged.[/dim]")
        return
    if diff.null_edit:
        console.print("[dim]No changes (null edit).[/dim]")
        return

    for line in diff.diff_lines:
        if line.startswith("---") or line.startswith("+++"):
            console.print(Text(line, style="bold"))
        elif line.startswith("+"):
            console.print(Text(line, style="green"))
        elif line.startswith("-"):
            console.print(Text(line, style="red"))
        elif line.startswith("@@"):
            console.print(Text(line, style="cyan"))
        else:
            console.print(Text(line))
    console.print(
        f"[green]+{diff.lines_added}[/green] [red]-{diff.lines_removed}[/red]", highlight=False
    )
