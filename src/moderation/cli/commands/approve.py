"""moderation approve / approve-all -- apply pending changes."""

from __future__ import annotations

import click

from moderation.cli.formatting import format_result


@click.command()
@click.argument("pending_id", type=int)
@click.pass_context
def approve(ctx: click.Context, pending_id: int) -> None:
    """Approve PENDING_ID.  Exits 1 if the change could not be applied."""
    from moderation.cli import _moderation_session

    with _moderation_session(ctx) as (m, console):
        result = m.approve(pending_id)
        format_result(pending_id, result, console)
        if not result.ok:
            raise SystemExit(1)


@click.command("approve-all")
@click.argument("author")
@click.pass_context
def approve_all(ctx: click.Context, author: str) -> None:
    """Approve every pending change by AUTHOR, oldest first."""
    from moderation.cli import _moderation_session

    with _moderation_session(ctx) as (m, console):
        changes = m.pending(author)
        if not changes:
            console.print(f"[dim]No pending changes by {author}.[/dim]")
            return
        results = m.approve_all(author)
        for change, result in zip(changes, results):
            format_result(change.pending_id, result, console)
        if not all(r.ok for r in results):
            raise SystemExit(1)
