"""moderation show -- list the queue or show one pending change."""

from __future__ import annotations

import click

from moderation.cli.formatting import format_change


@click.command()
@click.argument("pending_id", required=False, type=int)
@click.option("--author", default=None, help="Only list changes by this author.")
@click.option("--no-diff", "no_diff", is_flag=True, help="Hide the diff against the current text.")
@click.pass_context
def show(ctx: click.Context, pending_id: int | None, author: str | None, no_diff: bool) -> None:
    """List pending changes, or show PENDING_ID in detail.

    A single change is followed by its diff against the document's
    current text.  Showing never modifies the queue.
    """
    from moderation.cli import _moderation_session
    from moderation.formatting import format_change_diff, format_queue

    with _moderation_session(ctx) as (m, console):
        if pending_id is not None:
            change = m.get(pending_id)
            format_change(change, console)
            if not no_diff:
                console.print()
                format_change_diff(change.diff(), console)
        else:
            format_queue(m.pending(author), console)
