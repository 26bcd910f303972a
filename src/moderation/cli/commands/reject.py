"""moderation reject -- reject a pending change."""

from __future__ import annotations

import click


@click.command()
@click.argument("pending_id", type=int)
@click.option("--moderator", required=True, envvar="MODERATION_USER", help="Name recorded as rejecting moderator.")
@click.pass_context
def reject(ctx: click.Context, pending_id: int, moderator: str) -> None:
    """Reject PENDING_ID."""
    from moderation.cli import _moderation_session

    with _moderation_session(ctx) as (m, console):
        m.reject(pending_id, moderator)
        console.print(f"Rejected #{pending_id}")
