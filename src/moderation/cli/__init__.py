"""Moderation CLI -- terminal interface for reviewing the moderation queue.

This module is NEVER imported from moderation/__init__.py.
It is only loaded via the ``moderation`` entry point defined in pyproject.toml.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING

try:
    import click
except ImportError:
    raise ImportError(
        "CLI dependencies not installed. Install with: pip install moderation-engine[cli]"
    ) from None

from moderation.cli.formatting import format_error, get_console

if TYPE_CHECKING:
    from collections.abc import Iterator

    from rich.console import Console

    from moderation.moderation import Moderation


@click.group()
@click.option(
    "--db",
    default=".moderation.db",
    envvar="MODERATION_DB",
    help="Path to moderation database.",
)
@click.pass_context
def cli(ctx: click.Context, db: str) -> None:
    """Moderation: review and approve queued changes."""
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db


def _get_moderation(ctx: click.Context) -> Moderation:
    """Open a Moderation instance from Click context."""
    import os

    from moderation.moderation import Moderation

    db_path = ctx.obj["db_path"]
    if db_path != ":memory:" and not os.path.exists(db_path):
        format_error(f"Database not found: {db_path}", get_console())
        raise SystemExit(1)
    return Moderation.open(path=db_path)


@contextmanager
def _moderation_session(ctx: click.Context) -> Iterator[tuple[Moderation, Console]]:
    """Context manager that opens Moderation, yields (moderation, console), and handles cleanup.

    Ensures the database is closed on exit and formats exceptions as CLI errors.
    """
    console = get_console()
    try:
        m = _get_moderation(ctx)
        try:
            yield m, console
        finally:
            m.close()
    except SystemExit:
        raise
    except Exception as e:
        format_error(str(e), console)
        raise SystemExit(1) from None


# Register subcommands after cli group is defined
from moderation.cli.commands.show import show  # noqa: E402
from moderation.cli.commands.approve import approve, approve_all  # noqa: E402
from moderation.cli.commands.reject import reject  # noqa: E402

cli.add_command(show)
cli.add_command(approve)
cli.add_command(approve_all)
cli.add_command(reject)
