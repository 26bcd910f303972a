"""PendingChange: a reviewable handle on one queued change.

Returned by :meth:`Moderation.get` and :meth:`Moderation.pending`.  Wraps
a PendingChangeInfo snapshot with methods to approve or reject the change
through its Moderation instance, plus Rich display and an interactive
review loop for CLI usage.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from rich.markup import escape

from moderation.models.change import ChangeStatus, PendingChangeInfo

if TYPE_CHECKING:
    from moderation.diff import ChangeDiff
    from moderation.models.result import ConsequenceResult
    from moderation.moderation import Moderation


def _format_value_for_display(value: Any) -> str:
    """Format a value as Rich markup for table display, truncating long content."""
    if value is None:
        return "[dim]None[/dim]"
    if isinstance(value, str):
        if len(value) > 80:
            return escape(repr(value[:77] + "..."))
        return escape(repr(value))
    if isinstance(value, list):
        if len(value) == 0:
            return "[]"
        if len(value) > 5:
            return f"[{len(value)} items]"
        return escape("[" + ", ".join(repr(v) for v in value) + "]")
    return escape(str(value))


@dataclass(repr=False)
class PendingChange:
    """A queued change awaiting a moderator's decision.

    Fields:
        info: Snapshot of the queue row, refreshed after each action.
        moderation: The Moderation instance that owns the queue.
        last_result: Result of the most recent approve() call.
    """

    info: PendingChangeInfo
    moderation: Moderation
    last_result: ConsequenceResult | None = field(default=None)

    @property
    def pending_id(self) -> int:
        return self.info.pending_id

    @property
    def status(self) -> ChangeStatus:
        return self.info.status

    def refresh(self) -> PendingChange:
        """Reload the snapshot from the queue."""
        self.info = self.moderation.get(self.pending_id).info
        return self

    # -- Actions ----------------------------------------------------------

    def approve(self) -> ConsequenceResult:
        """Approve the change.  See :meth:`Moderation.approve`."""
        self.last_result = self.moderation.approve(self.pending_id)
        self.refresh()
        return self.last_result

    def reject(self, moderator: str) -> None:
        """Reject the change.  See :meth:`Moderation.reject`."""
        self.moderation.reject(self.pending_id, moderator)
        self.refresh()

    def diff(self) -> ChangeDiff:
        """Diff against the current document.  See :meth:`Moderation.diff`."""
        return self.moderation.diff(self.pending_id)

    def to_dict(self) -> dict:
        data = self.info.model_dump(mode="json")
        data["status"] = str(self.status)
        return data

    # -- Display ----------------------------------------------------------

    def __repr__(self) -> str:
        return f"<PendingChange: #{self.pending_id} {self.info.kind}, {self.status}>"

    def pprint(self) -> None:
        """Pretty-print this change using Rich."""
        from rich.console import Console
        from rich.table import Table

        from moderation.formatting import format_timestamp

        console = Console()
        status_color = {
            ChangeStatus.PENDING: "yellow",
            ChangeStatus.MERGED: "green",
            ChangeStatus.REJECTED: "red",
        }.get(self.status, "white")

        console.print(
            f"[bold]#{self.pending_id}[/bold] {escape(str(self.info.kind))} "
            f"[bold]{escape(self.info.document)}[/bold] by {escape(self.info.author_name)} "
            f"[dim]{format_timestamp(self.info.timestamp)}[/dim]"
        )
        console.print(f"  status: [{status_color}]{self.status}[/{status_color}]")
        if self.info.conflict:
            console.print("  [red]edit conflict: needs manual merge[/red]")

        skip_fields = {"pending_id", "document", "author_name", "kind", "timestamp"}
        table = Table(title="Fields", show_header=True, header_style="bold")
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        for name, value in self.info:
            if name in skip_fields:
                continue
            table.add_row(name, _format_value_for_display(value))
        console.print(table)

    def review(self, moderator: str, *, prompt_fn: Callable[[str], str] | None = None) -> None:
        """Interactive review flow: pprint then prompt for approve/reject.

        Args:
            moderator: Name recorded on rejection.
            prompt_fn: Optional callback for reading user input.
                Defaults to :func:`input`.  Pass a custom function for
                testing or non-TTY contexts.
        """
        _prompt = prompt_fn or input
        self.pprint()
        while self.status == ChangeStatus.PENDING:
            choice = _prompt("\n[approve/reject/skip] > ").strip().lower()
            if choice == "approve":
                result = self.approve()
                print(f"Approved #{self.pending_id}: {result}")
                if not result.ok:
                    break
            elif choice == "reject":
                self.reject(moderator)
                print(f"Rejected #{self.pending_id}.")
            elif choice == "skip":
                print("Skipped (still pending).")
                break
            else:
                print("Enter 'approve', 'reject', or 'skip'.")
