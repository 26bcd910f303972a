"""Diff of a pending change against the current document.

Provides compute_change_diff() which compares the latest text of a
document with the text a pending edit proposes and returns a ChangeDiff
with unified diff lines.  Read-only: nothing here writes to the store or
the queue.
"""
from __future__ import annotations

import difflib
from dataclasses import dataclass, field
from typing import Literal


@dataclass(frozen=True)
class ChangeDiff:
    """Unified diff between a document and a pending change.

    Attributes:
        pending_id: The pending change being shown.
        document: Title the change applies to.
        from_rev_id: Latest revision the diff starts from (None for a
            document that does not exist yet).
        diff_lines: Unified diff lines, without trailing newlines.
        nodiff_reason: Why there is nothing to show: ``"no-changes"`` when
            the pending text equals the current text (a null edit),
            ``"move"`` for a pending rename.  None when diff_lines is set.
    """

    pending_id: int
    document: str
    from_rev_id: int | None = None
    diff_lines: list[str] = field(default_factory=list)
    nodiff_reason: Literal["no-changes", "move"] | None = None

    @property
    def null_edit(self) -> bool:
        return self.nodiff_reason == "no-changes"

    @property
    def lines_added(self) -> int:
        return sum(1 for line in self.diff_lines if line.startswith("+") and not line.startswith("+++"))

    @property
    def lines_removed(self) -> int:
        return sum(1 for line in self.diff_lines if line.startswith("-") and not line.startswith("---"))

    def pprint(self) -> None:
        """Pretty-print this diff with colored unified diff output."""
        from moderation.formatting import pprint_change_diff
        pprint_change_diff(self)


def compute_change_diff(
    pending_id: int,
    document: str,
    current_text: str,
    proposed_text: str,
    *,
    from_rev_id: int | None = None,
    context_lines: int = 3,
) -> ChangeDiff:
    """Diff *proposed_text* against *current_text* line by line.

    Args:
        pending_id: The pending change being shown.
        document: Title the change applies to.
        current_text: Latest text of the document ("" if it is missing).
        proposed_text: Text of the pending edit.
        from_rev_id: Revision *current_text* was read from.
        context_lines: Unchanged lines shown around each hunk.

    Returns:
        ChangeDiff with the unified diff, or ``nodiff_reason="no-changes"``
        when the texts are equal.
    """
    from_label = f"r{from_rev_id}" if from_rev_id is not None else "(new)"
    diff_lines = list(
        difflib.unified_diff(
            current_text.splitlines(),
            proposed_text.splitlines(),
            fromfile=f"{document} {from_label}",
            tofile=f"{document} #{pending_id}",
            n=context_lines,
            lineterm="",
        )
    )
    # A trailing newline alone yields no line difference
    if not diff_lines and current_text != proposed_text:
        diff_lines = [
            f"--- {document} {from_label}",
            f"+++ {document} #{pending_id}",
            "@@ trailing newline changed @@",
        ]
    return ChangeDiff(
        pending_id=pending_id,
        document=document,
        from_rev_id=from_rev_id,
        diff_lines=diff_lines,
        nodiff_reason=None if diff_lines else "no-changes",
    )
