"""Line-based three-way merge.

Implements the classic diff3 scheme: regions that are unchanged in both
derived texts are used as synchronisation points, and every region in
between is taken from whichever side changed it.  A region changed
differently on both sides is a conflict, and the merge fails.

Changes on adjacent lines (no unchanged line between them) are treated
as a conflict, as diff3 does.
"""

from __future__ import annotations

import difflib
from typing import Sequence

# (base_start, base_end, a_start, a_end, b_start, b_end)
_Region = tuple[int, int, int, int, int, int]


def _intersect(ra: tuple[int, int], rb: tuple[int, int]) -> tuple[int, int] | None:
    start = max(ra[0], rb[0])
    end = min(ra[1], rb[1])
    if start < end:
        return start, end
    return None


def _sync_regions(
    base: Sequence[str], a: Sequence[str], b: Sequence[str]
) -> list[_Region]:
    """Return base regions left untouched by both *a* and *b*.

    Always ends with a zero-length sentinel region at the end of all
    three sequences.
    """
    a_blocks = difflib.SequenceMatcher(None, base, a, autojunk=False).get_matching_blocks()
    b_blocks = difflib.SequenceMatcher(None, base, b, autojunk=False).get_matching_blocks()

    regions: list[_Region] = []
    ia = ib = 0
    while ia < len(a_blocks) and ib < len(b_blocks):
        a_base, a_match, a_len = a_blocks[ia]
        b_base, b_match, b_len = b_blocks[ib]
        overlap = _intersect((a_base, a_base + a_len), (b_base, b_base + b_len))
        if overlap is not None:
            start, end = overlap
            length = end - start
            a_start = a_match + (start - a_base)
            b_start = b_match + (start - b_base)
            regions.append(
                (start, end, a_start, a_start + length, b_start, b_start + length)
            )
        # Advance whichever block ends first
        if a_base + a_len < b_base + b_len:
            ia += 1
        else:
            ib += 1

    regions.append((len(base), len(base), len(a), len(a), len(b), len(b)))
    return regions


def merge_lines(
    base: Sequence[str], a: Sequence[str], b: Sequence[str]
) -> list[str] | None:
    """Merge two derived line sequences against their common ancestor.

    Returns:
        The merged lines, or None if any region was changed differently
        on both sides.
    """
    merged: list[str] = []
    iz = ia = ib = 0
    for z_start, z_end, a_start, a_end, b_start, b_end in _sync_regions(base, a, b):
        base_part = list(base[iz:z_start])
        a_part = list(a[ia:a_start])
        b_part = list(b[ib:b_start])

        if a_part == b_part:
            merged.extend(a_part)
        elif a_part == base_part:
            merged.extend(b_part)
        elif b_part == base_part:
            merged.extend(a_part)
        else:
            return None

        merged.extend(base[z_start:z_end])
        iz, ia, ib = z_end, a_end, b_end
    return merged


def merge3(base: str, proposed: str, current: str) -> str | None:
    """Three-way merge of document texts.

    Args:
        base: Text both sides started from (the baseline revision).
        proposed: Text of the queued change.
        current: Text of the document's latest revision.

    Returns:
        The merged text, or None if the changes conflict.
    """
    if proposed == current or base == proposed:
        return current
    if base == current:
        return proposed

    merged = merge_lines(base.split("\n"), proposed.split("\n"), current.split("\n"))
    if merged is None:
        return None
    return "\n".join(merged)
