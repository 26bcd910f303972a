"""Hypothesis strategies for line-based documents.

Documents are lists of short lines drawn from a small alphabet, so that
generated edits often touch the same lines.
"""

from hypothesis import strategies as st

line = st.text(alphabet="abcxyz ", min_size=0, max_size=6)

lines = st.lists(line, min_size=0, max_size=12)


@st.composite
def edited(draw, base: list[str]) -> list[str]:
    """Apply a random sequence of line insertions, deletions and replacements."""
    result = list(base)
    for _ in range(draw(st.integers(min_value=0, max_value=3))):
        op = draw(st.sampled_from(["insert", "delete", "replace"]))
        if op == "insert" or not result:
            pos = draw(st.integers(min_value=0, max_value=len(result)))
            result.insert(pos, draw(line))
        elif op == "delete":
            pos = draw(st.integers(min_value=0, max_value=len(result) - 1))
            del result[pos]
        else:
            pos = draw(st.integers(min_value=0, max_value=len(result) - 1))
            result[pos] = draw(line)
    return result


@st.composite
def document_triples(draw) -> tuple[list[str], list[str], list[str]]:
    """(base, a, b) where a and b are independent edits of base."""
    base = draw(lines)
    return base, draw(edited(base)), draw(edited(base))
