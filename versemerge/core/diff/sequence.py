"""
Longest-common-subsequence alignment over token sequences.

The aligner fills a dynamic-programming table over the part of the inputs
that remains after stripping the common prefix and suffix, then walks it
left to right. Tokens are compared by equality only, so the same code
aligns lines, words, graphemes and bytes.
"""

from __future__ import annotations

from typing import Sequence

from versemerge.core.models import ChangeRegion, DiffOp, DiffOpType


def _common_affixes(a: Sequence, b: Sequence) -> tuple[int, int]:
    """Return the lengths of the common prefix and the common suffix."""
    limit = min(len(a), len(b))

    prefix = 0
    while prefix < limit and a[prefix] == b[prefix]:
        prefix += 1

    suffix = 0
    while (suffix < limit - prefix and
           a[len(a) - 1 - suffix] == b[len(b) - 1 - suffix]):
        suffix += 1

    return prefix, suffix


def lcs_length(a: Sequence, b: Sequence) -> int:
    """
    Length of the longest common subsequence of two sequences.

    Uses two rolling rows over the shorter sequence, so memory is
    O(min(n, m)).
    """
    prefix, suffix = _common_affixes(a, b)
    a_mid = a[prefix:len(a) - suffix]
    b_mid = b[prefix:len(b) - suffix]

    if len(b_mid) > len(a_mid):
        a_mid, b_mid = b_mid, a_mid

    if not b_mid:
        return prefix + suffix

    previous = [0] * (len(b_mid) + 1)
    for token_a in a_mid:
        current = [0] * (len(b_mid) + 1)
        for j, token_b in enumerate(b_mid):
            if token_a == token_b:
                current[j + 1] = previous[j] + 1
            else:
                current[j + 1] = max(previous[j + 1], current[j])
        previous = current

    return prefix + suffix + previous[-1]


def align(a: Sequence, b: Sequence) -> list[DiffOp]:
    """
    Align two token sequences.

    Args:
        a: Original tokens
        b: Edited tokens

    Returns:
        Ordered operations covering every token of both inputs exactly
        once. Adjacent operations of the same type are coalesced. When
        several alignments share the LCS length, deletions are taken as
        early as possible and kept contiguous.
    """
    n, m = len(a), len(b)
    prefix, suffix = _common_affixes(a, b)

    # Suffix table over the middle section: table[i][j] is the LCS length
    # of a[lo_a + i:hi_a] and b[lo_b + j:hi_b].
    lo_a, hi_a = prefix, n - suffix
    lo_b, hi_b = prefix, m - suffix
    rows, cols = hi_a - lo_a, hi_b - lo_b

    table = [[0] * (cols + 1) for _ in range(rows + 1)]
    for i in range(rows - 1, -1, -1):
        row = table[i]
        below = table[i + 1]
        token_a = a[lo_a + i]
        for j in range(cols - 1, -1, -1):
            if token_a == b[lo_b + j]:
                row[j] = below[j + 1] + 1
            else:
                row[j] = max(below[j], row[j + 1])

    ops: list[DiffOp] = []

    def emit(op_type: DiffOpType, a_pos: int, b_pos: int) -> None:
        a_step = 0 if op_type == DiffOpType.INSERT else 1
        b_step = 0 if op_type == DiffOpType.DELETE else 1
        if ops and ops[-1].op == op_type:
            last = ops[-1]
            ops[-1] = DiffOp(op_type, last.a_start, last.a_end + a_step,
                             last.b_start, last.b_end + b_step)
        else:
            ops.append(DiffOp(op_type, a_pos, a_pos + a_step,
                              b_pos, b_pos + b_step))

    for k in range(prefix):
        emit(DiffOpType.EQUAL, k, k)

    i = j = 0
    while i < rows and j < cols:
        if a[lo_a + i] == b[lo_b + j]:
            emit(DiffOpType.EQUAL, lo_a + i, lo_b + j)
            i += 1
            j += 1
        elif table[i + 1][j] >= table[i][j + 1]:
            emit(DiffOpType.DELETE, lo_a + i, lo_b + j)
            i += 1
        else:
            emit(DiffOpType.INSERT, lo_a + i, lo_b + j)
            j += 1

    while i < rows:
        emit(DiffOpType.DELETE, lo_a + i, lo_b + j)
        i += 1
    while j < cols:
        emit(DiffOpType.INSERT, lo_a + i, lo_b + j)
        j += 1

    for k in range(suffix):
        emit(DiffOpType.EQUAL, hi_a + k, hi_b + k)

    return ops


def change_regions(ops: Sequence[DiffOp]) -> list[ChangeRegion]:
    """
    Group consecutive non-equal operations into change regions.

    A deletion followed by an insertion becomes one replacement region.
    """
    regions: list[ChangeRegion] = []
    start: DiffOp | None = None
    end: DiffOp | None = None

    for op in ops:
        if op.is_equal:
            if start is not None:
                regions.append(ChangeRegion(
                    base_start=start.a_start,
                    base_end=end.a_end,
                    other_start=start.b_start,
                    other_end=end.b_end
                ))
                start = end = None
        else:
            if start is None:
                start = op
            end = op

    if start is not None:
        regions.append(ChangeRegion(
            base_start=start.a_start,
            base_end=end.a_end,
            other_start=start.b_start,
            other_end=end.b_end
        ))

    return regions
