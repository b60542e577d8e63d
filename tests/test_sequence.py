"""Tests for LCS alignment and change regions."""

from versemerge.core.diff.sequence import align, change_regions, lcs_length
from versemerge.core.models import ChangeRegion, DiffOp, DiffOpType


def _rebuild(ops, a, b):
    """Rebuild b from a and the operations."""
    out = []
    for op in ops:
        if op.op == DiffOpType.EQUAL:
            assert a[op.a_start:op.a_end] == b[op.b_start:op.b_end]
            out.extend(a[op.a_start:op.a_end])
        elif op.op == DiffOpType.INSERT:
            out.extend(b[op.b_start:op.b_end])
    return out


class TestLcsLength:
    """Tests for the longest common subsequence length."""

    def test_classic_example(self):
        assert lcs_length("ABCBDAB", "BDCABA") == 4

    def test_identical(self):
        assert lcs_length("abc", "abc") == 3

    def test_empty(self):
        assert lcs_length("", "abc") == 0
        assert lcs_length([], []) == 0

    def test_symmetric(self):
        assert lcs_length("kitten", "sitting") == lcs_length("sitting", "kitten")


class TestAlign:
    """Tests for the sequence aligner."""

    def test_both_empty(self):
        assert align([], []) == []

    def test_identical(self):
        assert align("abc", "abc") == [DiffOp(DiffOpType.EQUAL, 0, 3, 0, 3)]

    def test_all_deleted(self):
        assert align("abc", "") == [DiffOp(DiffOpType.DELETE, 0, 3, 0, 0)]

    def test_all_inserted(self):
        assert align("", "ab") == [DiffOp(DiffOpType.INSERT, 0, 0, 0, 2)]

    def test_replacement_in_middle(self):
        ops = align(list("abcd"), list("axcd"))
        assert ops == [
            DiffOp(DiffOpType.EQUAL, 0, 1, 0, 1),
            DiffOp(DiffOpType.DELETE, 1, 2, 1, 1),
            DiffOp(DiffOpType.INSERT, 2, 2, 1, 2),
            DiffOp(DiffOpType.EQUAL, 2, 4, 2, 4),
        ]

    def test_deletions_come_first_on_ties(self):
        ops = align("ab", "ba")
        assert [op.op for op in ops] == [
            DiffOpType.DELETE, DiffOpType.EQUAL, DiffOpType.INSERT
        ]
        assert ops[0] == DiffOp(DiffOpType.DELETE, 0, 1, 0, 0)

    def test_same_type_operations_are_coalesced(self):
        ops = align(["a", "b", "c"], ["x", "y", "z"])
        assert ops == [
            DiffOp(DiffOpType.DELETE, 0, 3, 0, 0),
            DiffOp(DiffOpType.INSERT, 3, 3, 0, 3),
        ]

    def test_covers_both_inputs(self):
        a = "the quick brown fox jumps over the lazy dog".split()
        b = "a quick brown cat jumps over the dog today".split()
        ops = align(a, b)
        assert sum(op.a_length for op in ops) == len(a)
        assert sum(op.b_length for op in ops) == len(b)
        assert _rebuild(ops, a, b) == b

    def test_equal_tokens_equal_lcs(self):
        a = list("abcabba")
        b = list("cbabac")
        ops = align(a, b)
        equal = sum(op.a_length for op in ops if op.is_equal)
        assert equal == lcs_length(a, b)

    def test_repeated_punctuation_is_fast(self):
        a = ["."] * 400 + ["end"]
        b = ["."] * 399 + ["fin"]
        ops = align(a, b)
        assert _rebuild(ops, a, b) == b

    def test_deterministic(self):
        a = "one two three two one".split()
        b = "two one three one two".split()
        assert align(a, b) == align(a, b)


class TestChangeRegions:
    """Tests for grouping operations into change regions."""

    def test_no_changes(self):
        assert change_regions(align("abc", "abc")) == []

    def test_replacement_is_one_region(self):
        regions = change_regions(align(list("abcd"), list("axcd")))
        assert regions == [ChangeRegion(1, 2, 1, 2)]
        assert regions[0].is_modification

    def test_insertion_and_deletion(self):
        regions = change_regions(align(list("abc"), list("abxc")))
        assert regions == [ChangeRegion(2, 2, 2, 3)]
        assert regions[0].is_insertion

        regions = change_regions(align(list("abc"), list("ac")))
        assert regions == [ChangeRegion(1, 2, 1, 1)]
        assert regions[0].is_deletion

    def test_separate_regions(self):
        regions = change_regions(align(list("abcde"), list("xbcdy")))
        assert regions == [ChangeRegion(0, 1, 0, 1), ChangeRegion(4, 5, 4, 5)]
