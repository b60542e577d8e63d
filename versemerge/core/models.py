"""
Core data models for the verse merge engine.

This module defines the data structures shared by the diff and merge
engines:
- Granularities and alignment operations
- Change regions derived from an alignment
- Merge regions, conflict records and merge results

All models are:
- Free of I/O (usable from any frontend or service)
- Created fresh per call and not mutated once returned
- Type-hinted for IDE support
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import NamedTuple, Optional


# =============================================================================
# Enumerations
# =============================================================================

class Granularity(Enum):
    """Token unit used for comparison."""
    LINE = auto()       # Full lines
    WORD = auto()       # Whitespace-delimited words
    GRAPHEME = auto()   # User-perceived characters
    CHARACTER = auto()  # Raw bytes (similarity scoring only)


class DiffOpType(Enum):
    """Type of an alignment operation."""
    EQUAL = auto()   # Tokens present in both sequences
    INSERT = auto()  # Tokens present only in the second sequence
    DELETE = auto()  # Tokens present only in the first sequence


class LineClassification(Enum):
    """Classification of an ancestor region during a three-way merge."""
    UNCHANGED = auto()       # Neither side touched the region
    LOCAL_ONLY = auto()      # Only the local edit changed it
    REMOTE_ONLY = auto()     # Only the remote edit changed it
    BOTH_IDENTICAL = auto()  # Both changed it the same way
    BOTH_DIFFERENT = auto()  # Both changed it, differently


# =============================================================================
# Alignment Models
# =============================================================================

@dataclass(frozen=True)
class DiffOp:
    """
    One alignment operation over two token sequences.

    Holds index ranges into the original sequences rather than copies of
    the tokens. For EQUAL both ranges have the same length; DELETE has an
    empty b range anchored at b_start; INSERT has an empty a range
    anchored at a_start.
    """
    op: DiffOpType
    a_start: int
    a_end: int
    b_start: int
    b_end: int

    @property
    def a_length(self) -> int:
        return self.a_end - self.a_start

    @property
    def b_length(self) -> int:
        return self.b_end - self.b_start

    @property
    def is_equal(self) -> bool:
        return self.op == DiffOpType.EQUAL


@dataclass(frozen=True)
class ChangeRegion:
    """A maximal run of non-equal operations, as ranges in base and other."""
    base_start: int
    base_end: int
    other_start: int
    other_end: int

    @property
    def is_insertion(self) -> bool:
        """True if tokens were only added (empty base range)."""
        return self.base_start == self.base_end

    @property
    def is_deletion(self) -> bool:
        """True if tokens were only removed (empty other range)."""
        return self.other_start == self.other_end

    @property
    def is_modification(self) -> bool:
        return not self.is_insertion and not self.is_deletion


# =============================================================================
# Merge Models
# =============================================================================

class ConflictRecord(NamedTuple):
    """
    A point where the merger had to pick the remote value.

    Carries the three original texts of the conflicting unit and the
    text that was written into the merged result.
    """
    label: str
    ancestor: str
    local: str
    remote: str
    merged: str


@dataclass
class MergeRegion:
    """
    A classified region in a three-way merge.

    Ranges are indices into the ancestor units (lines or verse segments)
    the merge ran on.
    """
    classification: LineClassification
    base_start: int           # Start unit in ancestor
    base_end: int             # End unit in ancestor (exclusive)
    lines: list[str]          # Resulting units for this region
    base_lines: list[str] = field(default_factory=list)
    local_lines: list[str] = field(default_factory=list)
    remote_lines: list[str] = field(default_factory=list)
    granularity: Granularity = Granularity.LINE
    conflict: Optional[ConflictRecord] = None

    @property
    def is_conflict(self) -> bool:
        return self.conflict is not None

    @property
    def line_count(self) -> int:
        return len(self.lines)


@dataclass
class MergeResult:
    """
    Complete result of a three-way merge.

    The merged text always exists. An empty conflict list means the
    result is a clean union of both edits.
    """
    merged_text: str
    conflicts: list[ConflictRecord] = field(default_factory=list)
    regions: list[MergeRegion] = field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return len(self.conflicts) > 0

    @property
    def conflict_count(self) -> int:
        return len(self.conflicts)

    def as_tuple(self) -> tuple[str, list[ConflictRecord]]:
        """Return the (merged text, conflicts) pair."""
        return self.merged_text, list(self.conflicts)
