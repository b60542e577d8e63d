"""
Verse boundary normalization for three-way merges.

When one version joins separate verse lines into a range (``\\v 1`` and
``\\v 2`` becoming ``\\v 1-2``) or splits a range back into separate
verses, the line structure of the three versions no longer lines up and
a line merge would see a many-to-one replacement. The normalizer finds
the verses whose segmentation differs between the versions and joins,
in every version, the lines of those verses into one multi-line segment.
The merge then compares like with like.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from versemerge.core.diff.tokens import split_lines
from versemerge.core.usfm import VerseMarker, verse_markers

# Inclusive 0-based line range joined into one segment.
LineSpan = tuple[int, int]


@dataclass
class NormalizedVersions:
    """
    The three versions cut into merge units.

    ``ancestor_spans`` gives, per ancestor unit, the 1-based first and last
    original line it covers.
    """
    ancestor: list[str]
    local: list[str]
    remote: list[str]
    ancestor_spans: list[tuple[int, int]] = field(default_factory=list)
    changed: bool = False


@dataclass(frozen=True)
class VerseCluster:
    """Verses of one chapter whose ranges overlap in at least one version."""
    chapter: int
    first: int
    last: int

    def contains(self, marker: VerseMarker) -> bool:
        return marker.chapter == self.chapter and self.first <= marker.first <= self.last


class VerseBoundaryNormalizer:
    """Re-segments ancestor, local and remote text on common verse boundaries."""

    def normalize(self, ancestor: str, local: str, remote: str) -> NormalizedVersions:
        """
        Cut the three texts into merge units.

        Units are lines, except where the verse segmentation differs
        between the versions; there each version gets one unit per verse
        cluster. If no version changed the segmentation every unit is a
        line and ``changed`` is False.
        """
        versions = [split_lines(ancestor), split_lines(local), split_lines(remote)]
        markers = [verse_markers(lines) for lines in versions]

        joins: list[list[LineSpan]] = [[], [], []]
        changed = False

        for cluster in self._clusters(markers):
            members = [
                [marker for marker in version_markers if cluster.contains(marker)]
                for version_markers in markers
            ]

            segmentations = {tuple(m.key for m in version_members) for version_members in members}
            if len(segmentations) == 1:
                continue

            # Added or removed verses are ordinary line edits
            coverages = {
                frozenset(n for m in version_members for n in range(m.first, m.last + 1))
                for version_members in members
            }
            if len(coverages) != 1:
                continue

            spans = [
                self._joinable_span(version_markers, version_members, cluster)
                for version_markers, version_members in zip(markers, members)
            ]
            if any(span is None for span in spans):
                logging.debug(
                    f"VerseBoundaryNormalizer - Leaving verses {cluster.first}-{cluster.last} "
                    f"of chapter {cluster.chapter} as lines"
                )
                continue

            for version_joins, span in zip(joins, spans):
                if span[1] > span[0]:
                    version_joins.append(span)
            changed = True
            logging.debug(
                f"VerseBoundaryNormalizer - Joined verses {cluster.first}-{cluster.last} "
                f"of chapter {cluster.chapter}"
            )

        ancestor_units, ancestor_spans = self._segment(versions[0], joins[0])
        local_units, _ = self._segment(versions[1], joins[1])
        remote_units, _ = self._segment(versions[2], joins[2])

        return NormalizedVersions(
            ancestor=ancestor_units,
            local=local_units,
            remote=remote_units,
            ancestor_spans=ancestor_spans,
            changed=changed
        )

    @staticmethod
    def _clusters(markers: Sequence[Sequence[VerseMarker]]) -> list[VerseCluster]:
        """Union the verse ranges of all versions into overlapping clusters."""
        ranges = sorted({
            (marker.chapter, marker.first, marker.last)
            for version_markers in markers
            for marker in version_markers
        })

        clusters: list[VerseCluster] = []
        for chapter, first, last in ranges:
            if clusters and clusters[-1].chapter == chapter and first <= clusters[-1].last:
                current = clusters[-1]
                clusters[-1] = VerseCluster(chapter, current.first, max(current.last, last))
            else:
                clusters.append(VerseCluster(chapter, first, last))

        return clusters

    @staticmethod
    def _joinable_span(
        version_markers: Sequence[VerseMarker],
        members: Sequence[VerseMarker],
        cluster: VerseCluster
    ) -> Optional[LineSpan]:
        """
        Line span from the first to the last verse line of a cluster.

        None when the version numbers the cluster out of order or has
        verses of another cluster between its lines.
        """
        if not members:
            return None

        numbers = [marker.first for marker in members]
        if numbers != sorted(numbers):
            return None

        start, end = members[0].line, members[-1].line
        for marker in version_markers:
            if start < marker.line < end and not cluster.contains(marker):
                return None

        return start, end

    @staticmethod
    def _segment(
        lines: Sequence[str],
        joins: Sequence[LineSpan]
    ) -> tuple[list[str], list[tuple[int, int]]]:
        """Join the given line spans, keeping the line feeds inside them."""
        units: list[str] = []
        spans: list[tuple[int, int]] = []
        pending = sorted(joins)
        index = 0
        position = 0

        while position < len(lines):
            if index < len(pending) and pending[index][0] == position:
                start, end = pending[index]
                units.append('\n'.join(lines[start:end + 1]))
                spans.append((start + 1, end + 1))
                position = end + 1
                index += 1
            else:
                units.append(lines[position])
                spans.append((position + 1, position + 1))
                position += 1

        return units, spans
