"""
Three-way merge engine for chapter text.

Implements a three-way merge that:
1. Aligns ancestor to local and ancestor to remote independently
2. Groups the change regions of both sides that touch the same ancestor lines
3. Takes one-sided and identical changes as they are
4. Merges lines both sides changed differently word by word, then
   grapheme by grapheme
5. Retries a multi-line group line by line when it cannot be merged whole
6. Falls back to the remote line and records a conflict when a two-sided
   change cannot be reconciled
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from versemerge.core.diff.sequence import align, change_regions
from versemerge.core.diff.similarity import similarity
from versemerge.core.diff.tokens import split_lines, tokenize
from versemerge.core.merge.verse_boundary import VerseBoundaryNormalizer
from versemerge.core.models import (
    ChangeRegion,
    ConflictRecord,
    Granularity,
    LineClassification,
    MergeRegion,
    MergeResult,
)

# Granularities tried, in order, for a region both sides changed differently.
ESCALATION = (Granularity.LINE, Granularity.WORD, Granularity.GRAPHEME)

DEFAULT_GRAPHEME_THRESHOLD = 50


@dataclass
class ChangeCluster:
    """Change regions of both sides that overlap in the ancestor."""
    base_start: int
    base_end: int
    local_regions: list[ChangeRegion] = field(default_factory=list)
    remote_regions: list[ChangeRegion] = field(default_factory=list)

    def overlaps(self, region: ChangeRegion) -> bool:
        """
        True if the region belongs to this cluster.

        Ranges overlap when they share an ancestor token. An insertion
        overlaps a range only when anchored strictly inside it, and another
        insertion only when anchored at the same position.
        """
        if self.base_start == self.base_end:
            return region.is_insertion and region.base_start == self.base_start
        if region.is_insertion:
            return self.base_start < region.base_start < self.base_end
        return region.base_start < self.base_end

    def add(self, region: ChangeRegion, is_local: bool) -> None:
        if is_local:
            self.local_regions.append(region)
        else:
            self.remote_regions.append(region)
        self.base_end = max(self.base_end, region.base_end)


def _split_region(region: ChangeRegion) -> list[ChangeRegion]:
    """Cut a change region into per-line replacements, deletions and one insertion."""
    paired = min(region.base_end - region.base_start, region.other_end - region.other_start)

    parts = [
        ChangeRegion(
            region.base_start + offset,
            region.base_start + offset + 1,
            region.other_start + offset,
            region.other_start + offset + 1
        )
        for offset in range(paired)
    ]
    parts.extend(
        ChangeRegion(index, index + 1, region.other_end, region.other_end)
        for index in range(region.base_start + paired, region.base_end)
    )
    if region.other_start + paired < region.other_end:
        parts.append(ChangeRegion(
            region.base_end, region.base_end, region.other_start + paired, region.other_end
        ))

    return parts


class ThreeWayMergeEngine:
    """
    Three-way merge engine.

    Holds configuration only, so one engine can serve concurrent merges.
    When both sides change the same lines differently the lines are merged
    at word granularity; words both sides changed differently are merged
    at grapheme granularity when the two edits are similar enough. What
    still cannot be reconciled takes the remote value and is reported as
    a conflict.
    """

    def __init__(
        self,
        grapheme_similarity_threshold: int = DEFAULT_GRAPHEME_THRESHOLD,
        strip_trailing_newlines: bool = True,
        normalizer: Optional[VerseBoundaryNormalizer] = None
    ):
        self.grapheme_similarity_threshold = grapheme_similarity_threshold
        self.strip_trailing_newlines = strip_trailing_newlines
        self.normalizer = normalizer or VerseBoundaryNormalizer()

    def merge(
        self,
        ancestor: str,
        local: str,
        remote: str,
        verse_aware: bool = False
    ) -> MergeResult:
        """
        Perform a three-way merge.

        Args:
            ancestor: Common ancestor text
            local: Local edit of the ancestor
            remote: Remote edit of the ancestor; wins conflicts
            verse_aware: Normalize verse boundaries before merging

        Returns:
            MergeResult with the merged text and conflicts in document order
        """
        spans: Optional[list[tuple[int, int]]] = None

        if verse_aware:
            normalized = self.normalizer.normalize(ancestor, local, remote)
            base_units = normalized.ancestor
            local_units = normalized.local
            remote_units = normalized.remote
            spans = normalized.ancestor_spans
        else:
            base_units = split_lines(ancestor)
            local_units = split_lines(local)
            remote_units = split_lines(remote)

        return self.merge_lines(base_units, local_units, remote_units, spans)

    def merge_lines(
        self,
        base: Sequence[str],
        local: Sequence[str],
        remote: Sequence[str],
        spans: Optional[Sequence[tuple[int, int]]] = None
    ) -> MergeResult:
        """
        Merge three versions already cut into lines or segments.

        Args:
            base: Ancestor units
            local: Local units
            remote: Remote units
            spans: Per ancestor unit, the 1-based original lines it covers;
                used for conflict labels

        Returns:
            MergeResult with the units joined by line feeds
        """
        base = list(base)
        local = list(local)
        remote = list(remote)

        clusters = self._cluster_changes(
            change_regions(align(base, local)),
            change_regions(align(base, remote))
        )

        regions = self._resolve_clusters(clusters, base, local, remote, spans, 0, len(base))
        merged_lines = [line for region in regions for line in region.lines]
        conflicts = [region.conflict for region in regions if region.conflict is not None]

        merged_text = '\n'.join(merged_lines)
        if self.strip_trailing_newlines:
            merged_text = merged_text.rstrip('\n')

        if conflicts:
            logging.info(f"ThreeWayMergeEngine - Merge recorded {len(conflicts)} conflict(s)")

        return MergeResult(
            merged_text=merged_text,
            conflicts=conflicts,
            regions=regions
        )

    def _cluster_changes(
        self,
        local_regions: list[ChangeRegion],
        remote_regions: list[ChangeRegion]
    ) -> list[ChangeCluster]:
        """Group the change regions of both sides by ancestor overlap."""
        tagged = [(region, True) for region in local_regions]
        tagged.extend((region, False) for region in remote_regions)
        tagged.sort(key=lambda item: (item[0].base_start, item[0].base_end, not item[1]))

        clusters: list[ChangeCluster] = []
        for region, is_local in tagged:
            if not clusters or not clusters[-1].overlaps(region):
                clusters.append(ChangeCluster(region.base_start, region.base_end))
            clusters[-1].add(region, is_local)

        return clusters

    def _resolve_clusters(
        self,
        clusters: list[ChangeCluster],
        base: list[str],
        local: list[str],
        remote: list[str],
        spans: Optional[Sequence[tuple[int, int]]],
        start: int,
        end: int
    ) -> list[MergeRegion]:
        """Resolve the clusters within base[start:end], keeping the lines between them."""
        regions: list[MergeRegion] = []
        base_pos = start

        for cluster in clusters:
            if base_pos < cluster.base_start:
                regions.append(self._unchanged_region(
                    base_pos, cluster.base_start, base[base_pos:cluster.base_start]
                ))
            regions.extend(self._resolve_line_cluster(cluster, base, local, remote, spans))
            base_pos = cluster.base_end

        if base_pos < end:
            regions.append(self._unchanged_region(base_pos, end, base[base_pos:end]))

        return regions

    def _split_cluster(self, cluster: ChangeCluster) -> Optional[list[ChangeCluster]]:
        """
        Re-cluster a line cluster after cutting its regions into single lines.

        Each side's i-th changed line is paired with the i-th ancestor line
        of the same region; what is left over becomes single-line deletions
        or one insertion. Returns None when every region already covers at
        most one ancestor line and at most one replacement line.
        """
        local_regions = [part for region in cluster.local_regions for part in _split_region(region)]
        remote_regions = [part for region in cluster.remote_regions for part in _split_region(region)]

        if (len(local_regions) == len(cluster.local_regions)
                and len(remote_regions) == len(cluster.remote_regions)):
            return None

        return self._cluster_changes(local_regions, remote_regions)

    @staticmethod
    def _apply_regions(
        base: Sequence[str],
        other: Sequence[str],
        regions: Sequence[ChangeRegion],
        start: int,
        end: int
    ) -> list[str]:
        """One side's version of base[start:end], with its changes applied."""
        tokens: list[str] = []
        pos = start
        for region in regions:
            tokens.extend(base[pos:region.base_start])
            tokens.extend(other[region.other_start:region.other_end])
            pos = region.base_end
        tokens.extend(base[pos:end])
        return tokens

    def _classify(
        self,
        cluster: ChangeCluster,
        local_tokens: list[str],
        remote_tokens: list[str]
    ) -> LineClassification:
        if not cluster.remote_regions:
            return LineClassification.LOCAL_ONLY
        if not cluster.local_regions:
            return LineClassification.REMOTE_ONLY
        if local_tokens == remote_tokens:
            return LineClassification.BOTH_IDENTICAL
        return LineClassification.BOTH_DIFFERENT

    def _resolve_line_cluster(
        self,
        cluster: ChangeCluster,
        base: list[str],
        local: list[str],
        remote: list[str],
        spans: Optional[Sequence[tuple[int, int]]]
    ) -> list[MergeRegion]:
        """
        Resolve one line cluster, escalating when both sides differ.

        A cluster spanning several lines that cannot be merged as a whole
        is resolved again line by line, so that only the lines both sides
        changed irreconcilably take the remote value.
        """
        base_lines = base[cluster.base_start:cluster.base_end]
        local_lines = self._apply_regions(
            base, local, cluster.local_regions, cluster.base_start, cluster.base_end
        )
        remote_lines = self._apply_regions(
            base, remote, cluster.remote_regions, cluster.base_start, cluster.base_end
        )
        classification = self._classify(cluster, local_lines, remote_lines)

        region = MergeRegion(
            classification=classification,
            base_start=cluster.base_start,
            base_end=cluster.base_end,
            lines=[],
            base_lines=base_lines,
            local_lines=local_lines,
            remote_lines=remote_lines
        )

        if classification in (LineClassification.LOCAL_ONLY, LineClassification.BOTH_IDENTICAL):
            region.lines = list(local_lines)
            return [region]

        if classification == LineClassification.REMOTE_ONLY:
            region.lines = list(remote_lines)
            return [region]

        # Both sides changed the region differently
        if not base_lines:
            region.lines = self._combine_insertions(local_lines, remote_lines)
            return [region]

        if local_lines and remote_lines:
            resolved = self._escalate(
                '\n'.join(base_lines),
                '\n'.join(local_lines),
                '\n'.join(remote_lines),
                0
            )
            if resolved is not None:
                region.lines = [resolved[0]]
                region.granularity = resolved[1]
                return [region]
        else:
            logging.debug(
                f"ThreeWayMergeEngine - One side removed lines "
                f"{cluster.base_start}-{cluster.base_end} the other changed"
            )

        sub_clusters = self._split_cluster(cluster)
        if sub_clusters is not None:
            logging.debug(
                f"ThreeWayMergeEngine - Resolving lines "
                f"{cluster.base_start}-{cluster.base_end} one by one"
            )
            return self._resolve_clusters(
                sub_clusters, base, local, remote, spans, cluster.base_start, cluster.base_end
            )

        region.lines = list(remote_lines)
        region.conflict = ConflictRecord(
            label=self._label(cluster.base_start, cluster.base_end, len(base), spans),
            ancestor='\n'.join(base_lines),
            local='\n'.join(local_lines),
            remote='\n'.join(remote_lines),
            merged='\n'.join(remote_lines)
        )
        logging.debug(f"ThreeWayMergeEngine - Conflict at {region.conflict.label}, remote wins")
        return [region]

    def _escalate(
        self,
        base_text: str,
        local_text: str,
        remote_text: str,
        level: int
    ) -> Optional[tuple[str, Granularity]]:
        """
        Retry a two-sided change at the next finer granularity.

        Returns the merged text and the finest granularity it needed, or
        None when no granularity reconciles it.
        """
        next_level = level + 1
        if next_level >= len(ESCALATION):
            return None

        granularity = ESCALATION[next_level]
        if granularity == Granularity.GRAPHEME:
            score = similarity(local_text, remote_text, Granularity.CHARACTER)
            if score < self.grapheme_similarity_threshold:
                logging.debug(
                    f"ThreeWayMergeEngine - Similarity {score} below "
                    f"{self.grapheme_similarity_threshold}, not merging graphemes"
                )
                return None

        return self._merge_tokens(base_text, local_text, remote_text, next_level)

    def _merge_tokens(
        self,
        base_text: str,
        local_text: str,
        remote_text: str,
        level: int
    ) -> Optional[tuple[str, Granularity]]:
        """Sub-line merge at ESCALATION[level]; None if any part is irreconcilable."""
        granularity = ESCALATION[level]
        base = tokenize(base_text, granularity)
        local = tokenize(local_text, granularity)
        remote = tokenize(remote_text, granularity)

        clusters = self._cluster_changes(
            change_regions(align(base, local)),
            change_regions(align(base, remote))
        )

        merged: list[str] = []
        finest = level
        base_pos = 0

        for cluster in clusters:
            merged.extend(base[base_pos:cluster.base_start])

            local_tokens = self._apply_regions(
                base, local, cluster.local_regions, cluster.base_start, cluster.base_end
            )
            remote_tokens = self._apply_regions(
                base, remote, cluster.remote_regions, cluster.base_start, cluster.base_end
            )
            classification = self._classify(cluster, local_tokens, remote_tokens)

            if classification == LineClassification.REMOTE_ONLY:
                merged.extend(remote_tokens)
            elif classification != LineClassification.BOTH_DIFFERENT:
                merged.extend(local_tokens)
            else:
                resolved = self._escalate(
                    ''.join(base[cluster.base_start:cluster.base_end]),
                    ''.join(local_tokens),
                    ''.join(remote_tokens),
                    level
                )
                if resolved is None:
                    return None
                merged.append(resolved[0])
                finest = max(finest, ESCALATION.index(resolved[1]))

            base_pos = cluster.base_end

        merged.extend(base[base_pos:])
        logging.debug(f"ThreeWayMergeEngine - Resolved at {granularity.name.lower()} level")
        return ''.join(merged), ESCALATION[finest]

    @staticmethod
    def _combine_insertions(local_lines: list[str], remote_lines: list[str]) -> list[str]:
        """
        Lines both sides inserted at the same anchor.

        Lines common to both insertions are kept once; where they differ
        the remote lines come before the local ones.
        """
        combined: list[str] = []
        for op in align(remote_lines, local_lines):
            combined.extend(remote_lines[op.a_start:op.a_end])
            if not op.is_equal:
                combined.extend(local_lines[op.b_start:op.b_end])
        return combined

    @staticmethod
    def _unchanged_region(start: int, end: int, lines: list[str]) -> MergeRegion:
        return MergeRegion(
            classification=LineClassification.UNCHANGED,
            base_start=start,
            base_end=end,
            lines=list(lines),
            base_lines=list(lines),
            local_lines=list(lines),
            remote_lines=list(lines)
        )

    @staticmethod
    def _label(
        start: int,
        end: int,
        base_count: int,
        spans: Optional[Sequence[tuple[int, int]]]
    ) -> str:
        """Human label of an ancestor range, in 1-based original line numbers."""
        if spans:
            if start < end:
                first, last = spans[start][0], spans[end - 1][1]
            elif start < base_count:
                first = last = spans[start][0]
            else:
                first = last = spans[-1][1] + 1
        else:
            first = start + 1
            last = max(end, first)

        if first == last:
            return f"line {first}"
        return f"lines {first}-{last}"


def merge(
    ancestor: str,
    local: str,
    remote: str,
    verse_aware: bool = False
) -> tuple[str, list[ConflictRecord]]:
    """Merge with default settings and return (merged text, conflicts)."""
    return ThreeWayMergeEngine().merge(ancestor, local, remote, verse_aware).as_tuple()


def merge_clever(
    ancestor: str,
    local: str,
    remote: str
) -> tuple[str, list[ConflictRecord]]:
    """Verse-aware merge."""
    return merge(ancestor, local, remote, verse_aware=True)
