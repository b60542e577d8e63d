"""
VerseMerge: diff and three-way merge for USFM chapter text.
"""

from versemerge.core.diff.similarity import similarity
from versemerge.core.diff.text_diff import classify_lines, visual_diff
from versemerge.core.merge.three_way import ThreeWayMergeEngine, merge, merge_clever
from versemerge.core.models import ConflictRecord, Granularity, MergeResult

__version__ = "1.0.0"

__all__ = [
    'similarity',
    'classify_lines',
    'visual_diff',
    'ThreeWayMergeEngine',
    'merge',
    'merge_clever',
    'ConflictRecord',
    'Granularity',
    'MergeResult',
]
