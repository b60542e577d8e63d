"""
Merge module for three-way chapter merging.
"""

from versemerge.core.merge.three_way import (
    ThreeWayMergeEngine,
    merge,
    merge_clever,
)
from versemerge.core.merge.verse_boundary import (
    VerseBoundaryNormalizer,
    NormalizedVersions,
)

__all__ = [
    'ThreeWayMergeEngine',
    'merge',
    'merge_clever',
    'VerseBoundaryNormalizer',
    'NormalizedVersions',
]
