"""
Diff module for text comparison operations.

Provides:
- Tokenizers for lines, words and grapheme clusters
- LCS sequence alignment
- Similarity scoring
- Word-level visual diffs and line alignment
"""

from versemerge.core.diff.sequence import (
    align,
    change_regions,
    lcs_length,
)
from versemerge.core.diff.similarity import (
    similarity,
    character_similarity,
    word_similarity,
)
from versemerge.core.diff.text_diff import (
    LexicalDiffer,
    VisualDiffStyle,
    visual_diff,
    classify_lines,
)

__all__ = [
    # Alignment
    'align',
    'change_regions',
    'lcs_length',
    # Similarity
    'similarity',
    'character_similarity',
    'word_similarity',
    # Text diff
    'LexicalDiffer',
    'VisualDiffStyle',
    'visual_diff',
    'classify_lines',
]
