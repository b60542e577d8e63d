"""
Similarity scoring between two text fragments.
"""

from __future__ import annotations

from typing import Union

from versemerge.core.diff.sequence import lcs_length
from versemerge.core.diff.tokens import similarity_tokens
from versemerge.core.models import Granularity

Text = Union[str, bytes]


def similarity(
    a: Text,
    b: Text,
    granularity: Granularity = Granularity.CHARACTER
) -> int:
    """
    Score how similar two fragments are, from 0 to 100.

    The score is the share of the common subsequence in all token
    positions of both inputs, ``lcs / (len(a) + len(b) - lcs)``, as a
    percentage rounded half up.

    Args:
        a: First fragment (text or raw bytes)
        b: Second fragment
        granularity: CHARACTER compares bytes, WORD compares words

    Returns:
        100 for two empty inputs, 0 when exactly one is empty or the
        inputs share no token.

    Raises:
        ValueError: For a granularity other than CHARACTER or WORD
    """
    tokens_a = similarity_tokens(a, granularity)
    tokens_b = similarity_tokens(b, granularity)

    if not tokens_a and not tokens_b:
        return 100
    if not tokens_a or not tokens_b:
        return 0

    common = lcs_length(tokens_a, tokens_b)
    union = len(tokens_a) + len(tokens_b) - common

    score = (200 * common + union) // (2 * union)
    return max(0, min(100, score))


def character_similarity(a: Text, b: Text) -> int:
    """Byte-level similarity."""
    return similarity(a, b, Granularity.CHARACTER)


def word_similarity(a: Text, b: Text) -> int:
    """Word-level similarity."""
    return similarity(a, b, Granularity.WORD)
