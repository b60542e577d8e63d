"""
Tokenizers for the diff and merge engines.

Every tokenizer returns tokens that concatenate back to the input, except
``split_lines`` which drops the line terminators and ``similarity_tokens``
which only feeds the similarity score.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Optional, Union

from versemerge.core.models import Granularity

# Words and the whitespace between them, so word merges keep spacing exactly.
_WORD_PATTERN = re.compile(r'\s+|\S+')

# Whitespace-delimited words with line breaks kept as their own tokens.
_DISPLAY_PATTERN = re.compile(r'\n|[^\s]+')

_EXTENDING_CATEGORIES = frozenset({'Mn', 'Mc', 'Me'})
_ZWJ = '\u200d'

# Hangul jamo and syllable types, and which type may follow which.
_HANGUL_FOLLOWERS = {
    'L': frozenset({'L', 'V', 'LV', 'LVT'}),
    'LV': frozenset({'V', 'T'}),
    'V': frozenset({'V', 'T'}),
    'LVT': frozenset({'T'}),
    'T': frozenset({'T'}),
}


def split_lines(text: str) -> list[str]:
    """
    Split text on line feeds.

    A final line without a terminator is kept as its own line; a trailing
    terminator does not produce an empty final line.
    """
    if not text:
        return []
    lines = text.split('\n')
    if lines[-1] == '':
        lines.pop()
    return lines


def split_words(text: str) -> list[str]:
    """Split text into alternating word and whitespace tokens."""
    return _WORD_PATTERN.findall(text)


def split_display_words(text: str) -> list[str]:
    """Split text into words, keeping line feeds as separate tokens."""
    return _DISPLAY_PATTERN.findall(text)


def _extends_cluster(char: str) -> bool:
    if char == _ZWJ:
        return True
    if unicodedata.category(char) in _EXTENDING_CATEGORIES:
        return True
    code = ord(char)
    # Variation selectors, emoji skin tone modifiers and emoji tag characters
    return (
        0xFE00 <= code <= 0xFE0F
        or 0xE0100 <= code <= 0xE01EF
        or 0x1F3FB <= code <= 0x1F3FF
        or 0xE0020 <= code <= 0xE007F
    )


def _is_regional_indicator(char: str) -> bool:
    return 0x1F1E6 <= ord(char) <= 0x1F1FF


def _hangul_type(char: str) -> Optional[str]:
    code = ord(char)
    if 0x1100 <= code <= 0x115F or 0xA960 <= code <= 0xA97C:
        return 'L'
    if 0x1160 <= code <= 0x11A7 or 0xD7B0 <= code <= 0xD7C6:
        return 'V'
    if 0x11A8 <= code <= 0x11FF or 0xD7CB <= code <= 0xD7FB:
        return 'T'
    if 0xAC00 <= code <= 0xD7A3:
        return 'LV' if (code - 0xAC00) % 28 == 0 else 'LVT'
    return None


def _continues_syllable(previous: str, char: str) -> bool:
    """True if two Hangul characters belong to the same syllable."""
    previous_type = _hangul_type(previous)
    if previous_type is None:
        return False
    return _hangul_type(char) in _HANGUL_FOLLOWERS[previous_type]


def split_graphemes(text: str) -> list[str]:
    """
    Split text into grapheme clusters.

    A cluster is a base character followed by its combining marks,
    variation selectors and emoji modifiers; a zero width joiner also pulls
    in the character after it. Regional indicators pair up into flags,
    Hangul jamo sequences form one syllable and CR LF is a single cluster.
    Prepended concatenation marks are not attached to the following
    character and Indic conjuncts split after the virama.
    """
    clusters: list[str] = []
    current = ''
    previous = ''
    joined = False
    unpaired_indicator = False

    for char in text:
        if current and (
            joined
            or _extends_cluster(char)
            or (current == '\r' and char == '\n')
            or _continues_syllable(previous, char)
            or (unpaired_indicator and _is_regional_indicator(char))
        ):
            current += char
            unpaired_indicator = False
        else:
            if current:
                clusters.append(current)
            current = char
            unpaired_indicator = _is_regional_indicator(char)
        previous = char
        joined = char == _ZWJ

    if current:
        clusters.append(current)

    return clusters


def tokenize(text: str, granularity: Granularity) -> list[str]:
    """Split text into merge tokens of the given granularity."""
    if granularity == Granularity.LINE:
        return split_lines(text)
    elif granularity == Granularity.WORD:
        return split_words(text)
    elif granularity == Granularity.GRAPHEME:
        return split_graphemes(text)
    raise ValueError(f"Unsupported merge granularity: {granularity}")


def similarity_tokens(
    text: Union[str, bytes],
    granularity: Granularity
) -> list:
    """
    Split text into similarity tokens.

    CHARACTER tokens are raw bytes. Text is encoded as UTF-8 with
    ``surrogateescape`` so strings decoded from malformed input compare
    by their original bytes. Other lone surrogates are encoded as their
    three byte UTF-8 form (``surrogatepass``), so any text can be scored.
    WORD tokens are whitespace-separated words.
    """
    if granularity == Granularity.CHARACTER:
        if isinstance(text, str):
            try:
                text = text.encode('utf-8', 'surrogateescape')
            except UnicodeEncodeError:
                # Lone surrogates outside the escaped byte range
                text = text.encode('utf-8', 'surrogatepass')
        return list(text)
    elif granularity == Granularity.WORD:
        return text.split()
    raise ValueError(f"Unsupported similarity granularity: {granularity}")
