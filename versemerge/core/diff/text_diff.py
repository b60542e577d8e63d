"""
Text diff engine.

Provides:
- Word-level visual diffs for human review
- Line alignment of an edited text against its ancestor
"""

from __future__ import annotations

import html
from dataclasses import dataclass
from typing import Optional

from versemerge.core.diff.sequence import align
from versemerge.core.diff.tokens import split_display_words, split_lines
from versemerge.core.models import DiffOp, DiffOpType


@dataclass(frozen=True)
class VisualDiffStyle:
    """
    Markers wrapped around removed and added words.

    Words are written as they are unless ``escape_html`` is set, in which
    case they are HTML-escaped for embedding in a page.
    """
    removed_open: str = '<span style="text-decoration: line-through;">'
    added_open: str = '<span style="font-weight: bold;">'
    close: str = '</span>'
    escape_html: bool = False

    def removed(self, word: str) -> str:
        return f"{self.removed_open} {word} {self.close}"

    def added(self, word: str) -> str:
        return f"{self.added_open} {word} {self.close}"


class LexicalDiffer:
    """
    Renders word-level differences between two texts.

    Words are whitespace-delimited with punctuation attached. Line feeds
    are kept as tokens so multi-line input keeps its layout. The output
    is meant for reading only and is never merged.
    """

    def __init__(self, style: Optional[VisualDiffStyle] = None):
        self.style = style or VisualDiffStyle()

    def diff(self, old: str, new: str) -> str:
        """
        Render the visual diff of two texts.

        Args:
            old: Original text
            new: Edited text

        Returns:
            Markup with unchanged words as is, each removed word and each
            added word wrapped in its own marker, removed words before
            added words, and one space between tokens on a line.
        """
        old_words = split_display_words(old)
        new_words = split_display_words(new)

        rendered: list[str] = []
        for op in align(old_words, new_words):
            if op.op == DiffOpType.EQUAL:
                for word in old_words[op.a_start:op.a_end]:
                    rendered.append(self._plain(word))
            elif op.op == DiffOpType.DELETE:
                # Removed line feeds are dropped; the layout follows the new text
                for word in old_words[op.a_start:op.a_end]:
                    if word != '\n':
                        rendered.append(self._marked(word, removed=True))
            else:
                for word in new_words[op.b_start:op.b_end]:
                    rendered.append(self._marked(word, removed=False))

        return self._join(rendered)

    def _escape(self, word: str) -> str:
        return html.escape(word, quote=False) if self.style.escape_html else word

    def _plain(self, word: str) -> str:
        if word == '\n':
            return word
        return self._escape(word)

    def _marked(self, word: str, removed: bool) -> str:
        if word == '\n':
            return word
        if removed:
            return self.style.removed(self._escape(word))
        return self.style.added(self._escape(word))

    @staticmethod
    def _join(tokens: list[str]) -> str:
        parts: list[str] = []
        previous = None
        for token in tokens:
            if parts and token != '\n' and previous != '\n':
                parts.append(' ')
            parts.append(token)
            previous = token
        return ''.join(parts)


def visual_diff(
    old: str,
    new: str,
    style: Optional[VisualDiffStyle] = None
) -> str:
    """Render a word-level visual diff of two texts."""
    return LexicalDiffer(style).diff(old, new)


def classify_lines(ancestor: str, edited: str) -> list[DiffOp]:
    """
    Align the lines of an edited text against its ancestor.

    A final line without a terminator counts as a line of its own.
    """
    return align(split_lines(ancestor), split_lines(edited))
