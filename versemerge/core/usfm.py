"""
USFM helpers: verse markers, per-verse splitting and plain text.

Only the markers the merge and reporting code needs are understood:
``\\c`` chapter markers, ``\\v`` verse markers (with ranges such as
``\\v 1-2``) and footnote and cross reference notes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Sequence

# Verse marker at the start of a line, e.g. "\v 3", "\v 1-2", "\v 4a".
LINE_VERSE_MARKER = re.compile(r'^\\v\s+(\d+)[a-z]?(?:-(\d+)[a-z]?)?(?=\s|$)')

# Verse marker anywhere in the text.
VERSE_MARKER = re.compile(r'\\v\s+(\d+)[a-z]?(?:-(\d+)[a-z]?)?(?=\s|$)')

CHAPTER_MARKER = re.compile(r'^\\c\s+(\d+)', re.MULTILINE)

_CHAPTER = re.compile(r'\\c\s+\d+')
_NOTE = re.compile(r'\\(f|fe|x)\s.*?\\\1\*', re.DOTALL)
_MARKER = re.compile(r'\\\+?[a-z][a-z0-9]*(?:\*| ?)')
_WHITESPACE = re.compile(r'\s+')


@dataclass(frozen=True)
class VerseMarker:
    """A verse marker line: its index and the verse range it opens."""
    line: int
    chapter: int
    first: int
    last: int

    @property
    def key(self) -> tuple[int, int, int]:
        return self.chapter, self.first, self.last


@dataclass(frozen=True)
class Verse:
    """The markup of one verse. Verse 0 is the text before the first verse."""
    chapter: int
    number: int
    usfm: str

    @property
    def reference(self) -> str:
        return f"{self.chapter}.{self.number}"


def _verse_range(match: re.Match) -> tuple[int, int]:
    first = int(match.group(1))
    last = int(match.group(2)) if match.group(2) else first
    return first, max(first, last)


def verse_markers(lines: Sequence[str]) -> list[VerseMarker]:
    """Collect the verse markers that open a line, in line order."""
    markers: list[VerseMarker] = []
    chapter = 0

    for index, line in enumerate(lines):
        chapter_match = CHAPTER_MARKER.match(line)
        if chapter_match:
            chapter = int(chapter_match.group(1))
            continue

        verse_match = LINE_VERSE_MARKER.match(line)
        if verse_match:
            first, last = _verse_range(verse_match)
            markers.append(VerseMarker(index, chapter, first, last))

    return markers


def chapter_number(usfm: str, default: int = 0) -> int:
    """Number of the first chapter marker in the text."""
    match = CHAPTER_MARKER.search(usfm)
    return int(match.group(1)) if match else default


def iter_verses(usfm: str) -> Iterator[Verse]:
    """
    Split chapter markup into verses.

    Text before the first verse marker is yielded as verse 0 when it is
    not blank. A verse runs from its marker up to the next verse marker.
    A range marker such as ``\\v 1-2`` yields one verse numbered by the
    start of its range.
    """
    chapter = chapter_number(usfm)
    matches = list(VERSE_MARKER.finditer(usfm))

    if not matches:
        if usfm.strip():
            yield Verse(chapter, 0, usfm.strip())
        return

    head = usfm[:matches[0].start()]
    if head.strip():
        yield Verse(chapter, 0, head.strip())

    for position, match in enumerate(matches):
        end = matches[position + 1].start() if position + 1 < len(matches) else len(usfm)
        first, _ = _verse_range(match)
        yield Verse(chapter, first, usfm[match.start():end].strip())


def fold_lines(usfm: str) -> str:
    """Put multi-line markup on one line."""
    return _WHITESPACE.sub(' ', usfm).strip()


def plain_text(usfm: str) -> str:
    """Strip notes, verse numbers and markers, and collapse whitespace."""
    text = _NOTE.sub('', usfm)
    text = VERSE_MARKER.sub(' ', text)
    text = _CHAPTER.sub(' ', text)
    text = _MARKER.sub('', text)
    return _WHITESPACE.sub(' ', text).strip()
