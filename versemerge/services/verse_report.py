"""
Verse-level change report.

Splits an old and a new chapter into one line per verse, writes the
markup and plain text of both as verse files, and renders an HTML page
that shows, verse by verse, what changed between them.
"""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from versemerge.core.diff.sequence import change_regions
from versemerge.core.diff.text_diff import VisualDiffStyle, classify_lines, visual_diff
from versemerge.core.diff.tokens import split_lines
from versemerge.core.usfm import fold_lines, iter_verses, plain_text
from versemerge.services.file_io import FileIOService
from versemerge.services.settings import ReportSettings

# Everything up to and including the "chapter.verse" reference of a verse line.
_REFERENCE = re.compile(r'^(.*?\d+\.\d+)(?=\s|$)')


class ReportError(Exception):
    """Raised when report inputs cannot be read or outputs cannot be written."""


@dataclass
class VerseReport:
    """Files written by a report run."""
    old_usfm: Path
    new_usfm: Path
    old_text: Path
    new_text: Path
    html: Path
    changed_verses: int = 0

    @property
    def paths(self) -> list[Path]:
        return [self.old_usfm, self.new_usfm, self.old_text, self.new_text, self.html]


class VerseLevelReporter:
    """Writes verse files for two chapter versions and an HTML page of changed verses."""

    def __init__(
        self,
        file_io: Optional[FileIOService] = None,
        settings: Optional[ReportSettings] = None,
        style: Optional[VisualDiffStyle] = None
    ):
        self.file_io = file_io or FileIOService()
        self.settings = settings or ReportSettings()
        # Verse text goes into an HTML page
        self.style = replace(style or VisualDiffStyle(), escape_html=True)

    def produce_verse_level(
        self,
        old_chapter: str,
        new_chapter: str,
        directory: Path | str,
        label: str = ""
    ) -> list[Path]:
        """
        Write the old and new chapter as verse files.

        Every verse goes on one line starting with its ``chapter.verse``
        reference, preceded by the label if there is one. The markup files
        keep the USFM with its line breaks folded; the text files hold the
        plain text.

        Args:
            old_chapter: Markup of the chapter before the change
            new_chapter: Markup of the chapter after the change
            directory: Directory to write into, created if missing
            label: Optional prefix for every line, e.g. a book name

        Returns:
            Paths of the old markup, new markup, old text and new text files
        """
        directory = Path(directory)
        outputs = [
            (directory / self.settings.old_usfm_name, old_chapter, False),
            (directory / self.settings.new_usfm_name, new_chapter, False),
            (directory / self.settings.old_text_name, old_chapter, True),
            (directory / self.settings.new_text_name, new_chapter, True),
        ]

        paths = []
        for path, chapter, as_text in outputs:
            lines = [
                self._verse_line(
                    label,
                    verse.reference,
                    plain_text(verse.usfm) if as_text else fold_lines(verse.usfm)
                )
                for verse in iter_verses(chapter)
            ]
            self._write(path, lines)
            paths.append(path)

        logging.debug(f"VerseLevelReporter - Wrote verse files to {directory}")
        return paths

    def run_file(
        self,
        old_file: Path | str,
        new_file: Path | str,
        output_file: Path | str
    ) -> int:
        """
        Compare two verse files and write the changed verses as HTML.

        Returns:
            Number of verses that changed, were added or were removed
        """
        old_text = self._read(old_file)
        new_text = self._read(new_file)

        body = self.changed_verses(old_text, new_text)
        self._write(Path(output_file), self._page(body))

        logging.info(f"VerseLevelReporter - {len(body)} changed verse(s) written to {output_file}")
        return len(body)

    def changed_verses(self, old_text: str, new_text: str) -> list[str]:
        """Render every verse line that differs between two verse files."""
        old_lines = split_lines(old_text)
        new_lines = split_lines(new_text)

        rendered: list[str] = []
        for region in change_regions(classify_lines(old_text, new_text)):
            removed = old_lines[region.base_start:region.base_end]
            added = new_lines[region.other_start:region.other_end]

            added_by_reference = {}
            for line in added:
                added_by_reference.setdefault(self._reference(line), line)

            paired = set()
            for line in removed:
                reference = self._reference(line)
                counterpart = added_by_reference.get(reference)
                if counterpart is not None and reference not in paired:
                    paired.add(reference)
                    rendered.append(visual_diff(line, counterpart, self.style))
                else:
                    rendered.append(self.style.removed(html.escape(line, quote=False)))

            for line in added:
                reference = self._reference(line)
                if reference in paired and added_by_reference[reference] is line:
                    continue
                rendered.append(self.style.added(html.escape(line, quote=False)))

        return rendered

    def produce_report(
        self,
        old_chapter: str,
        new_chapter: str,
        directory: Path | str,
        label: str = ""
    ) -> VerseReport:
        """Write the verse files and the changed verses page into a directory."""
        old_usfm, new_usfm, old_txt, new_txt = self.produce_verse_level(
            old_chapter, new_chapter, directory, label
        )
        html_path = Path(directory) / self.settings.html_name
        changed = self.run_file(old_usfm, new_usfm, html_path)

        return VerseReport(
            old_usfm=old_usfm,
            new_usfm=new_usfm,
            old_text=old_txt,
            new_text=new_txt,
            html=html_path,
            changed_verses=changed
        )

    def _page(self, body: list[str]) -> list[str]:
        title = html.escape(self.settings.html_title)
        lines = [
            '<!DOCTYPE html>',
            '<html>',
            '<head>',
            '<meta charset="utf-8">',
            f'<title>{title}</title>',
            '</head>',
            '<body>',
        ]
        lines.extend(f'<p>{verse}</p>' for verse in body)
        lines.extend(['</body>', '</html>'])
        return lines

    @staticmethod
    def _reference(line: str) -> str:
        match = _REFERENCE.match(line)
        return match.group(1) if match else line

    @staticmethod
    def _verse_line(label: str, reference: str, text: str) -> str:
        return ' '.join(part for part in (label, reference, text) if part)

    def _read(self, path: Path | str) -> str:
        result = self.file_io.read_file(path)
        if not result.success:
            raise ReportError(f"Cannot read {path}: {result.error}")
        return result.content.content

    def _write(self, path: Path, lines: list[str]) -> None:
        result = self.file_io.write_file(path, lines)
        if not result.success:
            raise ReportError(f"Cannot write {path}: {result.error}")
