"""
Main entry point for the VerseMerge command line.

This module handles:
- Command line argument parsing
- Logging configuration
- Settings loading
- Dispatch to the merge, diff, similarity and report commands
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, List, TextIO

from versemerge import __version__
from versemerge.core.diff.similarity import similarity
from versemerge.core.diff.text_diff import visual_diff
from versemerge.core.models import Granularity
from versemerge.services.file_io import FileIOService
from versemerge.services.settings import ApplicationSettings, SettingsManager
from versemerge.services.verse_report import ReportError, VerseLevelReporter


# =============================================================================
# Constants
# =============================================================================

APP_NAME = "versemerge"
APP_VERSION = __version__

LOGS_DIR = Path.cwd() / "logs"

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CONFLICTS = 2


# =============================================================================
# Enums
# =============================================================================

class Command(Enum):
    """Sub-command selected on the command line."""
    MERGE = "merge"
    DIFF = "diff"
    SIMILARITY = "similarity"
    REPORT = "report"


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class CommandLineArgs:
    """Parsed command line arguments."""
    command: Command = Command.MERGE
    paths: List[str] = field(default_factory=list)
    output_path: Optional[str] = None
    conflicts_path: Optional[str] = None
    verse_aware: bool = False
    words: bool = False
    label: str = ""
    config_file: Optional[str] = None
    log_level: Optional[str] = None
    debug: bool = False


# =============================================================================
# Logging Setup
# =============================================================================

class LogFormatter(logging.Formatter):
    """Custom log formatter with colors for console."""

    COLORS = {
        logging.INFO: '\033[32m',      # Green
        logging.WARNING: '\033[33m',   # Yellow
        logging.ERROR: '\033[31m',     # Red
        logging.CRITICAL: '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(self, use_colors: bool = True, stream: Optional[TextIO] = None):
        super().__init__(
            fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        stream = stream or sys.stderr
        self.use_colors = use_colors and hasattr(stream, 'isatty') and stream.isatty()

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)

        if self.use_colors:
            color = self.COLORS.get(record.levelno, '')
            return f"{color}{formatted}{self.RESET}"

        return formatted


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    stream: Optional[TextIO] = None
) -> logging.Logger:
    """
    Configure application logging.

    Console output goes to stderr so merged text on stdout stays clean.

    Args:
        level: Log level string
        log_file: Optional file path for logging
        stream: Console stream (defaults to stderr)

    Returns:
        Root logger instance
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    stream = stream or sys.stderr

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Remove existing handlers
    root_logger.handlers.clear()

    # Console handler
    console_handler = logging.StreamHandler(stream)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(LogFormatter(use_colors=True, stream=stream))
    root_logger.addHandler(console_handler)

    # File handler
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(
            log_file,
            encoding='utf-8'
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(LogFormatter(use_colors=False))
        root_logger.addHandler(file_handler)

    # Reduce noise from third-party libraries
    logging.getLogger('chardet').setLevel(logging.WARNING)

    return root_logger


# =============================================================================
# Argument Parsing
# =============================================================================

def parse_arguments(args: Optional[List[str]] = None) -> CommandLineArgs:
    """
    Parse command line arguments.

    Args:
        args: Arguments to parse (defaults to sys.argv)

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Diff and three-way merge for USFM chapter text",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s merge base.usfm local.usfm remote.usfm     Three-way merge to stdout
  %(prog)s merge --verse-aware -o out.usfm b l r      Merge across verse joins and splits
  %(prog)s diff old.usfm new.usfm -o diff.html        Word-level visual diff
  %(prog)s similarity a.txt b.txt --words             Word similarity percentage
  %(prog)s report old.usfm new.usfm reports/          Verse files and changed verses page
        """
    )

    # Configuration
    parser.add_argument(
        '-c', '--config',
        help='Configuration file path'
    )

    # Logging
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug mode and write a log file'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        default=None,
        help='Log level (defaults to the configured level)'
    )

    # Version
    parser.add_argument(
        '--version',
        action='version',
        version=f'{APP_NAME} {APP_VERSION}'
    )

    commands = parser.add_subparsers(dest='command', required=True)

    merge_parser = commands.add_parser('merge', help='Three-way merge of chapter text')
    merge_parser.add_argument('ancestor', help='Common ancestor file')
    merge_parser.add_argument('local', help='Local edit')
    merge_parser.add_argument('remote', help='Remote edit, wins conflicts')
    merge_parser.add_argument(
        '--verse-aware',
        action='store_true',
        help='Normalize joined and split verses before merging'
    )
    merge_parser.add_argument('-o', '--output', help='Output file for the merged text')
    merge_parser.add_argument('--conflicts', help='Write conflict records to this JSON file')

    diff_parser = commands.add_parser('diff', help='Word-level visual diff')
    diff_parser.add_argument('old', help='Original file')
    diff_parser.add_argument('new', help='Edited file')
    diff_parser.add_argument('-o', '--output', help='Output file for the diff')

    similarity_parser = commands.add_parser('similarity', help='Similarity percentage of two files')
    similarity_parser.add_argument('first', help='First file')
    similarity_parser.add_argument('second', help='Second file')
    similarity_parser.add_argument(
        '--words',
        action='store_true',
        help='Compare words instead of bytes'
    )

    report_parser = commands.add_parser('report', help='Verse-level change report')
    report_parser.add_argument('old', help='Chapter before the change')
    report_parser.add_argument('new', help='Chapter after the change')
    report_parser.add_argument('directory', help='Directory for the report files')
    report_parser.add_argument('--label', default='', help='Prefix for every verse line')

    # Parse
    parsed = parser.parse_args(args)

    # Build result
    result = CommandLineArgs()
    result.command = Command(parsed.command)
    result.config_file = parsed.config
    result.debug = parsed.debug

    if result.command == Command.MERGE:
        result.paths = [parsed.ancestor, parsed.local, parsed.remote]
        result.output_path = parsed.output
        result.conflicts_path = parsed.conflicts
        result.verse_aware = parsed.verse_aware
    elif result.command == Command.DIFF:
        result.paths = [parsed.old, parsed.new]
        result.output_path = parsed.output
    elif result.command == Command.SIMILARITY:
        result.paths = [parsed.first, parsed.second]
        result.words = parsed.words
    else:
        result.paths = [parsed.old, parsed.new, parsed.directory]
        result.label = parsed.label

    # Log level
    if parsed.debug or parsed.verbose:
        result.log_level = 'DEBUG'
    else:
        result.log_level = parsed.log_level

    return result


# =============================================================================
# Commands
# =============================================================================

def _read_all(file_io: FileIOService, paths: List[str]) -> Optional[List[str]]:
    texts = []
    for path in paths:
        text = file_io.read_text(path)
        if text is None:
            return None
        texts.append(text)
    return texts


def _emit(file_io: FileIOService, text: str, output_path: Optional[str]) -> bool:
    """Write text to the output file, or print it when there is none."""
    if not output_path:
        print(text)
        return True

    result = file_io.write_file(output_path, text)
    if not result.success:
        logging.error(f"main - Cannot write {output_path}: {result.error}")
        return False
    return True


def run_merge(args: CommandLineArgs, settings: ApplicationSettings, file_io: FileIOService) -> int:
    texts = _read_all(file_io, args.paths)
    if texts is None:
        return EXIT_ERROR
    ancestor, local, remote = texts

    engine = settings.merge.create_engine()
    verse_aware = args.verse_aware or settings.merge.verse_aware
    result = engine.merge(ancestor, local, remote, verse_aware=verse_aware)

    if not _emit(file_io, result.merged_text, args.output_path):
        return EXIT_ERROR

    if args.conflicts_path:
        records = [conflict._asdict() for conflict in result.conflicts]
        written = file_io.write_file(
            args.conflicts_path,
            json.dumps(records, indent=2, ensure_ascii=False) + '\n'
        )
        if not written.success:
            logging.error(f"main - Cannot write {args.conflicts_path}: {written.error}")
            return EXIT_ERROR

    for conflict in result.conflicts:
        logging.warning(f"main - Conflict at {conflict.label}, remote version kept")

    return EXIT_CONFLICTS if result.has_conflicts else EXIT_OK


def run_diff(args: CommandLineArgs, settings: ApplicationSettings, file_io: FileIOService) -> int:
    texts = _read_all(file_io, args.paths)
    if texts is None:
        return EXIT_ERROR

    rendered = visual_diff(texts[0], texts[1], settings.diff_style.to_style())
    return EXIT_OK if _emit(file_io, rendered, args.output_path) else EXIT_ERROR


def run_similarity(args: CommandLineArgs, settings: ApplicationSettings, file_io: FileIOService) -> int:
    if args.words:
        texts = _read_all(file_io, args.paths)
        granularity = Granularity.WORD
    else:
        texts = [file_io.read_bytes(path) for path in args.paths]
        granularity = Granularity.CHARACTER
        if any(text is None for text in texts):
            texts = None

    if texts is None:
        return EXIT_ERROR

    print(similarity(texts[0], texts[1], granularity))
    return EXIT_OK


def run_report(args: CommandLineArgs, settings: ApplicationSettings, file_io: FileIOService) -> int:
    texts = _read_all(file_io, args.paths[:2])
    if texts is None:
        return EXIT_ERROR

    reporter = VerseLevelReporter(
        file_io=file_io,
        settings=settings.report,
        style=settings.diff_style.to_style()
    )
    try:
        report = reporter.produce_report(texts[0], texts[1], args.paths[2], args.label)
    except ReportError as e:
        logging.error(f"main - Report failed: {e}")
        return EXIT_ERROR

    for path in report.paths:
        print(path)
    logging.info(f"main - {report.changed_verses} changed verse(s)")
    return EXIT_OK


COMMANDS = {
    Command.MERGE: run_merge,
    Command.DIFF: run_diff,
    Command.SIMILARITY: run_similarity,
    Command.REPORT: run_report,
}


# =============================================================================
# Main Function
# =============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    """
    Command line main entry point.

    Returns:
        Exit code: 0 on success, 2 when a merge recorded conflicts, 1 on error
    """
    args = parse_arguments(argv)

    settings_manager = SettingsManager(Path(args.config_file) if args.config_file else None)
    settings = settings_manager.settings

    # Set up logging
    log_level = args.log_level or settings.log_level.value
    log_file = LOGS_DIR / f"{APP_NAME}_{datetime.now():%Y%m%d}.log" if args.debug else None
    setup_logging(log_level, log_file)
    logging.debug(f"main - Starting {APP_NAME} v{APP_VERSION} {args.command.value}")

    file_io = FileIOService()
    try:
        return COMMANDS[args.command](args, settings, file_io)
    except Exception as e:
        logging.critical(f"main - Fatal error: {e}", exc_info=True)
        return EXIT_ERROR


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == '__main__':
    sys.exit(main())
