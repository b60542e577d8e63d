"""Shared fixtures for the versemerge test suite."""

import pytest

from versemerge.core.merge.three_way import ThreeWayMergeEngine
from versemerge.services.file_io import FileIOService


@pytest.fixture
def engine():
    """Merge engine with default settings."""
    return ThreeWayMergeEngine()


@pytest.fixture
def file_io():
    return FileIOService()


@pytest.fixture
def five_verses():
    """A short chapter with one verse per line."""
    return (
        "\\c 1\n"
        "\\p\n"
        "\\v 1 This is really the text of the first (1st) verse.\n"
        "\\v 2 And this is what the second (2nd) verse contains.\n"
        "\\v 3 The third (3rd) verse.\n"
        "\\v 4 The fourth (4th) verse.\n"
        "\\v 5\n"
    )


@pytest.fixture
def combined_verses():
    """The same chapter with verses 1 and 2 combined."""
    return (
        "\\c 1\n"
        "\\p\n"
        "\\v 1-2 This is really the text of the first (1st) verse. And this is what the second verse contains.\n"
        "\\v 3 The third verse.\n"
        "\\v 4 The fourth (4th) verse.\n"
        "\\v 5\n"
    )
