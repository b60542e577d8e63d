"""
Reading and writing chapter files.

Chapter files may come in legacy encodings; reads detect the encoding and
hand back text with line feeds only. Writes are always UTF-8 and go
through a temporary file so a failed write never leaves half a chapter.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import chardet

_UTF8_BOM = b'\xef\xbb\xbf'


@dataclass
class FileContent:
    """Decoded text of a file."""
    content: str
    encoding: str
    bom: bool = False


@dataclass
class ReadResult:
    """Result of a file read operation."""
    success: bool
    content: Optional[FileContent] = None
    error: Optional[str] = None


@dataclass
class WriteResult:
    """Result of a file write operation."""
    success: bool
    bytes_written: int = 0
    error: Optional[str] = None


class FileIOService:
    """Encoding-aware reads and atomic UTF-8 writes."""

    def __init__(self, fallback_encoding: str = 'latin-1', min_confidence: float = 0.7):
        self.fallback_encoding = fallback_encoding
        self.min_confidence = min_confidence

    def read_file(self, path: Path | str) -> ReadResult:
        """
        Read a text file, detecting its encoding.

        Line endings are normalized to line feeds.

        Args:
            path: Path to the file

        Returns:
            ReadResult with content or error information
        """
        path = Path(path)

        if not path.is_file():
            return ReadResult(success=False, error=f"File not found: {path}")

        try:
            raw = path.read_bytes()
        except PermissionError:
            return ReadResult(success=False, error=f"Permission denied: {path}")
        except OSError as e:
            return ReadResult(success=False, error=f"OS error: {e}")

        content, encoding, bom = self.decode(raw)
        content = content.replace('\r\n', '\n').replace('\r', '\n')
        return ReadResult(success=True, content=FileContent(content, encoding, bom))

    def read_text(self, path: Path | str) -> Optional[str]:
        """Read a text file, logging and returning None on failure."""
        result = self.read_file(path)
        if not result.success:
            logging.error(f"FileIOService - Failed to read {path}: {result.error}")
            return None
        return result.content.content

    def read_bytes(self, path: Path | str) -> Optional[bytes]:
        """Read a file's raw bytes, logging and returning None on failure."""
        try:
            return Path(path).read_bytes()
        except OSError as e:
            logging.error(f"FileIOService - Failed to read bytes from {path}: {e}")
            return None

    def decode(self, raw: bytes) -> tuple[str, str, bool]:
        """
        Decode bytes to text.

        Returns:
            Tuple of (text, encoding used, whether a UTF-8 BOM was present)
        """
        if raw.startswith(_UTF8_BOM):
            return raw[len(_UTF8_BOM):].decode('utf-8', errors='replace'), 'utf-8', True

        encoding = self._detect_encoding(raw)
        try:
            return raw.decode(encoding), encoding, False
        except (UnicodeDecodeError, LookupError):
            logging.warning(
                f"FileIOService - Cannot decode as {encoding}, "
                f"falling back to {self.fallback_encoding}"
            )
            return raw.decode(self.fallback_encoding, errors='replace'), self.fallback_encoding, False

    def write_file(self, path: Path | str, content: str | list[str]) -> WriteResult:
        """
        Write UTF-8 text through a temporary file in the target directory.

        Args:
            path: Path to write to, parent directories are created
            content: Text written as is, or lines each ended by a line feed

        Returns:
            WriteResult with success status
        """
        path = Path(path)
        if isinstance(content, list):
            content = ''.join(f"{line}\n" for line in content)

        try:
            encoded = content.encode('utf-8')
        except UnicodeEncodeError as e:
            return WriteResult(success=False, error=f"Cannot encode text: {e}")

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(dir=path.parent)
            try:
                with os.fdopen(fd, 'wb') as f:
                    f.write(encoded)
                os.replace(temp_path, path)
            except OSError:
                if os.path.exists(temp_path):
                    os.unlink(temp_path)
                raise
        except PermissionError:
            return WriteResult(success=False, error=f"Permission denied: {path}")
        except OSError as e:
            return WriteResult(success=False, error=f"OS error: {e}")

        return WriteResult(success=True, bytes_written=len(encoded))

    def _detect_encoding(self, raw: bytes) -> str:
        # Well-formed UTF-8 needs no guessing
        try:
            raw.decode('utf-8')
            return 'utf-8'
        except UnicodeDecodeError:
            pass

        result = chardet.detect(raw)
        if result['encoding'] and result['confidence'] > self.min_confidence:
            logging.debug(
                f"FileIOService - Detected {result['encoding']} "
                f"({result['confidence']:.2f})"
            )
            return result['encoding'].lower()

        return self.fallback_encoding
