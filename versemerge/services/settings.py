"""
Application settings management.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from versemerge.core.diff.text_diff import VisualDiffStyle
from versemerge.core.merge.three_way import DEFAULT_GRAPHEME_THRESHOLD, ThreeWayMergeEngine


class LogLevel(Enum):
    """Log level options."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @classmethod
    def from_string(cls, value: str) -> 'LogLevel':
        """Create from string value."""
        try:
            return cls[value.upper()]
        except (KeyError, AttributeError):
            return cls.INFO


@dataclass
class MergeSettings:
    """Settings for merge operations."""
    grapheme_similarity_threshold: int = DEFAULT_GRAPHEME_THRESHOLD
    strip_trailing_newlines: bool = True
    verse_aware: bool = False

    def create_engine(self) -> ThreeWayMergeEngine:
        """Build a merge engine configured with these settings."""
        return ThreeWayMergeEngine(
            grapheme_similarity_threshold=self.grapheme_similarity_threshold,
            strip_trailing_newlines=self.strip_trailing_newlines
        )


@dataclass
class DiffStyleSettings:
    """Markers for the visual diff."""
    removed_open: str = '<span style="text-decoration: line-through;">'
    added_open: str = '<span style="font-weight: bold;">'
    close: str = '</span>'
    escape_html: bool = False

    def to_style(self) -> VisualDiffStyle:
        return VisualDiffStyle(
            removed_open=self.removed_open,
            added_open=self.added_open,
            close=self.close,
            escape_html=self.escape_html
        )


@dataclass
class ReportSettings:
    """Settings for the verse-level report."""
    old_usfm_name: str = "verses_old.usfm"
    new_usfm_name: str = "verses_new.usfm"
    old_text_name: str = "verses_old.txt"
    new_text_name: str = "verses_new.txt"
    html_name: str = "changed_verses.html"
    html_title: str = "Changed verses"


@dataclass
class ApplicationSettings:
    """Main application settings container."""
    merge: MergeSettings = field(default_factory=MergeSettings)
    diff_style: DiffStyleSettings = field(default_factory=DiffStyleSettings)
    report: ReportSettings = field(default_factory=ReportSettings)
    log_level: LogLevel = LogLevel.INFO


class SettingsManager:
    """Manager for loading/saving application settings."""

    def __init__(self, settings_path: Optional[Path] = None):
        self.settings_path = Path(settings_path) if settings_path else self._get_default_path()
        self._settings: Optional[ApplicationSettings] = None

    @staticmethod
    def _get_default_path() -> Path:
        """Get the default settings file path."""
        if os.name == 'nt':
            # Windows
            app_data = os.environ.get('APPDATA', os.path.expanduser('~'))
            return Path(app_data) / 'VerseMerge' / 'settings.json'
        else:
            # Linux/Mac
            config_home = os.environ.get('XDG_CONFIG_HOME',
                                         os.path.expanduser('~/.config'))
            return Path(config_home) / 'versemerge' / 'settings.json'

    @property
    def settings(self) -> ApplicationSettings:
        """Get current settings, loading from disk if needed."""
        if self._settings is None:
            self._settings = self.load()
        return self._settings

    def load(self) -> ApplicationSettings:
        """Load settings from disk, falling back to defaults."""
        if not self.settings_path.exists():
            return ApplicationSettings()

        try:
            with open(self.settings_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logging.warning(f"SettingsManager - Using defaults, cannot read {self.settings_path}: {e}")
            return ApplicationSettings()

        if not isinstance(data, dict):
            logging.warning(f"SettingsManager - Using defaults, {self.settings_path} is not an object")
            return ApplicationSettings()

        try:
            return self._from_dict(data)
        except (TypeError, ValueError) as e:
            logging.warning(f"SettingsManager - Using defaults, invalid value in {self.settings_path}: {e}")
            return ApplicationSettings()

    def save(self, settings: Optional[ApplicationSettings] = None) -> bool:
        """Save settings to disk."""
        settings = settings or self._settings
        if settings is None:
            return False

        try:
            self.settings_path.parent.mkdir(parents=True, exist_ok=True)

            data = self._to_dict(settings)

            with open(self.settings_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)

            self._settings = settings
            return True

        except OSError as e:
            logging.error(f"SettingsManager - Failed to save {self.settings_path}: {e}")
            return False

    def reset(self) -> ApplicationSettings:
        """Reset to default settings."""
        self._settings = ApplicationSettings()
        self.save()
        return self._settings

    def _to_dict(self, settings: ApplicationSettings) -> dict:
        """Convert settings to dictionary for JSON serialization."""
        def convert(obj: Any) -> Any:
            if isinstance(obj, Enum):
                return obj.name
            elif hasattr(obj, '__dataclass_fields__'):
                return {k: convert(getattr(obj, k)) for k in asdict(obj)}
            elif isinstance(obj, list):
                return [convert(item) for item in obj]
            elif isinstance(obj, dict):
                return {k: convert(v) for k, v in obj.items()}
            else:
                return obj

        return convert(settings)

    def _from_dict(self, data: dict) -> ApplicationSettings:
        """Convert dictionary back to settings objects."""
        def section(name: str) -> dict:
            value = data.get(name, {})
            return value if isinstance(value, dict) else {}

        merge_data = section('merge')
        merge = MergeSettings(
            grapheme_similarity_threshold=int(merge_data.get(
                'grapheme_similarity_threshold', DEFAULT_GRAPHEME_THRESHOLD)),
            strip_trailing_newlines=bool(merge_data.get('strip_trailing_newlines', True)),
            verse_aware=bool(merge_data.get('verse_aware', False)),
        )

        style_data = section('diff_style')
        diff_style = DiffStyleSettings(
            removed_open=style_data.get('removed_open', DiffStyleSettings().removed_open),
            added_open=style_data.get('added_open', DiffStyleSettings().added_open),
            close=style_data.get('close', DiffStyleSettings().close),
            escape_html=bool(style_data.get('escape_html', False)),
        )

        report_data = section('report')
        report = ReportSettings(
            old_usfm_name=report_data.get('old_usfm_name', ReportSettings().old_usfm_name),
            new_usfm_name=report_data.get('new_usfm_name', ReportSettings().new_usfm_name),
            old_text_name=report_data.get('old_text_name', ReportSettings().old_text_name),
            new_text_name=report_data.get('new_text_name', ReportSettings().new_text_name),
            html_name=report_data.get('html_name', ReportSettings().html_name),
            html_title=report_data.get('html_title', ReportSettings().html_title),
        )

        return ApplicationSettings(
            merge=merge,
            diff_style=diff_style,
            report=report,
            log_level=LogLevel.from_string(str(data.get('log_level', 'INFO'))),
        )
