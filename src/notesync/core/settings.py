#!/usr/bin/env python3
"""
Settings for NoteSync.

Settings are kept in a YAML or TOML file (chosen by suffix) under the
platform configuration directory. A missing file yields the defaults.
"""

from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import toml
import yaml

from .errors import SettingsError
from ..utils.logger import get_logger
from ..utils.platform import platform_detector

logger = get_logger(__name__)

SETTINGS_FILENAME = 'config.yaml'


@dataclass
class SyncSettings:
    """Tunable behaviour of the synchronization engine.

    Attributes:
        author_name: Name recorded as author and committer of sync commits.
        author_email: Email recorded as author and committer of sync commits.
        default_branch: Initial branch of repositories created by ``init``.
        accept_invalid_certificates: Accept any TLS certificate presented by
            the remote. Devices without a CA bundle need this; it removes
            server authentication from the transport.
        transfer_progress_step: Minimum percent advance between transfer
            progress events.
        timestamp_progress_step: Minimum percent advance between timestamp
            fix progress events.
        progress_topic: Topic name attached to queued progress events.
        max_workers: Worker threads used for clone, pull and sync.
        log_level: Console log level used by the command-line interface.
    """

    author_name: str = "NoteSync"
    author_email: str = "notesync@localhost"
    default_branch: str = "main"
    accept_invalid_certificates: bool = True
    transfer_progress_step: int = 5
    timestamp_progress_step: int = 10
    progress_topic: str = "clone-progress"
    max_workers: int = 1
    log_level: str = "INFO"

    def __post_init__(self):
        self.validate()

    def validate(self):
        """Raise SettingsError if any field holds an unusable value."""
        for name in ('author_name', 'author_email', 'default_branch', 'progress_topic'):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise SettingsError(f"'{name}' must be a non-empty string")

        for name in ('transfer_progress_step', 'timestamp_progress_step'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 100:
                raise SettingsError(f"'{name}' must be an integer between 1 and 100")

        if isinstance(self.max_workers, bool) or not isinstance(self.max_workers, int) \
                or self.max_workers < 1:
            raise SettingsError("'max_workers' must be a positive integer")

        if not isinstance(self.accept_invalid_certificates, bool):
            raise SettingsError("'accept_invalid_certificates' must be a boolean")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SyncSettings':
        """Create settings from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown settings: {', '.join(unknown)}")
        return cls(**{key: value for key, value in data.items() if key in known})


def default_settings_path() -> Path:
    """Location of the settings file for the current platform."""
    return platform_detector.get_config_dir() / SETTINGS_FILENAME


def _is_toml(path: Path) -> bool:
    return path.suffix.lower() == '.toml'


def load_settings(path: Optional[Union[str, Path]] = None) -> SyncSettings:
    """Load settings from ``path`` (or the default location).

    Raises:
        SettingsError: If the file cannot be parsed or holds invalid values.
    """
    path = Path(path) if path else default_settings_path()
    if not path.exists():
        logger.debug(f"No settings file at {path}, using defaults")
        return SyncSettings()

    try:
        with open(path, 'r', encoding='utf-8') as f:
            if _is_toml(path):
                data = toml.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError, toml.TomlDecodeError) as e:
        raise SettingsError(f"Failed to read settings from {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise SettingsError(f"Settings file {path} must contain a mapping")

    try:
        settings = SyncSettings.from_dict(data)
    except TypeError as e:
        raise SettingsError(f"Invalid settings in {path}: {e}") from e

    logger.debug(f"Loaded settings from {path}")
    return settings


def save_settings(settings: SyncSettings, path: Optional[Union[str, Path]] = None) -> Path:
    """Write settings to ``path`` (or the default location)."""
    path = Path(path) if path else default_settings_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w', encoding='utf-8') as f:
        if _is_toml(path):
            toml.dump(settings.to_dict(), f)
        else:
            yaml.safe_dump(settings.to_dict(), f, default_flow_style=False, sort_keys=False)

    logger.debug(f"Saved settings to {path}")
    return path
