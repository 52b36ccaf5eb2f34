#!/usr/bin/env python3
"""
Platform detection and OS-specific locations for NoteSync.

This module detects the operating system and resolves where NoteSync keeps
its settings file and logs on each platform.
"""

import os
import platform
from pathlib import Path
from typing import Dict
from enum import Enum

APP_DIR_NAME = 'notesync'


class OSType(Enum):
    """Supported operating system types."""
    LINUX = "linux"
    MACOS = "darwin"
    WINDOWS = "windows"
    UNKNOWN = "unknown"


class PlatformDetector:
    """Handles platform detection and OS-specific directories."""

    def __init__(self):
        self._os_type = self._detect_os()

    @staticmethod
    def _detect_os() -> OSType:
        """Detect the current operating system."""
        system = platform.system().lower()

        if system == "linux":
            return OSType.LINUX
        elif system == "darwin":
            return OSType.MACOS
        elif system == "windows":
            return OSType.WINDOWS
        else:
            return OSType.UNKNOWN

    @property
    def os_type(self) -> OSType:
        return self._os_type

    @property
    def is_macos(self) -> bool:
        return self._os_type == OSType.MACOS

    @property
    def is_windows(self) -> bool:
        return self._os_type == OSType.WINDOWS

    @property
    def home_dir(self) -> Path:
        """The user's home directory, resolved on every access."""
        return Path.home()

    def _base_paths(self) -> Dict[str, Path]:
        """Get OS-specific base directories for config and state."""
        home = self.home_dir

        if self.is_macos:
            support = home / 'Library' / 'Application Support'
            return {
                'config': support,
                'logs': home / 'Library' / 'Logs',
            }
        elif self.is_windows:
            appdata = os.environ.get('APPDATA', str(home / 'AppData' / 'Roaming'))
            localappdata = os.environ.get('LOCALAPPDATA', str(home / 'AppData' / 'Local'))
            return {
                'config': Path(appdata),
                'logs': Path(localappdata),
            }

        config_home = os.environ.get('XDG_CONFIG_HOME') or str(home / '.config')
        state_home = os.environ.get('XDG_STATE_HOME') or str(home / '.local' / 'state')
        return {
            'config': Path(config_home),
            'logs': Path(state_home),
        }

    def get_config_dir(self) -> Path:
        """Directory holding NoteSync's settings file."""
        return self._base_paths()['config'] / APP_DIR_NAME

    def get_log_dir(self) -> Path:
        """Directory holding NoteSync's rotating log files."""
        return self._base_paths()['logs'] / APP_DIR_NAME / 'logs'


# Global instance for convenience
platform_detector = PlatformDetector()


def get_os_type() -> OSType:
    """Get the current OS type."""
    return platform_detector.os_type


def get_config_dir() -> Path:
    """Get NoteSync's configuration directory."""
    return platform_detector.get_config_dir()
