"""
Utility modules for NoteSync.

This package contains logging and platform helpers shared by the core
synchronization engine and the command-line interface.
"""

from .logger import get_logger, setup_logging
from .platform import platform_detector, get_os_type, get_config_dir, OSType

__all__ = [
    'get_logger',
    'setup_logging',
    'platform_detector',
    'get_os_type',
    'get_config_dir',
    'OSType',
]
