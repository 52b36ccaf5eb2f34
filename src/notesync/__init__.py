"""
NoteSync - repository synchronization engine for a notes application

This package clones, pulls and pushes a git working tree over HTTPS with
token authentication, and restores file modification times from commit
history after a clone.
"""

__version__ = "1.0.0"
__author__ = "NoteSync Team"
__description__ = "Repository synchronization engine for a notes application"

from .core.sync import SyncManager, SyncResult, SyncStatus
from .core.worker import SyncWorker
from .core.transport import Credentials
from .core.progress import ProgressEvent, ProgressSink
from .utils.logger import get_logger

VERSION = __version__
VERSION_INFO = tuple(map(int, __version__.split('.')))

__all__ = [
    'SyncManager',
    'SyncResult',
    'SyncStatus',
    'SyncWorker',
    'Credentials',
    'ProgressEvent',
    'ProgressSink',
    'get_logger',
    'VERSION',
    'VERSION_INFO',
]
