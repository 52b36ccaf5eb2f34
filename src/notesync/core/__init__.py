"""
Core modules for NoteSync.

This package contains the repository synchronization engine: transport
wiring, history timestamp reconstruction, progress reporting, and the
clone/pull/sync operations with their background worker.
"""

from .errors import (
    ExecutionError,
    GitError,
    MergeDivergedError,
    PushError,
    RepositoryStateError,
    SettingsError,
    TransportError,
)
from .git_handler import GitHandler, RepositoryStatus
from .history import CommitRef, apply_file_times, walk_file_times
from .merge import MergeAnalysis, MergeKind, analyze_merge
from .progress import (
    BufferedProgressSink,
    CallbackProgressSink,
    NullProgressSink,
    ProgressEvent,
    ProgressSink,
    QueueProgressSink,
)
from .settings import SyncSettings, load_settings, save_settings
from .sync import SyncManager, SyncResult, SyncStatus
from .transport import Credentials, TransportCallbacks
from .worker import SyncWorker

__all__ = [
    'ExecutionError',
    'GitError',
    'MergeDivergedError',
    'PushError',
    'RepositoryStateError',
    'SettingsError',
    'TransportError',
    'GitHandler',
    'RepositoryStatus',
    'CommitRef',
    'apply_file_times',
    'walk_file_times',
    'MergeAnalysis',
    'MergeKind',
    'analyze_merge',
    'BufferedProgressSink',
    'CallbackProgressSink',
    'NullProgressSink',
    'ProgressEvent',
    'ProgressSink',
    'QueueProgressSink',
    'SyncSettings',
    'load_settings',
    'save_settings',
    'SyncManager',
    'SyncResult',
    'SyncStatus',
    'Credentials',
    'TransportCallbacks',
    'SyncWorker',
]
