#!/usr/bin/env python3
"""
Exception types raised by NoteSync operations.

Every failure an operation can describe is a ``GitError``. ``ExecutionError``
sits outside that tree: it reports that a worker thread failed to deliver a
result at all.
"""

from typing import Optional


class GitError(Exception):
    """Base exception for repository operation failures."""
    pass


class TransportError(GitError):
    """Network, TLS or authentication failure reported by the transport."""
    pass


class PushError(TransportError):
    """Push to the remote failed.

    ``commit`` holds the sha of a commit created locally just before the push
    attempt, or None if the push carried no new commit. That commit is kept.
    """

    def __init__(self, message: str, commit: Optional[str] = None):
        super().__init__(message)
        self.commit = commit


class RepositoryStateError(GitError):
    """The repository is missing, or lacks something the operation needs."""
    pass


class MergeDivergedError(GitError):
    """Local and remote histories diverged; manual reconciliation required."""
    pass


class ExecutionError(Exception):
    """A dispatched operation did not complete on its worker thread."""
    pass


class SettingsError(ValueError):
    """A settings file could not be read or holds invalid values."""
    pass
