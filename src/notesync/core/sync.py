#!/usr/bin/env python3
"""
Synchronization manager for NoteSync.

This module provides the operations the notes application invokes: clone a
remote (restoring file modification times from history), pull with
fast-forward-only reconciliation, commit-and-push, and the small inline
operations init, configure_remote and status.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from git import Actor

from .errors import MergeDivergedError, PushError
from .git_handler import GitHandler, RepositoryStatus
from .history import apply_file_times, walk_file_times
from .merge import MergeKind, analyze_merge
from .progress import (
    NullProgressSink,
    ProgressEvent,
    ProgressSink,
    ThrottledProgress,
    STAGE_COMPLETE,
    STAGE_STARTING,
    emit,
)
from .settings import SyncSettings
from .transport import Credentials, TransferProgress, TransportCallbacks
from ..utils.logger import get_logger

REMOTE_NAME = 'origin'


class SyncStatus(Enum):
    """Outcome of a successful operation."""
    CLONED = "cloned"
    UP_TO_DATE = "up_to_date"
    FAST_FORWARD = "fast_forward"
    PUSHED = "pushed"
    NO_CHANGES = "no_changes"
    INITIALIZED = "initialized"
    REMOTE_CONFIGURED = "remote_configured"


@dataclass
class SyncResult:
    """Result of a synchronization operation."""

    status: SyncStatus
    message: str
    fixed_timestamps: int = 0
    commit: Optional[str] = None


class SyncManager:
    """Main synchronization manager class.

    Each call opens the repository it works on and closes it before
    returning. Callers must not run two operations on the same path at once.
    """

    def __init__(self, settings: Optional[SyncSettings] = None):
        self.logger = get_logger(f"{__name__}.SyncManager")
        self.settings = settings or SyncSettings()

    def _callbacks(self, credentials: Credentials) -> TransportCallbacks:
        return TransportCallbacks(
            credentials,
            accept_invalid_certificates=self.settings.accept_invalid_certificates,
        )

    @property
    def signature(self) -> Actor:
        return Actor(self.settings.author_name, self.settings.author_email)

    def clone(self, url: str, destination: Union[str, Path], credentials: Credentials,
              sink: Optional[ProgressSink] = None) -> SyncResult:
        """
        Clone ``url`` into ``destination`` and restore file timestamps.

        Args:
            url: Remote repository URL
            destination: Directory to create the working tree in
            credentials: Username/token pair for the remote
            sink: Receives progress events; the last one is always "Complete"

        Returns:
            SyncResult whose ``fixed_timestamps`` counts updated files

        Raises:
            TransportError: If the clone fails; ``destination`` is left as is
        """
        sink = sink or NullProgressSink()
        destination = Path(destination)
        emit(sink, ProgressEvent(STAGE_STARTING))

        self.logger.info(f"Cloning {url} into {destination}")
        transfer = TransferProgress(ThrottledProgress(sink, self.settings.transfer_progress_step))
        with GitHandler.clone_from(url, destination, self._callbacks(credentials), transfer) as handler:
            fixup = ThrottledProgress(sink, self.settings.timestamp_progress_step)
            file_times = walk_file_times(handler.repo, fixup)
            fixed = apply_file_times(handler.working_tree, file_times, fixup)

        emit(sink, ProgressEvent(STAGE_COMPLETE, percent=100))
        message = f"Successfully cloned to {destination} (fixed {fixed} file timestamps)"
        self.logger.info(message)
        return SyncResult(SyncStatus.CLONED, message, fixed_timestamps=fixed)

    def pull(self, repo_path: Union[str, Path], credentials: Credentials) -> SyncResult:
        """
        Fetch the current branch from origin and fast-forward to it.

        A fast-forward force-checks-out the fetched tree: uncommitted edits
        to tracked files are discarded. Commit and sync first to keep them.

        Raises:
            RepositoryStateError: Not a repository, detached HEAD or no origin
            TransportError: The fetch failed
            MergeDivergedError: Local and remote histories diverged
        """
        with GitHandler(repo_path) as handler:
            branch = handler.require_branch()
            remote = handler.remote(REMOTE_NAME)

            self.logger.info(f"Fetching {branch} from {REMOTE_NAME}...")
            fetched = handler.fetch(remote, branch, self._callbacks(credentials))
            analysis = analyze_merge(handler.repo, fetched)

            if analysis.kind is MergeKind.UP_TO_DATE:
                self.logger.info("Already up to date")
                return SyncResult(SyncStatus.UP_TO_DATE, "Already up to date")

            if analysis.kind is MergeKind.FAST_FORWARD:
                handler.fast_forward(branch, fetched)
                return SyncResult(SyncStatus.FAST_FORWARD, "Fast-forward merge completed",
                                  commit=analysis.target.hexsha)

        self.logger.warning(f"Local '{branch}' and {REMOTE_NAME}/{branch} have diverged")
        raise MergeDivergedError("Merge required - manual intervention needed")

    def sync(self, repo_path: Union[str, Path], message: str,
             credentials: Credentials) -> SyncResult:
        """
        Commit every working-tree change and push the current branch to origin.

        The push is attempted even when there is nothing to commit, so a
        remote that moved ahead surfaces as a push failure.

        Raises:
            RepositoryStateError: Not a repository, detached HEAD or no origin
            PushError: The push failed; ``commit`` names a commit made just before
        """
        with GitHandler(repo_path) as handler:
            branch = handler.require_branch()
            remote = handler.remote(REMOTE_NAME)

            handler.add_all()
            tree = handler.write_tree()
            parent = handler.head_commit
            has_changes = parent is None or parent.tree.binsha != tree.binsha

            commit_sha = None
            if has_changes:
                commit = handler.commit_tree(tree, message, self.signature, parent)
                commit_sha = commit.hexsha
            else:
                self.logger.info("No changes to commit")

            try:
                handler.push(remote, branch, self._callbacks(credentials))
            except PushError as e:
                e.commit = commit_sha
                raise

        if has_changes:
            return SyncResult(SyncStatus.PUSHED, "Changes committed and pushed", commit=commit_sha)
        return SyncResult(SyncStatus.NO_CHANGES, "No changes to commit, pushed to remote")

    def init(self, repo_path: Union[str, Path]) -> SyncResult:
        """Create an empty repository at ``repo_path``."""
        with GitHandler.init_repository(repo_path, self.settings.default_branch):
            pass
        message = f"Initialized empty repository in {repo_path}"
        self.logger.info(message)
        return SyncResult(SyncStatus.INITIALIZED, message)

    def configure_remote(self, repo_path: Union[str, Path], url: str) -> SyncResult:
        """Set origin's URL, adding the remote if it does not exist."""
        with GitHandler(repo_path) as handler:
            handler.configure_remote(REMOTE_NAME, url)
        return SyncResult(SyncStatus.REMOTE_CONFIGURED, f"Remote '{REMOTE_NAME}' set to {url}")

    def status(self, repo_path: Union[str, Path]) -> RepositoryStatus:
        """Read-only snapshot of the repository's state."""
        with GitHandler(repo_path) as handler:
            return handler.get_status()
