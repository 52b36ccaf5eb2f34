#!/usr/bin/env python3
"""
Commit-history timestamps for working-tree files.

A fresh checkout stamps every file with the checkout time. This module walks
the history once, oldest commit first, recording for every path the committer
time of the last commit that added or modified it, and then writes those
times back as file modification times.

Merge commits are diffed against their first parent only, so a change that
reached the branch solely through a merge's other parents is attributed to
an earlier commit (or to the merge itself if the merge touched the path).
"""

import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

from git import Commit, GitCommandError, Repo

from .errors import RepositoryStateError
from .progress import ThrottledProgress, STAGE_ANALYZING, STAGE_APPLYING, scaled_percent
from ..utils.logger import get_logger

logger = get_logger(__name__)

FileTimeMap = Dict[str, int]


@dataclass(frozen=True)
class CommitRef:
    """A commit identifier with its committer timestamp and parent shas."""

    hexsha: str
    timestamp: int
    parents: Tuple[str, ...] = ()

    @classmethod
    def from_commit(cls, commit: Commit) -> 'CommitRef':
        return cls(
            hexsha=commit.hexsha,
            timestamp=int(commit.committed_date),
            parents=tuple(parent.hexsha for parent in commit.parents),
        )

    @property
    def is_root(self) -> bool:
        return not self.parents


def _tree_blob_paths(commit: Commit) -> Iterable[str]:
    for item in commit.tree.traverse():
        if item.type == 'blob':
            yield item.path


def _changed_paths(commit: Commit) -> Iterable[str]:
    """Paths added or modified by ``commit`` relative to its first parent."""
    if not commit.parents:
        yield from _tree_blob_paths(commit)
        return

    for diff in commit.parents[0].diff(commit):
        if diff.deleted_file or not diff.b_path:
            continue
        yield diff.b_path


def walk_file_times(repo: Repo, progress: Optional[ThrottledProgress] = None) -> FileTimeMap:
    """Map every file in HEAD's tree to the time of the commit that last touched it.

    Args:
        repo: Repository to walk.
        progress: Receives analysis progress on the 0-50 range.

    Returns:
        Path to committer timestamp (seconds since the epoch). Empty when
        HEAD has no commits.
    """
    if not repo.head.is_valid():
        logger.debug("HEAD has no commits, nothing to walk")
        if progress is not None:
            progress.update(STAGE_ANALYZING, 0, 0, 50, force=True)
        return {}

    try:
        file_times = _collect_file_times(repo, progress)
        head_paths = set(_tree_blob_paths(repo.head.commit))
    except (GitCommandError, ValueError) as e:
        raise RepositoryStateError(f"Failed to walk history: {e}") from e

    return {path: ts for path, ts in file_times.items() if path in head_paths}


def _collect_file_times(repo: Repo, progress: Optional[ThrottledProgress]) -> FileTimeMap:
    # rev-list emits newest first; reversed, later commits overwrite earlier ones
    commits = list(repo.iter_commits('HEAD', date_order=True, reverse=True))
    total = len(commits)
    logger.debug(f"Walking {total} commits")

    file_times: FileTimeMap = {}
    for processed, commit in enumerate(commits, start=1):
        ref = CommitRef.from_commit(commit)
        if len(ref.parents) > 1:
            logger.debug(f"Diffing merge {ref.hexsha[:8]} against first parent only")

        for path in _changed_paths(commit):
            file_times[path] = ref.timestamp

        if progress is not None:
            progress.update(STAGE_ANALYZING, processed, total,
                            scaled_percent(processed, total, span=50))

    if progress is not None:
        progress.update(STAGE_ANALYZING, total, total, 50, force=True)
    return file_times


def apply_file_times(work_tree: Path, file_times: FileTimeMap,
                     progress: Optional[ThrottledProgress] = None) -> int:
    """Set the modification time of each mapped file under ``work_tree``.

    Files that are missing or cannot be stat'ed or updated are skipped.
    Symlinks get their own time set and are never followed; where the
    platform cannot do that they are skipped.

    Returns:
        Number of files whose modification time was set.
    """
    work_tree = Path(work_tree)
    total = len(file_times)
    fixed = 0
    can_touch_links = os.utime in os.supports_follow_symlinks

    for applied, (rel_path, timestamp) in enumerate(sorted(file_times.items()), start=1):
        file_path = work_tree.joinpath(*rel_path.split('/'))
        try:
            st = os.lstat(file_path)
            if not stat.S_ISLNK(st.st_mode):
                os.utime(file_path, (st.st_atime, timestamp))
                fixed += 1
            elif can_touch_links:
                os.utime(file_path, (st.st_atime, timestamp), follow_symlinks=False)
                fixed += 1
            else:
                logger.debug(f"Skipping timestamp for symlink {rel_path}")
        except OSError as e:
            logger.debug(f"Skipping timestamp for {rel_path}: {e}")

        if progress is not None:
            progress.update(STAGE_APPLYING, applied, total,
                            scaled_percent(applied, total, span=50, offset=50))

    if progress is not None:
        progress.update(STAGE_APPLYING, total, total, 100, force=True)

    logger.debug(f"Set modification times on {fixed} of {total} files")
    return fixed
