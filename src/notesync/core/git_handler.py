#!/usr/bin/env python3
"""
Git repository handler for NoteSync.

``GitHandler`` owns one open repository for the duration of one operation and
exposes the handful of git primitives the synchronization engine is built
from. Failures are raised as ``GitError`` subclasses carrying git's message.
"""

from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Optional, Union

from git import Actor, Commit, GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo
from git.exc import UnmergedEntriesError
from git.objects import Tree
from git.remote import PushInfo, Remote

from .errors import GitError, PushError, RepositoryStateError, TransportError
from .transport import TransferProgress, TransportCallbacks
from ..utils.logger import get_logger

PUSH_FAILURE_FLAGS = (
    PushInfo.ERROR | PushInfo.REJECTED | PushInfo.REMOTE_REJECTED | PushInfo.REMOTE_FAILURE
)


@dataclass
class RepositoryStatus:
    """Snapshot of working-tree and index state."""

    branch: Optional[str]
    modified: int = 0
    added: int = 0
    deleted: int = 0
    untracked: int = 0
    is_clean: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def parse_porcelain_status(output: str, branch: Optional[str] = None) -> RepositoryStatus:
    """Count entries of ``git status --porcelain -z`` output."""
    status = RepositoryStatus(branch=branch)
    entries = [entry for entry in output.split('\0') if entry]

    index = 0
    while index < len(entries):
        entry = entries[index]
        index += 1
        code = entry[:2]
        x, y = code[0], code[1]

        if x in 'RC':
            # Renames and copies are followed by the original path
            index += 1
            status.added += 1
            if x == 'R':
                status.deleted += 1
            if y == 'M':
                status.modified += 1
            continue

        if code == '??':
            status.untracked += 1
        else:
            if x == 'M' or y == 'M':
                status.modified += 1
            if x == 'A':
                status.added += 1
            if x == 'D' or y == 'D':
                status.deleted += 1

    status.is_clean = not entries
    return status


class GitHandler:
    """Handles Git repository operations for NoteSync."""

    def __init__(self, repo_path: Union[str, Path], repo: Optional[Repo] = None):
        """
        Open an existing repository.

        Args:
            repo_path: Path to the repository working tree
            repo: Already opened repository for ``repo_path``

        Raises:
            RepositoryStateError: If ``repo_path`` is not a git repository
        """
        self.logger = get_logger(f"{__name__}.GitHandler")
        self.repo_path = Path(repo_path).resolve()

        if repo is None:
            try:
                repo = Repo(self.repo_path)
            except (InvalidGitRepositoryError, NoSuchPathError) as e:
                raise RepositoryStateError(f"Failed to open repo: not a git repository: {e}") from e

        self.repo = repo

    @classmethod
    def init_repository(cls, repo_path: Union[str, Path], initial_branch: str = 'main') -> 'GitHandler':
        """Create ``repo_path`` and an empty repository in it."""
        repo_path = Path(repo_path)
        try:
            repo_path.mkdir(parents=True, exist_ok=True)
            repo = Repo.init(repo_path, initial_branch=initial_branch)
        except (OSError, GitCommandError) as e:
            raise GitError(f"Failed to initialize repository: {e}") from e
        return cls(repo_path, repo)

    @classmethod
    def clone_from(cls, url: str, destination: Union[str, Path],
                   callbacks: TransportCallbacks,
                   progress: Optional[TransferProgress] = None) -> 'GitHandler':
        """Clone ``url`` into ``destination``.

        Raises:
            TransportError: If git could not complete the clone
        """
        try:
            repo = Repo.clone_from(url, str(destination), progress=progress,
                                   env=callbacks.environment())
        except GitCommandError as e:
            raise TransportError(f"Failed to clone repository: {_git_message(e)}") from e
        return cls(destination, repo)

    def close(self):
        self.repo.close()

    def __enter__(self) -> 'GitHandler':
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    @property
    def working_tree(self) -> Path:
        return Path(self.repo.working_tree_dir)

    @property
    def current_branch(self) -> Optional[str]:
        """Name of the branch HEAD points to, even before its first commit.

        Returns None when HEAD is detached.
        """
        if self.repo.head.is_detached:
            return None
        return self.repo.head.reference.name

    @property
    def head_commit(self) -> Optional[Commit]:
        """Commit at HEAD, or None for a repository without commits."""
        if not self.repo.head.is_valid():
            return None
        return self.repo.head.commit

    def require_branch(self) -> str:
        branch = self.current_branch
        if branch is None:
            raise RepositoryStateError("Failed to get HEAD: HEAD is detached, no branch checked out")
        return branch

    def has_remote(self, name: str) -> bool:
        return name in [remote.name for remote in self.repo.remotes]

    def remote(self, name: str) -> Remote:
        if not self.has_remote(name):
            raise RepositoryStateError(f"Failed to find remote '{name}'")
        return self.repo.remote(name)

    def configure_remote(self, name: str, url: str) -> bool:
        """Point remote ``name`` at ``url``; returns True if it was created."""
        try:
            if self.has_remote(name):
                self.repo.remote(name).set_url(url)
                created = False
            else:
                self.repo.create_remote(name, url)
                created = True
        except GitCommandError as e:
            raise GitError(f"Failed to set remote URL: {_git_message(e)}") from e

        self.logger.info(f"{'Added' if created else 'Updated'} remote '{name}': {url}")
        return created

    def add_all(self):
        """Stage every change in the working tree, deletions included."""
        try:
            self.repo.git.add(A=True)
        except GitCommandError as e:
            raise GitError(f"Failed to add files: {_git_message(e)}") from e
        self.logger.debug("Added all changes to staging area")

    def write_tree(self) -> Tree:
        """Write the index as a tree object.

        Raises:
            RepositoryStateError: If the index still holds unmerged entries
        """
        try:
            return self.repo.index.write_tree()
        except (UnmergedEntriesError, GitCommandError, ValueError) as e:
            raise RepositoryStateError(f"Failed to write tree: {e}") from e

    def commit_tree(self, tree: Tree, message: str, actor: Actor,
                    parent: Optional[Commit] = None) -> Commit:
        """Create a commit of ``tree`` on the current branch and move HEAD to it."""
        parents = [parent] if parent is not None else []
        try:
            commit = Commit.create_from_tree(self.repo, tree, message,
                                             parent_commits=parents, head=True,
                                             author=actor, committer=actor)
        except (GitCommandError, ValueError) as e:
            raise GitError(f"Failed to commit: {e}") from e

        self.logger.info(f"Created commit {commit.hexsha[:8]}: {message}")
        return commit

    def fetch(self, remote: Remote, branch: str, callbacks: TransportCallbacks) -> Commit:
        """Fetch ``branch`` from ``remote`` and return the commit in FETCH_HEAD."""
        try:
            with self.repo.git.custom_environment(**callbacks.environment()):
                remote.fetch(branch)
        except GitCommandError as e:
            raise TransportError(f"Failed to fetch: {_git_message(e)}") from e

        try:
            sha = self.repo.git.rev_parse('FETCH_HEAD')
        except GitCommandError as e:
            raise RepositoryStateError(f"Failed to find FETCH_HEAD: {_git_message(e)}") from e

        self.logger.debug(f"Fetched {remote.name}/{branch} at {sha[:8]}")
        return self.repo.commit(sha)

    def fast_forward(self, branch: str, target: Commit):
        """Move ``branch`` to ``target`` and force the working tree to match it.

        Uncommitted changes to tracked files are discarded.
        """
        if branch in self.repo.heads:
            head = self.repo.heads[branch]
            head.set_commit(target, logmsg="Fast-forward")
        else:
            head = self.repo.create_head(branch, target)

        self.repo.head.set_reference(head)
        try:
            self.repo.head.reset(index=True, working_tree=True)
        except GitCommandError as e:
            raise GitError(f"Failed to checkout: {_git_message(e)}") from e

        self.logger.info(f"Fast-forwarded '{branch}' to {target.hexsha[:8]}")

    def push(self, remote: Remote, branch: str, callbacks: TransportCallbacks):
        """Push ``branch`` to the same-named branch of ``remote``."""
        refspec = f"refs/heads/{branch}:refs/heads/{branch}"
        try:
            with self.repo.git.custom_environment(**callbacks.environment()):
                results = remote.push(refspec=refspec)
            results.raise_if_error()
        except GitCommandError as e:
            raise PushError(f"Failed to push: {_git_message(e)}") from e

        for info in results:
            if info.flags & PUSH_FAILURE_FLAGS:
                raise PushError(f"Failed to push: {info.remote_ref_string}: {info.summary.strip()}")

        self.logger.info(f"Pushed {branch} to {remote.name}")

    def get_status(self) -> RepositoryStatus:
        """Get a status snapshot.

        Ignored files are not counted. Renames are not detected, so a moved
        file counts as one deletion and one addition.
        """
        try:
            output = self.repo.git.status(porcelain=True, z=True, untracked_files='all',
                                          no_renames=True)
        except GitCommandError as e:
            raise GitError(f"Failed to get status: {_git_message(e)}") from e
        return parse_porcelain_status(output, self.current_branch)


def _git_message(error: GitCommandError) -> str:
    """git's own error text, falling back to the exception's description."""
    stderr = error.stderr.strip() if isinstance(error.stderr, str) else ''
    if stderr.startswith("stderr: "):
        stderr = stderr[len("stderr: "):].strip().strip("'").strip()
    return stderr or str(error)
