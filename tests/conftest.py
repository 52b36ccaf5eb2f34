"""
Shared fixtures: real git repositories built with GitPython in tmp_path.
"""

from pathlib import Path
from types import SimpleNamespace
from typing import Dict, Iterable, Optional

import pytest
from git import Actor, Repo

from notesync.core.progress import (
    STAGE_ANALYZING,
    STAGE_APPLYING,
    STAGE_RECEIVING,
)
from notesync.core.settings import SyncSettings
from notesync.core.sync import SyncManager
from notesync.core.transport import Credentials

AUTHOR = Actor("Test Author", "author@example.com")

T0 = 1_600_000_000
T1 = T0 + 3600
T2 = T0 + 7200
T3 = T0 + 10800


def commit_files(repo: Repo, files: Dict[str, str], message: str, timestamp: int,
                 remove: Iterable[str] = (), parents: Optional[list] = None):
    """Write ``files``, stage them (and removals) and commit at ``timestamp``."""
    root = Path(repo.working_tree_dir)
    for rel_path, content in files.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    if files:
        repo.index.add(list(files))
    remove = list(remove)
    if remove:
        repo.index.remove(remove, working_tree=True)

    date = f"{timestamp} +0000"
    return repo.index.commit(message, parent_commits=parents, author=AUTHOR,
                             committer=AUTHOR, author_date=date, commit_date=date)


def phase_percents(events, stages):
    return [event.percent for event in events if event.stage in stages]


def assert_monotonic_phases(events):
    """Percent never decreases within the transfer or timestamp-fix phase."""
    for stages in ({STAGE_RECEIVING}, {STAGE_ANALYZING, STAGE_APPLYING}):
        percents = phase_percents(events, stages)
        assert percents == sorted(percents)


@pytest.fixture(autouse=True)
def isolated_git(tmp_path_factory, monkeypatch):
    """Keep git away from the user's configuration."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", AUTHOR.name)
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", AUTHOR.email)
    monkeypatch.setenv("GIT_COMMITTER_NAME", AUTHOR.name)
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", AUTHOR.email)
    return home


@pytest.fixture
def credentials():
    return Credentials("notes-user", "secret-token")


@pytest.fixture
def settings():
    return SyncSettings(author_name="NoteSync Test", author_email="sync@example.com")


@pytest.fixture
def manager(settings):
    return SyncManager(settings)


@pytest.fixture
def work_repo(tmp_path):
    """A non-bare repository on branch main with no commits."""
    return Repo.init(tmp_path / "work", initial_branch="main")


@pytest.fixture
def remote_repo(tmp_path):
    """A bare remote whose main holds three commits, each adding one note."""
    bare_path = tmp_path / "remote.git"
    Repo.init(bare_path, bare=True, initial_branch="main")

    seed = Repo.init(tmp_path / "seed", initial_branch="main")
    seed.create_remote("origin", str(bare_path))
    commits = [
        commit_files(seed, {"first.md": "one"}, "Add first", T0),
        commit_files(seed, {"notes/second.md": "two"}, "Add second", T1),
        commit_files(seed, {"third.md": "three"}, "Add third", T2),
    ]
    seed.remote("origin").push("refs/heads/main:refs/heads/main")

    return SimpleNamespace(path=bare_path, url=str(bare_path), seed=seed, commits=commits)


@pytest.fixture
def clone_pair(tmp_path, remote_repo):
    """Two independent clones of ``remote_repo``: ``local`` and ``other``."""
    local = Repo.clone_from(remote_repo.url, tmp_path / "local")
    other = Repo.clone_from(remote_repo.url, tmp_path / "other")
    return SimpleNamespace(remote=remote_repo, local=local, other=other,
                           local_path=tmp_path / "local")


def push_from(repo: Repo):
    repo.remote("origin").push("refs/heads/main:refs/heads/main")
