#!/usr/bin/env python3
"""
Tests for the command-line interface.
"""

import json
import logging
import os

import pytest
import yaml
from click.testing import CliRunner
from git import Repo
from rich.logging import RichHandler

from notesync.cli import cli
from notesync.core.settings import SyncSettings, load_settings
from notesync.utils.logger import ColoredFormatter, get_logger, setup_logging

from .conftest import T0, T3, commit_files, push_from


@pytest.fixture
def runner(monkeypatch):
    monkeypatch.delenv("NOTESYNC_USERNAME", raising=False)
    monkeypatch.delenv("NOTESYNC_TOKEN", raising=False)
    return CliRunner()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "notesync.yaml"
    path.write_text(yaml.safe_dump({
        "author_name": "CLI Author",
        "author_email": "cli@example.com",
    }))
    return path


@pytest.fixture
def invoke(runner, config_file):
    def _invoke(*args, credentials=True):
        base = ["--config", str(config_file)]
        if credentials:
            base += ["--username", "notes-user", "--token", "secret-token"]
        return runner.invoke(cli, base + [str(arg) for arg in args])
    return _invoke


class TestInitCommand:
    """Test the init command."""

    def test_init_creates_repository(self, invoke, tmp_path):
        path = tmp_path / "notes"

        result = invoke("init", path, credentials=False)

        assert result.exit_code == 0
        assert "Initialized empty repository" in result.output
        assert Repo(path).head.reference.name == "main"


class TestStatusCommand:
    """Test the status command."""

    def test_json_output(self, invoke, work_repo):
        commit_files(work_repo, {"a.md": "a"}, "root", T0)
        with open(os.path.join(work_repo.working_tree_dir, "b.md"), "w") as f:
            f.write("b")

        result = invoke("status", work_repo.working_tree_dir, "--format", "json",
                        credentials=False)

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["branch"] == "main"
        assert data["untracked"] == 1
        assert data["is_clean"] is False

    def test_table_output(self, invoke, work_repo):
        result = invoke("status", work_repo.working_tree_dir, credentials=False)

        assert result.exit_code == 0
        assert "Repository Status" in result.output
        assert "Untracked" in result.output

    def test_not_a_repository(self, invoke, tmp_path):
        result = invoke("status", tmp_path, credentials=False)

        assert result.exit_code == 1
        assert "Failed to open repo" in result.output


class TestRemoteCommand:
    """Test remote set."""

    def test_sets_origin(self, invoke, work_repo):
        result = invoke("remote", "set", work_repo.working_tree_dir,
                        "https://example.com/notes.git", credentials=False)

        assert result.exit_code == 0
        assert Repo(work_repo.working_tree_dir).remote("origin").url == \
            "https://example.com/notes.git"


class TestCloneCommand:
    """Test the clone command."""

    def test_requires_credentials(self, invoke, remote_repo, tmp_path):
        result = invoke("clone", remote_repo.url, tmp_path / "clone", credentials=False)

        assert result.exit_code == 1
        assert "Git credentials required" in result.output
        assert not (tmp_path / "clone").exists()

    def test_credentials_from_environment(self, runner, config_file, remote_repo, tmp_path,
                                          monkeypatch):
        monkeypatch.setenv("NOTESYNC_USERNAME", "notes-user")
        monkeypatch.setenv("NOTESYNC_TOKEN", "secret-token")

        result = runner.invoke(cli, ["--config", str(config_file), "clone",
                                     remote_repo.url, str(tmp_path / "clone")])

        assert result.exit_code == 0

    def test_clone_restores_timestamps(self, invoke, remote_repo, tmp_path):
        destination = tmp_path / "clone"

        result = invoke("clone", remote_repo.url, destination)

        assert result.exit_code == 0
        assert "Clone Complete" in result.output
        assert int(os.stat(destination / "first.md").st_mtime) == T0

    def test_clone_failure(self, invoke, tmp_path):
        result = invoke("clone", tmp_path / "missing.git", tmp_path / "clone")

        assert result.exit_code == 1
        assert "Failed to clone repository" in result.output


class TestPullAndSyncCommands:
    """Test pull and sync against a local bare remote."""

    def test_sync_pushes_with_configured_author(self, invoke, clone_pair):
        (clone_pair.local_path / "cli.md").write_text("from the cli")

        result = invoke("sync", clone_pair.local_path, "-m", "From CLI")

        assert result.exit_code == 0
        assert "Changes committed and pushed" in result.output
        pushed = Repo(clone_pair.remote.path).heads.main.commit
        assert pushed.message == "From CLI"
        assert pushed.author.name == "CLI Author"

    def test_pull_fast_forward(self, invoke, clone_pair):
        commit_files(clone_pair.other, {"fourth.md": "four"}, "Add fourth", T3)
        push_from(clone_pair.other)

        result = invoke("pull", clone_pair.local_path)

        assert result.exit_code == 0
        assert "Fast-forward merge completed" in result.output
        assert (clone_pair.local_path / "fourth.md").exists()

    def test_pull_diverged(self, invoke, clone_pair):
        commit_files(clone_pair.other, {"theirs.md": "theirs"}, "Theirs", T3)
        push_from(clone_pair.other)
        commit_files(clone_pair.local, {"mine.md": "mine"}, "Mine", T3)

        result = invoke("pull", clone_pair.local_path)

        assert result.exit_code == 1
        assert "Merge required" in result.output

    def test_push_rejected_reports_local_commit(self, invoke, clone_pair):
        commit_files(clone_pair.other, {"theirs.md": "theirs"}, "Theirs", T3)
        push_from(clone_pair.other)
        (clone_pair.local_path / "mine.md").write_text("mine")

        result = invoke("sync", clone_pair.local_path)

        assert result.exit_code == 1
        head = clone_pair.local.head.commit
        assert head.hexsha[:8] in result.output
        assert head.message == "Update notes"


class TestSettingsOption:
    """Test --config handling."""

    def test_invalid_settings_file(self, runner, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("max_workers: 0\n")

        result = runner.invoke(cli, ["--config", str(path), "status", str(tmp_path)])

        assert result.exit_code == 1
        assert "max_workers" in result.output

    def test_plain_logging_drops_rich_console(self, runner, config_file, work_repo):
        root = get_logger()
        try:
            result = runner.invoke(cli, ["--config", str(config_file), "--plain",
                                         "status", work_repo.working_tree_dir])
            consoles = [h for h in root.logger.handlers
                        if not isinstance(h, logging.FileHandler)]
        finally:
            setup_logging()

        assert result.exit_code == 0
        assert len(consoles) == 1
        assert not isinstance(consoles[0], RichHandler)
        assert isinstance(consoles[0].formatter, ColoredFormatter)


class TestConfigCommand:
    """Test the config commands."""

    def test_init_writes_defaults(self, runner, tmp_path):
        path = tmp_path / "conf" / "notesync.toml"

        result = runner.invoke(cli, ["--config", str(path), "config", "init"])

        assert result.exit_code == 0
        assert "Settings written" in result.output
        assert path.exists()
        assert load_settings(path) == SyncSettings()

    def test_init_refuses_existing_file(self, invoke, config_file):
        before = config_file.read_text()

        result = invoke("config", "init", credentials=False)

        assert result.exit_code == 1
        assert "already exists" in result.output
        assert config_file.read_text() == before

    def test_force_rewrites_loaded_settings(self, invoke, config_file):
        result = invoke("config", "init", "--force", credentials=False)

        assert result.exit_code == 0
        data = yaml.safe_load(config_file.read_text())
        assert data["author_name"] == "CLI Author"
        assert "max_workers" in data
        assert load_settings(config_file).author_email == "cli@example.com"
