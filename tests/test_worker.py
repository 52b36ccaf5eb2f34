#!/usr/bin/env python3
"""
Tests for background execution.
"""

import threading
from concurrent.futures import Future
from unittest.mock import MagicMock

import pytest

from notesync.core.errors import ExecutionError, MergeDivergedError, TransportError
from notesync.core.settings import SyncSettings
from notesync.core.sync import SyncResult, SyncStatus
from notesync.core.worker import SyncWorker


@pytest.fixture
def mock_manager():
    manager = MagicMock()
    manager.settings = SyncSettings()
    return manager


class TestSyncWorker:
    """Test dispatch and error translation."""

    def test_clone_runs_on_worker_thread(self, mock_manager, credentials):
        threads = []

        def clone(url, destination, creds, sink):
            threads.append(threading.current_thread())
            return SyncResult(SyncStatus.CLONED, "done", fixed_timestamps=2)

        mock_manager.clone.side_effect = clone
        with SyncWorker(mock_manager) as worker:
            result = worker.result(worker.submit_clone("url", "dest", credentials))

        assert result.fixed_timestamps == 2
        assert threads[0] is not threading.main_thread()
        mock_manager.clone.assert_called_once_with("url", "dest", credentials, None)

    def test_pull_and_sync_forward_arguments(self, mock_manager, credentials):
        mock_manager.pull.return_value = SyncResult(SyncStatus.UP_TO_DATE, "Already up to date")
        mock_manager.sync.return_value = SyncResult(SyncStatus.NO_CHANGES, "nothing")

        with SyncWorker(mock_manager) as worker:
            pulled = worker.result(worker.submit_pull("/notes", credentials))
            synced = worker.result(worker.submit_sync("/notes", "msg", credentials))

        assert pulled.status == SyncStatus.UP_TO_DATE
        assert synced.status == SyncStatus.NO_CHANGES
        mock_manager.pull.assert_called_once_with("/notes", credentials)
        mock_manager.sync.assert_called_once_with("/notes", "msg", credentials)

    def test_git_errors_propagate_unchanged(self, mock_manager, credentials):
        mock_manager.pull.side_effect = MergeDivergedError("Merge required - manual intervention needed")

        with SyncWorker(mock_manager) as worker:
            with pytest.raises(MergeDivergedError):
                worker.result(worker.submit_pull("/notes", credentials))

    def test_transport_errors_propagate_unchanged(self, mock_manager, credentials):
        mock_manager.clone.side_effect = TransportError("Failed to clone repository: denied")

        with SyncWorker(mock_manager) as worker:
            with pytest.raises(TransportError, match="denied"):
                worker.result(worker.submit_clone("url", "dest", credentials))

    def test_unexpected_failure_becomes_execution_error(self, mock_manager, credentials):
        mock_manager.sync.side_effect = RuntimeError("worker crashed")

        with SyncWorker(mock_manager) as worker:
            with pytest.raises(ExecutionError, match="worker crashed"):
                worker.result(worker.submit_sync("/notes", "msg", credentials))

    def test_cancelled_future(self):
        future = Future()
        future.cancel()

        with pytest.raises(ExecutionError, match="cancelled"):
            SyncWorker.result(future)

    def test_timeout(self):
        with pytest.raises(ExecutionError, match="did not complete"):
            SyncWorker.result(Future(), timeout=0.01)

    def test_operation_timeout_is_not_a_wait_timeout(self, mock_manager, credentials):
        mock_manager.pull.side_effect = TimeoutError("timed out reading from socket")

        with SyncWorker(mock_manager) as worker:
            with pytest.raises(ExecutionError) as excinfo:
                worker.result(worker.submit_pull("/notes", credentials))

        assert "timed out reading from socket" in str(excinfo.value)
        assert "did not complete within" not in str(excinfo.value)

    def test_finished_future_with_timeout_is_not_a_wait_timeout(self):
        future = Future()
        future.set_exception(TimeoutError("handshake timed out"))

        with pytest.raises(ExecutionError, match="handshake timed out"):
            SyncWorker.result(future, timeout=5)

    def test_pool_size_follows_settings(self, mock_manager):
        mock_manager.settings = SyncSettings(max_workers=3)
        worker = SyncWorker(mock_manager)
        try:
            assert worker._executor._max_workers == 3
        finally:
            worker.shutdown()
