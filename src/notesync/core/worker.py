#!/usr/bin/env python3
"""
Background execution of network-bound operations.

Clone, pull and sync block on network and disk I/O, so the dispatching
thread hands them to ``SyncWorker`` and waits on the returned future.
Operations on the same repository path must be serialized by the caller.
"""

from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import Optional, Union

from .errors import ExecutionError, GitError
from .progress import ProgressSink
from .sync import SyncManager, SyncResult
from .transport import Credentials
from ..utils.logger import get_logger


class SyncWorker:
    """Runs SyncManager operations on a thread pool."""

    def __init__(self, manager: Optional[SyncManager] = None, max_workers: Optional[int] = None):
        self.logger = get_logger(f"{__name__}.SyncWorker")
        self.manager = manager or SyncManager()
        workers = max_workers or self.manager.settings.max_workers
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix='notesync')

    def submit_clone(self, url: str, destination: Union[str, Path], credentials: Credentials,
                     sink: Optional[ProgressSink] = None) -> 'Future[SyncResult]':
        self.logger.debug(f"Dispatching clone of {url}")
        return self._executor.submit(self.manager.clone, url, destination, credentials, sink)

    def submit_pull(self, repo_path: Union[str, Path],
                    credentials: Credentials) -> 'Future[SyncResult]':
        self.logger.debug(f"Dispatching pull in {repo_path}")
        return self._executor.submit(self.manager.pull, repo_path, credentials)

    def submit_sync(self, repo_path: Union[str, Path], message: str,
                    credentials: Credentials) -> 'Future[SyncResult]':
        self.logger.debug(f"Dispatching sync in {repo_path}")
        return self._executor.submit(self.manager.sync, repo_path, message, credentials)

    @staticmethod
    def result(future: 'Future[SyncResult]', timeout: Optional[float] = None) -> SyncResult:
        """Wait for ``future``.

        The operation's own ``GitError`` propagates unchanged; anything else
        (a crashed worker, a cancelled future, an expired ``timeout``) is
        raised as ``ExecutionError``.
        """
        try:
            return future.result(timeout=timeout)
        except GitError:
            raise
        except CancelledError as e:
            raise ExecutionError("Operation was cancelled before it completed") from e
        except FutureTimeoutError as e:
            # the builtin TimeoutError is the same class on newer interpreters
            if timeout is not None and not future.done():
                raise ExecutionError(f"Operation did not complete within {timeout} seconds") from e
            raise ExecutionError(f"Operation failed to complete: {e}") from e
        except Exception as e:
            raise ExecutionError(f"Operation failed to complete: {e}") from e

    def shutdown(self, wait: bool = True):
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> 'SyncWorker':
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.shutdown()
