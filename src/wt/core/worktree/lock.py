"""
Cross-process lock over a worktree base directory.

Backed by flock(2) on a file inside the base directory. The kernel drops
the lock when the holding descriptor is closed, so a crashed holder can
never block later acquirers. The file's content is irrelevant.
"""

from __future__ import annotations

import fcntl
import logging
import os
import time
from pathlib import Path
from types import TracebackType

from wt.core.errors import LockTimeoutError
from wt.core.interrupt import CancelToken

logger = logging.getLogger(__name__)

LOCK_FILENAME = ".wt.lock"
DEFAULT_TIMEOUT = 5.0
POLL_INTERVAL = 0.05


class FileLock:
    """
    Exclusive, non re-entrant advisory lock.

    Example:
        >>> lock = FileLock(base_dir / LOCK_FILENAME)
        >>> lock.acquire(timeout=5.0)
        >>> try:
        ...     ...  # critical section
        ... finally:
        ...     lock.release()
    """

    def __init__(self, path: Path):
        self.path = path
        self._fd: int | None = None

    @property
    def acquired(self) -> bool:
        return self._fd is not None

    def acquire(self, timeout: float = DEFAULT_TIMEOUT, token: CancelToken | None = None) -> FileLock:
        """
        Block until the lock is held, ``timeout`` expires or ``token`` fires.

        Raises:
            LockTimeoutError: If another holder kept the lock for ``timeout`` seconds
            OperationCancelledError: If the token fired while waiting
            RuntimeError: If this instance already holds the lock
        """
        if self._fd is not None:
            raise RuntimeError(f"Lock already held: {self.path}")

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
        deadline = time.monotonic() + timeout

        try:
            while True:
                try:
                    fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                    break
                except BlockingIOError:
                    pass

                if token is not None:
                    token.raise_if_cancelled("Waiting for lock")
                if time.monotonic() >= deadline:
                    raise LockTimeoutError(self.path, timeout)
                time.sleep(POLL_INTERVAL)
        except BaseException:
            os.close(fd)
            raise

        self._fd = fd
        logger.debug(f"Acquired lock {self.path} (PID: {os.getpid()})")
        return self

    def release(self) -> None:
        """Release the lock. Calling it again, or without holding it, does nothing."""
        fd, self._fd = self._fd, None
        if fd is None:
            return
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)
        logger.debug(f"Released lock {self.path}")

    def __enter__(self) -> FileLock:
        return self.acquire()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.release()


def base_dir_lock(base_dir: Path) -> FileLock:
    return FileLock(base_dir / LOCK_FILENAME)
