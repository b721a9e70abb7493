"""
Tests for the base directory FileLock.
"""

import subprocess
import sys
import threading

import pytest

from wt.core.errors import LockTimeoutError, OperationCancelledError
from wt.core.interrupt import CancelToken
from wt.core.worktree.lock import LOCK_FILENAME, FileLock, base_dir_lock


@pytest.fixture
def lock_path(tmp_path):
    return tmp_path / "base" / LOCK_FILENAME


class TestFileLock:
    """Test acquire/release semantics."""

    def test_acquire_creates_lock_file(self, lock_path):
        lock = FileLock(lock_path).acquire(timeout=1)
        try:
            assert lock.acquired
            assert lock_path.exists()
        finally:
            lock.release()
        assert not lock.acquired

    def test_release_is_idempotent(self, lock_path):
        """Test that releasing twice, or never acquiring, is a no-op."""
        lock = FileLock(lock_path)
        lock.release()

        lock.acquire(timeout=1)
        lock.release()
        lock.release()

        assert not lock.acquired

    def test_second_holder_times_out(self, lock_path):
        """Test mutual exclusion between two lock instances."""
        first = FileLock(lock_path).acquire(timeout=1)
        try:
            with pytest.raises(LockTimeoutError) as exc_info:
                FileLock(lock_path).acquire(timeout=0.2)
            assert str(lock_path) in str(exc_info.value)
            assert "Another wt process" in exc_info.value.hint
        finally:
            first.release()

    def test_reacquire_after_release(self, lock_path):
        first = FileLock(lock_path).acquire(timeout=1)
        first.release()

        second = FileLock(lock_path).acquire(timeout=1)
        second.release()

    def test_waiter_gets_lock_when_released(self, lock_path):
        """Test that a waiting acquirer succeeds once the holder releases."""
        first = FileLock(lock_path).acquire(timeout=1)
        timer = threading.Timer(0.2, first.release)
        timer.start()
        try:
            second = FileLock(lock_path).acquire(timeout=5)
            second.release()
        finally:
            timer.cancel()
            first.release()

    def test_not_reentrant(self, lock_path):
        lock = FileLock(lock_path).acquire(timeout=1)
        try:
            with pytest.raises(RuntimeError, match="already held"):
                lock.acquire(timeout=0.1)
        finally:
            lock.release()

    def test_cancelled_wait(self, lock_path):
        """Test that a fired token stops the wait."""
        holder = FileLock(lock_path).acquire(timeout=1)
        token = CancelToken()
        timer = threading.Timer(0.1, token.cancel)
        timer.start()
        try:
            with pytest.raises(OperationCancelledError):
                FileLock(lock_path).acquire(timeout=10, token=token)
        finally:
            timer.cancel()
            holder.release()

    def test_context_manager(self, tmp_path):
        with base_dir_lock(tmp_path) as lock:
            assert lock.acquired
        assert not lock.acquired

    def test_crashed_holder_does_not_block(self, lock_path):
        """Test that a killed process's lock is released by the OS."""
        lock_path.parent.mkdir(parents=True)
        script = (
            "import fcntl, os, sys, time\n"
            f"fd = os.open({str(lock_path)!r}, os.O_RDWR | os.O_CREAT)\n"
            "fcntl.flock(fd, fcntl.LOCK_EX)\n"
            "print('locked', flush=True)\n"
            "time.sleep(60)\n"
        )
        child = subprocess.Popen(
            [sys.executable, "-c", script], stdout=subprocess.PIPE, text=True
        )
        try:
            assert child.stdout.readline().strip() == "locked"
            with pytest.raises(LockTimeoutError):
                FileLock(lock_path).acquire(timeout=0.2)

            child.kill()
            child.wait()

            lock = FileLock(lock_path).acquire(timeout=2)
            lock.release()
        finally:
            if child.poll() is None:
                child.kill()
                child.wait()
            child.stdout.close()
