"""
Cooperative cancellation and interrupt handling for wt commands.

A command body runs on a worker thread while the main thread waits for it
and owns the signal handlers. The two are connected by a CancelToken that
is threaded through every call that may block: git subprocesses, hook
scripts, lock acquisition and merge backoff.

The handler implements a two-stage interrupt model:
1. First interrupt: cancels the token and gives in-flight cleanup a grace period
2. Second interrupt (or grace expiry): kills tracked children, exits with 130

Usage:
    >>> from wt.core.interrupt import InterruptHandler
    >>> handler = InterruptHandler(grace_seconds=10.0)
    >>> result = handler.run(lambda token: manager.create(token=token))
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import sys
import threading
import time
from collections.abc import Callable
from contextlib import suppress
from typing import Any, Generic, TypeVar

from wt.core.errors import OperationCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_GRACE_SECONDS = 10.0


class CancelToken:
    """
    Thread-safe cancellation flag shared by a command and its children.

    Besides the flag itself, the token keeps a registry of child processes
    started on its behalf so that a forced exit can kill them instead of
    leaving them orphaned.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []
        self._processes: set[subprocess.Popen[Any]] = set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Fire the token. Callbacks run once, on the first call only."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks)

        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Cancel callback %r failed", callback)

    def on_cancel(self, callback: Callable[[], None]) -> None:
        self._callbacks.append(callback)

    def raise_if_cancelled(self, action: str = "Operation") -> None:
        if self._event.is_set():
            raise OperationCancelledError(f"{action} cancelled")

    def wait(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds; return True if cancelled meanwhile."""
        return self._event.wait(timeout)

    def track(self, process: subprocess.Popen[Any]) -> None:
        with self._lock:
            self._processes.add(process)

    def untrack(self, process: subprocess.Popen[Any]) -> None:
        with self._lock:
            self._processes.discard(process)

    def kill_tracked(self) -> None:
        """SIGKILL the process group of every child still running."""
        with self._lock:
            processes = list(self._processes)

        for process in processes:
            if process.poll() is not None:
                continue
            with suppress(ProcessLookupError, PermissionError):
                os.killpg(process.pid, signal.SIGKILL)


class _Outcome(Generic[T]):
    def __init__(self) -> None:
        self.value: T | None = None
        self.error: BaseException | None = None


class InterruptHandler:
    """
    Runs a command body under SIGINT/SIGTERM supervision.

    Attributes:
        token: Cancellation token handed to the body
        interrupted: True once the first signal was received
    """

    def __init__(
        self,
        grace_seconds: float = DEFAULT_GRACE_SECONDS,
        token: CancelToken | None = None,
    ) -> None:
        self.grace_seconds = grace_seconds
        self.token = token or CancelToken()
        self._interrupted = False
        self._deadline: float | None = None
        self._original_sigint: Any = None
        self._original_sigterm: Any = None

    @property
    def interrupted(self) -> bool:
        return self._interrupted

    def register(self) -> None:
        """
        Register signal handlers for SIGINT and SIGTERM.

        Saves the original handlers so that unregister() can restore them.
        """
        self._original_sigint = signal.signal(signal.SIGINT, self._handle_signal)
        self._original_sigterm = signal.signal(signal.SIGTERM, self._handle_signal)

    def unregister(self) -> None:
        if self._original_sigint is not None:
            signal.signal(signal.SIGINT, self._original_sigint)
            self._original_sigint = None

        if self._original_sigterm is not None:
            signal.signal(signal.SIGTERM, self._original_sigterm)
            self._original_sigterm = None

    def run(self, body: Callable[[CancelToken], T]) -> T:
        """
        Execute ``body(token)`` and return its result.

        Outside the main thread signals cannot be installed, so the body
        simply runs inline.

        Raises:
            SystemExit: With code 130 on a forced exit
            Exception: Whatever the body raised
        """
        if threading.current_thread() is not threading.main_thread():
            return body(self.token)

        outcome: _Outcome[T] = _Outcome()

        def worker() -> None:
            try:
                outcome.value = body(self.token)
            except BaseException as e:
                outcome.error = e

        thread = threading.Thread(target=worker, name="wt-command", daemon=True)
        self.register()
        try:
            thread.start()
            while thread.is_alive():
                thread.join(0.1)
                if self._deadline is not None and time.monotonic() >= self._deadline:
                    self._force_exit("\n[Cleanup did not finish in time, force exiting...]\n")
        finally:
            self.unregister()

        if outcome.error is not None:
            raise outcome.error
        return outcome.value  # type: ignore[return-value]

    def _handle_signal(self, signum: int, frame: object) -> None:
        if self._interrupted:
            self._force_exit("\n[Force exiting...]\n")

        self._interrupted = True
        self._deadline = time.monotonic() + self.grace_seconds
        self._write_to_stderr(
            f"\nInterrupted, waiting up to {self.grace_seconds:g}s for cleanup... "
            "(Ctrl+C again to force exit)\n"
        )
        self.token.cancel()

    def _force_exit(self, message: str) -> None:
        self._write_to_stderr(message)
        self.token.kill_tracked()
        raise SystemExit(130)

    @staticmethod
    def _write_to_stderr(message: str) -> None:
        """Write to stderr without Rich so it is safe inside a signal handler."""
        sys.stderr.write(message)
        sys.stderr.flush()
