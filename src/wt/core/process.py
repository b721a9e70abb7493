"""
Subprocess supervision bound to a timeout and a cancellation token.

Hook scripts are spawned here by run_command; git commands are spawned by
GitPython and handed to supervise.

Every child is started in its own session so that its whole process group
can be signalled: SIGTERM first on cancellation, SIGKILL once the grace
period runs out, SIGKILL straight away on timeout.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import time
from collections.abc import Mapping, Sequence
from contextlib import suppress
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any

from wt.core.interrupt import CancelToken

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.1
DEFAULT_TERMINATE_GRACE = 5.0


def decode_signal(returncode: int) -> str | None:
    """Return the signal name for a negative Popen return code."""
    if returncode >= 0:
        return None
    try:
        return signal.Signals(-returncode).name
    except ValueError:
        return f"signal {-returncode}"


@dataclass(frozen=True)
class ExecutionResult:
    """
    Outcome of a finished child process.

    Attributes:
        returncode: Exit status (negative when killed by a signal)
        stdout: Captured stdout ("" when not captured)
        stderr: Captured stderr ("" when not captured)
        duration: Wall-clock seconds from spawn to exit
        timed_out: The process was killed for exceeding its timeout
        cancelled: The process was terminated because the token fired
    """

    returncode: int
    stdout: str
    stderr: str
    duration: float
    timed_out: bool = False
    cancelled: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out and not self.cancelled

    @property
    def signal_name(self) -> str | None:
        return decode_signal(self.returncode)


def _signal_group(process: subprocess.Popen[Any], signum: int) -> None:
    with suppress(ProcessLookupError, PermissionError):
        os.killpg(process.pid, signum)


def _terminate(process: subprocess.Popen[Any], grace: float) -> tuple[Any, Any]:
    _signal_group(process, signal.SIGTERM)
    try:
        return process.communicate(timeout=grace)
    except subprocess.TimeoutExpired:
        logger.debug(f"pid {process.pid} ignored SIGTERM for {grace:g}s, killing")
        _signal_group(process, signal.SIGKILL)
        return process.communicate()


def supervise(
    process: subprocess.Popen[Any],
    *,
    start: float,
    token: CancelToken | None = None,
    timeout: float | None = None,
    terminate_grace: float = DEFAULT_TERMINATE_GRACE,
) -> ExecutionResult:
    """
    Wait for an already started ``process``, honoring ``timeout`` and ``token``.

    The process must have been started with ``start_new_session=True`` so
    that its whole process group can be signalled.

    Args:
        process: Child to wait for
        start: ``time.monotonic()`` at spawn, for the duration and the timeout
        token: Cancellation token; firing it terminates the child
        timeout: Hard limit in seconds, None for no limit
        terminate_grace: Seconds between SIGTERM and SIGKILL on cancellation

    Returns:
        ExecutionResult describing how the child ended
    """
    if token is not None:
        token.track(process)

    timed_out = False
    cancelled = False
    try:
        while True:
            try:
                out, err = process.communicate(timeout=POLL_INTERVAL)
                break
            except subprocess.TimeoutExpired:
                pass

            if token is not None and token.cancelled:
                cancelled = True
                out, err = _terminate(process, terminate_grace)
                break

            if timeout is not None and time.monotonic() - start >= timeout:
                timed_out = True
                _signal_group(process, signal.SIGKILL)
                out, err = process.communicate()
                break
    finally:
        if token is not None:
            token.untrack(process)

    return ExecutionResult(
        returncode=process.returncode,
        stdout=out or "",
        stderr=err or "",
        duration=time.monotonic() - start,
        timed_out=timed_out,
        cancelled=cancelled,
    )


def run_command(
    argv: Sequence[str | Path],
    *,
    cwd: Path,
    env: Mapping[str, str],
    token: CancelToken | None = None,
    timeout: float | None = None,
    capture: bool = True,
    stdout: IO[Any] | int | None = None,
    stderr: IO[Any] | int | None = None,
    terminate_grace: float = DEFAULT_TERMINATE_GRACE,
) -> ExecutionResult:
    """
    Run ``argv`` to completion, honoring ``timeout`` and ``token``.

    Args:
        argv: Program and arguments
        cwd: Working directory for the child (never inherited implicitly)
        env: Complete environment for the child
        token: Cancellation token; firing it terminates the child
        timeout: Hard limit in seconds, None for no limit
        capture: Capture stdout/stderr as text instead of passing them through
        stdout: Destination for stdout when not capturing (None inherits)
        stderr: Destination for stderr when not capturing (None inherits)
        terminate_grace: Seconds between SIGTERM and SIGKILL on cancellation

    Returns:
        ExecutionResult describing how the child ended

    Raises:
        OSError: If the program cannot be started
    """
    args = [str(a) for a in argv]
    logger.debug(f"exec {' '.join(args)} (cwd={cwd})")

    start = time.monotonic()
    process = subprocess.Popen(
        args,
        cwd=cwd,
        env=dict(env),
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE if capture else stdout,
        stderr=subprocess.PIPE if capture else stderr,
        text=True,
        start_new_session=True,
    )
    return supervise(
        process,
        start=start,
        token=token,
        timeout=timeout,
        terminate_grace=terminate_grace,
    )
