"""
Hook executor for lifecycle hooks.

Runs ``<repo_root>/.wt/hooks/<kind>`` if it exists. Hooks are untrusted,
time-boxed subprocesses:
- Absent script: nothing happens
- Present but not executable: HookNotExecutableError, never silently skipped
- Hard timeout (default 300s): process group killed, HookTimeoutError
- Cancellation: SIGTERM, then SIGKILL after a grace period
- Non-zero exit: HookFailedError

The environment is exactly the base environment given to the runner plus
the WT_* context variables; the ambient os.environ is never consulted here.

Example hook script:
    #!/bin/sh
    # .wt/hooks/post-create
    cd "$WT_PATH" && npm install
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import IO, Any

from wt.core.config.models import HooksConfig
from wt.core.errors import (
    HookError,
    HookFailedError,
    HookNotExecutableError,
    HookTimeoutError,
    OperationCancelledError,
)
from wt.core.hooks.models import HookContext, HookKind, HookResult
from wt.core.interrupt import CancelToken
from wt.core.process import run_command

logger = logging.getLogger(__name__)

HOOKS_DIR = Path(".wt") / "hooks"


def hook_path(repo_root: Path, kind: HookKind) -> Path:
    return repo_root / HOOKS_DIR / kind.value


class HookRunner:
    """
    Executes lifecycle hooks of one repository.

    Attributes:
        repo_root: Main repository root (hooks are not per-worktree)
        base_env: Environment every hook starts from
        config: Timeout settings
        stdout: Where hook stdout goes (None inherits wt's stdout)
        stderr: Where hook stderr goes (None inherits wt's stderr)
    """

    def __init__(
        self,
        repo_root: Path,
        base_env: Mapping[str, str],
        config: HooksConfig | None = None,
        stdout: IO[Any] | int | None = None,
        stderr: IO[Any] | int | None = None,
    ):
        self.repo_root = repo_root
        self.base_env = dict(base_env)
        self.config = config or HooksConfig()
        self.stdout = stdout
        self.stderr = stderr

    def build_environment(self, context: HookContext) -> dict[str, str]:
        env = dict(self.base_env)
        env.update(context.to_env())
        return env

    def run(
        self,
        kind: HookKind,
        context: HookContext,
        cwd: Path,
        token: CancelToken | None = None,
    ) -> HookResult | None:
        """
        Run the ``kind`` hook if the repository has one.

        Args:
            kind: Which hook to run
            context: Values exported as WT_* variables
            cwd: Working directory (the directory wt was invoked from)
            token: Cancellation token

        Returns:
            HookResult on success, None when no hook script exists

        Raises:
            HookNotExecutableError: Script exists without the executable bit
            HookTimeoutError: Script exceeded the configured timeout
            HookFailedError: Script exited non-zero or was killed
            OperationCancelledError: Token fired while the script was running
        """
        script = hook_path(self.repo_root, kind)
        if not script.exists():
            logger.debug(f"No {kind.value} hook at {script}")
            return None

        if not script.is_file() or not os.access(script, os.X_OK):
            raise HookNotExecutableError(kind.value, script)

        logger.info(f"Running {kind.value} hook for {context.name}")
        try:
            result = run_command(
                [script],
                cwd=cwd,
                env=self.build_environment(context),
                token=token,
                timeout=self.config.timeout_seconds,
                capture=False,
                stdout=self.stdout,
                stderr=self.stderr,
                terminate_grace=self.config.kill_grace_seconds,
            )
        except OSError as e:
            raise HookError(f"{kind.value} hook could not be started: {e}", hook=kind.value) from e

        if result.cancelled:
            raise OperationCancelledError(f"{kind.value} hook cancelled")
        if result.timed_out:
            raise HookTimeoutError(kind.value, self.config.timeout_seconds)
        if result.returncode != 0:
            logger.error(f"{kind.value} hook failed with exit code {result.returncode}")
            raise HookFailedError(kind.value, result.returncode, result.signal_name)

        logger.info(f"{kind.value} hook completed in {result.duration:.2f}s")
        return HookResult(
            hook=kind,
            script=script,
            exit_code=result.returncode,
            duration_seconds=result.duration,
        )
