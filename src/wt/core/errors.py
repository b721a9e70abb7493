"""
Error taxonomy for wt.

Every failure the core can surface derives from WtError. Errors carry an
optional ``hint`` with an actionable remediation, which the CLI renders
separately from the problem statement.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path


class WtError(Exception):
    """Base exception for wt operations."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint


class NotAGitRepositoryError(WtError):
    """Raised when a directory is not inside a git repository."""

    def __init__(self, path: Path | str) -> None:
        super().__init__(
            f"Not a git repository: {path}",
            hint="cd into a git repository, or pass -C <repo-dir>",
        )
        self.path = Path(path)


class WorktreeNotFoundError(WtError):
    """Raised when a worktree or its metadata cannot be found."""

    pass


class MetadataCorruptError(WtError):
    """Raised when a metadata file exists but cannot be parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(
            f"Corrupt worktree metadata at {path}: {reason}",
            hint="Inspect or delete the file; wt ignores worktrees without valid metadata",
        )
        self.path = path


class NameInUseError(WtError):
    """Raised when a requested worktree name collides with a live worktree."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Name already in use: {name}",
            hint="wt list  # to see existing worktrees",
        )
        self.name = name


class InvalidWorktreeNameError(WtError):
    """Raised when a name cannot be used as a single directory under the base dir."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Invalid worktree name: {name!r}",
            hint="Use one path component without '/', e.g. team-feat",
        )
        self.name = name


class GenerationExhaustedError(WtError):
    """Raised when no unused agent id could be generated."""

    def __init__(self, attempts: int) -> None:
        super().__init__(
            f"Could not generate a unique name after {attempts} attempts",
            hint="Too many worktrees? Use --name to choose one explicitly",
        )
        self.attempts = attempts


class LockTimeoutError(WtError):
    """Raised when the base directory lock cannot be acquired in time."""

    def __init__(self, path: Path, timeout: float) -> None:
        super().__init__(
            f"Timed out after {timeout:g}s waiting for lock {path}",
            hint="Another wt process may be running; retry once it finishes",
        )
        self.path = path
        self.timeout = timeout


class HookError(WtError):
    """Base class for lifecycle hook failures."""

    def __init__(self, message: str, *, hook: str, hint: str | None = None) -> None:
        super().__init__(message, hint=hint)
        self.hook = hook


class HookNotExecutableError(HookError):
    """Raised when a hook script exists but lacks the executable bit."""

    def __init__(self, hook: str, path: Path) -> None:
        super().__init__(
            f"{hook} hook exists but is not executable: {path}",
            hook=hook,
            hint=f"chmod +x {path}",
        )
        self.path = path


class HookTimeoutError(HookError):
    """Raised when a hook runs past its time limit and is killed."""

    def __init__(self, hook: str, timeout: float) -> None:
        super().__init__(f"{hook} hook timed out after {timeout:g}s", hook=hook)
        self.timeout = timeout


class HookFailedError(HookError):
    """Raised when a hook exits non-zero or is killed by a signal."""

    def __init__(self, hook: str, exit_code: int, signal_name: str | None = None) -> None:
        if signal_name:
            detail = f"killed by {signal_name}"
        else:
            detail = f"exit code {exit_code}"
        super().__init__(f"{hook} hook failed ({detail})", hook=hook)
        self.exit_code = exit_code
        self.signal_name = signal_name


class DirtyWorktreeError(WtError):
    """Raised when a worktree has uncommitted changes and force was not given."""

    def __init__(self, path: Path, *, hint: str | None = None) -> None:
        super().__init__(
            f"Worktree has uncommitted changes: {path}",
            hint=hint or "Commit or stash your changes, or pass --force",
        )
        self.path = path


class BranchNotFoundError(WtError):
    """Raised when a branch required by an operation does not exist."""

    def __init__(self, branch: str) -> None:
        super().__init__(f"Branch does not exist: {branch}", hint="git branch --list")
        self.branch = branch


class MergeValidationError(WtError):
    """Raised when a merge pre-check fails before anything is mutated."""

    pass


class MergeConflictError(WtError):
    """Raised when rebasing onto the target produces conflicts."""

    def __init__(self, target: str, files: Sequence[str]) -> None:
        self.target = target
        self.files = list(files)
        listing = "\n".join(f"  {f}" for f in self.files) or "  (unknown)"
        super().__init__(
            f"Rebase onto {target} hit conflicts in:\n{listing}",
            hint=(
                f"The rebase was aborted. To resolve: 1. git rebase {target}  "
                "2. Fix conflicts and git add <fixed-files>  "
                "3. git rebase --continue  "
                "4. Run wt merge again"
            ),
        )


class NotFastForwardError(WtError):
    """Raised when the target advanced and a fast-forward is no longer possible."""

    def __init__(self, target: str, detail: str = "") -> None:
        message = f"Cannot fast-forward {target}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.target = target


class ContentionExhaustedError(WtError):
    """Raised when concurrent mergers kept winning for every attempt."""

    def __init__(self, target: str, attempts: int) -> None:
        super().__init__(
            f"Gave up merging into {target} after {attempts} attempts; "
            "other worktrees kept advancing it",
            hint="Run wt merge again",
        )
        self.target = target
        self.attempts = attempts


class RollbackPartialFailureError(WtError):
    """Raised when compensating actions fail after an operation failed."""

    def __init__(self, original: BaseException, failures: Sequence[BaseException]) -> None:
        self.original = original
        self.failures = list(failures)
        details = "; ".join(str(f) for f in self.failures)
        super().__init__(
            f"{original} (rollback also failed: {details})",
            hint="Inspect with: git worktree list && git branch --list",
        )


class OperationCancelledError(WtError):
    """Raised when an operation observes that its cancel token fired."""

    def __init__(self, message: str = "Operation cancelled") -> None:
        super().__init__(message)


class ConfigError(WtError):
    """Raised when a configuration file exists but is invalid."""

    pass
