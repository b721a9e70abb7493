"""
Thin façade over the git command line.

Repository discovery goes through GitPython's Repo, which answers from the
on-disk layout without spawning anything. Every other operation is started
with GitPython's execute as a live process in its own session and then
supervised for cancellation, with an explicit working directory and
environment; nothing relies on the process-wide current directory.

Failures raise GitCommandFailed, a GitCommandError that additionally keeps
the undecorated git output in ``output`` for classification.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo
from git.cmd import Git as GitCmd

from wt.core.errors import NotAGitRepositoryError, OperationCancelledError
from wt.core.interrupt import CancelToken
from wt.core.process import ExecutionResult, supervise

logger = logging.getLogger(__name__)

_NOT_FAST_FORWARD = re.compile(
    r"not possible to fast-forward|non-fast-forward|diverging branches|fetch first",
    re.IGNORECASE,
)
_REF_CONTENTION = re.compile(
    r"cannot lock ref|failed to update ref|index\.lock|unable to create .*\.lock"
    r"|is at [0-9a-f]+ but expected",
    re.IGNORECASE,
)
_CONFLICT_MARKERS = ("CONFLICT", "conflict", "could not apply", "Merge conflict")


class GitCommandFailed(GitCommandError):
    """A git invocation exited non-zero."""

    def __init__(self, argv: list[str], returncode: int, stdout: str, stderr: str) -> None:
        super().__init__(argv, returncode, stderr, stdout)
        self.returncode = returncode
        self.output = "\n".join(part for part in (stderr.strip(), stdout.strip()) if part)


def is_not_fast_forward(error: GitCommandError) -> bool:
    """True when a fast-forward failed because the target moved (or its ref was busy)."""
    output = getattr(error, "output", str(error))
    return bool(_NOT_FAST_FORWARD.search(output) or _REF_CONTENTION.search(output))


def is_conflict(error: GitCommandError) -> bool:
    output = getattr(error, "output", str(error))
    return any(marker in output for marker in _CONFLICT_MARKERS)


@dataclass
class WorktreeEntry:
    """
    One record of ``git worktree list --porcelain``.

    Attributes:
        path: Absolute path to the worktree directory
        branch: Short branch name (None for detached HEAD)
        commit: Commit SHA
        is_bare: Whether this is the bare repository
        is_locked: Whether the worktree is locked
    """

    path: Path
    branch: str | None
    commit: str
    is_bare: bool = False
    is_locked: bool = False


class Git:
    """
    Git operations used by the orchestrators.

    Args:
        env: Environment passed to every git child process
    """

    def __init__(self, env: Mapping[str, str]):
        self.env = dict(env)

    # ------------------------------------------------------------------
    # Repository discovery
    # ------------------------------------------------------------------

    def _open(self, cwd: Path) -> Repo:
        try:
            return Repo(cwd, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise NotAGitRepositoryError(cwd) from e

    def repo_root(self, cwd: Path) -> Path:
        """Top-level directory of the checkout containing ``cwd``."""
        with self._open(cwd) as repo:
            if repo.working_tree_dir is None:
                raise NotAGitRepositoryError(cwd)
            return Path(repo.working_tree_dir).resolve()

    def git_common_dir(self, cwd: Path) -> Path:
        """The .git directory shared by the main checkout and all worktrees."""
        with self._open(cwd) as repo:
            return Path(repo.common_dir).resolve()

    def main_repo_root(self, cwd: Path) -> Path:
        """Root of the main checkout, even when ``cwd`` is inside a linked worktree."""
        return self.git_common_dir(cwd).parent

    # ------------------------------------------------------------------
    # Command execution
    # ------------------------------------------------------------------

    def _execute(
        self, cwd: Path, args: tuple[str, ...], token: CancelToken | None
    ) -> tuple[list[str], ExecutionResult]:
        if token is not None:
            token.raise_if_cancelled(f"git {args[0]}")
        argv = [GitCmd.GIT_PYTHON_GIT_EXECUTABLE or "git", *args]
        logger.debug(f"exec {' '.join(argv)} (cwd={cwd})")

        start = time.monotonic()
        # Forced C locale keeps messages parseable by is_not_fast_forward and is_conflict.
        handle = GitCmd(cwd).execute(
            argv,
            as_process=True,
            env={**self.env, "LC_ALL": "C", "LANGUAGE": "C"},
            universal_newlines=True,
            start_new_session=True,
        )
        result = supervise(handle.proc, start=start, token=token)
        if result.cancelled:
            raise OperationCancelledError(f"git {args[0]} cancelled")
        return argv, result

    def run(
        self,
        cwd: Path,
        *args: str,
        token: CancelToken | None = None,
        check: bool = True,
    ) -> str:
        """
        Run ``git <args>`` in ``cwd`` and return stripped stdout.

        Raises:
            OperationCancelledError: If the token fired while git was running
            GitCommandFailed: If git exits non-zero and ``check`` is set
        """
        argv, result = self._execute(cwd, args, token)
        if check and result.returncode != 0:
            raise GitCommandFailed(argv, result.returncode, result.stdout, result.stderr)
        return result.stdout.strip()

    def current_branch(self, cwd: Path, token: CancelToken | None = None) -> str:
        """Current branch name, or "" for a detached HEAD."""
        return self.run(cwd, "branch", "--show-current", token=token)

    def is_dirty(self, cwd: Path, token: CancelToken | None = None) -> bool:
        """Any staged, unstaged or untracked (non-ignored) change."""
        return bool(self.run(cwd, "status", "--porcelain", token=token))

    def has_uncommitted_tracked_changes(self, cwd: Path, token: CancelToken | None = None) -> bool:
        return bool(self.run(cwd, "status", "--porcelain", "-uno", token=token))

    def changed_files(self, cwd: Path, token: CancelToken | None = None) -> list[str]:
        """
        Paths with staged, unstaged or untracked-but-not-ignored changes.

        ``cwd`` must be a checkout's top-level directory; paths are relative
        to it.
        """
        unstaged = self.run(cwd, "diff", "--name-only", "HEAD", token=token)
        staged = self.run(cwd, "diff", "--cached", "--name-only", token=token)
        untracked = self.run(
            cwd, "ls-files", "--others", "--exclude-standard", "--full-name", token=token
        )

        seen: dict[str, None] = {}
        for block in (unstaged, staged, untracked):
            for line in block.splitlines():
                if line.strip():
                    seen[line.strip()] = None
        return list(seen)

    # ------------------------------------------------------------------
    # Worktrees
    # ------------------------------------------------------------------

    def worktree_add(
        self,
        repo_root: Path,
        path: Path,
        branch: str,
        base: str,
        token: CancelToken | None = None,
    ) -> None:
        self.run(repo_root, "worktree", "add", "-b", branch, str(path), base, token=token)

    def worktree_remove(
        self,
        repo_root: Path,
        path: Path,
        force: bool = False,
        locked: bool = False,
        token: CancelToken | None = None,
    ) -> None:
        """Remove a worktree; ``locked`` doubles --force so git also drops a locked one."""
        args = ["worktree", "remove"]
        if force:
            args.append("--force")
        if locked:
            args.append("--force")
        args.append(str(path))
        self.run(repo_root, *args, token=token)

    def worktree_prune(self, repo_root: Path, token: CancelToken | None = None) -> None:
        self.run(repo_root, "worktree", "prune", token=token)

    def worktree_list(self, repo_root: Path, token: CancelToken | None = None) -> list[WorktreeEntry]:
        output = self.run(repo_root, "worktree", "list", "--porcelain", token=token)

        entries: list[WorktreeEntry] = []
        current: dict[str, str | bool] = {}

        for line in output.splitlines():
            line = line.strip()
            if not line:
                if current:
                    entries.append(self._parse_worktree(current))
                    current = {}
                continue

            if line.startswith("worktree "):
                current["path"] = line[len("worktree ") :]
            elif line.startswith("HEAD "):
                current["commit"] = line[len("HEAD ") :]
            elif line.startswith("branch "):
                current["branch"] = line[len("branch ") :].removeprefix("refs/heads/")
            elif line == "bare":
                current["is_bare"] = True
            elif line.startswith("locked"):
                current["is_locked"] = True

        if current:
            entries.append(self._parse_worktree(current))

        return entries

    @staticmethod
    def _parse_worktree(data: dict[str, str | bool]) -> WorktreeEntry:
        return WorktreeEntry(
            path=Path(str(data.get("path", ""))),
            branch=str(data["branch"]) if "branch" in data else None,
            commit=str(data.get("commit", "")),
            is_bare=bool(data.get("is_bare", False)),
            is_locked=bool(data.get("is_locked", False)),
        )

    def find_worktree_for_branch(
        self, repo_root: Path, branch: str, token: CancelToken | None = None
    ) -> Path | None:
        """Path of the worktree (main checkout included) that has ``branch`` checked out."""
        for entry in self.worktree_list(repo_root, token=token):
            if entry.branch == branch and not entry.is_bare:
                return entry.path
        return None

    # ------------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------------

    def branch_exists(self, repo_root: Path, branch: str, token: CancelToken | None = None) -> bool:
        argv, result = self._execute(
            repo_root, ("show-ref", "--verify", "--quiet", f"refs/heads/{branch}"), token
        )
        if result.returncode not in (0, 1):
            raise GitCommandFailed(argv, result.returncode, result.stdout, result.stderr)
        return result.returncode == 0

    def branch_delete(
        self,
        repo_root: Path,
        branch: str,
        force: bool = False,
        token: CancelToken | None = None,
    ) -> None:
        self.run(repo_root, "branch", "-D" if force else "-d", branch, token=token)

    def commits_between(
        self, cwd: Path, base: str, head: str, token: CancelToken | None = None
    ) -> int:
        """Number of commits reachable from ``head`` but not from ``base``."""
        return int(self.run(cwd, "rev-list", "--count", f"{base}..{head}", token=token) or 0)

    # ------------------------------------------------------------------
    # Rebase / merge
    # ------------------------------------------------------------------

    def rebase(self, cwd: Path, onto: str, token: CancelToken | None = None) -> None:
        self.run(cwd, "rebase", onto, token=token)

    def rebase_abort(self, cwd: Path, token: CancelToken | None = None) -> None:
        self.run(cwd, "rebase", "--abort", token=token)

    def rebase_in_progress(self, cwd: Path, token: CancelToken | None = None) -> bool:
        for state_dir in ("rebase-merge", "rebase-apply"):
            path = Path(self.run(cwd, "rev-parse", "--git-path", state_dir, token=token))
            if not path.is_absolute():
                path = cwd / path
            if path.exists():
                return True
        return False

    def conflicting_files(self, cwd: Path, token: CancelToken | None = None) -> list[str]:
        output = self.run(cwd, "diff", "--name-only", "--diff-filter=U", token=token)
        return [line for line in output.splitlines() if line.strip()]

    def merge_ff_only(self, cwd: Path, branch: str, token: CancelToken | None = None) -> None:
        """Fast-forward the branch checked out in ``cwd`` to ``branch``."""
        self.run(cwd, "merge", "--ff-only", branch, token=token)

    def push_local(
        self, cwd: Path, branch: str, target: str, token: CancelToken | None = None
    ) -> None:
        """Fast-forward ``target`` to ``branch`` without checking it out."""
        self.run(cwd, "push", ".", f"{branch}:{target}", token=token)
