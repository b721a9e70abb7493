"""
Merging a worktree's branch back into its target.

Many worktrees may merge into the same target at once. Each attempt rebases
the feature branch onto the current target and then fast-forwards the
target. Whoever loses the race sees a non-fast-forward failure, waits a
jittered backoff and starts over with a fresh rebase. Conflicts are never
retried: the rebase is aborted and the conflicting paths reported.
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from git import GitCommandError

from wt.core.config.models import MergeConfig, WtConfig
from wt.core.errors import (
    BranchNotFoundError,
    ContentionExhaustedError,
    DirtyWorktreeError,
    MergeConflictError,
    MergeValidationError,
    NotFastForwardError,
    OperationCancelledError,
    RollbackPartialFailureError,
    WtError,
)
from wt.core.git import Git, is_conflict, is_not_fast_forward
from wt.core.hooks import HookRunner
from wt.core.interrupt import CancelToken
from wt.core.worktree.backoff import backoff_delay
from wt.core.worktree.cleanup import CleanupResult, cleanup_worktree
from wt.core.worktree.models import RepoContext, Worktree
from wt.core.worktree.store import find_worktree_root, read_info

logger = logging.getLogger(__name__)

Reporter = Callable[[str], None]


def _log_reporter(message: str) -> None:
    logger.info(message)


@dataclass
class MergePlan:
    """
    Everything merge will do, computed without changing anything.

    Attributes:
        worktree: Worktree being merged
        branch: Its current branch
        target: Branch to fast-forward
        target_worktree: Checkout that has ``target`` checked out, if any
        commit_count: Commits on ``branch`` not yet on ``target``
        keep: Leave the worktree and branch in place afterwards
    """

    worktree: Worktree
    branch: str
    target: str
    target_worktree: Path | None
    commit_count: int
    keep: bool = False


@dataclass
class MergeResult:
    plan: MergePlan
    attempts: int = 0
    merged: bool = False
    cleanup: CleanupResult | None = None
    warnings: list[str] = field(default_factory=list)


def plan_merge(
    git: Git,
    ctx: RepoContext,
    *,
    into: str | None = None,
    keep: bool = False,
    token: CancelToken | None = None,
) -> MergePlan:
    """
    Run the merge pre-checks.

    Raises:
        WorktreeNotFoundError: If not invoked inside a wt worktree
        MetadataCorruptError: If the worktree's metadata is unreadable
        BranchNotFoundError: If the target branch does not exist
        MergeValidationError: If HEAD is detached or already on the target
        DirtyWorktreeError: If this worktree or the target's checkout is dirty
    """
    root = find_worktree_root(ctx.source_dir)
    info = read_info(root)
    worktree = Worktree(info=info, path=root)

    branch = git.current_branch(root, token=token)
    if not branch:
        raise MergeValidationError(
            f"HEAD is detached in {root}", hint=f"git checkout {info.name}"
        )

    target = into or info.base_branch
    if not git.branch_exists(ctx.repo_root, target, token=token):
        raise BranchNotFoundError(target)
    if target == branch:
        raise MergeValidationError(
            f"Cannot merge {branch} into itself",
            hint="Pass --into <branch> to choose another target",
        )

    if git.is_dirty(root, token=token):
        raise DirtyWorktreeError(root, hint="Commit or stash your changes before merging")

    target_worktree = git.find_worktree_for_branch(ctx.repo_root, target, token=token)
    if target_worktree is not None and git.has_uncommitted_tracked_changes(
        target_worktree, token=token
    ):
        raise DirtyWorktreeError(
            target_worktree,
            hint=f"{target} is checked out there; commit or stash its changes first",
        )

    try:
        commit_count = git.commits_between(root, target, branch, token=token)
    except GitCommandError as e:
        logger.debug(f"Could not count commits {target}..{branch}: {e}")
        commit_count = 0

    return MergePlan(
        worktree=worktree,
        branch=branch,
        target=target,
        target_worktree=target_worktree,
        commit_count=commit_count,
        keep=keep,
    )


def _abort_rebase(git: Git, path: Path, original: Exception) -> Exception:
    """Abort an in-progress rebase; fold an abort failure into ``original``."""
    try:
        if git.rebase_in_progress(path):
            git.rebase_abort(path)
    except GitCommandError as e:
        return RollbackPartialFailureError(original, [e])
    return original


def _rebase(git: Git, plan: MergePlan, token: CancelToken | None) -> None:
    path = plan.worktree.path
    try:
        git.rebase(path, plan.target, token=token)
    except OperationCancelledError as e:
        error = _abort_rebase(git, path, e)
        if error is e:
            raise
        raise error from e
    except GitCommandError as e:
        if is_conflict(e):
            try:
                files = git.conflicting_files(path)
            except GitCommandError as list_error:
                logger.warning(f"Could not list conflicting files: {list_error}")
                files = []
            conflict = MergeConflictError(plan.target, files)
            error = _abort_rebase(git, path, conflict)
        else:
            error = _abort_rebase(git, path, e)
        if error is e:
            raise
        raise error from e


def _fast_forward(git: Git, plan: MergePlan, token: CancelToken | None) -> None:
    if plan.target_worktree is not None:
        git.merge_ff_only(plan.target_worktree, plan.branch, token=token)
    else:
        git.push_local(plan.worktree.path, plan.branch, plan.target, token=token)


def execute_merge(
    git: Git,
    plan: MergePlan,
    config: MergeConfig,
    *,
    token: CancelToken | None = None,
    reporter: Reporter | None = None,
    rng: random.Random | None = None,
) -> int:
    """
    Rebase and fast-forward until the target accepts the branch.

    Returns:
        Number of attempts used

    Raises:
        MergeConflictError: Rebase conflicted (rebase already aborted)
        ContentionExhaustedError: The target kept moving for every attempt
        GitCommandFailed: Any other git failure
    """
    report = reporter or _log_reporter
    last_error: NotFastForwardError | None = None

    for attempt in range(config.max_attempts):
        if token is not None:
            token.raise_if_cancelled("Merge")

        _rebase(git, plan, token)
        try:
            _fast_forward(git, plan, token)
            logger.info(f"Fast-forwarded {plan.target} to {plan.branch} (attempt {attempt + 1})")
            return attempt + 1
        except GitCommandError as e:
            if not is_not_fast_forward(e):
                raise
            last_error = NotFastForwardError(plan.target, getattr(e, "output", str(e)))

        if attempt + 1 >= config.max_attempts:
            break

        delay = backoff_delay(
            attempt,
            base=config.base_delay_seconds,
            cap=config.max_delay_seconds,
            rng=rng,
        )
        report(
            f"{plan.target} moved while merging "
            f"(attempt {attempt + 1}/{config.max_attempts}), retrying in {delay:.2f}s..."
        )
        if token is not None:
            if token.wait(delay):
                raise OperationCancelledError("Merge cancelled")
        else:
            time.sleep(delay)

    raise ContentionExhaustedError(plan.target, config.max_attempts) from last_error


def merge_worktree(
    git: Git,
    hooks: HookRunner,
    ctx: RepoContext,
    config: WtConfig,
    *,
    into: str | None = None,
    keep: bool = False,
    dry_run: bool = False,
    token: CancelToken | None = None,
    reporter: Reporter | None = None,
    rng: random.Random | None = None,
) -> MergeResult:
    """
    Merge the worktree containing ``ctx.source_dir`` into its target.

    With ``dry_run`` only the pre-checks run and the plan is returned. A
    cleanup failure after a successful merge is reported as a warning.
    """
    plan = plan_merge(git, ctx, into=into, keep=keep, token=token)
    result = MergeResult(plan=plan)
    if dry_run:
        return result

    result.attempts = execute_merge(
        git, plan, config.merge, token=token, reporter=reporter, rng=rng
    )
    result.merged = True

    if keep:
        return result

    try:
        result.cleanup = cleanup_worktree(
            git,
            hooks,
            ctx,
            plan.worktree,
            delete_branch=True,
            force=True,
            branch=plan.branch,
            token=token,
        )
    except OperationCancelledError:
        raise
    except (WtError, GitCommandError) as e:
        message = f"Merged into {plan.target}, but cleanup failed: {e}"
        logger.warning(message)
        result.warnings.append(message)
    else:
        result.warnings.extend(result.cleanup.warnings)

    return result
