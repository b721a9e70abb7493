"""
Worktree teardown, shared by `wt delete` and post-merge cleanup.

    pre-delete hook -> git worktree remove -> branch delete (optional)
    -> git worktree prune

A failing pre-delete hook aborts before anything changes. Once the
worktree directory is gone, branch deletion and pruning can only produce
warnings.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

from git import GitCommandError

from wt.core.errors import DirtyWorktreeError
from wt.core.git import Git
from wt.core.hooks import HookContext, HookKind, HookRunner
from wt.core.interrupt import CancelToken
from wt.core.worktree.models import RepoContext, Worktree
from wt.core.worktree.store import find_by_identifier, scan

logger = logging.getLogger(__name__)

ConfirmBranchDelete = Callable[[Worktree], bool]


@dataclass
class CleanupResult:
    """
    Outcome of a teardown.

    Attributes:
        worktree_path: Directory that was removed
        branch: The worktree's branch
        branch_deleted: Whether the branch was deleted
        warnings: Non-fatal problems after the worktree was removed
    """

    worktree_path: Path
    branch: str
    branch_deleted: bool = False
    warnings: list[str] = field(default_factory=list)


def _git_detail(error: GitCommandError) -> str:
    return getattr(error, "output", "") or str(error)


def cleanup_worktree(
    git: Git,
    hooks: HookRunner,
    ctx: RepoContext,
    worktree: Worktree,
    *,
    delete_branch: bool,
    force: bool,
    branch: str | None = None,
    token: CancelToken | None = None,
) -> CleanupResult:
    """
    Tear down ``worktree``.

    Args:
        git: Git façade
        hooks: Hook runner for the main repository
        ctx: Repository context of the invocation
        worktree: Worktree to remove
        delete_branch: Also delete the worktree's branch
        force: Remove even with uncommitted changes
        branch: Branch to delete (defaults to the worktree's name)
        token: Cancellation token

    Raises:
        HookError: If the pre-delete hook fails (nothing was changed)
        GitCommandFailed: If git refused to remove the worktree
    """
    info = worktree.info
    context = HookContext.for_worktree(info, worktree.path, ctx.repo_root, ctx.source_dir)
    hooks.run(HookKind.PRE_DELETE, context, cwd=ctx.source_dir, token=token)

    git.worktree_remove(ctx.repo_root, worktree.path, force=force, token=token)
    logger.info(f"Removed worktree {info.name} at {worktree.path}")
    branch = branch or info.name
    result = CleanupResult(worktree_path=worktree.path, branch=branch)

    if delete_branch:
        try:
            git.branch_delete(ctx.repo_root, branch, force=True, token=token)
            result.branch_deleted = True
        except GitCommandError as e:
            message = f"Worktree removed but branch {branch} was not deleted: {_git_detail(e)}"
            logger.warning(message)
            result.warnings.append(message)

    try:
        git.worktree_prune(ctx.repo_root, token=token)
    except GitCommandError as e:
        message = f"git worktree prune failed: {_git_detail(e)}"
        logger.warning(message)
        result.warnings.append(message)

    return result


def delete_worktree(
    git: Git,
    hooks: HookRunner,
    ctx: RepoContext,
    identifier: str,
    *,
    force: bool = False,
    with_branch: bool | None = None,
    confirm: ConfirmBranchDelete | None = None,
    token: CancelToken | None = None,
) -> CleanupResult:
    """
    Delete the worktree matching ``identifier`` (id, name or agent id).

    Branch deletion follows ``with_branch`` when given; otherwise ``confirm``
    decides (the CLI asks interactively when attached to a terminal); with
    neither, the branch is kept.

    Raises:
        WorktreeNotFoundError: If no worktree matches
        DirtyWorktreeError: If the worktree has changes and ``force`` is False
    """
    worktree = find_by_identifier(scan(ctx.base_dir), identifier)

    if not force and git.is_dirty(worktree.path, token=token):
        raise DirtyWorktreeError(worktree.path)

    if with_branch is not None:
        delete_branch = with_branch
    elif confirm is not None:
        delete_branch = confirm(worktree)
    else:
        delete_branch = False

    return cleanup_worktree(
        git,
        hooks,
        ctx,
        worktree,
        delete_branch=delete_branch,
        force=force,
        token=token,
    )


def read_yes_no(stream: TextIO) -> bool:
    """Read one answer line; only "y" or "Y" means yes. EOF and blank mean no."""
    line = stream.readline()
    return line.strip() in ("y", "Y")
