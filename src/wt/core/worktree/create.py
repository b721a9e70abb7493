"""
Worktree creation.

    resolve base branch
    -> lock base dir -> scan -> assign id + agent id -> git worktree add
    -> write metadata -> unlock
    -> copy uncommitted changes (optional) -> post-create hook

The lock spans identity assignment through the metadata write: the
metadata lives inside the new worktree, so the next scan can only see the
assigned id once the worktree exists. Every step from ``git worktree add``
on is covered by a rollback that removes the worktree and its branch again,
including whatever an interrupted add left behind.
"""

from __future__ import annotations

import logging
import random
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from wt.core.config.models import WtConfig
from wt.core.errors import BranchNotFoundError, NameInUseError, WtError
from wt.core.git import Git
from wt.core.hooks import HookContext, HookKind, HookResult, HookRunner
from wt.core.interrupt import CancelToken
from wt.core.worktree.lock import base_dir_lock
from wt.core.worktree.models import RepoContext, Worktree, WorktreeInfo, utc_now
from wt.core.worktree.names import existing_names, generate_agent_id, next_id, validate_name
from wt.core.worktree.rollback import Rollback
from wt.core.worktree.store import ensure_worktree_excluded, scan, write_info

logger = logging.getLogger(__name__)


@dataclass
class CreateResult:
    """
    Outcome of a successful create.

    Attributes:
        worktree: The new worktree
        copied_files: Paths copied by --with-changes, relative to the worktree
        hook: Post-create hook result (None when the repository has no hook)
    """

    worktree: Worktree
    copied_files: list[str] = field(default_factory=list)
    hook: HookResult | None = None


def resolve_base_branch(
    git: Git, ctx: RepoContext, from_branch: str | None, token: CancelToken | None = None
) -> str:
    if from_branch:
        if not git.branch_exists(ctx.repo_root, from_branch, token=token):
            raise BranchNotFoundError(from_branch)
        return from_branch

    branch = git.current_branch(ctx.source_dir, token=token)
    if not branch:
        raise WtError(
            "Cannot determine base branch: HEAD is detached",
            hint="Pass --from-branch <branch>",
        )
    return branch


def copy_changes(git: Git, source_root: Path, dest: Path, token: CancelToken | None = None) -> list[str]:
    """
    Copy staged, unstaged and untracked files from ``source_root`` into ``dest``.

    Files that were listed by git but no longer exist are skipped.
    """
    copied: list[str] = []
    for rel in git.changed_files(source_root, token=token):
        src = source_root / rel
        if not src.is_symlink() and not src.is_file():
            logger.debug(f"Skipping {rel}: no longer a regular file")
            continue
        target = dest / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, target, follow_symlinks=False)
        copied.append(rel)
    return copied


def create_worktree(
    git: Git,
    hooks: HookRunner,
    ctx: RepoContext,
    config: WtConfig,
    *,
    name: str | None = None,
    from_branch: str | None = None,
    with_changes: bool = False,
    token: CancelToken | None = None,
    rng: random.Random | None = None,
) -> CreateResult:
    """
    Create a worktree with a fresh identity.

    Args:
        git: Git façade
        hooks: Hook runner for the main repository
        ctx: Repository context of the invocation
        config: Effective configuration
        name: Worktree/branch name (defaults to the generated agent id)
        from_branch: Base branch (defaults to the invocation directory's branch)
        with_changes: Copy uncommitted changes into the new worktree
        token: Cancellation token
        rng: Random source for agent id generation

    Raises:
        InvalidWorktreeNameError: If ``name`` is not a single path component
        NameInUseError: If the name is taken by a live worktree or branch
        LockTimeoutError: If another wt process holds the base directory lock
        RollbackPartialFailureError: If a step failed and rollback failed too
    """
    if name is not None:
        validate_name(name)
    base_branch = resolve_base_branch(git, ctx, from_branch, token=token)

    ensure_worktree_excluded(ctx.git_common_dir)
    ctx.base_dir.mkdir(parents=True, exist_ok=True)

    lock = base_dir_lock(ctx.base_dir)
    lock.acquire(timeout=config.lock_timeout_seconds, token=token)
    try:
        existing = scan(ctx.base_dir)
        worktree_id = next_id(existing)
        taken = existing_names(existing)

        agent_id = generate_agent_id(taken, rng=rng)
        final_name = name or agent_id
        if final_name in taken:
            raise NameInUseError(final_name)

        path = ctx.base_dir / final_name
        if path.exists():
            raise WtError(f"Path already exists: {path}", hint="Pick another --name")
        if git.branch_exists(ctx.repo_root, final_name, token=token):
            raise NameInUseError(final_name)

        info = WorktreeInfo(
            name=final_name,
            agent_id=agent_id,
            id=worktree_id,
            base_branch=base_branch,
            created=utc_now(),
        )

        # An interrupted add can leave any part of the worktree behind.
        rollback = Rollback()
        rollback.register(
            f"delete branch {final_name}",
            lambda: _discard_branch(git, ctx.repo_root, final_name),
        )
        rollback.register("prune worktrees", lambda: git.worktree_prune(ctx.repo_root))
        rollback.register(
            f"remove worktree {path}",
            lambda: _discard_worktree(git, ctx.repo_root, path),
        )

        try:
            git.worktree_add(ctx.repo_root, path, final_name, base_branch, token=token)
            worktree = Worktree(info=info, path=path.resolve())
            logger.info(f"Created worktree {final_name} (id {worktree_id}) at {worktree.path}")

            write_info(worktree.path, info)
            lock.release()

            copied: list[str] = []
            if with_changes:
                source_root = git.repo_root(ctx.source_dir)
                copied = copy_changes(git, source_root, worktree.path, token=token)

            context = HookContext.for_worktree(info, worktree.path, ctx.repo_root, ctx.source_dir)
            hook_result = hooks.run(HookKind.POST_CREATE, context, cwd=ctx.source_dir, token=token)
        except Exception as e:
            logger.warning(f"Creating {final_name} failed, rolling back: {e}")
            error = rollback.fail(e)
            if error is e:
                raise
            raise error from e
    finally:
        lock.release()

    return CreateResult(worktree=worktree, copied_files=copied, hook=hook_result)


def _discard_worktree(git: Git, repo_root: Path, path: Path) -> None:
    """Remove whatever ``git worktree add`` managed to create at ``path``."""
    resolved = path.resolve()
    for entry in git.worktree_list(repo_root):
        if entry.path.resolve() == resolved and path.exists():
            git.worktree_remove(repo_root, path, force=True, locked=entry.is_locked)
            break
    if path.exists():
        shutil.rmtree(path)


def _discard_branch(git: Git, repo_root: Path, branch: str) -> None:
    if git.branch_exists(repo_root, branch):
        git.branch_delete(repo_root, branch, force=True)
