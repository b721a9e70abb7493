"""
Git worktree manager implementation.

WorktreeManager binds the orchestrators to one invocation: it resolves the
main repository from the invocation directory, loads configuration, and
owns the git façade and hook runner every operation shares.
"""

from __future__ import annotations

import builtins
import os
import random
from collections.abc import Mapping
from pathlib import Path
from typing import IO, Any

from wt.core.config.loader import load_config, resolve_base_dir
from wt.core.config.models import WtConfig
from wt.core.git import Git
from wt.core.hooks import HookRunner
from wt.core.interrupt import CancelToken
from wt.core.worktree.cleanup import CleanupResult, ConfirmBranchDelete, delete_worktree
from wt.core.worktree.create import CreateResult, create_worktree
from wt.core.worktree.merge import MergeResult, Reporter, merge_worktree
from wt.core.worktree.models import RepoContext, Worktree
from wt.core.worktree.store import find_by_identifier, find_worktree_root, read_info, scan


class WorktreeManager:
    """
    Manages the wt worktrees of one repository.

    Example:
        >>> manager = WorktreeManager(Path.cwd())
        >>> result = manager.create(name="fix-login")
        >>> print(f"Created worktree at: {result.worktree.path}")
        >>> manager.delete("fix-login", with_branch=True)
    """

    def __init__(
        self,
        cwd: Path | None = None,
        *,
        config: WtConfig | None = None,
        config_path: Path | None = None,
        env: Mapping[str, str] | None = None,
        hook_stdout: IO[Any] | int | None = None,
        hook_stderr: IO[Any] | int | None = None,
    ):
        """
        Initialize the worktree manager.

        Args:
            cwd: Invocation directory (defaults to current directory)
            config: Configuration to use instead of loading it from disk
            config_path: Explicit config file (ignored when ``config`` is given)
            env: Environment for git and hooks (defaults to os.environ)
            hook_stdout: Destination for hook stdout (None inherits)
            hook_stderr: Destination for hook stderr (None inherits)

        Raises:
            NotAGitRepositoryError: If ``cwd`` is not inside a git repository
            ConfigError: If a configuration file is invalid
        """
        self.env = dict(os.environ if env is None else env)
        self.git = Git(self.env)

        source_dir = (cwd or Path.cwd()).resolve()
        repo_root = self.git.main_repo_root(source_dir)
        common_dir = self.git.git_common_dir(source_dir)

        self.config = config or load_config(repo_root, config_path, self.env)
        self.context = RepoContext(
            source_dir=source_dir,
            repo_root=repo_root,
            git_common_dir=common_dir,
            base_dir=resolve_base_dir(self.config, repo_root),
        )
        self.hooks = HookRunner(
            repo_root,
            self.env,
            self.config.hooks,
            stdout=hook_stdout,
            stderr=hook_stderr,
        )

    @property
    def base_dir(self) -> Path:
        return self.context.base_dir

    def create(
        self,
        name: str | None = None,
        from_branch: str | None = None,
        with_changes: bool = False,
        token: CancelToken | None = None,
        rng: random.Random | None = None,
    ) -> CreateResult:
        return create_worktree(
            self.git,
            self.hooks,
            self.context,
            self.config,
            name=name,
            from_branch=from_branch,
            with_changes=with_changes,
            token=token,
            rng=rng,
        )

    def list(self) -> builtins.list[Worktree]:
        """All worktrees with valid metadata, ordered by id."""
        return scan(self.context.base_dir)

    def find(self, identifier: str) -> Worktree:
        return find_by_identifier(self.list(), identifier)

    def current(self) -> Worktree:
        """The worktree containing the invocation directory."""
        root = find_worktree_root(self.context.source_dir)
        return Worktree(info=read_info(root), path=root)

    def delete(
        self,
        identifier: str,
        force: bool = False,
        with_branch: bool | None = None,
        confirm: ConfirmBranchDelete | None = None,
        token: CancelToken | None = None,
    ) -> CleanupResult:
        return delete_worktree(
            self.git,
            self.hooks,
            self.context,
            identifier,
            force=force,
            with_branch=with_branch,
            confirm=confirm,
            token=token,
        )

    def merge(
        self,
        into: str | None = None,
        keep: bool = False,
        dry_run: bool = False,
        token: CancelToken | None = None,
        reporter: Reporter | None = None,
        rng: random.Random | None = None,
    ) -> MergeResult:
        return merge_worktree(
            self.git,
            self.hooks,
            self.context,
            self.config,
            into=into,
            keep=keep,
            dry_run=dry_run,
            token=token,
            reporter=reporter,
            rng=rng,
        )
