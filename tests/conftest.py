"""
Pytest configuration and shared fixtures.

Provides real git repositories, an isolated environment for git and hook
subprocesses, and a WorktreeManager wired to a temporary base directory.
"""

import os
from pathlib import Path

import pytest
from helpers import commit_file, git

from wt.core.config.models import HooksConfig, MergeConfig, WtConfig
from wt.core.worktree import WorktreeManager

# ==============================================================================
# Environment Fixtures
# ==============================================================================


@pytest.fixture
def git_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """
    Isolate git from the user's configuration.

    The variables are set on os.environ too, so helpers and CLI runs see them.
    """
    gitconfig = tmp_path / "gitconfig"
    gitconfig.write_text("")

    overrides = {
        "GIT_CONFIG_GLOBAL": str(gitconfig),
        "GIT_CONFIG_NOSYSTEM": "1",
        "GIT_AUTHOR_NAME": "Test User",
        "GIT_AUTHOR_EMAIL": "test@example.com",
        "GIT_COMMITTER_NAME": "Test User",
        "GIT_COMMITTER_EMAIL": "test@example.com",
        "XDG_CONFIG_HOME": str(tmp_path / "xdg"),
    }
    for key, value in overrides.items():
        monkeypatch.setenv(key, value)
    monkeypatch.delenv("WT_BASE", raising=False)

    return dict(os.environ)


# ==============================================================================
# Repository Fixtures
# ==============================================================================


@pytest.fixture
def repo(tmp_path: Path, git_env: dict[str, str]) -> Path:
    """A git repository on branch main with one commit."""
    repo = tmp_path / "repo"
    repo.mkdir()

    git(repo, "init")
    git(repo, "symbolic-ref", "HEAD", "refs/heads/main")
    git(repo, "config", "user.email", "test@example.com")
    git(repo, "config", "user.name", "Test User")
    git(repo, "config", "commit.gpgsign", "false")

    commit_file(repo, "README.md", "# Test Repo\n", "Initial commit")
    return repo.resolve()


@pytest.fixture
def base_root(tmp_path: Path) -> Path:
    return (tmp_path / "worktrees").resolve()


@pytest.fixture
def config(base_root: Path) -> WtConfig:
    """Configuration with fast hook and merge limits for tests."""
    return WtConfig(
        base=str(base_root),
        lock_timeout_seconds=30,
        hooks=HooksConfig(timeout_seconds=20, kill_grace_seconds=1),
        merge=MergeConfig(max_attempts=10, base_delay_seconds=0.01, max_delay_seconds=0.2),
    )


@pytest.fixture
def make_manager(config: WtConfig, git_env: dict[str, str]):
    """Factory for managers invoked from a given directory."""

    def factory(cwd: Path) -> WorktreeManager:
        return WorktreeManager(cwd, config=config, env=git_env)

    return factory


@pytest.fixture
def manager(repo: Path, make_manager) -> WorktreeManager:
    """A WorktreeManager invoked from the repository root."""
    return make_manager(repo)
