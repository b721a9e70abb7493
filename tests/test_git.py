"""
Tests for the Git façade against real repositories.
"""

import threading
import time
from pathlib import Path
from unittest.mock import patch

import pytest
from git import GitCommandError
from git.cmd import Git as GitCmd

from helpers import commit_file, git
from wt.core.errors import NotAGitRepositoryError, OperationCancelledError
from wt.core.git import Git, GitCommandFailed, is_conflict, is_not_fast_forward
from wt.core.interrupt import CancelToken


@pytest.fixture
def facade(git_env):
    return Git(git_env)


class TestDiscovery:
    def test_repo_root_from_subdirectory(self, facade, repo):
        sub = repo / "src"
        sub.mkdir()
        assert facade.repo_root(sub) == repo

    def test_not_a_repository(self, facade, tmp_path):
        outside = tmp_path / "plain"
        outside.mkdir()
        with pytest.raises(NotAGitRepositoryError, match="Not a git repository"):
            facade.repo_root(outside)

    def test_main_root_from_linked_worktree(self, facade, repo, tmp_path):
        linked = tmp_path / "linked"
        git(repo, "worktree", "add", "-b", "feature", str(linked))

        assert facade.repo_root(linked) == linked.resolve()
        assert facade.main_repo_root(linked) == repo
        assert facade.git_common_dir(linked) == repo / ".git"


class TestQueries:
    def test_current_branch(self, facade, repo):
        assert facade.current_branch(repo) == "main"

    def test_current_branch_detached(self, facade, repo):
        git(repo, "checkout", "--detach")
        assert facade.current_branch(repo) == ""

    def test_is_dirty(self, facade, repo):
        assert not facade.is_dirty(repo)
        (repo / "new.txt").write_text("x")
        assert facade.is_dirty(repo)
        assert not facade.has_uncommitted_tracked_changes(repo)

        (repo / "README.md").write_text("changed\n")
        assert facade.has_uncommitted_tracked_changes(repo)

    def test_branch_exists(self, facade, repo):
        assert facade.branch_exists(repo, "main")
        assert not facade.branch_exists(repo, "nope")

    def test_changed_files(self, facade, repo):
        """Test staged, unstaged and untracked files are listed; ignored ones are not."""
        commit_file(repo, ".gitignore", "*.log\n")
        (repo / "README.md").write_text("modified\n")
        (repo / "staged.txt").write_text("s")
        git(repo, "add", "staged.txt")
        (repo / "dir").mkdir()
        (repo / "dir" / "untracked.txt").write_text("u")
        (repo / "debug.log").write_text("ignored")

        files = facade.changed_files(repo)

        assert sorted(files) == ["README.md", "dir/untracked.txt", "staged.txt"]

    def test_commits_between(self, facade, repo):
        git(repo, "checkout", "-b", "feature")
        commit_file(repo, "a.txt", "a")
        commit_file(repo, "b.txt", "b")

        assert facade.commits_between(repo, "main", "feature") == 2

    def test_command_failure_keeps_output(self, facade, repo):
        with pytest.raises(GitCommandFailed) as exc_info:
            facade.run(repo, "rev-parse", "--verify", "does-not-exist")

        assert isinstance(exc_info.value, GitCommandError)
        assert exc_info.value.returncode != 0
        assert "fatal" in exc_info.value.output

    def test_cancelled_token(self, facade, repo):
        token = CancelToken()
        token.cancel()
        with pytest.raises(OperationCancelledError):
            facade.current_branch(repo, token=token)

    def test_cancel_stops_running_command(self, facade, repo):
        """Test that cancelling kills git and the children it spawned."""
        token = CancelToken()
        timer = threading.Timer(0.3, token.cancel)
        timer.start()
        start = time.monotonic()

        try:
            with pytest.raises(OperationCancelledError):
                facade.run(repo, "-c", "alias.nap=!sleep 30", "nap", token=token)
        finally:
            timer.cancel()

        assert time.monotonic() - start < 10
        assert not token._processes

    def test_commands_use_given_environment(self, git_env, repo):
        facade = Git({**git_env, "GIT_AUTHOR_NAME": "Someone Else"})

        assert facade.run(repo, "var", "GIT_AUTHOR_IDENT").startswith("Someone Else")

    def test_commands_start_through_gitpython(self, facade, repo):
        with patch.object(GitCmd, "execute", autospec=True, side_effect=GitCmd.execute) as execute:
            assert facade.current_branch(repo) == "main"

        kwargs = execute.call_args.kwargs
        assert kwargs["as_process"] is True
        assert kwargs["start_new_session"] is True
        assert execute.call_args.args[1][1:] == ["branch", "--show-current"]


class TestWorktreeList:
    def test_lists_main_and_linked(self, facade, repo, tmp_path):
        linked = tmp_path / "linked"
        git(repo, "worktree", "add", "-b", "feature", str(linked))

        entries = facade.worktree_list(repo)

        assert [e.branch for e in entries] == ["main", "feature"]
        assert entries[1].path == linked.resolve()
        assert facade.find_worktree_for_branch(repo, "feature") == linked.resolve()
        assert facade.find_worktree_for_branch(repo, "other") is None

    def test_parses_porcelain(self, facade, repo):
        output = (
            "worktree /repo\nHEAD abc123\nbranch refs/heads/main\n\n"
            "worktree /wt/one\nHEAD def456\ndetached\nlocked reason\n"
        )
        with patch.object(Git, "run", return_value=output):
            entries = facade.worktree_list(repo)

        assert entries[0].path == Path("/repo")
        assert entries[0].branch == "main"
        assert entries[1].branch is None
        assert entries[1].is_locked
        assert entries[1].commit == "def456"


class TestClassification:
    def failure(self, stderr: str) -> GitCommandFailed:
        return GitCommandFailed(["git", "merge"], 1, "", stderr)

    @pytest.mark.parametrize(
        "stderr",
        [
            "fatal: Not possible to fast-forward, aborting.",
            " ! [rejected]        feature -> main (non-fast-forward)",
            "error: cannot lock ref 'refs/heads/main': is at 1a2b but expected 3c4d",
            "fatal: Unable to create '/repo/.git/index.lock': File exists.",
        ],
    )
    def test_not_fast_forward(self, stderr):
        assert is_not_fast_forward(self.failure(stderr))

    def test_other_failures_are_not_retryable(self):
        assert not is_not_fast_forward(self.failure("fatal: refusing to merge unrelated histories"))

    def test_conflict(self):
        assert is_conflict(self.failure("CONFLICT (content): Merge conflict in README.md"))
        assert is_conflict(self.failure("error: could not apply 1a2b3c... change"))
        assert not is_conflict(self.failure("fatal: invalid upstream 'nope'"))
