"""
Tests for the wt command line.

Commands run in-process through Typer's CliRunner against real repositories;
-C and --config point them at the test repository and base directory.
"""

import json
from pathlib import Path

import pytest
from helpers import commit_file, git
from typer.testing import CliRunner

from wt import __version__
from wt.cli import app

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path: Path, base_root: Path) -> Path:
    path = tmp_path / "wt.json"
    path.write_text(json.dumps({"base": str(base_root), "merge": {"base_delay_seconds": 0.01}}))
    return path


@pytest.fixture
def wt(repo: Path, config_file: Path):
    """Invoke wt with -C and --config already set."""

    def invoke(*args: str, cwd: Path | None = None):
        return runner.invoke(app, ["-C", str(cwd or repo), "--config", str(config_file), *args])

    return invoke


def create_json(wt, *args: str) -> dict:
    result = wt("create", "--json", *args)
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


class TestGlobalOptions:
    def test_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_not_a_git_repository(self, tmp_path, git_env):
        plain = tmp_path / "plain"
        plain.mkdir()

        result = runner.invoke(app, ["-C", str(plain), "list"])

        assert result.exit_code == 1
        assert "Not a git repository" in result.output


class TestInit:
    def test_bash(self):
        result = runner.invoke(app, ["init", "bash"])

        assert result.exit_code == 0
        assert "command wt" in result.output
        assert "--switch" in result.output

    def test_unsupported_shell(self):
        result = runner.invoke(app, ["init", "fish"])

        assert result.exit_code == 2
        assert "Invalid option: fish" in result.output


class TestCreate:
    def test_json(self, wt, base_root):
        data = create_json(wt, "--name", "feature")

        assert data["id"] == 1
        assert data["name"] == "feature"
        assert data["base_branch"] == "main"
        assert data["copied_files"] == []
        assert Path(data["path"]) == base_root / "repo" / "feature"

    def test_switch_prints_only_path(self, wt, base_root):
        result = wt("create", "--switch")

        assert result.exit_code == 0, result.output
        path = Path(result.stdout.strip())
        assert path.parent == base_root / "repo"
        assert path.is_dir()

    def test_human_output(self, wt):
        result = wt("create", "-n", "feature")

        assert result.exit_code == 0, result.output
        assert "Created worktree" in result.output
        assert "feature" in result.output

    def test_name_in_use(self, wt):
        create_json(wt, "--name", "feature")

        result = wt("create", "--name", "feature")

        assert result.exit_code == 1
        assert "feature" in result.output


class TestListAndInfo:
    def test_list_empty(self, wt):
        result = wt("list")

        assert result.exit_code == 0
        assert "No worktrees found" in result.output

    def test_list_json(self, wt):
        create_json(wt, "--name", "one")
        create_json(wt, "--name", "two")

        result = wt("list", "--json")

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert [(entry["id"], entry["name"]) for entry in data] == [(1, "one"), (2, "two")]

    def test_ls_alias(self, wt):
        create_json(wt, "--name", "one")

        result = wt("ls")

        assert result.exit_code == 0
        assert "one" in result.output

    def test_info_field(self, wt):
        data = create_json(wt, "--name", "feature")

        result = wt("info", "feature", "--field", "path")

        assert result.exit_code == 0
        assert result.stdout.strip() == data["path"]

    def test_info_current_worktree(self, wt):
        data = create_json(wt, "--name", "feature")

        result = wt("info", "--json", cwd=Path(data["path"]))

        assert result.exit_code == 0
        assert json.loads(result.stdout)["agent_id"] == data["agent_id"]

    def test_info_unknown(self, wt):
        result = wt("info", "nope")

        assert result.exit_code == 1
        assert "Worktree not found" in result.output

    def test_info_invalid_field(self, wt):
        create_json(wt, "--name", "feature")

        result = wt("info", "feature", "-f", "colour")

        assert result.exit_code == 2
        assert "Invalid option" in result.output


class TestDelete:
    def test_delete_keeps_branch_without_terminal(self, wt, repo):
        data = create_json(wt, "--name", "feature")

        result = wt("delete", "feature")

        assert result.exit_code == 0, result.output
        assert "Removed worktree" in result.output
        assert "Kept branch" in result.output
        assert not Path(data["path"]).exists()
        assert git(repo, "branch", "--list", "feature") != ""

    def test_rm_with_branch(self, wt, repo):
        create_json(wt, "--name", "feature")

        result = wt("rm", "1", "--with-branch")

        assert result.exit_code == 0, result.output
        assert "Deleted branch" in result.output
        assert git(repo, "branch", "--list", "feature") == ""


class TestMerge:
    def test_dry_run(self, wt):
        data = create_json(wt, "--name", "feature")
        commit_file(Path(data["path"]), "feature.txt", "x\n")

        result = wt("merge", "--dry-run", cwd=Path(data["path"]))

        assert result.exit_code == 0, result.output
        assert "No changes made." in result.output
        assert Path(data["path"]).exists()

    def test_merge(self, wt, repo):
        data = create_json(wt, "--name", "feature")
        commit_file(Path(data["path"]), "feature.txt", "x\n", "Add feature")

        result = wt("merge", cwd=Path(data["path"]))

        assert result.exit_code == 0, result.output
        assert "Merged" in result.output
        assert git(repo, "log", "-1", "--format=%s", "main") == "Add feature"
        assert not Path(data["path"]).exists()

    def test_merge_outside_worktree(self, wt):
        result = wt("merge")

        assert result.exit_code == 1
        assert "Not inside a wt worktree" in result.output
