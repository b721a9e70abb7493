"""
Unit tests for configuration loader.

Tests multi-layer config merging, the WT_BASE override, and how the base
directory is resolved relative to the repository.
"""

import json
from pathlib import Path

import pytest

from wt.core.config import (
    get_project_config_path,
    get_user_config_path,
    load_config,
    resolve_base_dir,
    resolve_worktree_path,
)
from wt.core.config.loader import (
    apply_env_overrides,
    deep_merge,
    get_xdg_config_home,
    load_json_file,
)
from wt.core.config.models import MergeConfig, WtConfig
from wt.core.errors import ConfigError


def write_json(path: Path, data: object) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))
    return path


@pytest.fixture
def env(tmp_path):
    return {"XDG_CONFIG_HOME": str(tmp_path / "xdg")}


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "project"
    root.mkdir()
    return root


# ==============================================================================
# Helper Functions Tests
# ==============================================================================


class TestDeepMerge:
    """Test the deep_merge helper function."""

    def test_nested_merge(self):
        base = {"a": 1, "b": {"x": 10, "y": 20}}
        override = {"b": {"y": 30}, "c": 3}
        assert deep_merge(base, override) == {"a": 1, "b": {"x": 10, "y": 30}, "c": 3}

    def test_inputs_untouched(self):
        base = {"b": {"x": 1}}
        deep_merge(base, {"b": {"x": 2}})
        assert base == {"b": {"x": 1}}


class TestPaths:
    def test_xdg_config_home(self, tmp_path):
        assert get_xdg_config_home({"XDG_CONFIG_HOME": str(tmp_path)}) == tmp_path

    def test_xdg_default(self):
        assert get_xdg_config_home({}) == Path.home() / ".config"

    def test_user_and_project_paths(self, env, project):
        assert get_user_config_path(env) == Path(env["XDG_CONFIG_HOME"]) / "wt" / "config.json"
        assert get_project_config_path(project) == project / ".wt" / "config.json"


class TestLoadJsonFile:
    def test_missing_file(self, tmp_path):
        assert load_json_file(tmp_path / "nope.json") is None

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")

        with pytest.raises(ConfigError, match="Failed to parse"):
            load_json_file(path)

    def test_not_an_object(self, tmp_path):
        with pytest.raises(ConfigError, match="JSON object"):
            load_json_file(write_json(tmp_path / "list.json", [1, 2]))


class TestEnvOverrides:
    def test_wt_base(self):
        assert apply_env_overrides({"base": "a"}, {"WT_BASE": "/b"}) == {"base": "/b"}

    def test_empty_wt_base_ignored(self):
        assert apply_env_overrides({"base": "a"}, {"WT_BASE": ""}) == {"base": "a"}


# ==============================================================================
# load_config Tests
# ==============================================================================


class TestLoadConfig:
    def test_defaults(self, env, project):
        config = load_config(project, env=env)

        assert config == WtConfig()
        assert config.base == "~/code/worktrees"
        assert config.merge.max_attempts == 5
        assert config.hooks.timeout_seconds == 300

    def test_project_overrides_user(self, env, project):
        write_json(
            get_user_config_path(env),
            {"base": "/user", "merge": {"max_attempts": 2, "max_delay_seconds": 9}},
        )
        write_json(
            get_project_config_path(project),
            {"base": "/project", "merge": {"max_attempts": 7}},
        )

        config = load_config(project, env=env)

        assert config.base == "/project"
        assert config.merge.max_attempts == 7
        assert config.merge.max_delay_seconds == 9

    def test_env_overrides_files(self, env, project):
        write_json(get_project_config_path(project), {"base": "/project"})

        config = load_config(project, env={**env, "WT_BASE": "/env"})

        assert config.base == "/env"

    def test_explicit_file_replaces_layers(self, env, project, tmp_path):
        write_json(get_user_config_path(env), {"lock_timeout_seconds": 9})
        write_json(get_project_config_path(project), {"base": "/project"})
        explicit = write_json(tmp_path / "explicit.json", {"hooks": {"timeout_seconds": 3}})

        config = load_config(project, explicit, env)

        assert config.base == "~/code/worktrees"
        assert config.lock_timeout_seconds == 5
        assert config.hooks.timeout_seconds == 3

    def test_missing_explicit_file_gives_defaults(self, env, project, tmp_path):
        assert load_config(project, tmp_path / "absent.json", env) == WtConfig()

    def test_unknown_keys_ignored(self, env, project):
        write_json(get_project_config_path(project), {"colour": "blue"})

        assert load_config(project, env=env) == WtConfig()

    def test_invalid_project_json(self, env, project):
        path = get_project_config_path(project)
        path.parent.mkdir(parents=True)
        path.write_text("{")

        with pytest.raises(ConfigError):
            load_config(project, env=env)

    @pytest.mark.parametrize(
        "data",
        [
            {"merge": {"max_attempts": 0}},
            {"hooks": {"timeout_seconds": -1}},
            {"merge": {"base_delay_seconds": 3, "max_delay_seconds": 1}},
        ],
    )
    def test_invalid_values(self, env, project, data):
        write_json(get_project_config_path(project), data)

        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(project, env=env)


class TestMergeConfig:
    def test_max_delay_not_below_base(self):
        with pytest.raises(ValueError):
            MergeConfig(base_delay_seconds=1.0, max_delay_seconds=0.5)


# ==============================================================================
# Base directory resolution
# ==============================================================================


class TestResolveBaseDir:
    def test_absolute_base_gets_repo_subdirectory(self, tmp_path):
        config = WtConfig(base=str(tmp_path / "trees"))
        assert resolve_base_dir(config, Path("/src/myrepo")) == tmp_path / "trees" / "myrepo"

    def test_home_relative_base(self):
        config = WtConfig(base="~/trees")
        assert resolve_base_dir(config, Path("/src/myrepo")) == Path.home() / "trees" / "myrepo"

    def test_relative_base_anchored_at_repo(self):
        config = WtConfig(base=".worktrees")
        assert resolve_base_dir(config, Path("/src/myrepo")) == Path("/src/myrepo/.worktrees")

    def test_worktree_path(self):
        config = WtConfig(base="/trees")
        assert resolve_worktree_path(config, Path("/src/r"), "feat") == Path("/trees/r/feat")
