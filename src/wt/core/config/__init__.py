"""
Configuration models and loading.

Multi-layer merging: defaults < user < project < env vars.
"""

from .loader import (
    get_project_config_path,
    get_user_config_path,
    get_xdg_config_home,
    load_config,
    resolve_base_dir,
    resolve_worktree_path,
)
from .models import HooksConfig, MergeConfig, WtConfig

__all__ = [
    # Models
    "HooksConfig",
    "MergeConfig",
    "WtConfig",
    # Loader functions
    "get_project_config_path",
    "get_user_config_path",
    "get_xdg_config_home",
    "load_config",
    "resolve_base_dir",
    "resolve_worktree_path",
]
