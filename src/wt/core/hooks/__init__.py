"""
Lifecycle hooks for wt.

Provides execution of the post-create and pre-delete scripts stored under
the main repository's .wt/hooks/ directory.
"""

from wt.core.hooks.executor import HOOKS_DIR, HookRunner, hook_path
from wt.core.hooks.models import HookContext, HookKind, HookResult

__all__ = [
    "HOOKS_DIR",
    "HookContext",
    "HookKind",
    "HookResult",
    "HookRunner",
    "hook_path",
]
