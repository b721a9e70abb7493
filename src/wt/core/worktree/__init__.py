"""
Worktree management for wt.

Provides identity assignment, metadata storage, and the create, delete and
merge orchestrators for git worktrees.
"""

from wt.core.worktree.cleanup import CleanupResult, cleanup_worktree, delete_worktree
from wt.core.worktree.create import CreateResult, create_worktree
from wt.core.worktree.manager import WorktreeManager
from wt.core.worktree.merge import MergePlan, MergeResult, merge_worktree
from wt.core.worktree.models import RepoContext, Worktree, WorktreeInfo

__all__ = [
    "CleanupResult",
    "CreateResult",
    "MergePlan",
    "MergeResult",
    "RepoContext",
    "Worktree",
    "WorktreeInfo",
    "WorktreeManager",
    "cleanup_worktree",
    "create_worktree",
    "delete_worktree",
    "merge_worktree",
]
