"""
wt - Git worktree manager

Creates short-lived git worktrees with unique identities, runs lifecycle
hooks around them, and merges their branches back into a shared target.
"""

__version__ = "0.4.0"

__all__ = ["__version__"]
