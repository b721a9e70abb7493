"""
Hook data models for wt.

Lifecycle hooks are executables at fixed paths under the main repository's
control directory:
- post-create: After a worktree was created and its metadata written
- pre-delete: Before a worktree is removed (a failure aborts the removal)

The context is passed to the script as WT_* environment variables.
"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from wt.core.worktree.models import WorktreeInfo


class HookKind(str, Enum):
    """Lifecycle points at which a hook can run."""

    POST_CREATE = "post-create"
    PRE_DELETE = "pre-delete"


class HookContext(BaseModel):
    """Values exposed to a hook script."""

    id: int = Field(description="Worktree id")
    agent_id: str = Field(description="Adjective-animal id")
    name: str = Field(description="Worktree and branch name")
    path: Path = Field(description="Absolute worktree path")
    base_branch: str = Field(description="Branch the worktree was forked from")
    repo_root: Path = Field(description="Main repository root")
    source: Path = Field(description="Directory wt was invoked from")

    @classmethod
    def for_worktree(
        cls, info: "WorktreeInfo", path: Path, repo_root: Path, source: Path
    ) -> "HookContext":
        return cls(
            id=info.id,
            agent_id=info.agent_id,
            name=info.name,
            path=path,
            base_branch=info.base_branch,
            repo_root=repo_root,
            source=source,
        )

    def to_env(self) -> dict[str, str]:
        return {
            "WT_ID": str(self.id),
            "WT_AGENT_ID": self.agent_id,
            "WT_NAME": self.name,
            "WT_PATH": str(self.path),
            "WT_BASE_BRANCH": self.base_branch,
            "WT_REPO_ROOT": str(self.repo_root),
            "WT_SOURCE": str(self.source),
        }


class HookResult(BaseModel):
    """Result of a hook that ran and exited zero."""

    hook: HookKind = Field(description="Which hook ran")
    script: Path = Field(description="Script that was executed")
    exit_code: int = Field(default=0, description="Exit code from hook script")
    duration_seconds: float = Field(description="Hook execution duration")
    timestamp: datetime = Field(default_factory=datetime.now, description="When hook finished")
