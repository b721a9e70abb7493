"""
Data models for wt worktrees.

WorktreeInfo is the content of <worktree>/.wt/worktree.json. It is written
once when the worktree is created and never modified afterwards.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_serializer, field_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


class WorktreeInfo(BaseModel):
    """Identity of a worktree."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(min_length=1, description="Worktree directory and branch name")
    agent_id: str = Field(min_length=1, description="Adjective-animal identifier")
    id: PositiveInt = Field(description="Sequential id, unique among live worktrees")
    base_branch: str = Field(min_length=1, description="Branch the worktree was forked from")
    created: datetime = Field(default_factory=utc_now, description="Creation time (UTC)")

    @field_validator("created")
    @classmethod
    def normalize_created(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @field_serializer("created")
    def serialize_created(self, value: datetime) -> str:
        return value.isoformat().replace("+00:00", "Z")


@dataclass
class Worktree:
    """
    A worktree found in the base directory.

    Attributes:
        info: Parsed metadata
        path: Absolute path to the worktree directory
    """

    info: WorktreeInfo
    path: Path

    @property
    def name(self) -> str:
        return self.info.name

    @property
    def id(self) -> int:
        return self.info.id


@dataclass(frozen=True)
class RepoContext:
    """
    Where a command runs and which directories it works against.

    Attributes:
        source_dir: Directory wt was invoked from
        repo_root: Root of the main checkout (shared by all linked worktrees)
        git_common_dir: The shared .git directory
        base_dir: Directory holding this repository's worktrees
    """

    source_dir: Path
    repo_root: Path
    git_common_dir: Path
    base_dir: Path
