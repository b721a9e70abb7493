"""
Configuration data models for wt.

These models define the structure of ~/.config/wt/config.json and
<repo>/.wt/config.json, with validation via Pydantic.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class HooksConfig(BaseModel):
    """Limits applied to lifecycle hook scripts."""

    model_config = ConfigDict(extra="ignore")

    timeout_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Kill a hook that runs longer than this",
    )
    kill_grace_seconds: float = Field(
        default=5.0,
        ge=0,
        description="Seconds between SIGTERM and SIGKILL when a hook is cancelled",
    )


class MergeConfig(BaseModel):
    """
    Retry policy for `wt merge`.

    When several worktrees merge into the same target at once, the losers of
    each fast-forward race rebase and try again after a jittered backoff.
    """

    model_config = ConfigDict(extra="ignore")

    max_attempts: int = Field(
        default=5,
        ge=1,
        description="Rebase + fast-forward attempts before giving up",
    )
    base_delay_seconds: float = Field(
        default=0.1,
        ge=0,
        description="Backoff for the first retry, doubled per attempt",
    )
    max_delay_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Upper bound for a single backoff",
    )

    @model_validator(mode="after")
    def check_delays(self) -> "MergeConfig":
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("max_delay_seconds must be >= base_delay_seconds")
        return self


class WtConfig(BaseModel):
    """
    Root configuration model.

    Example:
        {
            "base": "~/code/worktrees",
            "lock_timeout_seconds": 5,
            "hooks": {"timeout_seconds": 300},
            "merge": {"max_attempts": 5}
        }
    """

    model_config = ConfigDict(extra="ignore")

    base: str = Field(
        default="~/code/worktrees",
        min_length=1,
        description=(
            "Where worktrees live. Absolute (or ~) paths get a per-repository "
            "subdirectory; relative paths are resolved against the main repository root"
        ),
    )
    lock_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="How long `wt create` waits for another wt process to finish",
    )
    hooks: HooksConfig = Field(default_factory=HooksConfig)
    merge: MergeConfig = Field(default_factory=MergeConfig)
