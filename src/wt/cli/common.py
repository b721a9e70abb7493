"""
Shared plumbing for wt CLI commands.

Commands build a WorktreeManager from the global options stored on the
Typer context and run their body through an InterruptHandler, so that
Ctrl+C cancels git and hook subprocesses cleanly.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TypeVar

import typer

from wt.cli.errors import report_exception
from wt.core.interrupt import CancelToken, InterruptHandler
from wt.core.worktree import WorktreeManager

T = TypeVar("T")

# Hook output is sent here when wt's own stdout must stay machine-readable.
STDERR_FD = 2


def setup_logging(debug: bool = False) -> None:
    """
    Configure logging for wt commands.

    Args:
        debug: If True, enable DEBUG level logging
    """
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def get_options(ctx: typer.Context) -> dict[str, Any]:
    return ctx.obj if isinstance(ctx.obj, dict) else {}


def get_manager(ctx: typer.Context, **kwargs: Any) -> WorktreeManager:
    """Build a WorktreeManager from the global -C/--config options."""
    options = get_options(ctx)
    cwd: Path | None = options.get("cwd")
    config_path: Path | None = options.get("config")
    return WorktreeManager(cwd, config_path=config_path, **kwargs)


def run_command(body: Callable[[CancelToken], T]) -> T:
    """
    Run ``body`` under interrupt supervision and map failures to exit codes.

    Raises:
        typer.Exit: With the appropriate exit code when ``body`` fails
    """
    handler = InterruptHandler()
    try:
        return handler.run(body)
    except typer.Exit:
        raise
    except Exception as e:
        code = report_exception(e)
        raise typer.Exit(int(code)) from e


def format_age(created: datetime, now: datetime | None = None) -> str:
    """Human-readable age such as "5m ago" or "3d ago"."""
    now = now or datetime.now(timezone.utc)
    seconds = max(0, int((now - created).total_seconds()))
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"
