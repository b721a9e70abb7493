"""
wt CLI - Delete command.

Remove a worktree, running its pre-delete hook first.
"""

from __future__ import annotations

import sys
from typing import Annotated

import typer
from rich.console import Console

from wt.cli.common import get_manager, run_command
from wt.cli.errors import print_warning
from wt.core.interrupt import CancelToken
from wt.core.worktree import CleanupResult, Worktree
from wt.core.worktree.cleanup import read_yes_no

console = Console()
err_console = Console(stderr=True)


def confirm_branch_delete(worktree: Worktree) -> bool:
    """Ask on the terminal whether to delete the branch as well; default is no."""
    err_console.print(
        f"Branch '{worktree.info.name}' still contains all your commits. "
        "Also delete the branch? (y/N) ",
        end="",
    )
    return read_yes_no(sys.stdin)


def delete(
    ctx: typer.Context,
    identifier: Annotated[
        str,
        typer.Argument(help="Worktree id, name or agent id"),
    ],
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Delete even if the worktree has uncommitted changes",
        ),
    ] = False,
    with_branch: Annotated[
        bool,
        typer.Option(
            "--with-branch",
            "-b",
            help="Also delete the worktree's branch without asking",
        ),
    ] = False,
) -> None:
    """
    Delete a worktree.

    Without --with-branch, wt asks whether to delete the branch when run
    from a terminal, and keeps it otherwise.

    Examples:

        wt delete swift-fox
        wt rm 3 --force --with-branch
    """
    confirm = confirm_branch_delete if sys.stdin.isatty() else None

    def body(token: CancelToken) -> CleanupResult:
        return get_manager(ctx).delete(
            identifier,
            force=force,
            with_branch=True if with_branch else None,
            confirm=confirm,
            token=token,
        )

    result = run_command(body)

    console.print(f"[green]Removed worktree[/green] {result.worktree_path}")
    if result.branch_deleted:
        console.print(f"[green]Deleted branch[/green] {result.branch}")
    else:
        console.print(f"[dim]Kept branch {result.branch}[/dim]")
    for warning in result.warnings:
        print_warning(warning)
