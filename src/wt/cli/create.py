"""
wt CLI - Create command.

Create a worktree with a unique id and adjective-animal agent id.
"""

from __future__ import annotations

import json
from typing import Annotated

import typer
from rich.console import Console

from wt.cli.common import STDERR_FD, get_manager, run_command
from wt.core.interrupt import CancelToken
from wt.core.worktree import CreateResult

console = Console()


def create(
    ctx: typer.Context,
    name: Annotated[
        str | None,
        typer.Option(
            "--name",
            "-n",
            help="Worktree and branch name (default: generated agent id)",
        ),
    ] = None,
    from_branch: Annotated[
        str | None,
        typer.Option(
            "--from-branch",
            "-b",
            help="Branch to fork from (default: current branch)",
        ),
    ] = None,
    with_changes: Annotated[
        bool,
        typer.Option(
            "--with-changes",
            help="Copy staged, unstaged and untracked files into the new worktree",
        ),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
    switch: Annotated[
        bool,
        typer.Option(
            "--switch",
            "-s",
            help="Print only the worktree path (used by the shell integration to cd)",
        ),
    ] = False,
) -> None:
    """
    Create a new worktree.

    Examples:

        # Named after a generated agent id, forked from the current branch
        wt create

        # Explicit name and base branch
        wt create --name fix-login --from-branch main

        # Bring uncommitted work along
        wt create --with-changes
    """
    quiet = json_output or switch

    def body(token: CancelToken) -> CreateResult:
        manager = get_manager(ctx, hook_stdout=STDERR_FD if quiet else None)
        return manager.create(
            name=name,
            from_branch=from_branch,
            with_changes=with_changes,
            token=token,
        )

    result = run_command(body)
    worktree = result.worktree

    if json_output:
        data = worktree.info.model_dump(mode="json")
        data["path"] = str(worktree.path)
        data["copied_files"] = result.copied_files
        typer.echo(json.dumps(data, indent=2))
        return

    if switch:
        typer.echo(str(worktree.path))
        return

    info = worktree.info
    console.print(f"[green]Created worktree[/green] [bold]{info.name}[/bold] (id {info.id})")
    console.print(f"  Agent:  {info.agent_id}")
    console.print(f"  Branch: {info.name} (from {info.base_branch})")
    console.print(f"  Path:   {worktree.path}")
    if result.copied_files:
        console.print(f"  Copied {len(result.copied_files)} changed file(s)")
