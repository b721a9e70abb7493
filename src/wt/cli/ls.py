"""
wt CLI - List command.

Show the worktrees of the current repository.
"""

from __future__ import annotations

import json
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from wt.cli.common import format_age, get_manager, run_command
from wt.core.interrupt import CancelToken
from wt.core.worktree import Worktree

console = Console()


def list_worktrees(
    ctx: typer.Context,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """
    List worktrees.

    Only directories with valid wt metadata in the base directory are shown.
    """

    def body(token: CancelToken) -> list[Worktree]:
        return get_manager(ctx).list()

    worktrees = run_command(body)

    if json_output:
        data = []
        for worktree in worktrees:
            entry = worktree.info.model_dump(mode="json")
            entry["path"] = str(worktree.path)
            data.append(entry)
        typer.echo(json.dumps(data, indent=2))
        return

    if not worktrees:
        console.print("[dim]No worktrees found. Create one with: wt create[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID", justify="right")
    table.add_column("NAME", style="cyan")
    table.add_column("AGENT")
    table.add_column("BASE")
    table.add_column("CREATED")
    table.add_column("PATH", style="dim", overflow="fold")

    for worktree in worktrees:
        info = worktree.info
        table.add_row(
            str(info.id),
            info.name,
            info.agent_id,
            info.base_branch,
            format_age(info.created),
            str(worktree.path),
        )

    console.print(table)
