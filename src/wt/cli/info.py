"""
wt CLI - Info command.

Show the metadata of one worktree: the one given by id, name or agent id,
or the worktree containing the current directory.
"""

from __future__ import annotations

import json
from typing import Annotated, Any

import typer
from rich.console import Console

from wt.cli.common import get_manager, run_command
from wt.cli.errors import ExitCode, print_invalid_option_error
from wt.core.interrupt import CancelToken
from wt.core.worktree import Worktree

console = Console()


def _as_dict(worktree: Worktree) -> dict[str, Any]:
    data = worktree.info.model_dump(mode="json")
    data["path"] = str(worktree.path)
    return data


def info(
    ctx: typer.Context,
    identifier: Annotated[
        str | None,
        typer.Argument(help="Worktree id, name or agent id (default: current worktree)"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
    field: Annotated[
        str | None,
        typer.Option("--field", "-f", help="Print a single field (e.g. path, id, base_branch)"),
    ] = None,
) -> None:
    """
    Show worktree metadata.

    Examples:

        wt info
        wt info swift-fox --json
        cd "$(wt info 3 --field path)"
    """

    def body(token: CancelToken) -> Worktree:
        manager = get_manager(ctx)
        if identifier:
            return manager.find(identifier)
        return manager.current()

    data = _as_dict(run_command(body))

    if field:
        if field not in data:
            print_invalid_option_error(field, list(data))
            raise typer.Exit(ExitCode.USER_ERROR)
        typer.echo(str(data[field]))
        return

    if json_output:
        typer.echo(json.dumps(data, indent=2))
        return

    for key, value in data.items():
        console.print(f"[cyan]{key:<12}[/cyan] {value}")
