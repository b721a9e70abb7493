"""
wt CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

from pathlib import Path

import typer

from wt import __version__
from wt.cli import create, delete, info, init_cmd, ls, merge
from wt.cli.common import setup_logging

app = typer.Typer(
    name="wt",
    help="Manage short-lived git worktrees for parallel work",
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["--help", "-h"]},
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"wt {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    cwd: Path | None = typer.Option(
        None,
        "--cwd",
        "-C",
        help="Run as if wt was started in this directory",
        file_okay=False,
        exists=True,
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Use only this config file",
        dir_okay=False,
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """
    wt - git worktree manager.

    Each worktree gets a sequential id, an adjective-animal agent id and a
    branch of its own. Hooks in .wt/hooks/ run after create and before delete.

    Quick Start:
        wt create                    # New worktree off the current branch
        wt list                      # See worktrees
        wt merge                     # From inside a worktree: merge and clean up
        wt delete swift-fox          # Throw a worktree away
    """
    setup_logging(debug)
    ctx.obj = {"debug": debug, "cwd": cwd, "config": config}


app.command(name="create")(create.create)
app.command(name="list")(ls.list_worktrees)
app.command(name="ls", hidden=True)(ls.list_worktrees)
app.command(name="info")(info.info)
app.command(name="delete")(delete.delete)
app.command(name="remove", hidden=True)(delete.delete)
app.command(name="rm", hidden=True)(delete.delete)
app.command(name="merge")(merge.merge)
app.command(name="init")(init_cmd.init)


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
