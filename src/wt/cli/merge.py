"""
wt CLI - Merge command.

Rebase the current worktree's branch onto its target, fast-forward the
target, then remove the worktree and its branch.
"""

from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from wt.cli.common import get_manager, run_command
from wt.cli.errors import print_warning
from wt.core.hooks import HookKind, hook_path
from wt.core.interrupt import CancelToken
from wt.core.worktree import MergeResult

console = Console()
err_console = Console(stderr=True)


def _report_progress(message: str) -> None:
    err_console.print(f"[yellow]{escape(message)}[/yellow]")


def _print_plan(result: MergeResult, has_pre_delete_hook: bool) -> None:
    plan = result.plan
    console.print(f"[bold]Dry run:[/bold] merge {plan.branch} into {plan.target}")
    console.print()
    console.print("Checks passed:")
    console.print("  [green]✓[/green] Worktree metadata readable")
    console.print(f"  [green]✓[/green] Target branch {plan.target} exists")
    console.print("  [green]✓[/green] Worktree has no uncommitted changes")
    if plan.target_worktree is not None:
        console.print(f"  [green]✓[/green] {plan.target} checkout is clean")
    console.print()

    if plan.target_worktree is not None:
        location = f"in {plan.target_worktree}"
    else:
        location = "by updating the branch ref directly"

    steps = [
        f"Rebase {plan.branch} onto {plan.target} ({plan.commit_count} commit(s) to replay)",
        f"Fast-forward {plan.target} {location}",
    ]
    if not plan.keep:
        if has_pre_delete_hook:
            steps.append("Run pre-delete hook")
        steps.append(f"Remove worktree {plan.worktree.path}")
        steps.append(f"Delete branch {plan.branch}")

    console.print("Would:")
    for number, step in enumerate(steps, start=1):
        console.print(f"  {number}. {step}")
    console.print()
    console.print("[dim]No changes made.[/dim]")


def merge(
    ctx: typer.Context,
    into: Annotated[
        str | None,
        typer.Option(
            "--into",
            help="Target branch (default: the branch the worktree was created from)",
        ),
    ] = None,
    keep: Annotated[
        bool,
        typer.Option(
            "--keep",
            help="Keep the worktree and branch after merging",
        ),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="Show what would be done without making changes",
        ),
    ] = False,
) -> None:
    """
    Merge the current worktree into its base branch.

    Safe to run from several worktrees at once: when another merge wins the
    race, wt rebases again and retries after a short randomized wait.

    Examples:

        wt merge
        wt merge --into release-2.1 --keep
        wt merge --dry-run
    """
    has_hook = False

    def body(token: CancelToken) -> MergeResult:
        nonlocal has_hook
        manager = get_manager(ctx)
        has_hook = hook_path(manager.context.repo_root, HookKind.PRE_DELETE).exists()
        return manager.merge(
            into=into,
            keep=keep,
            dry_run=dry_run,
            token=token,
            reporter=_report_progress,
        )

    result = run_command(body)

    if dry_run:
        _print_plan(result, has_hook)
        return

    plan = result.plan
    console.print(f"[green]Merged[/green] {plan.branch} into {plan.target}")
    if result.cleanup is not None:
        console.print(f"[green]Removed worktree[/green] {result.cleanup.worktree_path}")
        if result.cleanup.branch_deleted:
            console.print(f"[green]Deleted branch[/green] {result.cleanup.branch}")
    for warning in result.warnings:
        print_warning(warning)
