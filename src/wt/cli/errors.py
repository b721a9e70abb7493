"""
Standardized error handling and exit codes for the wt CLI.

This module provides consistent error messaging with actionable guidance
and standardized exit codes across all CLI commands. Errors go to stderr
so that `wt create --switch` and `--json` output stay machine-readable.
"""

from enum import IntEnum

from git import GitCommandError
from rich.console import Console
from rich.markup import escape

from wt.core.errors import OperationCancelledError, WtError

console = Console(stderr=True)


class ExitCode(IntEnum):
    """Standard exit codes for wt CLI operations."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """Generic error or failed operation."""

    USER_ERROR = 2
    """Invalid input or usage (actionable by user)."""

    SIGINT = 130
    """Terminated by SIGINT (Ctrl+C) - Unix standard."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it

    Example:
        >>> print_error(
        ...     "Name already in use: swift-fox",
        ...     solution="wt list  # to see existing worktrees",
        ... )
    """
    console.print(f"[red]Error:[/red] {escape(problem)}")

    if reason:
        console.print(f"[dim]{escape(reason)}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {escape(solution)}")


def print_warning(message: str) -> None:
    console.print(f"[yellow]Warning:[/yellow] {escape(message)}")


def report_exception(error: BaseException) -> ExitCode:
    """
    Print ``error`` for the user and return the exit code to use.

    Raises:
        BaseException: ``error`` itself when it is not a wt or git failure
    """
    if isinstance(error, OperationCancelledError):
        print_error(error.message)
        return ExitCode.SIGINT

    if isinstance(error, WtError):
        print_error(error.message, solution=error.hint)
        return ExitCode.GENERAL_ERROR

    if isinstance(error, GitCommandError):
        command = error.command if isinstance(error.command, str) else " ".join(error.command)
        print_error(
            f"git command failed: {command}",
            reason=getattr(error, "output", None) or str(error),
        )
        return ExitCode.GENERAL_ERROR

    raise error


def print_invalid_option_error(option: str, valid_options: list[str]) -> None:
    """Print error when an invalid option value is provided."""
    valid_str = ", ".join(valid_options)
    print_error(
        f"Invalid option: {option}",
        reason=f"Valid options are: {valid_str}",
        solution=f"Use one of: {valid_str}",
    )
