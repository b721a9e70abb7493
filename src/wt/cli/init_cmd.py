"""
wt CLI - Init command.

Print shell integration code. Add to ~/.bashrc:

    eval "$(wt init bash)"

The generated `wt` function wraps the binary so that
`wt create --switch` changes into the new worktree.
"""

from __future__ import annotations

from typing import Annotated

import typer

from wt.cli.errors import ExitCode, print_invalid_option_error

BASH_INIT = """\
wt() {
    local arg switch=0
    if [ "$1" = "create" ]; then
        for arg in "$@"; do
            case "$arg" in
                -s|--switch) switch=1 ;;
            esac
        done
    fi

    if [ "$switch" -eq 1 ]; then
        local dir
        dir="$(command wt "$@")" || return $?
        cd "$dir" || return $?
    else
        command wt "$@"
    fi
}
"""

SCRIPTS = {"bash": BASH_INIT, "zsh": BASH_INIT}


def init(
    shell: Annotated[
        str,
        typer.Argument(help="Shell to generate integration for (bash or zsh)"),
    ],
) -> None:
    """
    Print shell integration code.

    Examples:

        eval "$(wt init bash)"
    """
    script = SCRIPTS.get(shell)
    if script is None:
        print_invalid_option_error(shell, sorted(SCRIPTS))
        raise typer.Exit(ExitCode.USER_ERROR)
    typer.echo(script, nl=False)
