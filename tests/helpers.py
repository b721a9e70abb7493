"""Git and hook helpers shared by the test modules."""

import subprocess
from pathlib import Path

from wt.core.hooks import HookKind, hook_path


def git(cwd: Path, *args: str) -> str:
    """Run a git command in ``cwd`` and return its stripped stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def commit_file(cwd: Path, name: str, content: str, message: str | None = None) -> None:
    path = cwd / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    git(cwd, "add", name)
    git(cwd, "commit", "-m", message or f"Add {name}")


def write_hook(repo: Path, kind: HookKind, body: str, executable: bool = True) -> Path:
    """Install a shell hook script for ``kind`` in ``repo``."""
    path = hook_path(repo, kind)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"#!/bin/sh\n{body}\n")
    path.chmod(0o755 if executable else 0o644)
    return path
