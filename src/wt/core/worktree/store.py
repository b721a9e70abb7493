"""
Per-worktree metadata storage.

Each worktree records its identity in ``<worktree>/.wt/worktree.json``. The
set of live worktrees is never stored anywhere: it is recomputed by scanning
the base directory for subdirectories carrying valid metadata.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import ValidationError

from wt.core.errors import MetadataCorruptError, WorktreeNotFoundError
from wt.core.worktree.models import Worktree, WorktreeInfo

logger = logging.getLogger(__name__)

METADATA_DIR = ".wt"
METADATA_FILE = "worktree.json"
EXCLUDE_PATTERN = f"{METADATA_DIR}/{METADATA_FILE}"


def metadata_path(worktree_path: Path) -> Path:
    return worktree_path / METADATA_DIR / METADATA_FILE


def write_info(worktree_path: Path, info: WorktreeInfo) -> Path:
    """
    Write metadata into ``worktree_path`` and fsync it before returning.

    Returns:
        Path of the written metadata file
    """
    path = metadata_path(worktree_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with path.open("w", encoding="utf-8") as f:
        f.write(info.model_dump_json(indent=2))
        f.write("\n")
        f.flush()
        os.fsync(f.fileno())

    return path


def read_info(worktree_path: Path) -> WorktreeInfo:
    """
    Read metadata from ``worktree_path``.

    Raises:
        WorktreeNotFoundError: If there is no metadata file
        MetadataCorruptError: If the file cannot be parsed or validated
    """
    path = metadata_path(worktree_path)
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise WorktreeNotFoundError(f"No worktree metadata at {path}") from e
    except OSError as e:
        raise MetadataCorruptError(path, str(e)) from e

    try:
        return WorktreeInfo.model_validate_json(raw)
    except ValidationError as e:
        raise MetadataCorruptError(path, f"{e.error_count()} validation error(s)") from e


def scan(base_dir: Path) -> list[Worktree]:
    """
    List worktrees under ``base_dir``, ordered by id.

    Subdirectories without readable metadata are skipped. A missing base
    directory simply means there are no worktrees yet.
    """
    if not base_dir.is_dir():
        return []

    worktrees: list[Worktree] = []
    for entry in base_dir.iterdir():
        if not entry.is_dir():
            continue
        try:
            info = read_info(entry)
        except (WorktreeNotFoundError, MetadataCorruptError) as e:
            logger.debug(f"Skipping {entry}: {e}")
            continue
        worktrees.append(Worktree(info=info, path=entry.resolve()))

    worktrees.sort(key=lambda w: w.info.id)
    return worktrees


def find_by_identifier(worktrees: list[Worktree], identifier: str) -> Worktree:
    """
    Look a worktree up by numeric id, name or agent id.

    Raises:
        WorktreeNotFoundError: If nothing matches
    """
    if identifier.isdigit():
        wanted = int(identifier)
        for worktree in worktrees:
            if worktree.info.id == wanted:
                return worktree

    for worktree in worktrees:
        if identifier in (worktree.info.name, worktree.info.agent_id):
            return worktree

    raise WorktreeNotFoundError(f"Worktree not found: {identifier}", hint="wt list")


def find_worktree_root(start: Path) -> Path:
    """
    Walk up from ``start`` to the directory holding worktree metadata.

    Raises:
        WorktreeNotFoundError: If no parent directory carries metadata
    """
    current = start.resolve()
    for candidate in (current, *current.parents):
        if metadata_path(candidate).is_file():
            return candidate
    raise WorktreeNotFoundError(
        f"Not inside a wt worktree: {start}",
        hint="cd into a worktree created by wt create",
    )


def ensure_worktree_excluded(git_common_dir: Path) -> bool:
    """
    Add the metadata file to ``<common dir>/info/exclude`` so git ignores it.

    Returns:
        True if the pattern is present afterwards, False if it could not be added
    """
    exclude = git_common_dir / "info" / "exclude"
    try:
        existing = exclude.read_text(encoding="utf-8") if exclude.exists() else ""
        if any(line.strip() == EXCLUDE_PATTERN for line in existing.splitlines()):
            return True

        exclude.parent.mkdir(parents=True, exist_ok=True)
        with exclude.open("a", encoding="utf-8") as f:
            if existing and not existing.endswith("\n"):
                f.write("\n")
            f.write(f"{EXCLUDE_PATTERN}\n")
    except OSError as e:
        logger.warning(f"Could not add {EXCLUDE_PATTERN} to {exclude}: {e}")
        return False
    return True
