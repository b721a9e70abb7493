"""
Worktree identity generation.

Ids are one more than the largest live id. Agent ids are random
adjective-animal pairs (2,500 combinations). Both must be computed while the
base directory lock is held, right after a fresh scan.
"""

from __future__ import annotations

import random
import secrets
from collections.abc import Collection, Iterable

from wt.core.errors import GenerationExhaustedError, InvalidWorktreeNameError
from wt.core.worktree.models import Worktree

MAX_GENERATION_ATTEMPTS = 10

ADJECTIVES = (
    "swift", "brave", "calm", "bold", "keen", "warm", "cool", "wise", "fair", "fond",
    "quick", "bright", "dark", "light", "soft", "hard", "pure", "rare", "true", "free",
    "glad", "kind", "mild", "neat", "pale", "rich", "safe", "tall", "thin", "trim",
    "vast", "wild", "aged", "bare", "blue", "cold", "damp", "dear", "deep", "dull",
    "fast", "firm", "flat", "full", "gray", "high", "lean", "long", "loud", "sharp",
)  # fmt: skip

ANIMALS = (
    "fox", "owl", "elk", "bee", "ant", "jay", "cod", "eel", "bat", "ram",
    "cat", "dog", "pig", "cow", "hen", "rat", "ape", "yak", "koi", "gnu",
    "hog", "emu", "ray", "pika", "kit", "doe", "hart", "colt", "foal", "mare",
    "seal", "bear", "deer", "duck", "fawn", "goat", "hare", "hawk", "ibis", "lark",
    "lynx", "mole", "moth", "newt", "orca", "puma", "rook", "swan", "toad", "wolf",
)  # fmt: skip


def next_id(existing: Iterable[Worktree]) -> int:
    """One more than the highest id in ``existing``, or 1."""
    return max((w.info.id for w in existing), default=0) + 1


def existing_names(worktrees: Iterable[Worktree]) -> set[str]:
    """Names and agent ids already taken by ``worktrees``."""
    taken: set[str] = set()
    for worktree in worktrees:
        taken.add(worktree.info.name)
        taken.add(worktree.info.agent_id)
    return taken


def generate_agent_id(
    taken: Collection[str],
    rng: random.Random | None = None,
    max_attempts: int = MAX_GENERATION_ATTEMPTS,
) -> str:
    """
    Pick an adjective-animal id not present in ``taken``.

    Args:
        taken: Names and agent ids of live worktrees
        rng: Random source; pass a seeded ``random.Random`` for reproducible ids
        max_attempts: Draws before giving up

    Raises:
        GenerationExhaustedError: If every draw collided
    """
    rng = rng or secrets.SystemRandom()
    for _ in range(max_attempts):
        candidate = f"{rng.choice(ADJECTIVES)}-{rng.choice(ANIMALS)}"
        if candidate not in taken:
            return candidate
    raise GenerationExhaustedError(max_attempts)


def validate_name(name: str) -> str:
    """
    Check that ``name`` maps to exactly one directory under the base dir.

    Branch names like ``team/feat`` are valid in git but would nest the
    worktree below the level that scanning looks at.

    Raises:
        InvalidWorktreeNameError: If the name is empty, ``.``, ``..``, contains
            a path separator or starts with ``-``
    """
    if (
        not name
        or name in (".", "..")
        or "/" in name
        or "\\" in name
        or name.startswith("-")
    ):
        raise InvalidWorktreeNameError(name)
    return name
