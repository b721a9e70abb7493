"""Jittered exponential backoff for the merge retry loop."""

from __future__ import annotations

import random

DEFAULT_BASE_DELAY = 0.1
DEFAULT_MAX_DELAY = 2.0


def backoff_delay(
    attempt: int,
    *,
    base: float = DEFAULT_BASE_DELAY,
    cap: float = DEFAULT_MAX_DELAY,
    rng: random.Random | None = None,
) -> float:
    """
    Seconds to wait before retry number ``attempt`` (0-based).

    Full jitter: uniform in ``[0, min(cap, base * 2**attempt)]``, so that
    processes which lost the same race do not retry in lockstep.
    """
    if attempt < 0:
        raise ValueError(f"attempt must be >= 0, got {attempt}")
    ceiling = min(cap, base * (2 ** min(attempt, 32)))
    return (rng or random).uniform(0, ceiling)
