"""
Compensation list for multi-step operations.

Each step that mutates external state registers its inverse. When a later
step fails, the inverses run newest first and every failure among them is
kept alongside the error that triggered the rollback.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from wt.core.errors import RollbackPartialFailureError

logger = logging.getLogger(__name__)


@dataclass
class _Compensation:
    description: str
    action: Callable[[], None]


@dataclass
class Rollback:
    """
    Ordered undo actions for one orchestrated operation.

    Example:
        >>> rollback = Rollback()
        >>> git.worktree_add(...)
        >>> rollback.register("remove worktree", lambda: git.worktree_remove(...))
        >>> try:
        ...     write_info(...)
        ... except Exception as e:
        ...     raise rollback.fail(e) from e
    """

    _steps: list[_Compensation] = field(default_factory=list)

    def register(self, description: str, action: Callable[[], None]) -> None:
        self._steps.append(_Compensation(description, action))

    def run(self) -> list[Exception]:
        """Run every registered action in reverse order; return the failures."""
        failures: list[Exception] = []
        while self._steps:
            step = self._steps.pop()
            logger.debug(f"Rolling back: {step.description}")
            try:
                step.action()
            except Exception as e:
                logger.warning(f"Rollback step failed ({step.description}): {e}")
                failures.append(e)
        return failures

    def fail(self, error: Exception) -> Exception:
        """
        Roll back after ``error`` and return the exception to raise.

        Returns ``error`` itself when every compensation succeeded, otherwise a
        RollbackPartialFailureError wrapping both.
        """
        failures = self.run()
        if not failures:
            return error
        return RollbackPartialFailureError(error, failures)
