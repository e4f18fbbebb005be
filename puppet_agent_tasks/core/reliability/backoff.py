"""
Bounded retry with exponential backoff and jitter.

Used for transient conditions that another process will clear on its own,
package-manager lock contention being the main one.  Everything else is
terminal and propagates on the first failure.
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class BackoffPolicy:
    """Retry budget and delay curve."""

    max_attempts: int = 5
    base_delay: float = 2.0
    max_delay: float = 30.0
    jitter: float = 0.3  # fraction of the delay added at random

    def delay(self, attempt: int, rng: Callable[[float, float], float] = random.uniform) -> float:
        """Delay before retry number ``attempt`` (1-based)."""
        base = min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)
        return base + rng(0, base * self.jitter)


def call_with_backoff(
    fn: Callable[[], T],
    *,
    retry_on: type[BaseException] | tuple[type[BaseException], ...],
    policy: BackoffPolicy,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "operation",
) -> T:
    """Call ``fn`` until it succeeds or the attempt budget is spent.

    Only exceptions matching ``retry_on`` are retried; the last one is
    re-raised once ``policy.max_attempts`` calls have failed.
    """
    attempt = 1
    while True:
        try:
            return fn()
        except retry_on as e:
            if attempt >= policy.max_attempts:
                logger.warning("%s: giving up after %d attempts: %s", label, attempt, e)
                raise
            wait = policy.delay(attempt)
            logger.info(
                "%s: attempt %d/%d failed (%s), retrying in %.1fs",
                label, attempt, policy.max_attempts, e, wait,
            )
            sleep(wait)
            attempt += 1
