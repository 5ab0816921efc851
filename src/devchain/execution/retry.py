"""Retry strategies for re-issuing idempotent invocations.

A strategy answers two questions: may another attempt be made, and how long
to wait before it. The retrying invoker owns the loop.

Example:
    >>> from devchain.execution.retry import ExponentialBackoff
    >>>
    >>> strategy = ExponentialBackoff(max_retries=5, base_delay=1.0, max_delay=60.0, jitter=False)
    >>> [strategy.next_delay(a) for a in range(4)]
    [1.0, 2.0, 4.0, 8.0]
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass


class RetryStrategy(ABC):
    """Abstract base for retry strategies."""

    @abstractmethod
    def next_delay(self, attempt: int) -> float:
        """Calculate delay before next retry attempt.

        Args:
            attempt: Zero-based attempt number (0 = first retry)

        Returns:
            Delay in seconds before next attempt
        """
        ...

    @abstractmethod
    def should_retry(self, attempt: int, error: Exception | None = None) -> bool:
        """Determine if another retry should be attempted.

        Args:
            attempt: Number of retries already made
            error: The exception that caused the failure

        Returns:
            True if should retry, False otherwise
        """
        ...


@dataclass
class NoDelay(RetryStrategy):
    """Retry immediately, up to ``max_retries`` times."""

    max_retries: int = 0

    def next_delay(self, attempt: int) -> float:
        return 0.0

    def should_retry(self, attempt: int, error: Exception | None = None) -> bool:
        return attempt < self.max_retries


@dataclass
class ExponentialBackoff(RetryStrategy):
    """Growing delay between attempts, capped at ``max_delay``.

    Used for first-time volume creation when the daemon is still busy
    settling; ``jitter`` spreads concurrent stacks apart.
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    multiplier: float = 2.0
    jitter: bool = True
    jitter_range: float = 0.25

    def next_delay(self, attempt: int) -> float:
        delay = min(self.base_delay * self.multiplier**attempt, self.max_delay)
        if not self.jitter:
            return delay
        spread = delay * self.jitter_range
        return max(0.0, delay + random.uniform(-spread, spread))

    def should_retry(self, attempt: int, error: Exception | None = None) -> bool:
        return attempt < self.max_retries


__all__ = [
    "ExponentialBackoff",
    "NoDelay",
    "RetryStrategy",
]
