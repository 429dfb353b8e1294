"""Exponential reconnect backoff with bounded jitter."""

import random
from collections.abc import Callable

from netflow.config.constants import (
    RECONNECT_BASE_DELAY,
    RECONNECT_JITTER_MAX,
    RECONNECT_MAX_DELAY,
)


class ReconnectBackoff:
    """
    Delay schedule for resubscribing.

    n-th consecutive failure waits min(base * 2**(n-1), max_delay)
    plus uniform jitter in [0, jitter]. There is no attempt limit.
    """

    def __init__(
        self,
        base_delay: float = RECONNECT_BASE_DELAY,
        max_delay: float = RECONNECT_MAX_DELAY,
        jitter: float = RECONNECT_JITTER_MAX,
        rand: Callable[[float, float], float] = random.uniform,
    ) -> None:
        if base_delay <= 0:
            raise ValueError("base_delay must be positive")
        if max_delay < base_delay:
            raise ValueError("max_delay must be >= base_delay")
        if jitter < 0:
            raise ValueError("jitter must be non-negative")

        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter = jitter
        self._rand = rand
        self.failures = 0

    def next_delay(self) -> float:
        """Register a failure and return how long to wait."""
        self.failures += 1
        # Exponent capped so huge failure counts don't overflow floats
        exponent = min(self.failures - 1, 32)
        delay = min(self.base_delay * (2 ** exponent), self.max_delay)
        if self.jitter:
            delay += self._rand(0, self.jitter)
        return delay

    def reset(self) -> None:
        """Subscription is healthy again."""
        self.failures = 0
