"""Token bucket rate limiter for WebSocket message throttling."""

import time
from collections.abc import Callable


class TokenBucket:
    """Rate limiter using the token bucket algorithm.

    Tokens are added at a constant rate up to a maximum burst capacity.
    Each consume() call removes one token; returns False when the bucket
    is empty (caller should throttle).
    """

    def __init__(self, rate: float, burst: int, clock: Callable[[], float] = time.monotonic) -> None:
        self._rate = rate
        self._burst = burst
        self._clock = clock
        self._tokens = float(burst)
        self._last_refill = clock()

    @property
    def tokens(self) -> float:
        return self._tokens

    def consume(self) -> bool:
        """Try to consume one token. Returns True if allowed, False if rate-limited."""
        now = self._clock()
        self._tokens = min(self._burst, self._tokens + (now - self._last_refill) * self._rate)
        self._last_refill = now
        if self._tokens < 1.0:
            return False
        self._tokens -= 1.0
        return True
