"""Tests for the token bucket rate limiter."""

from game.server.rate_limit import TokenBucket


class FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestTokenBucket:
    def test_burst_allows_up_to_capacity(self):
        """Burst capacity messages are allowed immediately."""
        bucket = TokenBucket(rate=1.0, burst=5, clock=FakeClock())
        assert all(bucket.consume() for _ in range(5))

    def test_over_burst_rejected(self):
        """Messages beyond burst capacity are rejected without refill time."""
        bucket = TokenBucket(rate=1.0, burst=3, clock=FakeClock())
        for _ in range(3):
            bucket.consume()
        assert bucket.consume() is False

    def test_refill_restores_tokens(self):
        clock = FakeClock()
        bucket = TokenBucket(rate=10.0, burst=5, clock=clock)
        for _ in range(5):
            bucket.consume()
        assert bucket.consume() is False

        clock.now += 0.5
        assert bucket.consume() is True
        assert bucket.tokens == 4.0

    def test_refill_capped_at_burst(self):
        """Tokens never exceed burst capacity even after long idle periods."""
        clock = FakeClock()
        bucket = TokenBucket(rate=10.0, burst=5, clock=clock)
        clock.now += 100.0
        assert all(bucket.consume() for _ in range(5))
        assert bucket.consume() is False

    def test_sustained_rate_enforcement(self):
        """At steady state, only rate-per-second messages are allowed."""
        clock = FakeClock()
        bucket = TokenBucket(rate=2.0, burst=2, clock=clock)
        bucket.consume()
        bucket.consume()
        assert bucket.consume() is False

        clock.now += 0.5
        assert bucket.consume() is True
        assert bucket.consume() is False
