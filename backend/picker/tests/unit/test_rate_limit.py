"""Tests for the token bucket rate limiter."""

from picker.realtime.rate_limit import TokenBucket
from picker.tests.helpers.factories import MonotonicClock


class TestTokenBucket:
    def test_burst_allows_up_to_capacity(self):
        bucket = TokenBucket(rate=1.0, burst=5, clock=MonotonicClock())
        assert all(bucket.consume() for _ in range(5))
        assert bucket.consume() is False

    def test_refill_restores_tokens(self):
        clock = MonotonicClock()
        bucket = TokenBucket(rate=10.0, burst=5, clock=clock)
        for _ in range(5):
            bucket.consume()
        assert bucket.consume() is False

        clock.advance(0.1)
        assert bucket.consume() is True
        assert bucket.consume() is False

    def test_refill_capped_at_burst(self):
        """Tokens never exceed burst capacity even after long idle periods."""
        clock = MonotonicClock()
        bucket = TokenBucket(rate=10.0, burst=3, clock=clock)
        clock.advance(100.0)
        assert all(bucket.consume() for _ in range(3))
        assert bucket.consume() is False
