"""
Rate Limiter Tests Module

This module contains unit tests for the fixed-window rate limiter and its
memory and Redis stores.
"""

from unittest.mock import MagicMock, patch

import pytest
import redis

from agency_site.rate_limiter import (
    FixedWindowRateLimiter,
    MemoryRateLimitStore,
    RateLimitEntry,
    RateLimitExceeded,
    RedisRateLimitStore,
    create_rate_limit_store,
)
from conftest import FakeClock


class TestFixedWindowRateLimiter:
    """Test cases for the FixedWindowRateLimiter class."""

    def make_limiter(self, max_requests=20, window_ms=60000, clock=None):
        return FixedWindowRateLimiter(
            MemoryRateLimitStore(),
            max_requests=max_requests,
            window_ms=window_ms,
            clock=clock or FakeClock(),
        )

    def test_initialization_invalid_max_requests(self):
        """Test that initialization fails with a non-positive quota."""
        with pytest.raises(ValueError, match="max_requests must be a positive integer"):
            FixedWindowRateLimiter(MemoryRateLimitStore(), max_requests=0)

        with pytest.raises(ValueError, match="max_requests must be a positive integer"):
            FixedWindowRateLimiter(MemoryRateLimitStore(), max_requests=-1)

    def test_initialization_invalid_window(self):
        """Test that initialization fails with a non-positive window."""
        with pytest.raises(ValueError, match="window_ms must be a positive integer"):
            FixedWindowRateLimiter(MemoryRateLimitStore(), window_ms=0)

    def test_first_request_opens_window(self):
        clock = FakeClock(now=5000)
        limiter = self.make_limiter(clock=clock)

        result = limiter.check("1.2.3.4")

        assert result.allowed is True
        assert result.remaining == 19
        assert result.reset_at_ms == 65000
        assert limiter.store.entries["1.2.3.4"] == RateLimitEntry(count=1, reset_at_ms=65000)

    def test_remaining_counts_down_then_rejects(self):
        """Twenty requests are accepted with 19..0 remaining; the 21st is rejected."""
        limiter = self.make_limiter()

        remaining = [limiter.check("client").remaining for _ in range(20)]
        rejected = limiter.check("client")

        assert remaining == list(range(19, -1, -1))
        assert rejected.allowed is False
        assert rejected.remaining == 0

    def test_rejection_does_not_increment(self):
        limiter = self.make_limiter(max_requests=2)
        for _ in range(5):
            limiter.check("client")

        assert limiter.store.entries["client"].count == 2

    def test_window_reset_after_expiry(self):
        clock = FakeClock(now=0)
        limiter = self.make_limiter(max_requests=2, window_ms=1000, clock=clock)
        limiter.check("client")
        limiter.check("client")
        assert limiter.check("client").allowed is False

        clock.advance(999)
        assert limiter.check("client").allowed is False

        # A new window opens exactly at the reset time
        clock.advance(1)
        result = limiter.check("client")
        assert result.allowed is True
        assert result.remaining == 1
        assert result.reset_at_ms == 2000

    def test_first_request_at_window_end_is_accepted(self):
        clock = FakeClock(now=0)
        limiter = self.make_limiter(max_requests=20, window_ms=60000, clock=clock)
        results = [limiter.check("1.2.3.4") for _ in range(21)]
        assert [r.allowed for r in results] == [True] * 20 + [False]

        clock.advance(60000)

        assert limiter.check("1.2.3.4").allowed is True

    def test_identifiers_are_independent(self):
        limiter = self.make_limiter(max_requests=1)

        assert limiter.check("a").allowed is True
        assert limiter.check("a").allowed is False
        assert limiter.check("b").allowed is True

    def test_acquire_raises_with_retry_after(self):
        clock = FakeClock(now=0)
        limiter = self.make_limiter(max_requests=1, window_ms=60000, clock=clock)
        limiter.acquire("client")

        clock.advance(15500)
        with pytest.raises(RateLimitExceeded) as exc_info:
            limiter.acquire("client")

        assert exc_info.value.retry_after == 45

    def test_retry_after_is_at_least_one_second(self):
        clock = FakeClock(now=0)
        limiter = self.make_limiter(max_requests=1, window_ms=1000, clock=clock)
        limiter.check("client")
        clock.advance(999)

        result = limiter.check("client")

        assert limiter.retry_after_seconds(result) == 1

    def test_reset_clears_all_entries(self):
        limiter = self.make_limiter(max_requests=1)
        limiter.check("client")

        limiter.reset()

        assert limiter.store.entries == {}
        assert limiter.check("client").allowed is True


class TestRedisRateLimitStore:
    """Test cases for the Redis-backed store."""

    def test_get_missing_entry(self):
        client = MagicMock()
        client.hgetall.return_value = {}
        store = RedisRateLimitStore(client)

        assert store.get("1.2.3.4") is None
        client.hgetall.assert_called_once_with("ratelimit:chat:1.2.3.4")

    def test_get_existing_entry(self):
        client = MagicMock()
        client.hgetall.return_value = {"count": "3", "reset_at_ms": "60000"}
        store = RedisRateLimitStore(client)

        assert store.get("1.2.3.4") == RateLimitEntry(count=3, reset_at_ms=60000)

    def test_put_sets_hash_and_expiry(self):
        client = MagicMock()
        pipe = client.pipeline.return_value
        store = RedisRateLimitStore(client)

        store.put("1.2.3.4", RateLimitEntry(count=1, reset_at_ms=60000))

        pipe.hset.assert_called_once_with(
            "ratelimit:chat:1.2.3.4", mapping={"count": 1, "reset_at_ms": 60000}
        )
        pipe.pexpireat.assert_called_once_with("ratelimit:chat:1.2.3.4", 61000)
        pipe.execute.assert_called_once()

    def test_increment(self):
        client = MagicMock()
        client.hincrby.return_value = 4
        store = RedisRateLimitStore(client)

        assert store.increment("1.2.3.4") == 4
        client.hincrby.assert_called_once_with("ratelimit:chat:1.2.3.4", "count", 1)

    def test_limiter_over_redis_store(self):
        """The limiter logic is the same regardless of the store."""
        client = MagicMock()
        client.hgetall.return_value = {"count": "20", "reset_at_ms": "90000"}
        limiter = FixedWindowRateLimiter(RedisRateLimitStore(client), clock=FakeClock(now=30000))

        result = limiter.check("1.2.3.4")

        assert result.allowed is False
        client.hincrby.assert_not_called()


class TestCreateRateLimitStore:
    """Test cases for store selection."""

    def test_memory_by_default(self):
        assert isinstance(create_rate_limit_store("memory"), MemoryRateLimitStore)

    def test_redis_without_url_falls_back(self):
        assert isinstance(create_rate_limit_store("redis", None), MemoryRateLimitStore)

    @patch("agency_site.rate_limiter.RedisRateLimitStore.from_url")
    def test_redis_unreachable_falls_back(self, mock_from_url):
        mock_from_url.side_effect = redis.ConnectionError("refused")

        store = create_rate_limit_store("redis", "redis://localhost:6379/0")

        assert isinstance(store, MemoryRateLimitStore)

    @patch("agency_site.rate_limiter.RedisRateLimitStore.from_url")
    def test_redis_when_reachable(self, mock_from_url):
        redis_store = RedisRateLimitStore(MagicMock())
        mock_from_url.return_value = redis_store

        assert create_rate_limit_store("redis", "redis://localhost:6379/0") is redis_store
