"""Per-client fixed-window rate limiting with swappable stores."""

import logging
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import redis


def _now_ms() -> int:
    return int(time.time() * 1000)


class RateLimitExceeded(Exception):
    """Exception raised when rate limit is exceeded."""

    def __init__(self, message: str = "Rate limit exceeded", retry_after: Optional[int] = None):
        self.message = message
        self.retry_after = retry_after
        super().__init__(self.message)


@dataclass
class RateLimitEntry:
    """Request count for one client and the epoch-ms time its window resets."""

    count: int
    reset_at_ms: int


@dataclass
class RateLimitResult:
    """Outcome of a single rate-limit check."""

    allowed: bool
    remaining: int
    reset_at_ms: int


class RateLimitStore(ABC):
    """Storage for rate-limit entries keyed by client identifier."""

    @abstractmethod
    def get(self, identifier: str) -> Optional[RateLimitEntry]:
        """Return the entry for an identifier, if any."""
        pass

    @abstractmethod
    def put(self, identifier: str, entry: RateLimitEntry) -> None:
        """Create or replace the entry for an identifier."""
        pass

    @abstractmethod
    def increment(self, identifier: str) -> int:
        """Increment the count of an existing entry and return the new count."""
        pass

    @abstractmethod
    def reset(self) -> None:
        """Drop all entries."""
        pass


class MemoryRateLimitStore(RateLimitStore):
    """
    Process-local store.

    Entries are never evicted, so the map grows with the number of distinct
    identifiers seen during the process lifetime.
    """

    def __init__(self) -> None:
        self.entries: Dict[str, RateLimitEntry] = {}

    def get(self, identifier: str) -> Optional[RateLimitEntry]:
        return self.entries.get(identifier)

    def put(self, identifier: str, entry: RateLimitEntry) -> None:
        self.entries[identifier] = entry

    def increment(self, identifier: str) -> int:
        entry = self.entries[identifier]
        entry.count += 1
        return entry.count

    def reset(self) -> None:
        self.entries.clear()


class RedisRateLimitStore(RateLimitStore):
    """Store shared between application instances through Redis."""

    def __init__(self, client: "redis.Redis", prefix: str = "ratelimit:chat:") -> None:
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str) -> "RedisRateLimitStore":
        client = redis.Redis.from_url(
            url, decode_responses=True, socket_connect_timeout=5, socket_timeout=5
        )
        client.ping()
        return cls(client)

    def _key(self, identifier: str) -> str:
        return f"{self.prefix}{identifier}"

    def get(self, identifier: str) -> Optional[RateLimitEntry]:
        data = self.client.hgetall(self._key(identifier))
        if not data:
            return None
        return RateLimitEntry(count=int(data["count"]), reset_at_ms=int(data["reset_at_ms"]))

    def put(self, identifier: str, entry: RateLimitEntry) -> None:
        key = self._key(identifier)
        pipe = self.client.pipeline()
        pipe.hset(key, mapping={"count": entry.count, "reset_at_ms": entry.reset_at_ms})
        pipe.pexpireat(key, entry.reset_at_ms + 1000)
        pipe.execute()

    def increment(self, identifier: str) -> int:
        return int(self.client.hincrby(self._key(identifier), "count", 1))

    def reset(self) -> None:
        for key in self.client.scan_iter(match=f"{self.prefix}*"):
            self.client.delete(key)


class FixedWindowRateLimiter:
    """
    Per-identifier request quota.

    A window opens on the first request from an identifier and lasts
    ``window_ms``. Within it at most ``max_requests`` requests are accepted;
    the first request at or after its end opens a new window.
    """

    def __init__(
        self,
        store: RateLimitStore,
        max_requests: int = 20,
        window_ms: int = 60000,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        if max_requests <= 0:
            raise ValueError("max_requests must be a positive integer")
        if window_ms <= 0:
            raise ValueError("window_ms must be a positive integer")

        self.store = store
        self.max_requests = max_requests
        self.window_ms = window_ms
        self.clock = clock
        self.logger = logging.getLogger(__name__)
        self.logger.debug(
            f"Rate limiter initialized: {max_requests} requests per {window_ms} ms "
            f"({type(store).__name__})"
        )

    def check(self, identifier: str) -> RateLimitResult:
        """Record a request from ``identifier`` and report whether it is allowed."""
        now = self.clock()
        entry = self.store.get(identifier)

        if entry is None or now >= entry.reset_at_ms:
            entry = RateLimitEntry(count=1, reset_at_ms=now + self.window_ms)
            self.store.put(identifier, entry)
            return RateLimitResult(True, self.max_requests - 1, entry.reset_at_ms)

        if entry.count >= self.max_requests:
            self.logger.info(f"Rate limit exceeded for {identifier}")
            return RateLimitResult(False, 0, entry.reset_at_ms)

        count = self.store.increment(identifier)
        remaining = max(0, self.max_requests - count)
        self.logger.debug(f"Request permitted for {identifier}, {remaining} remaining")
        return RateLimitResult(True, remaining, entry.reset_at_ms)

    def acquire(self, identifier: str) -> RateLimitResult:
        """
        Like ``check``, but raise when the request is rejected.

        Raises:
            RateLimitExceeded: With the whole seconds until the window resets
        """
        result = self.check(identifier)
        if not result.allowed:
            raise RateLimitExceeded(
                f"Rate limit of {self.max_requests} requests per {self.window_ms} ms exceeded",
                retry_after=self.retry_after_seconds(result),
            )
        return result

    def retry_after_seconds(self, result: RateLimitResult) -> int:
        """Whole seconds until the window of a rejected request resets."""
        remaining_ms = result.reset_at_ms - self.clock()
        return max(1, math.ceil(remaining_ms / 1000))

    def reset(self) -> None:
        """Forget every identifier."""
        self.store.reset()
        self.logger.debug("Rate limiter reset - all entries cleared")


def create_rate_limit_store(backend: str, redis_url: Optional[str] = None) -> RateLimitStore:
    """
    Build the configured store, falling back to memory when Redis is unusable.

    Args:
        backend: ``"memory"`` or ``"redis"``
        redis_url: Redis connection URL for the shared store
    """
    logger = logging.getLogger(__name__)
    if backend == "redis":
        if not redis_url:
            logger.warning("RATE_LIMIT_BACKEND=redis but REDIS_URL is not set; using memory")
            return MemoryRateLimitStore()
        try:
            store = RedisRateLimitStore.from_url(redis_url)
            logger.info("Using Redis rate-limit store")
            return store
        except redis.RedisError as e:
            logger.error(f"Redis rate-limit store unavailable, using memory: {e}")
            return MemoryRateLimitStore()
    return MemoryRateLimitStore()
