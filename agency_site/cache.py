"""
Cache Module

This module provides the content cache that sits in front of the visual CMS.
Pages fetched from the CMS are cached per model and URL; webhook events and
the revalidate endpoint drop entries so the next read goes back to the CMS.
Redis is used when configured so every instance sees the same invalidations,
with an in-memory LRU cache as the single-instance fallback.
"""

import json
import logging
import re
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Tuple

import redis

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10


class CacheError(Exception):
    """Raised when cache operations fail."""

    pass


class BaseCache(ABC):
    """Base cache interface for different cache implementations."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Set value in cache with optional TTL in seconds."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete key from cache."""
        pass

    @abstractmethod
    def keys(self, pattern: str) -> List[str]:
        """List keys matching a glob-style pattern."""
        pass

    @abstractmethod
    def clear(self) -> bool:
        """Clear all cache entries."""
        pass

    @abstractmethod
    def get_info(self) -> Dict[str, Any]:
        """Get cache information and statistics."""
        pass


class MemoryCache(BaseCache):
    """In-memory LRU cache with per-key expiry."""

    def __init__(self, max_size: int = 1000):
        """
        Initialize memory cache.

        Args:
            max_size: Maximum number of items to store
        """
        self.cache: "OrderedDict[str, Tuple[Any, Optional[float]]]" = OrderedDict()
        self.max_size = max_size
        logger.info(f"Initialized memory cache with max size {max_size}")

    def _expired(self, key: str) -> bool:
        _, expires_at = self.cache[key]
        return expires_at is not None and time.monotonic() >= expires_at

    def get(self, key: str) -> Optional[Any]:
        if key not in self.cache:
            return None
        if self._expired(key):
            del self.cache[key]
            return None
        self.cache.move_to_end(key)
        return self.cache[key][0]

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        expires_at = time.monotonic() + ttl if ttl else None
        self.cache[key] = (value, expires_at)
        self.cache.move_to_end(key)

        while len(self.cache) > self.max_size:
            evicted, _ = self.cache.popitem(last=False)
            logger.debug(f"Evicted cache key {evicted}")
        return True

    def delete(self, key: str) -> bool:
        return self.cache.pop(key, None) is not None

    def keys(self, pattern: str) -> List[str]:
        matcher = _glob_to_regex(pattern)
        return [key for key in list(self.cache) if matcher.match(key)]

    def clear(self) -> bool:
        self.cache.clear()
        return True

    def get_info(self) -> Dict[str, Any]:
        return {"backend": "memory", "keys": len(self.cache), "max_size": self.max_size}


class RedisCache(BaseCache):
    """Redis-based cache implementation storing JSON values."""

    def __init__(self, client: "redis.Redis"):
        self.redis_client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisCache":
        """
        Connect to Redis and verify the connection.

        Raises:
            CacheError: If Redis cannot be reached
        """
        try:
            client = redis.Redis.from_url(
                url, decode_responses=True, socket_connect_timeout=5, socket_timeout=5
            )
            client.ping()
        except redis.RedisError as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise CacheError(f"Redis connection failed: {e}") from e

        logger.info("Connected to Redis content cache")
        return cls(client)

    def get(self, key: str) -> Optional[Any]:
        try:
            value = self.redis_client.get(key)
        except redis.RedisError as e:
            logger.error(f"Failed to get Redis key {key}: {e}")
            return None
        if value is None:
            return None
        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        try:
            serialized = json.dumps(value)
            if ttl:
                return bool(self.redis_client.setex(key, ttl, serialized))
            return bool(self.redis_client.set(key, serialized))
        except (TypeError, redis.RedisError) as e:
            logger.error(f"Failed to set Redis key {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        try:
            return self.redis_client.delete(key) > 0
        except redis.RedisError as e:
            logger.error(f"Failed to delete Redis key {key}: {e}")
            return False

    def keys(self, pattern: str) -> List[str]:
        try:
            return list(self.redis_client.scan_iter(match=pattern))
        except redis.RedisError as e:
            logger.error(f"Failed to scan Redis keys {pattern}: {e}")
            return []

    def clear(self) -> bool:
        try:
            return bool(self.redis_client.flushdb())
        except redis.RedisError as e:
            logger.error(f"Failed to clear Redis cache: {e}")
            return False

    def get_info(self) -> Dict[str, Any]:
        try:
            info = self.redis_client.info()
            return {
                "backend": "redis",
                "keys": self.redis_client.dbsize(),
                "memory_usage": info.get("used_memory", 0),
            }
        except redis.RedisError as e:
            logger.error(f"Failed to get Redis info: {e}")
            return {"backend": "redis", "keys": 0, "memory_usage": 0}


def _escape_glob(value: str) -> str:
    return "".join(f"\\{ch}" if ch in "*?[]\\" else ch for ch in value)


def _glob_to_regex(pattern: str) -> "re.Pattern[str]":
    """Compile the Redis glob subset used here: ``*``, ``?`` and backslash escapes."""
    parts = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "\\" and i + 1 < len(pattern):
            parts.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if ch == "*":
            parts.append(".*")
        elif ch == "?":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
        i += 1
    return re.compile("".join(parts) + r"\Z", re.DOTALL)


class ContentCache:
    """CMS content cache keyed by model name, result limit and page URL."""

    PREFIX = "content"

    def __init__(self, backend: Optional[BaseCache] = None, default_ttl: int = 300):
        self.cache = backend or MemoryCache()
        self.default_ttl = default_ttl
        logger.info(f"Content cache initialized with {type(self.cache).__name__}")

    def _key(self, model: str, url: str, limit: int) -> str:
        # URL last so path globs match every model and limit
        return f"{self.PREFIX}:{model}:{limit}:{url}"

    def get_content(self, model: str, url: str, limit: int = DEFAULT_LIMIT) -> Optional[Any]:
        return self.cache.get(self._key(model, url, limit))

    def set_content(
        self, model: str, url: str, content: Any, ttl: Optional[int] = None, limit: int = DEFAULT_LIMIT
    ) -> bool:
        return self.cache.set(self._key(model, url, limit), content, ttl or self.default_ttl)

    def revalidate_path(self, path: str) -> int:
        """
        Drop every cached entry for a page URL, across all models.

        Args:
            path: Page URL, e.g. ``/about``

        Returns:
            int: Number of entries removed
        """
        removed = 0
        for key in self.cache.keys(f"{self.PREFIX}:*:{_escape_glob(path)}"):
            if self.cache.delete(key):
                removed += 1
        logger.info(f"Revalidated path {path} ({removed} cached entries removed)")
        return removed

    def invalidate_model(self, model: str) -> int:
        """Drop every cached entry of a CMS model."""
        removed = 0
        for key in self.cache.keys(f"{self.PREFIX}:{_escape_glob(model)}:*"):
            if self.cache.delete(key):
                removed += 1
        logger.info(f"Invalidated model {model} ({removed} cached entries removed)")
        return removed

    def get_cache_stats(self) -> Dict[str, Any]:
        return self.cache.get_info()


def create_cache(redis_url: Optional[str] = None, default_ttl: int = 300) -> ContentCache:
    """
    Build the content cache, preferring Redis when a URL is configured.

    Args:
        redis_url: Redis connection URL
        default_ttl: Default entry lifetime in seconds
    """
    if redis_url:
        try:
            return ContentCache(RedisCache.from_url(redis_url), default_ttl)
        except CacheError as e:
            logger.warning(f"Failed to initialize Redis cache: {e}")
            logger.info("Falling back to memory cache")
    return ContentCache(MemoryCache(), default_ttl)
