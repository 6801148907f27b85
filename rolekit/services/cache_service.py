"""Redis cache service for settings and authorization memoisation."""

import json
import logging
from typing import Optional, Any, Callable
import redis

from rolekit.core.config import settings

logger = logging.getLogger("rolekit.cache")


class CacheService:
    """Redis-backed caching service.

    Connection failures never propagate: reads behave as a miss and
    writes become no-ops, so callers always fall back to the database.
    """

    def __init__(self, client: Optional[redis.Redis] = None, default_ttl: Optional[int] = None):
        self._client = client
        self.default_ttl = default_ttl or settings.CACHE_TTL_SECONDS

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(
                settings.REDIS_URL,
                decode_responses=True,
                max_connections=100,
            )
        return self._client

    def get(self, key: str) -> Optional[str]:
        """Get a cached value by key."""
        try:
            return self.client.get(key)
        except redis.ConnectionError:
            return None

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        """Set a cached value with TTL."""
        try:
            self.client.setex(key, ttl_seconds or self.default_ttl, value)
        except redis.ConnectionError:
            pass  # Cache failures are non-fatal

    def get_json(self, key: str) -> Optional[Any]:
        """Get and parse a JSON cached value."""
        raw = self.get(key)
        if raw is not None:
            return json.loads(raw)
        return None

    def set_json(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        """Serialize and cache a JSON value."""
        self.set(key, json.dumps(value, default=str), ttl_seconds)

    def remember(self, key: str, producer: Callable[[], Any], ttl_seconds: Optional[int] = None) -> Any:
        """Return the cached value for ``key``, computing and storing it on a miss.

        Values are wrapped so that a cached ``None`` is still a hit.
        """
        cached = self.get_json(key)
        if cached is not None:
            return cached["v"]

        value = producer()
        self.set_json(key, {"v": value}, ttl_seconds)
        return value

    def forget(self, key: str) -> None:
        """Delete a cached key."""
        try:
            self.client.delete(key)
        except redis.ConnectionError:
            logger.warning("Could not forget cache key %s: redis unavailable", key)

    def forget_many(self, keys) -> None:
        keys = list(keys)
        if not keys:
            return
        try:
            self.client.delete(*keys)
        except redis.ConnectionError:
            logger.warning("Could not forget %d cache keys: redis unavailable", len(keys))

    def invalidate_pattern(self, pattern: str) -> None:
        """Delete all keys matching a pattern."""
        try:
            keys = list(self.client.scan_iter(match=pattern))
            if keys:
                self.client.delete(*keys)
        except redis.ConnectionError:
            pass

    def health_check(self) -> bool:
        """Check if Redis is reachable."""
        try:
            return bool(self.client.ping())
        except redis.ConnectionError:
            return False


cache_service = CacheService()
