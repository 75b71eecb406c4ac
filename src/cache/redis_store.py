# src/cache/redis_store.py - v2
"""Redis-based key/value store (CACHE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Suitable when several processes share one cache.
"""

from __future__ import annotations

from driftcache.cache.base_kv_store import BaseKeyValueStore

_KEY_PREFIX = "driftcache:"


class RedisKeyValueStore(BaseKeyValueStore):
    """Redis-backed key/value store."""

    def __init__(self, redis_url: str) -> None:
        try:
            import redis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._client = redis.Redis.from_url(redis_url)

    async def get(self, key: str) -> bytes | None:
        """Fetch the value for a key."""
        data = self._client.get(f"{_KEY_PREFIX}{key}")
        if data is None:
            return None
        if isinstance(data, str):
            return data.encode("utf-8")
        return bytes(data)

    async def put(self, key: str, value: bytes) -> None:
        """Store a value."""
        self._client.set(f"{_KEY_PREFIX}{key}", value)

    async def delete(self, key: str) -> None:
        """Remove a key."""
        self._client.delete(f"{_KEY_PREFIX}{key}")

    def close(self) -> None:
        """Close the Redis connection."""
        self._client.close()
