# src/cache/memory_store.py - v1
"""In-process key/value store (CACHE_BACKEND=memory).

Nothing survives the process. Used for tests and ephemeral deployments.
"""

from __future__ import annotations

from driftcache.cache.base_kv_store import BaseKeyValueStore


class MemoryKeyValueStore(BaseKeyValueStore):
    """Dictionary-backed key/value store."""

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}

    async def get(self, key: str) -> bytes | None:
        return self._data.get(key)

    async def put(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)
