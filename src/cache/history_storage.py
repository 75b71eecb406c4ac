# src/cache/history_storage.py - v1
"""Persistence of the whole cache history on top of a key/value backend.

The history is serialized as one JSON document under a namespace-scoped key,
so every save replaces the stored value in a single put.
"""

from __future__ import annotations

import logging

from driftcache.cache.base_kv_store import BaseKeyValueStore
from driftcache.cache.models import CacheHistory

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "default"


class HistoryStorage:
    """Load and save a CacheHistory through a key/value backend."""

    def __init__(
        self, backend: BaseKeyValueStore, namespace: str = DEFAULT_NAMESPACE
    ) -> None:
        self._backend = backend
        self._storage_key = f"{namespace}:history"

    @property
    def storage_key(self) -> str:
        return self._storage_key

    @property
    def backend(self) -> BaseKeyValueStore:
        return self._backend

    async def load(self) -> CacheHistory | None:
        """Return the stored history, or None if nothing was saved yet.

        Raises:
            pydantic.ValidationError: If the stored value is not a valid history.
        """
        data = await self._backend.get(self._storage_key)
        if data is None:
            return None
        history = CacheHistory.model_validate_json(data)
        logger.debug(
            "Loaded history %s with %d records",
            self._storage_key, len(history.records),
        )
        return history

    async def save(self, history: CacheHistory) -> None:
        """Replace the stored history."""
        await self._backend.put(
            self._storage_key, history.model_dump_json().encode("utf-8")
        )

    async def clear(self) -> None:
        """Delete the stored history."""
        await self._backend.delete(self._storage_key)

    def close(self) -> None:
        self._backend.close()
