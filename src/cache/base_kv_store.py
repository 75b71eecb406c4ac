# src/cache/base_kv_store.py - v2
"""Abstract key/value storage collaborator.

Backends store opaque bytes under string keys and give read-your-writes
consistency within one instance. Retries and timeouts, if any, belong to the
backend; errors propagate to the caller unchanged.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseKeyValueStore(ABC):
    """Unified interface for durable key/value backends."""

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Return the stored value, or None when the key is absent."""

    @abstractmethod
    async def put(self, key: str, value: bytes) -> None:
        """Store a value, replacing any previous one."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key. Missing keys are ignored."""

    def close(self) -> None:
        """Release backend resources."""
