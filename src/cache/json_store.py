# src/cache/json_store.py - v2
"""JSON file-based key/value store (default CACHE_BACKEND=json).

Each key is one file under CACHE_ROOT. Values are expected to be UTF-8 JSON
documents; they are written through a temporary file and renamed into place
so a reader never sees a half-written value.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from driftcache.cache.base_kv_store import BaseKeyValueStore

logger = logging.getLogger(__name__)


class JsonFileKeyValueStore(BaseKeyValueStore):
    """File-based key/value store, one JSON file per key."""

    def __init__(self, cache_root: Path | str) -> None:
        self._root = Path(cache_root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    async def get(self, key: str) -> bytes | None:
        """Read the file for a key."""
        path = self._entry_path(key)
        if not path.exists():
            return None
        return path.read_bytes()

    async def put(self, key: str, value: bytes) -> None:
        """Write the file for a key atomically."""
        path = self._entry_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_bytes(value)
        os.replace(tmp_path, path)
        logger.debug("Wrote %d bytes to %s", len(value), path)

    async def delete(self, key: str) -> None:
        """Remove the file for a key."""
        path = self._entry_path(key)
        if path.exists():
            path.unlink()

    def _entry_path(self, key: str) -> Path:
        """Return file path for a storage key."""
        safe_key = key.replace("/", "_").replace("\\", "_").replace(":", "_")
        return self._root / f"{safe_key}.json"
