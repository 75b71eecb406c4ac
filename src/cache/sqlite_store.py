# src/cache/sqlite_store.py - v2
"""SQLite-based key/value store (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3, one table keyed by storage key, WAL journal.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from driftcache.cache.base_kv_store import BaseKeyValueStore

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_entries (
    key TEXT PRIMARY KEY,
    value BLOB NOT NULL,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);
"""


class SqliteKeyValueStore(BaseKeyValueStore):
    """SQLite-backed key/value store."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def get(self, key: str) -> bytes | None:
        """Fetch the value for a key."""
        cursor = self._conn.execute(
            "SELECT value FROM kv_entries WHERE key = ?", (key,)
        )
        row = cursor.fetchone()
        if row is None:
            return None
        return bytes(row[0])

    async def put(self, key: str, value: bytes) -> None:
        """Store a value (upsert)."""
        self._conn.execute(
            """INSERT OR REPLACE INTO kv_entries (key, value, updated_at)
               VALUES (?, ?, CURRENT_TIMESTAMP)""",
            (key, sqlite3.Binary(value)),
        )
        self._conn.commit()

    async def delete(self, key: str) -> None:
        """Remove a key."""
        self._conn.execute("DELETE FROM kv_entries WHERE key = ?", (key,))
        self._conn.commit()

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
