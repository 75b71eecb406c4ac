# src/cache/cache_factory.py - v3
"""Factory for key/value backends and record stores."""

from __future__ import annotations

from driftcache.cache.base_kv_store import BaseKeyValueStore
from driftcache.cache.history_storage import DEFAULT_NAMESPACE, HistoryStorage
from driftcache.cache.record_store import MAX_RECORDS, RecordStore
from driftcache.config.settings import Settings


def create_kv_store(settings: Settings | None = None) -> BaseKeyValueStore:
    """Instantiate the configured key/value backend.

    Args:
        settings: Application settings. Defaults to the in-memory backend.

    Returns:
        Configured BaseKeyValueStore implementation.
    """
    backend = "memory" if settings is None else settings.cache_backend

    if backend == "memory":
        from driftcache.cache.memory_store import MemoryKeyValueStore
        return MemoryKeyValueStore()

    if backend == "json":
        from driftcache.cache.json_store import JsonFileKeyValueStore
        return JsonFileKeyValueStore(cache_root=settings.cache_root)

    if backend == "sqlite":
        from driftcache.cache.sqlite_store import SqliteKeyValueStore
        db_path = settings.cache_root.expanduser() / "driftcache.db"
        return SqliteKeyValueStore(db_path=db_path)

    if backend == "redis":
        from driftcache.cache.redis_store import RedisKeyValueStore
        if not settings.cache_redis_url:
            raise ValueError(
                "CACHE_REDIS_URL must be set when CACHE_BACKEND=redis"
            )
        return RedisKeyValueStore(redis_url=settings.cache_redis_url)

    raise ValueError(f"Unsupported cache backend: {backend!r}")


def create_record_store(
    settings: Settings | None = None,
    backend: BaseKeyValueStore | None = None,
) -> RecordStore:
    """Build a RecordStore over the configured (or given) backend.

    Args:
        settings: Application settings. Defaults to in-memory storage,
            1000 records and a 0.8 threshold.
        backend: Key/value backend to use instead of the configured one.
    """
    kv_store = backend if backend is not None else create_kv_store(settings)
    if settings is None:
        return RecordStore(HistoryStorage(kv_store, DEFAULT_NAMESPACE), MAX_RECORDS)
    return RecordStore(
        HistoryStorage(kv_store, settings.cache_namespace),
        max_records=settings.cache_max_records,
        default_threshold=settings.similarity_threshold,
    )
