# src/cache/record_store.py - v1
"""Similarity-gated record store: one record per canonical key.

The store owns the map of cache key to CacheRecord. A check fingerprints the
observed content and compares it with the stored fingerprint; a hit hands
back the cached artifact. ``store_content`` is the only operation that moves
a fingerprint forward, ``update_artifact`` revises the artifact alone.

Concurrency: operations on one key are linearized through a per-key lock.
The whole history is persisted as one value, so the save-and-swap step of
every write runs under a store-wide commit lock, which ``stats`` and
``clear_all`` also take. Lock order is always key lock, then commit lock.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable, Mapping
from datetime import datetime, timedelta
from typing import Any

from pydantic import TypeAdapter

from driftcache.cache.errors import (
    InvalidInputError,
    RecordNotFoundError,
    StorageFailureError,
)
from driftcache.cache.fingerprint import (
    SIMILARITY_THRESHOLD_DEFAULT,
    compute_simhash,
    similarity,
)
from driftcache.cache.history_storage import HistoryStorage
from driftcache.cache.key_locks import KeyLocks
from driftcache.cache.key_normalizer import normalize_key
from driftcache.cache.models import (
    CacheCheckResult,
    CacheHistory,
    CacheRecord,
    CacheStats,
    ResolvedArtifact,
    utc_now,
)
from driftcache.logging.context import operation_context

logger = logging.getLogger(__name__)

MAX_RECORDS = 1000
RECENT_ACTIVITY_WINDOW = timedelta(hours=24)

_METADATA_ADAPTER = TypeAdapter(dict[str, Any])


class RecordStore:
    """Bounded, similarity-gated cache of derived artifacts per resource."""

    def __init__(
        self,
        storage: HistoryStorage,
        max_records: int = MAX_RECORDS,
        default_threshold: float = SIMILARITY_THRESHOLD_DEFAULT,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if max_records < 1:
            raise ValueError("max_records must be >= 1")
        self._storage = storage
        self._max_records = max_records
        self._default_threshold = _validate_threshold(default_threshold)
        self._clock = clock or utc_now
        self._history: CacheHistory | None = None
        self._key_locks = KeyLocks()
        self._commit_lock = asyncio.Lock()
        self._session_hits = 0
        self._session_misses = 0

    @property
    def max_records(self) -> int:
        return self._max_records

    @property
    def default_threshold(self) -> float:
        return self._default_threshold

    def close(self) -> None:
        """Release the underlying storage backend."""
        self._storage.close()

    # --- Reads ---

    async def check_cache(
        self, raw_id: str, content: str, threshold: float | None = None
    ) -> CacheCheckResult:
        """Check whether ``content`` is close enough to the cached version.

        Similarity is computed fresh on every call and never persisted.

        Raises:
            InvalidInputError: Unnormalizable identifier or threshold outside [0, 1].
            StorageFailureError: The history could not be loaded.
        """
        key = _require_key(raw_id)
        threshold = self._resolve_threshold(threshold)
        async with self._key_locks.hold(key):
            with operation_context("check_cache", key):
                return await self._check_locked(key, content, threshold)

    async def get_latest(self, raw_id: str) -> CacheRecord | None:
        """Copy of the record for an identifier, without touching counters."""
        key = _require_key(raw_id)
        async with self._key_locks.hold(key):
            with operation_context("get_latest", key):
                history = await self._ensure_loaded("get_latest", key)
                record = history.records.get(key)
                return record.model_copy(deep=True) if record is not None else None

    async def has_record(self, raw_id: str) -> bool:
        """True when a record exists for the identifier's key."""
        return await self.get_latest(raw_id) is not None

    async def stats(self) -> CacheStats:
        """Store-wide counters over a consistent snapshot."""
        async with self._commit_lock:
            history = await self._ensure_loaded_unlocked("stats", "*")
            cutoff = self._clock() - RECENT_ACTIVITY_WINDOW
            recent = sum(
                1 for r in history.records.values() if r.last_accessed_at > cutoff
            )
            return CacheStats(
                total_accesses=history.total_accesses,
                unique_keys=len(history.records),
                last_modified=history.last_modified,
                recent_activity_count=recent,
                session_hits=self._session_hits,
                session_misses=self._session_misses,
            )

    # --- Writes ---

    async def store_content(
        self,
        raw_id: str,
        content: str,
        artifact: str | None,
        threshold: float | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        """Record new or changed source content with its fresh artifact.

        Raises:
            InvalidInputError: Unnormalizable identifier, threshold outside [0, 1]
                or metadata that cannot be serialized.
            StorageFailureError: The history could not be loaded or saved.
        """
        key = _require_key(raw_id)
        threshold = self._resolve_threshold(threshold)
        metadata = _validate_metadata(metadata)
        async with self._key_locks.hold(key):
            with operation_context("store_content", key):
                await self._store_locked(
                    key, raw_id, content, artifact, threshold, metadata
                )

    async def update_artifact(
        self,
        raw_id: str,
        new_artifact: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        """Replace the artifact of an existing record, keeping its fingerprint.

        Raises:
            InvalidInputError: Unnormalizable identifier or unserializable metadata.
            RecordNotFoundError: No record exists for the key.
            StorageFailureError: The history could not be loaded or saved.
        """
        key = _require_key(raw_id)
        metadata = _validate_metadata(metadata)
        async with self._key_locks.hold(key):
            with operation_context("update_artifact", key):
                async with self._commit_lock:
                    history = await self._ensure_loaded_unlocked("update_artifact", key)
                    existing = history.records.get(key)
                    if existing is None:
                        logger.warning("Artifact update for unknown key %s", key)
                        raise RecordNotFoundError(key)

                    now = self._clock()
                    record = existing.model_copy(
                        update={
                            "artifact": new_artifact,
                            "last_accessed_at": now,
                            "access_count": existing.access_count + 1,
                            "metadata": {**existing.metadata, **(metadata or {})},
                        }
                    )
                    await self._commit(history, record, now, "update_artifact")
                    logger.info("Artifact revised for %s", key)

    async def clear_all(self) -> None:
        """Drop every record, in memory and in durable storage."""
        async with self._commit_lock:
            with operation_context("clear_all"):
                try:
                    await self._storage.clear()
                except Exception as exc:
                    logger.error("Failed to clear cache storage: %s", exc)
                    raise StorageFailureError("clear_all", "*", exc) from exc
                self._history = CacheHistory(last_modified=self._clock())
                logger.info("Cleared all cache records")

    async def get_or_generate(
        self,
        raw_id: str,
        content: str,
        generate: Callable[[], Awaitable[str]],
        threshold: float | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> ResolvedArtifact:
        """Serve the cached artifact, or generate and store a new one.

        The key's lock is held across check, generation and store, so a
        concurrent caller for the same key waits and then sees the stored
        result. If ``generate`` raises, nothing is stored.
        """
        key = _require_key(raw_id)
        threshold = self._resolve_threshold(threshold)
        metadata = _validate_metadata(metadata)
        async with self._key_locks.hold(key):
            with operation_context("get_or_generate", key):
                check = await self._check_locked(key, content, threshold)
                if check.cached and check.artifact is not None:
                    return ResolvedArtifact(
                        key=key,
                        artifact=check.artifact,
                        cached=True,
                        similarity=check.similarity,
                        threshold=threshold,
                        fingerprint=check.observed_fingerprint,
                    )

                artifact = await generate()
                await self._store_locked(
                    key, raw_id, content, artifact, threshold, metadata
                )
                return ResolvedArtifact(
                    key=key,
                    artifact=artifact,
                    cached=False,
                    similarity=check.similarity,
                    threshold=threshold,
                    fingerprint=check.observed_fingerprint,
                )

    # --- Internals (caller holds the key lock) ---

    async def _check_locked(
        self, key: str, content: str, threshold: float
    ) -> CacheCheckResult:
        history = await self._ensure_loaded("check_cache", key)
        observed = compute_simhash(content)
        record = history.records.get(key)

        if record is None:
            self._session_misses += 1
            logger.info("Cache miss for %s: no stored record", key)
            return CacheCheckResult(
                key=key, threshold=threshold, observed_fingerprint=observed
            )

        score = similarity(record.fingerprint, observed)
        if score >= threshold:
            self._session_hits += 1
            logger.info(
                "Cache hit for %s (similarity %.3f >= %.3f)", key, score, threshold
            )
            return CacheCheckResult(
                key=key,
                cached=True,
                artifact=record.artifact,
                record=record.model_copy(deep=True),
                similarity=score,
                threshold=threshold,
                observed_fingerprint=observed,
            )

        self._session_misses += 1
        logger.info(
            "Cache miss for %s (similarity %.3f < %.3f)", key, score, threshold
        )
        return CacheCheckResult(
            key=key,
            similarity=score,
            threshold=threshold,
            observed_fingerprint=observed,
        )

    async def _store_locked(
        self,
        key: str,
        raw_id: str,
        content: str,
        artifact: str | None,
        threshold: float,
        metadata: Mapping[str, Any] | None,
    ) -> None:
        fingerprint = compute_simhash(content)
        automatic = {"content_length": len(content or ""), "original_id": raw_id}

        async with self._commit_lock:
            history = await self._ensure_loaded_unlocked("store_content", key)
            existing = history.records.get(key)
            now = self._clock()

            if existing is not None:
                record = existing.model_copy(
                    update={
                        "fingerprint": fingerprint,
                        "artifact": artifact,
                        "similarity_threshold": threshold,
                        "last_accessed_at": now,
                        "access_count": existing.access_count + 1,
                        "metadata": {
                            **existing.metadata, **automatic, **(metadata or {}),
                        },
                    }
                )
            else:
                record = CacheRecord(
                    key=key,
                    fingerprint=fingerprint,
                    artifact=artifact,
                    similarity_threshold=threshold,
                    created_at=now,
                    last_accessed_at=now,
                    access_count=1,
                    metadata={**automatic, **(metadata or {})},
                )

            await self._commit(history, record, now, "store_content")
            logger.debug(
                "Stored content for %s (fingerprint %s, access_count %d)",
                key, fingerprint, record.access_count,
            )

    # --- Internals (caller holds the commit lock) ---

    async def _commit(
        self,
        history: CacheHistory,
        record: CacheRecord,
        now: datetime,
        operation: str,
    ) -> None:
        """Persist a new history containing ``record``, then swap it in.

        The in-memory view changes only after the save succeeded.
        """
        records = dict(history.records)
        records[record.key] = record
        evicted = self._evict(records, keep=record.key)

        updated = CacheHistory(
            records=records,
            total_accesses=history.total_accesses + 1,
            last_modified=now,
        )
        try:
            await self._storage.save(updated)
        except Exception as exc:
            logger.error("Failed to save history during %s: %s", operation, exc)
            raise StorageFailureError(operation, record.key, exc) from exc

        self._history = updated
        if evicted:
            logger.info(
                "Evicted %d least recently accessed record(s): %s",
                len(evicted), ", ".join(evicted),
            )

    def _evict(self, records: dict[str, CacheRecord], keep: str) -> list[str]:
        """Trim ``records`` in place to max_records, never dropping ``keep``."""
        if len(records) <= self._max_records:
            return []
        others = sorted(
            (r for k, r in records.items() if k != keep),
            key=lambda r: r.last_accessed_at,
            reverse=True,
        )
        evicted = [r.key for r in others[self._max_records - 1 :]]
        for evicted_key in evicted:
            del records[evicted_key]
        return evicted

    async def _ensure_loaded(self, operation: str, key: str) -> CacheHistory:
        if self._history is not None:
            return self._history
        async with self._commit_lock:
            return await self._ensure_loaded_unlocked(operation, key)

    async def _ensure_loaded_unlocked(self, operation: str, key: str) -> CacheHistory:
        if self._history is None:
            try:
                loaded = await self._storage.load()
            except Exception as exc:
                logger.error("Failed to load history during %s: %s", operation, exc)
                raise StorageFailureError(operation, key, exc) from exc
            self._history = loaded or CacheHistory(last_modified=self._clock())
            logger.debug("History ready with %d records", len(self._history.records))
        return self._history

    def _resolve_threshold(self, threshold: float | None) -> float:
        if threshold is None:
            return self._default_threshold
        return _validate_threshold(threshold)


def _require_key(raw_id: str) -> str:
    key = normalize_key(raw_id)
    if not key:
        raise InvalidInputError(f"Cannot normalize resource identifier: {raw_id!r}")
    return key


def _validate_threshold(threshold: float) -> float:
    if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
        raise InvalidInputError(f"Threshold must be a number, got {threshold!r}")
    value = float(threshold)
    if math.isnan(value) or not 0.0 <= value <= 1.0:
        raise InvalidInputError(f"Threshold must be within [0, 1], got {threshold!r}")
    return value


def _validate_metadata(metadata: Mapping[str, Any] | None) -> dict[str, Any]:
    """Copy caller metadata, rejecting what the history cannot persist."""
    if metadata is None:
        return {}
    try:
        value = _METADATA_ADAPTER.validate_python(metadata)
        _METADATA_ADAPTER.dump_json(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"Metadata cannot be serialized: {exc}") from exc
    return value
