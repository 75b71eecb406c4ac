# tests/conftest.py - v2
"""Shared test fixtures for unit and integration tests.

Provides an in-memory backend, a controllable clock and record stores built
on top of them. No external services; Redis is mocked where needed.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from driftcache.cache.history_storage import HistoryStorage
from driftcache.cache.memory_store import MemoryKeyValueStore
from driftcache.cache.record_store import RecordStore


class FakeClock:
    """Deterministic clock; every call returns the current instant."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# === FIXTURES: Sample data ===


@pytest.fixture
def page_text() -> str:
    """Plain text of a small documentation page."""
    return (
        "Welcome to the Example project documentation. Example is a small "
        "library for parsing configuration files written in a simple "
        "key value format. It supports comments, nested sections, typed "
        "values and environment variable interpolation. The getting started "
        "guide walks through installing the package, loading a first file and "
        "reading values with sensible defaults. The reference section lists "
        "every public function together with its arguments, return values and "
        "the exceptions it may raise. A changelog records the notable changes "
        "in each release, and the contributing guide explains how to run the "
        "test suite and submit patches for review."
    )


# === FIXTURES: Storage ===


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def kv_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def history_storage(kv_store: MemoryKeyValueStore) -> HistoryStorage:
    return HistoryStorage(kv_store)


@pytest.fixture
def record_store(history_storage: HistoryStorage, clock: FakeClock) -> RecordStore:
    """Record store over in-memory storage with the default capacity."""
    return RecordStore(history_storage, clock=clock)


@pytest.fixture
def small_record_store(history_storage: HistoryStorage, clock: FakeClock) -> RecordStore:
    """Record store holding at most five records."""
    return RecordStore(history_storage, max_records=5, clock=clock)


# === FIXTURES: Temp dirs ===


@pytest.fixture
def tmp_cache_dir(tmp_path: Path) -> Path:
    """Temporary cache directory."""
    cache = tmp_path / "cache"
    cache.mkdir()
    return cache
