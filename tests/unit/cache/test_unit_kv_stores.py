# tests/unit/cache/test_unit_kv_stores.py - v1
"""Tests for the local key/value backends: memory, JSON files and SQLite."""

from __future__ import annotations

import pytest

from driftcache.cache.json_store import JsonFileKeyValueStore
from driftcache.cache.memory_store import MemoryKeyValueStore
from driftcache.cache.sqlite_store import SqliteKeyValueStore


@pytest.fixture(params=["memory", "json", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        backend = MemoryKeyValueStore()
    elif request.param == "json":
        backend = JsonFileKeyValueStore(cache_root=tmp_path / "json")
    else:
        backend = SqliteKeyValueStore(db_path=tmp_path / "kv.db")
    yield backend
    backend.close()


class TestBackendContract:
    @pytest.mark.asyncio
    async def test_put_and_get(self, store):
        await store.put("default:history", b'{"records": {}}')
        assert await store.get("default:history") == b'{"records": {}}'

    @pytest.mark.asyncio
    async def test_get_missing(self, store):
        assert await store.get("nonexistent") is None

    @pytest.mark.asyncio
    async def test_overwrite(self, store):
        await store.put("key1", b"first")
        await store.put("key1", b"second")
        assert await store.get("key1") == b"second"

    @pytest.mark.asyncio
    async def test_delete(self, store):
        await store.put("key1", b"value")
        await store.delete("key1")
        assert await store.get("key1") is None

    @pytest.mark.asyncio
    async def test_delete_missing(self, store):
        await store.delete("never-written")

    @pytest.mark.asyncio
    async def test_keys_isolated(self, store):
        await store.put("a:history", b"A")
        await store.put("b:history", b"B")
        assert await store.get("a:history") == b"A"
        assert await store.get("b:history") == b"B"


class TestMemoryKeyValueStore:
    @pytest.mark.asyncio
    async def test_len(self):
        store = MemoryKeyValueStore()
        await store.put("k1", b"1")
        await store.put("k2", b"2")
        await store.delete("k1")
        assert len(store) == 1


class TestJsonFileKeyValueStore:
    @pytest.mark.asyncio
    async def test_file_layout(self, tmp_path):
        store = JsonFileKeyValueStore(cache_root=tmp_path)
        await store.put("default:history", b"{}")
        assert (tmp_path / "default_history.json").read_bytes() == b"{}"
        assert not list(tmp_path.glob("*.tmp"))

    def test_creates_root(self, tmp_path):
        root = tmp_path / "nested" / "cache"
        store = JsonFileKeyValueStore(cache_root=root)
        assert root.is_dir()
        assert store.root == root

    @pytest.mark.asyncio
    async def test_survives_new_instance(self, tmp_path):
        await JsonFileKeyValueStore(cache_root=tmp_path).put("k", b"v")
        assert await JsonFileKeyValueStore(cache_root=tmp_path).get("k") == b"v"


class TestSqliteKeyValueStore:
    @pytest.mark.asyncio
    async def test_survives_new_instance(self, tmp_path):
        db_path = tmp_path / "sub" / "kv.db"
        first = SqliteKeyValueStore(db_path=db_path)
        await first.put("k", b"\x00\x01binary")
        first.close()

        second = SqliteKeyValueStore(db_path=db_path)
        try:
            assert await second.get("k") == b"\x00\x01binary"
        finally:
            second.close()
