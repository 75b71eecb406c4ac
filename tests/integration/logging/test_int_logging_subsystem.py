# tests/integration/logging/test_int_logging_subsystem.py - v2
"""Integration tests for the logging subsystem around cache operations.

Covers: logging/logger.py, logging/handlers.py, logging/context.py,
cache/record_store.py log output
No external services required.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from driftcache.cache.errors import RecordNotFoundError
from driftcache.config.settings import Settings
from driftcache.logging.context import clear_context, set_request_context
from driftcache.logging.logger import setup_logging_from_settings

PAGE = "Hello world, this is a test page."


@pytest.fixture
def json_log_file(tmp_path: Path):
    """Route driftcache logs to a JSON file, restoring handlers afterwards."""
    log_file = tmp_path / "logs" / "driftcache.log"
    settings = Settings(
        _env_file=None, log_level="DEBUG", log_format="json", log_file=log_file,
    )
    setup_logging_from_settings(settings)
    clear_context()
    yield log_file
    root = logging.getLogger("driftcache")
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()
    clear_context()


def _entries(log_file: Path) -> list[dict]:
    for handler in logging.getLogger("driftcache").handlers:
        handler.flush()
    lines = log_file.read_text(encoding="utf-8").splitlines()
    return [json.loads(line) for line in lines if line.strip()]


class TestRecordStoreLogging:

    @pytest.mark.asyncio
    async def test_hit_and_miss_logged_with_context(self, record_store, json_log_file):
        set_request_context("req-99")
        await record_store.check_cache("https://example.com", PAGE)
        await record_store.store_content("https://example.com", PAGE, "SUMMARY-1")
        await record_store.check_cache("example.com", PAGE)

        entries = _entries(json_log_file)
        miss = next(e for e in entries if e["message"].startswith("Cache miss"))
        hit = next(e for e in entries if e["message"].startswith("Cache hit"))

        assert miss["level"] == "INFO"
        assert miss["context"] == {
            "request_id": "req-99",
            "operation": "check_cache",
            "cache_key": "example.com/",
        }
        assert hit["logger"] == "driftcache.cache.record_store"
        assert "similarity 1.000" in hit["message"]

    @pytest.mark.asyncio
    async def test_unknown_key_warning(self, record_store, json_log_file):
        with pytest.raises(RecordNotFoundError):
            await record_store.update_artifact("missing.example", "X")

        warning = next(e for e in _entries(json_log_file) if e["level"] == "WARNING")
        assert "missing.example/" in warning["message"]
        assert warning["context"]["operation"] == "update_artifact"

    @pytest.mark.asyncio
    async def test_eviction_logged(self, small_record_store, clock, json_log_file):
        for i in range(6):
            await small_record_store.store_content(f"site{i}.example", PAGE, "S")
            clock.advance(seconds=1)

        evictions = [e for e in _entries(json_log_file) if e["message"].startswith("Evicted")]
        assert len(evictions) == 1
        assert "site0.example/" in evictions[0]["message"]


class TestTextLogging:

    def test_text_format_to_file(self, tmp_path: Path):
        log_file = tmp_path / "text.log"
        settings = Settings(
            _env_file=None, log_level="INFO", log_format="text", log_file=log_file,
        )
        setup_logging_from_settings(settings)
        root = logging.getLogger("driftcache")
        try:
            logging.getLogger("driftcache.cache.test").info("plain line")
            for handler in root.handlers:
                handler.flush()
            content = log_file.read_text(encoding="utf-8")
            assert "[INFO    ]" in content
            assert "- plain line" in content
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers.clear()
