# tests/unit/cache/test_unit_key_normalizer.py - v1
"""Tests for cache/key_normalizer.py - canonical keys for resource identifiers."""

from __future__ import annotations

import itertools

import pytest

from driftcache.cache.key_normalizer import (
    cache_key_for,
    explain_normalization,
    is_root_key,
    key_domain,
    key_path,
    keys_equivalent,
    normalize_key,
    normalize_keys,
)

SAMPLES = [
    "https://example.com",
    "HTTP://WWW.Example.com",
    "example.com/",
    "  https://www.example.com//docs///page  ",
    "www.www.example.com",
    "http://https://example.com/a",
    "//example.com/path",
    "https://www.",
    "ftp://example.com/file",
    "example.com/Docs?q=1",
    "http:// example.com",
    "www.\texample.com",
    "https:// /",
    "",
    "   ",
]


class TestNormalizeKey:
    def test_scheme_www_and_case_fold(self):
        assert normalize_key("HTTP://WWW.Example.com") == normalize_key("example.com/")
        assert normalize_key("example.com/") == "example.com/"

    def test_collapses_separators(self):
        assert normalize_key("https://example.com/a//b") == "example.com/a/b/"

    def test_trims_whitespace(self):
        assert normalize_key("  example.com/docs \n") == "example.com/docs/"

    def test_nested_prefixes(self):
        assert normalize_key("www.www.example.com") == "example.com/"
        assert normalize_key("http://https://example.com/a") == "example.com/a/"

    def test_leading_separators(self):
        assert normalize_key("//example.com/path") == "example.com/path/"

    def test_whitespace_after_prefixes(self):
        assert normalize_key("http:// example.com") == "example.com/"
        assert normalize_key("www.\texample.com") == "example.com/"
        assert key_domain("https:// www. example.com/docs") == "example.com"

    @pytest.mark.parametrize("identifier", ["", "   ", "https://", "https://www.", "///", "https:// /", "http://www. //"])
    def test_hostless_input(self, identifier):
        assert normalize_key(identifier) == ""

    def test_non_string(self):
        assert normalize_key(None) == ""  # type: ignore[arg-type]
        assert normalize_key(42) == ""  # type: ignore[arg-type]

    @pytest.mark.parametrize("identifier", SAMPLES)
    def test_idempotent(self, identifier):
        once = normalize_key(identifier)
        assert normalize_key(once) == once

    def test_query_kept(self):
        assert normalize_key("example.com/Docs?q=1") == "example.com/docs?q=1/"


class TestCombinedKeys:
    def test_normalize_keys_drops_empty(self):
        assert normalize_keys(["example.com", "", "https://"]) == ["example.com/"]

    def test_order_independent(self):
        ids = ["https://b.example", "a.example/x", "www.c.example"]
        expected = cache_key_for(ids)
        for perm in itertools.permutations(ids):
            assert cache_key_for(perm) == expected
        assert expected == "a.example/x/|b.example/|c.example/"

    def test_joiner_inside_key_does_not_collide(self):
        assert cache_key_for(["a/|b"]) == "a/%7Cb/"
        assert cache_key_for(["a/|b"]) != cache_key_for(["a", "b"])

    def test_empty_list(self):
        assert cache_key_for([]) == ""

    def test_keys_equivalent(self):
        assert keys_equivalent("https://www.example.com", "example.com/")
        assert not keys_equivalent("example.com/a", "example.com/b")


class TestKeyParts:
    def test_domain(self):
        assert key_domain("https://www.Example.com/docs/page") == "example.com"

    def test_path(self):
        assert key_path("https://www.Example.com/docs/page") == "/docs/page/"
        assert key_path("example.com") == "/"

    def test_is_root(self):
        assert is_root_key("https://example.com") is True
        assert is_root_key("example.com/docs") is False
        assert is_root_key("") is False


class TestExplainNormalization:
    def test_trace(self):
        trace = explain_normalization(" HTTPS://WWW.Example.com/Docs ")
        assert trace.trimmed == "HTTPS://WWW.Example.com/Docs"
        assert trace.lowercase == "https://www.example.com/docs"
        assert trace.no_scheme == "www.example.com/docs"
        assert trace.no_www == "example.com/docs"
        assert trace.with_trailing_separator == "example.com/docs/"
        assert trace.final == "example.com/docs/"

    def test_final_matches_normalize(self):
        for identifier in SAMPLES:
            assert explain_normalization(identifier).final == normalize_key(identifier)
