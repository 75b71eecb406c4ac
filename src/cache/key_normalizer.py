# src/cache/key_normalizer.py - v1
"""Canonical cache keys for URL-like resource identifiers.

Scheme, ``www.`` label, case, duplicate separators and trailing-slash
conventions are folded away so one logical resource maps to one key:

    >>> normalize_key("HTTPS://WWW.Example.com//docs")
    'example.com/docs/'

An empty string means the identifier could not be normalized.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from driftcache.cache.models import NormalizationTrace

SEPARATOR = "/"
KEY_JOINER = "|"
# Normalized keys are lowercase, so the uppercase escape never occurs in one.
_JOINER_ESCAPE = "%7C"

_SCHEME_RE = re.compile(r"^https?://")
_SEPARATOR_RUN_RE = re.compile(r"/+")
_WWW_PREFIX = "www."


def normalize_key(identifier: str) -> str:
    """Normalize an identifier into a cache key.

    Steps: trim, lowercase, strip leading ``http://``/``https://``, leading
    separators, whitespace and a leading ``www.`` until none remain, ensure
    one trailing separator, collapse separator runs. Idempotent.

    Returns:
        The canonical key, or "" for non-string, empty or host-less input.
    """
    if not isinstance(identifier, str):
        return ""
    body = _strip_prefixes(identifier.strip().lower())
    if not body:
        return ""
    if not body.endswith(SEPARATOR):
        body += SEPARATOR
    return _SEPARATOR_RUN_RE.sub(SEPARATOR, body)


def normalize_keys(identifiers: Iterable[str]) -> list[str]:
    """Normalize each identifier, dropping the unnormalizable ones."""
    keys = (normalize_key(identifier) for identifier in identifiers)
    return [key for key in keys if key]


def cache_key_for(identifiers: Iterable[str]) -> str:
    """Combined key for a set of identifiers, independent of their order.

    A joiner inside a key is percent-encoded, so distinct lists never share
    a combined key.
    """
    keys = (key.replace(KEY_JOINER, _JOINER_ESCAPE) for key in normalize_keys(identifiers))
    return KEY_JOINER.join(sorted(keys))


def keys_equivalent(identifier_a: str, identifier_b: str) -> bool:
    """True when both identifiers normalize to the same key."""
    return normalize_key(identifier_a) == normalize_key(identifier_b)


def key_domain(identifier: str) -> str:
    """Host part of the normalized key."""
    return normalize_key(identifier).split(SEPARATOR, 1)[0]


def key_path(identifier: str) -> str:
    """Path part of the normalized key, with a leading separator."""
    normalized = normalize_key(identifier)
    if SEPARATOR not in normalized:
        return SEPARATOR
    return SEPARATOR + normalized.split(SEPARATOR, 1)[1]


def is_root_key(identifier: str) -> bool:
    """True when the key has no path segments beyond the trailing separator."""
    normalized = normalize_key(identifier)
    return bool(normalized) and normalized.count(SEPARATOR) == 1


def explain_normalization(identifier: str) -> NormalizationTrace:
    """Record every intermediate value of normalize_key for diagnostics."""
    original = identifier if isinstance(identifier, str) else ""
    trimmed = original.strip()
    lowercase = trimmed.lower()
    no_scheme = _strip_scheme(lowercase)
    no_www = _strip_prefixes(lowercase)
    with_trailing = no_www
    if no_www and not no_www.endswith(SEPARATOR):
        with_trailing += SEPARATOR
    return NormalizationTrace(
        original=original,
        trimmed=trimmed,
        lowercase=lowercase,
        no_scheme=no_scheme,
        no_www=no_www,
        with_trailing_separator=with_trailing,
        final=normalize_key(original),
    )


def _strip_scheme(value: str) -> str:
    return _SCHEME_RE.sub("", value, count=1).lstrip(SEPARATOR)


def _strip_prefixes(value: str) -> str:
    """Strip scheme, leading separators, ``www.`` and whitespace to a fixed point."""
    while True:
        stripped = _strip_scheme(value).strip()
        if stripped.startswith(_WWW_PREFIX):
            stripped = stripped[len(_WWW_PREFIX) :].strip()
        if stripped == value:
            return value
        value = stripped
