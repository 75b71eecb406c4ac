# src/cache/fingerprint.py - v3
"""Weighted SimHash fingerprints for fuzzy content matching.

Text is normalized, cut into overlapping character shingles counted with
multiplicity, and folded into a 64-bit fingerprint whose Hamming distance
tracks how much the text changed. Fingerprints travel as lowercase
16-hex-digit strings.
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from driftcache.cache.errors import InvalidInputError
from driftcache.cache.models import (
    ChangeLevel,
    ContentComparison,
    ContentFingerprint,
    FingerprintComparison,
    MetadataChange,
    PairComparison,
)

HASH_BITS = 64
SHINGLE_SIZE = 5
EMPTY_FINGERPRINT = "0" * 16

SIMILARITY_THRESHOLD_DEFAULT = 0.8
SIMILARITY_THRESHOLD_STRICT = 0.9
SIMILARITY_THRESHOLD_LOOSE = 0.7

# Lower bounds of each change level, checked in order.
CHANGE_LEVEL_CUTS: tuple[tuple[float, ChangeLevel], ...] = (
    (0.95, "none"),
    (0.8, "minor"),
    (0.6, "moderate"),
)

_MASK64 = (1 << HASH_BITS) - 1
_STRING_HASH_MULTIPLIER = 31
_FINGERPRINT_RE = re.compile(r"^[0-9a-fA-F]{1,16}$")


def compute_simhash(text: str | None) -> str:
    """Compute the 64-bit SimHash of a text.

    Args:
        text: Raw text. None, empty text and text shorter than one shingle
            map to EMPTY_FINGERPRINT.

    Returns:
        Lowercase 16-hex-digit fingerprint.
    """
    normalized = normalize_text(text or "")
    if not normalized:
        return EMPTY_FINGERPRINT

    weights = [0] * HASH_BITS
    for shingle, count in _make_shingles(normalized, SHINGLE_SIZE).items():
        h = _shingle_hash(shingle)
        for i in range(HASH_BITS):
            if h & (1 << i):
                weights[i] += count
            else:
                weights[i] -= count

    fingerprint = 0
    for i in range(HASH_BITS):
        # A zero accumulator leaves the bit clear.
        if weights[i] > 0:
            fingerprint |= 1 << i

    return f"{fingerprint:016x}"


def hamming_distance(hash_a: str, hash_b: str) -> int:
    """Number of differing bits between two fingerprints."""
    xor = _parse_fingerprint(hash_a) ^ _parse_fingerprint(hash_b)
    return bin(xor).count("1")


def similarity(hash_a: str, hash_b: str) -> float:
    """Similarity in [0, 1]; 1.0 means identical fingerprints."""
    return 1.0 - hamming_distance(hash_a, hash_b) / HASH_BITS


def difference(hash_a: str, hash_b: str) -> float:
    """Difference in [0, 1]; 0.0 means identical fingerprints."""
    return 1.0 - similarity(hash_a, hash_b)


def is_similar(
    hash_a: str,
    hash_b: str,
    threshold: float = SIMILARITY_THRESHOLD_DEFAULT,
) -> bool:
    """True when similarity reaches the threshold."""
    return similarity(hash_a, hash_b) >= threshold


def classify_change(hash_a: str, hash_b: str) -> ChangeLevel:
    """Bucket the similarity of two fingerprints into a change level."""
    return _change_level(similarity(hash_a, hash_b))


def compare_fingerprints(hash_a: str, hash_b: str) -> FingerprintComparison:
    """Full comparison of two fingerprints."""
    distance = hamming_distance(hash_a, hash_b)
    score = 1.0 - distance / HASH_BITS
    return FingerprintComparison(
        similarity=score,
        difference=1.0 - score,
        hamming_distance=distance,
        is_similar=score >= SIMILARITY_THRESHOLD_DEFAULT,
        change_level=_change_level(score),
    )


def fingerprint_content(
    text: str | None, metadata: Mapping[str, Any] | None = None
) -> ContentFingerprint:
    """Fingerprint text and stamp it with the current time and metadata."""
    return ContentFingerprint(
        fingerprint=compute_simhash(text),
        metadata=dict(metadata) if metadata is not None else None,
    )


def compare_content(
    text_a: str | None,
    text_b: str | None,
    metadata_a: Mapping[str, Any] | None = None,
    metadata_b: Mapping[str, Any] | None = None,
) -> ContentComparison:
    """Compare two texts and, when given, their metadata.

    ``time_diff_seconds`` is set when both metadata carry a ``timestamp``
    that is a datetime or a number of seconds. ``metadata_diff`` lists keys
    whose values differ and is set when either metadata is provided.
    """
    fp_a = compute_simhash(text_a)
    fp_b = compute_simhash(text_b)
    result = ContentComparison(
        fingerprint_a=fp_a,
        fingerprint_b=fp_b,
        comparison=compare_fingerprints(fp_a, fp_b),
    )

    if metadata_a is not None and metadata_b is not None:
        result.time_diff_seconds = _time_diff(
            metadata_a.get("timestamp"), metadata_b.get("timestamp")
        )
    if metadata_a is not None or metadata_b is not None:
        result.metadata_diff = _diff_metadata(metadata_a or {}, metadata_b or {})

    return result


def batch_compare(items: Iterable[tuple[str, str]]) -> list[PairComparison]:
    """Compare every unordered pair of ``(id, text)`` items, in input order."""
    hashed = [(item_id, compute_simhash(text)) for item_id, text in items]
    results: list[PairComparison] = []
    for i, (id_a, fp_a) in enumerate(hashed):
        for id_b, fp_b in hashed[i + 1 :]:
            results.append(
                PairComparison(
                    id_a=id_a, id_b=id_b, comparison=compare_fingerprints(fp_a, fp_b)
                )
            )
    return results


def normalize_text(text: str) -> str:
    """Normalize text: lowercase, collapse whitespace, strip punctuation, trim.

    Punctuation goes after the whitespace collapse, so "a , b" keeps two
    spaces.
    """
    text = text.lower()
    text = re.sub(r"\s+", " ", text)
    text = re.sub(r"[^\w\s]", "", text)
    return text.strip()


def _make_shingles(text: str, n: int) -> Counter[str]:
    """Overlapping character n-grams with their multiplicity.

    Text shorter than ``n`` has none.
    """
    return Counter(text[i : i + n] for i in range(len(text) - n + 1))


def _shingle_hash(shingle: str) -> int:
    """Polynomial string hash widened to 64 bits, then avalanche-mixed.

    After mixing, short shingles populate all 64 bit positions.
    """
    h = 0
    for ch in shingle:
        h = (h * _STRING_HASH_MULTIPLIER + ord(ch)) & _MASK64
    h ^= h >> 30
    h = (h * 0xBF58476D1CE4E5B9) & _MASK64
    h ^= h >> 27
    h = (h * 0x94D049BB133111EB) & _MASK64
    h ^= h >> 31
    return h


def _parse_fingerprint(value: str) -> int:
    if not isinstance(value, str) or not _FINGERPRINT_RE.match(value):
        raise InvalidInputError(f"Malformed fingerprint: {value!r}")
    return int(value, 16)


def _change_level(score: float) -> ChangeLevel:
    for cut, level in CHANGE_LEVEL_CUTS:
        if score >= cut:
            return level
    return "major"


def _time_diff(ts_a: Any, ts_b: Any) -> float | None:
    if isinstance(ts_a, datetime) and isinstance(ts_b, datetime):
        return abs((ts_a - ts_b).total_seconds())
    if _is_number(ts_a) and _is_number(ts_b):
        return abs(float(ts_a) - float(ts_b))
    return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _diff_metadata(
    metadata_a: Mapping[str, Any], metadata_b: Mapping[str, Any]
) -> dict[str, MetadataChange]:
    diff: dict[str, MetadataChange] = {}
    for key in {**metadata_a, **metadata_b}:
        before = metadata_a.get(key)
        after = metadata_b.get(key)
        if before != after:
            diff[key] = MetadataChange(before=before, after=after)
    return diff
