# src/cache/models.py - v2
"""Cache domain models: CacheRecord, CacheHistory, CacheCheckResult, CacheStats.

Also the comparison payloads returned by the fingerprint helpers and the
normalization trace used for diagnostics.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

ChangeLevel = Literal["none", "minor", "moderate", "major"]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class FingerprintComparison(BaseModel):
    """Detailed comparison of two fingerprints."""

    similarity: float
    difference: float
    hamming_distance: int
    is_similar: bool
    change_level: ChangeLevel


class ContentFingerprint(BaseModel):
    """Fingerprint of a piece of content, stamped with time and metadata."""

    fingerprint: str
    timestamp: datetime = Field(default_factory=utc_now)
    metadata: dict[str, Any] | None = None


class MetadataChange(BaseModel):
    """One differing metadata key between two content snapshots."""

    before: Any = None
    after: Any = None
    changed: bool = True


class ContentComparison(BaseModel):
    """Result of comparing two texts and their metadata."""

    fingerprint_a: str
    fingerprint_b: str
    comparison: FingerprintComparison
    time_diff_seconds: float | None = None
    metadata_diff: dict[str, MetadataChange] | None = None


class PairComparison(BaseModel):
    """Comparison of one pair inside a batch."""

    id_a: str
    id_b: str
    comparison: FingerprintComparison


class NormalizationTrace(BaseModel):
    """Intermediate values of each key normalization step."""

    original: str
    trimmed: str
    lowercase: str
    no_scheme: str
    no_www: str
    with_trailing_separator: str
    final: str


class CacheRecord(BaseModel):
    """Latest known state for one canonical key."""

    key: str
    fingerprint: str
    artifact: str | None = None
    similarity_threshold: float
    created_at: datetime
    last_accessed_at: datetime
    access_count: int = 1
    metadata: dict[str, Any] = Field(default_factory=dict)


class CacheHistory(BaseModel):
    """Every resident record plus the store-wide counters."""

    records: dict[str, CacheRecord] = Field(default_factory=dict)
    total_accesses: int = 0
    last_modified: datetime = Field(default_factory=utc_now)


class CacheCheckResult(BaseModel):
    """Outcome of a similarity-gated cache check.

    ``similarity`` is None when the key has never been stored. ``artifact``
    and ``record`` are only populated on a hit.
    """

    key: str
    cached: bool = False
    artifact: str | None = None
    record: CacheRecord | None = None
    similarity: float | None = None
    threshold: float
    observed_fingerprint: str


class ResolvedArtifact(BaseModel):
    """Artifact served by check-generate-store, cached or freshly produced."""

    key: str
    artifact: str
    cached: bool
    similarity: float | None = None
    threshold: float
    fingerprint: str


class CacheStats(BaseModel):
    """Store-wide statistics."""

    total_accesses: int
    unique_keys: int
    last_modified: datetime
    recent_activity_count: int
    session_hits: int = 0
    session_misses: int = 0
