# src/cache/errors.py - v1
"""Error kinds raised by the content cache.

None of them is retried inside the cache. StorageFailureError chains the
exception raised by the key/value backend.
"""

from __future__ import annotations


class CacheError(Exception):
    """Base class for content cache errors."""


class InvalidInputError(CacheError, ValueError):
    """Identifier, threshold or fingerprint cannot be used."""


class RecordNotFoundError(CacheError, LookupError):
    """Artifact update requested for a key that has no stored record."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"No cached record for key {key!r}")


class StorageFailureError(CacheError):
    """The underlying key/value storage failed during an operation."""

    def __init__(self, operation: str, key: str, cause: BaseException) -> None:
        self.operation = operation
        self.key = key
        self.cause = cause
        super().__init__(
            f"Storage failure during {operation} for key {key!r}: {cause}"
        )
