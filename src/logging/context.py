# src/logging/context.py - v2
"""Contextual logging support: attach request_id, operation and cache_key to log records."""

from __future__ import annotations

import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging. Each asyncio task sees its own copy.
_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_operation: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "operation", default=None
)
_cache_key: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "cache_key", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    request_id: str | None = None
    operation: str | None = None
    cache_key: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        operation=_operation.get(),
        cache_key=_cache_key.get(),
    )


def set_request_context(request_id: str) -> None:
    """Tag every following record with the caller's request id."""
    _request_id.set(request_id)


@contextmanager
def operation_context(operation: str, cache_key: str | None = None) -> Iterator[None]:
    """Set operation and cache key for the block, restoring the previous values."""
    op_token = _operation.set(operation)
    key_token = _cache_key.set(cache_key)
    try:
        yield
    finally:
        _cache_key.reset(key_token)
        _operation.reset(op_token)


def clear_context() -> None:
    """Reset all context variables."""
    _request_id.set(None)
    _operation.set(None)
    _cache_key.set(None)
