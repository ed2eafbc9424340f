"""Data models for querycache.

Pydantic models describe what crosses the public API (options, status);
the visible Index itself is a frozen dataclass so that cached records are
never copied or coerced when a new generation is swapped in.
"""

from querycache.models.cache import (
    CacheEvent,
    CacheOptions,
    CacheStatus,
    IndexSource,
    IndexState,
)

__all__ = [
    "CacheEvent",
    "CacheOptions",
    "CacheStatus",
    "IndexSource",
    "IndexState",
]
