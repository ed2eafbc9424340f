"""Utility modules for querycache.

- **errors** -- Exception hierarchy rooted at QueryCacheError; each stage of
  the cache lifecycle raises its own subclass so error listeners can react
  to query failures differently from snapshot corruption.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
"""

from querycache.utils.errors import (
    BlobNotFoundError,
    ConfigurationError,
    QueryCacheError,
    QueryError,
    RowMappingError,
    SnapshotReadError,
    SnapshotWriteError,
)
from querycache.utils.logging import configure_from_settings, configure_logging, get_logger

__all__ = [
    "BlobNotFoundError",
    "ConfigurationError",
    "QueryCacheError",
    "QueryError",
    "RowMappingError",
    "SnapshotReadError",
    "SnapshotWriteError",
    "configure_from_settings",
    "configure_logging",
    "get_logger",
]
