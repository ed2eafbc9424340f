"""querycache: an in-process, periodically refreshed cache of one SQL query.

Typical use::

    from querycache import QueryCache
    from querycache.providers.query import SQLiteQueryExecutor

    class CountryCache(QueryCache):
        pass

    cache = CountryCache(
        sql="SELECT id, code, name FROM countries",
        query_executor=SQLiteQueryExecutor("app.db"),
        should_save_to_file=True,
    ).on("error", report_error)
    await cache.ready()
    cache.lookup_first(42)
"""

from querycache.config.settings import Settings
from querycache.interfaces import IBlobStore, IQueryExecutor
from querycache.models.cache import CacheEvent, CacheOptions, CacheStatus, IndexSource
from querycache.services.query_cache import QueryCache
from querycache.utils.errors import (
    BlobNotFoundError,
    ConfigurationError,
    QueryCacheError,
    QueryError,
    RowMappingError,
    SnapshotReadError,
    SnapshotWriteError,
)

__all__ = [
    "BlobNotFoundError",
    "CacheEvent",
    "CacheOptions",
    "CacheStatus",
    "ConfigurationError",
    "IBlobStore",
    "IQueryExecutor",
    "IndexSource",
    "QueryCache",
    "QueryCacheError",
    "QueryError",
    "RowMappingError",
    "Settings",
    "SnapshotReadError",
    "SnapshotWriteError",
]
