"""Custom exception hierarchy for querycache.

All library exceptions inherit from :class:`QueryCacheError`, which carries
an optional ``cache_name`` so error listeners can tell which cache instance
reported the failure when several caches share one process.

The hierarchy is organized by where in the cache lifecycle a failure occurs:

    QueryCacheError  (base -- catch-all for any querycache error)
    +-- ConfigurationError   (construction: missing/invalid options, fatal)
    +-- QueryError           (refresh: executor unreachable or query rejected)
    +-- RowMappingError      (refresh: custom mapper or item constructor raised)
    +-- SnapshotReadError    (startup: snapshot present but corrupt)
    +-- SnapshotWriteError   (refresh: snapshot could not be encoded/written)
    +-- BlobNotFoundError    (blob store: path does not exist)

Only :class:`ConfigurationError` is ever raised to the caller.  Every other
error is delivered through the cache's ``error`` notification and the last
good Index stays visible.
"""


class QueryCacheError(Exception):
    """Base exception for all querycache errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``cache_name``.  ``__str__`` prefixes the cache name in brackets, e.g.
    ``[CountryCache] Query failed``.
    """

    def __init__(
        self,
        message: str = "An unexpected cache error occurred",
        cache_name: str | None = None,
    ) -> None:
        self._message = message
        self._cache_name = cache_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def cache_name(self) -> str | None:
        return self._cache_name

    def __str__(self) -> str:
        if self._cache_name:
            return f"[{self._cache_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

class ConfigurationError(QueryCacheError):
    """Raised synchronously when cache options are missing or invalid."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        cache_name: str | None = None,
    ) -> None:
        super().__init__(message=message, cache_name=cache_name)


# ---------------------------------------------------------------------------
# Refresh cycle
# ---------------------------------------------------------------------------

class QueryError(QueryCacheError):
    """Raised when the query executor fails or rejects the query."""

    def __init__(
        self,
        message: str = "Query execution failed",
        cache_name: str | None = None,
    ) -> None:
        super().__init__(message=message, cache_name=cache_name)


class RowMappingError(QueryCacheError):
    """Raised when a row mapper or item constructor fails on a row."""

    def __init__(
        self,
        message: str = "Row mapping failed",
        cache_name: str | None = None,
    ) -> None:
        super().__init__(message=message, cache_name=cache_name)


# ---------------------------------------------------------------------------
# Snapshot persistence
# ---------------------------------------------------------------------------

class SnapshotReadError(QueryCacheError):
    """Raised when a snapshot exists but cannot be parsed or is malformed.

    A missing snapshot is not an error: the first run of any cache has none.
    """

    def __init__(
        self,
        message: str = "Snapshot could not be read",
        cache_name: str | None = None,
    ) -> None:
        super().__init__(message=message, cache_name=cache_name)


class SnapshotWriteError(QueryCacheError):
    """Raised when the Index cannot be serialized or written to the blob store."""

    def __init__(
        self,
        message: str = "Snapshot could not be written",
        cache_name: str | None = None,
    ) -> None:
        super().__init__(message=message, cache_name=cache_name)


class BlobNotFoundError(QueryCacheError):
    """Raised by blob stores when the requested path does not exist."""

    def __init__(
        self,
        message: str = "Blob not found",
        cache_name: str | None = None,
    ) -> None:
        super().__init__(message=message, cache_name=cache_name)
