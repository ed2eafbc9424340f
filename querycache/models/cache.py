"""State and configuration models for the query cache.

``CacheOptions`` is the validated configuration surface of one cache.
``IndexState`` is the cache's visible state: the key to records mapping
together with the generation and source it came from.  ``IndexState`` is a
frozen dataclass rather than a pydantic model because it wraps caller data of
arbitrary types that must not be copied or coerced on construction.

Architecture note:
    The cache never mutates an ``IndexState``.  A refresh builds a complete
    new mapping, wraps it in a new ``IndexState`` and replaces the cache's
    reference in a single assignment, so readers see either the old or the
    new Index and never a partial one.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------
class CacheEvent(str, Enum):  # noqa: UP042 (StrEnum requires Python 3.11+)
    """Notifications a cache emits to its observers."""

    UPDATE = "update"  # A new Index became visible (no payload)
    ERROR = "error"    # A refresh, snapshot load or snapshot save failed


class IndexSource(str, Enum):  # noqa: UP042
    """Where the visible Index came from."""

    EMPTY = "empty"
    SNAPSHOT = "snapshot"
    DATABASE = "database"


# ---------------------------------------------------------------------------
# IndexState: the swapped unit of visible state.
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class IndexState:
    """One immutable generation of the cache's Index.

    ``entries`` maps each key to a non-empty list of records in ingestion
    order.  ``generation`` orders swaps: the snapshot pre-warm is always 0
    and every database refresh draws a higher number when it starts.
    """

    entries: Mapping[Hashable, list[Any]] = field(default_factory=dict)
    generation: int = -1
    source: IndexSource = IndexSource.EMPTY
    loaded_at: datetime | None = None

    @property
    def key_count(self) -> int:
        return len(self.entries)

    @property
    def record_count(self) -> int:
        return sum(len(values) for values in self.entries.values())


# ---------------------------------------------------------------------------
# CacheStatus: read-only report for health checks and logging.
# ---------------------------------------------------------------------------
class CacheStatus(BaseModel):
    """Point-in-time status of one cache."""

    model_config = ConfigDict(frozen=True)

    name: str
    key_count: int = 0
    record_count: int = 0
    source: IndexSource = IndexSource.EMPTY
    generation: int = -1
    last_update: datetime | None = None
    ready: bool = False
    refresh_in_flight: bool = False
    torn_down: bool = False


# ---------------------------------------------------------------------------
# CacheOptions: the configuration surface.
# ---------------------------------------------------------------------------
class CacheOptions(BaseModel):
    """Options accepted by :class:`~querycache.services.query_cache.QueryCache`.

    Fields left as ``None`` are filled from defaults when the cache is
    constructed: ``name`` from the cache class name, ``cache_file_path``
    from the name, ``reload_interval_seconds`` from a jittered range and
    ``should_save_to_file`` from settings.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra="forbid")

    # Required
    sql: str
    query_executor: Any

    # Defaulted
    blob_store: Any = None
    cache_file_path: str | None = None
    name: str | None = None
    key_field_name: str = "id"
    reload_interval_seconds: float | None = Field(default=None, gt=0)
    should_save_to_file: bool | None = None

    # Optional hooks
    item_constructor: Callable[[Any], Any] | None = None
    parse_data_row: Callable[[Mapping[str, Any]], tuple[Any, Any]] | None = None
    parse_data_multi_row: Callable[[Mapping[str, Any]], list[tuple[Any, Any]]] | None = None

    @field_validator("sql")
    @classmethod
    def _sql_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("sql must not be blank")
        return value

    @field_validator("query_executor")
    @classmethod
    def _executor_has_query(cls, value: Any) -> Any:
        if value is None or not callable(getattr(value, "query", None)):
            raise ValueError("query_executor must provide an async query(sql, params) method")
        return value

    @field_validator("blob_store")
    @classmethod
    def _blob_store_shape(cls, value: Any) -> Any:
        if value is None:
            return value
        for method in ("read", "write", "remove"):
            if not callable(getattr(value, method, None)):
                raise ValueError(f"blob_store must provide an async {method}() method")
        return value

    @field_validator("key_field_name")
    @classmethod
    def _key_field_not_blank(cls, value: str) -> str:
        if not value:
            raise ValueError("key_field_name must not be empty")
        return value
