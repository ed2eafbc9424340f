"""In-memory read-through cache over the full result set of one SQL query.

A :class:`QueryCache` loads every row of its query into an Index (key to
list of records), reloads it on a jittered timer, optionally persists the
Index as a JSON snapshot for fast cold start, and serves synchronous
lookups from memory.

# ─── LIFECYCLE ─────────────────────────────────────────────────────────
#
#   __init__ ──→ refresh cycle (generation 1) ──┐
#            ──→ snapshot load (generation 0) ──┼──→ swap ──→ "update"
#            ──→ timer ──tick──→ refresh cycle ─┘        └──→ snapshot save
#
#   - Every swap replaces the whole IndexState in one assignment; an
#     IndexState is never mutated after it is built.
#   - A swap is accepted only if its generation is newer than the visible
#     one, so a slow snapshot load can never overwrite database data.
#   - Timer ticks are skipped while a refresh cycle is still running.
#   - Failures go to the "error" notification; the last good Index stays.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
import copy
import re
import time
from collections.abc import Awaitable, Callable, Hashable, Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from querycache.config.loader import cache_overrides
from querycache.config.settings import Settings
from querycache.interfaces.query_executor import IQueryExecutor
from querycache.models.cache import (
    CacheEvent,
    CacheOptions,
    CacheStatus,
    IndexSource,
    IndexState,
)
from querycache.pipeline.event_notifier import EventNotifier
from querycache.pipeline.refresh_scheduler import RefreshScheduler, jittered_interval
from querycache.providers.blob.file_blob_store import FileBlobStore
from querycache.services.row_mapper import RowMapper, merge_pairs
from querycache.services.snapshot_codec import decode_index, encode_index
from querycache.utils.errors import (
    BlobNotFoundError,
    ConfigurationError,
    QueryCacheError,
    QueryError,
    SnapshotReadError,
    SnapshotWriteError,
)
from querycache.utils.logging import get_logger

_SNAPSHOT_GENERATION = 0

# Options that must hold a value once defaults have been applied.
_REQUIRED_OPTIONS = (
    "sql",
    "query_executor",
    "blob_store",
    "cache_file_path",
    "name",
    "key_field_name",
    "reload_interval_seconds",
    "should_save_to_file",
)


class QueryCache:
    """Periodically reloaded, snapshot-backed cache of one query's rows.

    Construct it inside a running event loop, then ``await cache.ready()``
    before the first lookup.  Listeners registered right after construction
    (before the caller next yields to the loop) are guaranteed to see every
    notification, including the first ``update``.

    Subclasses may define ``parse_data_row(self, row)`` or
    ``parse_data_multi_row(self, row)`` methods instead of passing them as
    options; explicit options win.

    Parameters
    ----------
    options:
        A prebuilt :class:`CacheOptions`.  Keyword arguments are merged on
        top of it, so ``QueryCache(sql=..., query_executor=...)`` works too.
    settings:
        Process-wide defaults; ``Settings()`` when omitted.

    Raises
    ------
    ConfigurationError
        If a required option is missing or invalid, or if there is no
        running event loop.
    """

    parse_data_row: Callable[[Mapping[str, Any]], tuple[Any, Any]] | None = None
    parse_data_multi_row: Callable[[Mapping[str, Any]], list[tuple[Any, Any]]] | None = None

    def __init__(
        self,
        options: CacheOptions | None = None,
        *,
        settings: Settings | None = None,
        **kwargs: Any,
    ) -> None:
        self._options = self._apply_options(options, kwargs, settings or Settings())
        name = self._options.name

        try:
            asyncio.get_running_loop()
        except RuntimeError as exc:
            raise ConfigurationError(
                message="QueryCache must be created inside a running event loop",
                cache_name=name,
            ) from exc

        self._logger: structlog.BoundLogger = get_logger(__name__, cache=name)
        self._state = IndexState()
        self._generation_counter = _SNAPSHOT_GENERATION
        self._ready = asyncio.Event()
        self._torn_down = False
        self._refresh_task: asyncio.Task[bool] | None = None
        self._background: set[asyncio.Task[Any]] = set()

        self._notifier = EventNotifier(cache_name=name)
        self._mapper = RowMapper(
            key_field_name=self._options.key_field_name,
            parse_data_row=self._options.parse_data_row or self.parse_data_row,
            parse_data_multi_row=self._options.parse_data_multi_row or self.parse_data_multi_row,
            item_constructor=self._options.item_constructor,
            cache_name=name,
        )
        self._scheduler = RefreshScheduler(
            interval_seconds=self._options.reload_interval_seconds,
            on_tick=self._on_tick,
            name=name,
        )

        self._start_cache()

    @classmethod
    def from_config(
        cls,
        config: dict,
        settings: Settings | None = None,
        **options: Any,
    ) -> QueryCache:
        """Build a cache whose options are overridden by *config*.

        *config* is the dict returned by
        :func:`~querycache.config.loader.load_config`.  Entries under
        ``caches.<name>`` take precedence over *options*, and the
        ``defaults`` section seeds the settings.
        """
        name = options.get("name") or cls.__name__
        merged = {**options, **cache_overrides(config, name)}
        if settings is None:
            settings = Settings(**(config.get("defaults") or {}))
        return cls(settings=settings, **merged)

    # ------------------------------------------------------------------
    # Public API: readiness and lookups
    # ------------------------------------------------------------------

    async def ready(self) -> None:
        """Wait until the first database load has been swapped in.

        Returns immediately once that has happened.  There is no timeout:
        if the database never answers, this never returns, so callers that
        need a bound should wrap it in ``asyncio.wait_for``.
        """
        await self._ready.wait()

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    def lookup(self, key: Hashable) -> list[Any]:
        """Return a deep copy of the records stored under *key*, or ``[]``."""
        values = self._state.entries.get(key)
        if not values:
            return []
        return copy.deepcopy(values)

    def lookup_first(self, key: Hashable) -> Any | None:
        """Return a deep copy of the first record under *key*, or ``None``."""
        values = self._state.entries.get(key)
        if not values:
            return None
        return copy.deepcopy(values[0])

    def lookup_all(self) -> list[Any]:
        """Return a deep copy of every record, in key order then insertion order."""
        items: list[Any] = []
        for values in self._state.entries.values():
            items.extend(values)
        if not items:
            return []
        return copy.deepcopy(items)

    def keys(self) -> list[Hashable]:
        """Return the keys of the visible Index in iteration order."""
        return list(self._state.entries.keys())

    def __contains__(self, key: object) -> bool:
        return key in self._state.entries

    def __len__(self) -> int:
        return self._state.key_count

    # ------------------------------------------------------------------
    # Public API: lifecycle
    # ------------------------------------------------------------------

    async def refresh(self) -> bool:
        """Run a refresh cycle now and return whether it swapped in new data.

        If a cycle is already running, waits for that one instead of
        starting a second.  Cancelling the caller does not cancel the cycle.
        """
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = self._spawn(self._refresh_cycle(), "refresh")
        return await asyncio.shield(self._refresh_task)

    def teardown(self) -> None:
        """Stop the recurring timer.

        Idempotent.  The Index is kept, so readers may keep reading the last
        loaded data, and a refresh cycle already in flight still completes.
        """
        if self._torn_down:
            return
        self._torn_down = True
        self._scheduler.cancel()
        self._logger.info("cache_torn_down", ticks=self._scheduler.ticks)

    async def remove_snapshot(self) -> None:
        """Delete this cache's snapshot from the blob store."""
        await self._options.blob_store.remove(self._options.cache_file_path)
        self._logger.info("snapshot_removed", path=self._options.cache_file_path)

    async def __aenter__(self) -> QueryCache:
        await self.ready()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.teardown()

    # ------------------------------------------------------------------
    # Public API: notifications and status
    # ------------------------------------------------------------------

    def on(
        self,
        event: CacheEvent | str,
        callback: Callable[..., Any | Awaitable[Any]],
    ) -> QueryCache:
        """Register a listener for ``"update"`` or ``"error"``; chainable."""
        self._notifier.register_listener(event, callback)
        return self

    def off(
        self,
        event: CacheEvent | str,
        callback: Callable[..., Any | Awaitable[Any]],
    ) -> QueryCache:
        """Remove a listener registered with :meth:`on`; chainable."""
        self._notifier.unregister_listener(event, callback)
        return self

    @property
    def name(self) -> str:
        return self._options.name

    @property
    def options(self) -> CacheOptions:
        return self._options

    @property
    def cache_file_path(self) -> str:
        return self._options.cache_file_path

    @property
    def last_update(self) -> datetime | None:
        """When the visible Index was swapped in (UTC), ``None`` before any swap."""
        return self._state.loaded_at

    def status(self) -> CacheStatus:
        state = self._state
        return CacheStatus(
            name=self.name,
            key_count=state.key_count,
            record_count=state.record_count,
            source=state.source,
            generation=state.generation,
            last_update=state.loaded_at,
            ready=self.is_ready,
            refresh_in_flight=self._refresh_task is not None and not self._refresh_task.done(),
            torn_down=self._torn_down,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, keys={self._state.key_count})"

    # ------------------------------------------------------------------
    # Startup and scheduling
    # ------------------------------------------------------------------

    def _start_cache(self) -> None:
        self._refresh_task = self._spawn(self._refresh_cycle(), "refresh")
        self._scheduler.start()

        if self._options.should_save_to_file:
            self._spawn(self._load_snapshot(), "snapshot-load")

        self._logger.info(
            "cache_started",
            provider=_provider_name(self._options.query_executor),
            reload_interval_seconds=round(self._options.reload_interval_seconds, 3),
            should_save_to_file=self._options.should_save_to_file,
            mapper=self._mapper.mode,
        )

    def _on_tick(self) -> None:
        if self._refresh_task is not None and not self._refresh_task.done():
            self._logger.info("refresh_skipped_in_flight")
            return
        self._refresh_task = self._spawn(self._refresh_cycle(), "refresh")

    def _spawn(self, coro: Awaitable[Any], label: str) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(
            coro, name=f"querycache-{label}-{self.name}"
        )
        # The loop only keeps weak references to tasks.
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    def _next_generation(self) -> int:
        self._generation_counter += 1
        return self._generation_counter

    # ------------------------------------------------------------------
    # Refresh cycle
    # ------------------------------------------------------------------

    async def _refresh_cycle(self) -> bool:
        generation = self._next_generation()
        started = time.perf_counter()

        try:
            rows = await self._query_database()
            entries = merge_pairs(self._mapper.map_rows(rows))
        except QueryCacheError as exc:
            await self._notifier.emit(CacheEvent.ERROR, exc)
            return False
        except Exception as exc:
            await self._notifier.emit(
                CacheEvent.ERROR,
                _wrap(QueryCacheError, f"Refresh failed: {exc}", self.name, exc),
            )
            return False

        state = await self._swap(entries, generation, IndexSource.DATABASE)
        if state is None:
            return False

        self._logger.info(
            "cache_loaded_from_database",
            generation=generation,
            rows=len(rows),
            keys=state.key_count,
            records=state.record_count,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )

        if self._options.should_save_to_file:
            await self._save_snapshot(state)
        return True

    async def _query_database(self) -> list[Mapping[str, Any]]:
        self._logger.debug("cache_loading_from_database")
        try:
            rows = await self._options.query_executor.query(self._options.sql, [])
        except Exception as exc:
            message = exc.message if isinstance(exc, QueryCacheError) else f"Query failed: {exc}"
            raise QueryError(message=message, cache_name=self.name) from exc
        return list(rows or [])

    async def _swap(
        self,
        entries: dict[Hashable, list[Any]],
        generation: int,
        source: IndexSource,
    ) -> IndexState | None:
        """Make *entries* the visible Index unless a newer one is already visible."""
        visible = self._state
        if generation <= visible.generation:
            self._logger.info(
                "stale_swap_discarded",
                source=source.value,
                generation=generation,
                visible_generation=visible.generation,
            )
            return None

        state = IndexState(
            entries=entries,
            generation=generation,
            source=source,
            loaded_at=datetime.now(tz=timezone.utc),
        )
        self._state = state

        if source is IndexSource.DATABASE:
            self._ready.set()
        await self._notifier.emit(CacheEvent.UPDATE)
        return state

    # ------------------------------------------------------------------
    # Snapshot persistence
    # ------------------------------------------------------------------

    async def _save_snapshot(self, state: IndexState) -> None:
        path = self._options.cache_file_path
        try:
            data = encode_index(state.entries, cache_name=self.name)
            await self._options.blob_store.write(path, data)
        except SnapshotWriteError as exc:
            await self._notifier.emit(CacheEvent.ERROR, exc)
            return
        except Exception as exc:
            await self._notifier.emit(
                CacheEvent.ERROR,
                _wrap(SnapshotWriteError, f"Snapshot write to {path} failed: {exc}", self.name, exc),
            )
            return

        self._logger.debug("snapshot_saved", path=path, size=len(data), generation=state.generation)

    async def _load_snapshot(self) -> bool:
        path = self._options.cache_file_path
        self._logger.debug("cache_loading_from_snapshot", path=path)

        try:
            data = await self._options.blob_store.read(path)
        except (BlobNotFoundError, FileNotFoundError) as exc:
            self._logger.debug("snapshot_missing", path=path, reason=str(exc))
            return False
        except Exception as exc:
            await self._notifier.emit(
                CacheEvent.ERROR,
                _wrap(SnapshotReadError, f"Snapshot read from {path} failed: {exc}", self.name, exc),
            )
            return False

        if not data or not data.strip():
            self._logger.debug("snapshot_empty", path=path)
            return False

        try:
            entries = decode_index(
                data,
                item_constructor=self._options.item_constructor,
                cache_name=self.name,
            )
        except SnapshotReadError as exc:
            await self._notifier.emit(CacheEvent.ERROR, exc)
            return False
        except Exception as exc:
            await self._notifier.emit(
                CacheEvent.ERROR,
                _wrap(SnapshotReadError, f"Snapshot decode of {path} failed: {exc}", self.name, exc),
            )
            return False

        state = await self._swap(entries, _SNAPSHOT_GENERATION, IndexSource.SNAPSHOT)
        if state is None:
            return False

        self._logger.info(
            "cache_loaded_from_snapshot",
            path=path,
            keys=state.key_count,
            records=state.record_count,
        )
        return True

    # ------------------------------------------------------------------
    # Options
    # ------------------------------------------------------------------

    def _apply_options(
        self,
        options: CacheOptions | None,
        overrides: dict[str, Any],
        settings: Settings,
    ) -> CacheOptions:
        raw: dict[str, Any] = {}
        if options is not None:
            raw.update({field: getattr(options, field) for field in CacheOptions.model_fields})
        raw.update(overrides)

        fallback_name = raw.get("name") or type(self).__name__
        try:
            validated = CacheOptions(**raw)
        except ValidationError as exc:
            raise ConfigurationError(
                message=_describe_validation_error(exc),
                cache_name=fallback_name,
            ) from exc

        name = validated.name or type(self).__name__
        updates: dict[str, Any] = {"name": name}
        if validated.cache_file_path is None:
            updates["cache_file_path"] = str(Path(settings.cache_dir) / f"{_kebab_case(name)}.json")
        if validated.reload_interval_seconds is None:
            updates["reload_interval_seconds"] = jittered_interval(
                settings.reload_interval_min_seconds,
                settings.reload_interval_max_seconds,
            )
        if validated.should_save_to_file is None:
            updates["should_save_to_file"] = settings.should_save_to_file
        if validated.blob_store is None:
            updates["blob_store"] = FileBlobStore()
        resolved = validated.model_copy(update=updates)

        for field in _REQUIRED_OPTIONS:
            if getattr(resolved, field) is None:
                raise ConfigurationError(message=f'"{field}" option is missing', cache_name=name)
        return resolved


# ---------------------------------------------------------------------------
# Module helpers
# ---------------------------------------------------------------------------


def _provider_name(executor: Any) -> str:
    if isinstance(executor, IQueryExecutor):
        return executor.get_provider_name()
    return type(executor).__name__


def _kebab_case(name: str) -> str:
    """``MySqlCache`` -> ``my-sql-cache``, ``HTTPStatusCache`` -> ``http-status-cache``."""
    name = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1-\2", name)
    name = re.sub(r"([a-z0-9])([A-Z])", r"\1-\2", name)
    name = re.sub(r"[^A-Za-z0-9]+", "-", name)
    return name.strip("-").lower()


def _describe_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or "options"
    if first.get("type") == "missing":
        return f'"{field}" option is missing'
    if first.get("type") == "extra_forbidden":
        return f'"{field}" is not a recognized option'
    return f'"{field}" option is invalid: {first.get("msg", "")}'


def _wrap(
    error_cls: type[QueryCacheError],
    message: str,
    cache_name: str,
    cause: BaseException,
) -> QueryCacheError:
    error = error_cls(message=message, cache_name=cache_name)
    error.__cause__ = cause
    return error
