"""Shared pytest fixtures for the querycache test suite."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Mapping, Sequence
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from querycache.interfaces.query_executor import IQueryExecutor
from querycache.providers.blob.memory_blob_store import MemoryBlobStore
from querycache.services.query_cache import QueryCache

# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------


def build_rows(keys: int = 100, per_key: int = 3) -> list[dict[str, Any]]:
    """Rows shaped like ``SELECT id, text``: *per_key* rows for each id."""
    return [
        {"id": i, "text": f"{j}_{i:05d}"}
        for i in range(keys)
        for j in range(per_key)
    ]


class RowRecord:
    """Record type used as ``item_constructor`` in tests."""

    def __init__(self, data: Mapping[str, Any]) -> None:
        self.__dict__.update(data)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, RowRecord) and vars(self) == vars(other)

    def __repr__(self) -> str:
        return f"RowRecord({vars(self)!r})"


# ---------------------------------------------------------------------------
# Mock collaborators
# ---------------------------------------------------------------------------


class MockQueryExecutor(IQueryExecutor):
    """Deterministic query executor with optional delay, gate and failure.

    ``delay`` always yields to the event loop at least once so concurrent
    startup tasks interleave the way a real driver would.
    """

    def __init__(
        self,
        rows: Sequence[Mapping[str, Any]] | None = None,
        delay: float = 0.0,
    ) -> None:
        self.rows: list[Mapping[str, Any]] = list(rows or [])
        self.delay = delay
        self.gate: asyncio.Event | None = None
        self.error: Exception | None = None
        self.calls: list[tuple[str, list[Any]]] = []

    async def query(
        self,
        sql: str,
        params: Sequence[Any] = (),
    ) -> list[Mapping[str, Any]]:
        self.calls.append((sql, list(params)))
        await asyncio.sleep(self.delay)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return [dict(row) for row in self.rows]

    def get_provider_name(self) -> str:
        return "mock"


class GatedBlobStore(MemoryBlobStore):
    """Memory blob store whose reads wait until ``release`` is set."""

    def __init__(self, initial: dict[str, bytes] | None = None) -> None:
        super().__init__(initial)
        self.release = asyncio.Event()

    async def read(self, path: str) -> bytes:
        await self.release.wait()
        return await super().read(path)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_rows() -> list[dict[str, Any]]:
    """100 keys x 3 rows."""
    return build_rows()


@pytest.fixture
def mock_executor(sample_rows: list[dict[str, Any]]) -> MockQueryExecutor:
    return MockQueryExecutor(sample_rows, delay=0.01)


@pytest.fixture
def mock_query_executor(sample_rows: list[dict[str, Any]]) -> IQueryExecutor:
    """Return a MagicMock implementing IQueryExecutor."""
    mock = MagicMock(spec=IQueryExecutor)
    mock.query = AsyncMock(return_value=sample_rows)
    mock.get_provider_name.return_value = "mock"
    return mock


@pytest.fixture
def memory_store() -> MemoryBlobStore:
    return MemoryBlobStore()


@pytest_asyncio.fixture
async def make_cache(
    memory_store: MemoryBlobStore,
) -> AsyncIterator[Callable[..., QueryCache]]:
    """Factory building caches with test-friendly defaults; tears them all down."""
    created: list[QueryCache] = []

    def _make(cache_cls: type[QueryCache] = QueryCache, **options: Any) -> QueryCache:
        options.setdefault("sql", "SELECT id, text FROM test_table")
        options.setdefault("blob_store", memory_store)
        options.setdefault("reload_interval_seconds", 3600)
        cache = cache_cls(**options)
        created.append(cache)
        return cache

    yield _make

    for cache in created:
        cache.teardown()
        await settle(cache)


async def settle(cache: QueryCache) -> None:
    """Wait for every refresh and snapshot task the cache has in flight."""
    while cache._background:
        await asyncio.gather(*list(cache._background), return_exceptions=True)
