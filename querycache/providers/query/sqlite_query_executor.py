"""SQLite-backed query executor.

Runs cache queries against a local SQLite database file using ``aiosqlite``
for async I/O.  Each call opens its own connection, so one executor can be
shared by any number of caches.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from querycache.interfaces.query_executor import IQueryExecutor
from querycache.utils.errors import QueryError

logger = structlog.get_logger(logger_name=__name__)


class SQLiteQueryExecutor(IQueryExecutor):
    """Execute read queries against a SQLite database file."""

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)

    def get_provider_name(self) -> str:
        return "sqlite"

    async def query(
        self,
        sql: str,
        params: Sequence[Any] = (),
    ) -> list[Mapping[str, Any]]:
        """Run *sql* and return every row as a plain ``dict``."""
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(sql, tuple(params))
                rows = await cursor.fetchall()
        except (aiosqlite.Error, OSError) as exc:
            logger.error("sqlite_query_failed", path=str(self._db_path), error=str(exc))
            raise QueryError(
                message=f"SQLite query failed: {exc}",
            ) from exc

        result = [dict(r) for r in rows]
        logger.debug("sqlite_query_complete", path=str(self._db_path), rows=len(result))
        return result
