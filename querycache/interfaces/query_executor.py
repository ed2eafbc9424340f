"""Abstract base class for query executors.

Defines the contract the cache uses to fetch its full result set from a
relational data source.  Implementations may wrap aiosqlite, an asyncpg or
aiomysql pool, or anything else that can run one SQL statement and hand back
every row at once.  The adapter pattern keeps the cache core free of any
particular driver.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any


class IQueryExecutor(ABC):
    """Contract for one-shot, full-result query execution.

    No transactions and no streaming: each call returns the complete result
    set of a single statement.
    """

    @abstractmethod
    async def query(
        self,
        sql: str,
        params: Sequence[Any] = (),
    ) -> list[Mapping[str, Any]]:
        """Run *sql* with positional *params* and return every row.

        Parameters
        ----------
        sql:
            The statement to execute.
        params:
            Positional bind parameters.  The cache always passes an empty
            list.

        Returns
        -------
        list[Mapping[str, Any]]
            One field-name to value mapping per row, in result order.

        Raises
        ------
        QueryError
            If the data source is unreachable or rejects the statement.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier for logging (e.g. ``"sqlite"``)."""
