"""Query executors.

SQLiteQueryExecutor runs cache queries against a local SQLite file through
aiosqlite.  Other databases plug in by implementing IQueryExecutor.
"""

from querycache.providers.query.sqlite_query_executor import SQLiteQueryExecutor

__all__ = ["SQLiteQueryExecutor"]
