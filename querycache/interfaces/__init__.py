"""Public interface definitions for the cache's external collaborators.

The cache core never talks to a database driver or a filesystem directly.
It is handed objects implementing the abstract base classes below, so a
different driver or storage backend only needs a new adapter.

CONCRETE PROVIDER MAP:
    Interface          →  Concrete implementations (in querycache/providers/)
    ─────────────────────────────────────────────────────────────────────
    IQueryExecutor     →  SQLiteQueryExecutor
    IBlobStore         →  FileBlobStore, MemoryBlobStore
"""

from querycache.interfaces.blob_store import IBlobStore
from querycache.interfaces.query_executor import IQueryExecutor

__all__ = [
    "IBlobStore",
    "IQueryExecutor",
]
