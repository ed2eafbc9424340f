"""In-memory blob store.

Dict-backed store suitable for tests and for caches that only need a snapshot
to survive a cache rebuild inside one process.  Not shared across processes.
"""

from __future__ import annotations

import structlog

from querycache.interfaces.blob_store import IBlobStore
from querycache.utils.errors import BlobNotFoundError

logger = structlog.get_logger(logger_name=__name__)


class MemoryBlobStore(IBlobStore):
    """Blob store that keeps every blob in a plain ``dict``."""

    def __init__(self, initial: dict[str, bytes] | None = None) -> None:
        self._blobs: dict[str, bytes] = dict(initial or {})

    async def write(self, path: str, data: bytes) -> None:
        """Store a copy of *data* under *path*."""
        self._blobs[path] = bytes(data)
        logger.debug("blob_set", path=path, size=len(data))

    async def read(self, path: str) -> bytes:
        """Return the blob under *path* or raise :class:`BlobNotFoundError`."""
        try:
            data = self._blobs[path]
        except KeyError as exc:
            raise BlobNotFoundError(message=f"No blob at {path}") from exc
        logger.debug("blob_hit", path=path)
        return data

    async def remove(self, path: str) -> None:
        """Remove *path* from the store (no-op if absent)."""
        self._blobs.pop(path, None)
        logger.debug("blob_delete", path=path)

    def __contains__(self, path: object) -> bool:
        return path in self._blobs
