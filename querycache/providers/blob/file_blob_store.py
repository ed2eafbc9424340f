"""Filesystem-backed blob store.

Stores each blob as a regular file.  Writes go to a temporary sibling file
that is then renamed over the target, so a reader never observes a half
written snapshot.  File I/O is synchronous and runs via ``asyncio.to_thread``
to keep the event loop free.
"""

from __future__ import annotations

import asyncio
import os
import tempfile
from pathlib import Path

import structlog

from querycache.interfaces.blob_store import IBlobStore
from querycache.utils.errors import BlobNotFoundError

logger = structlog.get_logger(logger_name=__name__)


class FileBlobStore(IBlobStore):
    """Blob store that maps each path to a file on the local filesystem.

    Parameters
    ----------
    root:
        Optional base directory.  Relative paths passed to the store are
        resolved against it; absolute paths are used as-is.
    """

    def __init__(self, root: str | Path | None = None) -> None:
        self._root = Path(root) if root is not None else None

    # ------------------------------------------------------------------
    # IBlobStore implementation
    # ------------------------------------------------------------------

    async def write(self, path: str, data: bytes) -> None:
        target = self._resolve(path)
        await asyncio.to_thread(self._write_sync, target, data)
        logger.debug("blob_written", path=str(target), size=len(data))

    async def read(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            data = await asyncio.to_thread(target.read_bytes)
        except FileNotFoundError as exc:
            raise BlobNotFoundError(message=f"No blob at {target}") from exc
        logger.debug("blob_read", path=str(target), size=len(data))
        return data

    async def remove(self, path: str) -> None:
        target = self._resolve(path)
        await asyncio.to_thread(target.unlink, missing_ok=True)
        logger.debug("blob_removed", path=str(target))

    # ------------------------------------------------------------------
    # Sync helpers (executed via asyncio.to_thread)
    # ------------------------------------------------------------------

    def _resolve(self, path: str) -> Path:
        candidate = Path(path)
        if self._root is None or candidate.is_absolute():
            return candidate
        return self._root / candidate

    @staticmethod
    def _write_sync(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=target.parent)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
