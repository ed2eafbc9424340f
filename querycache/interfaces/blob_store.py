"""Abstract base class for byte-level blob stores.

Defines the contract used to persist and reload cache snapshots.  The cache
only ever stores one blob per instance (the JSON snapshot at its
``cache_file_path``), so the contract is three calls: write, read,
remove.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class IBlobStore(ABC):
    """Contract for path-addressed blob storage.

    All operations are async so that network-backed stores (object storage,
    a shared volume) can be used without blocking the event loop.
    """

    @abstractmethod
    async def write(self, path: str, data: bytes) -> None:
        """Store *data* under *path*, replacing any existing blob.

        Parameters
        ----------
        path:
            The blob location.
        data:
            Raw bytes to store.
        """

    @abstractmethod
    async def read(self, path: str) -> bytes:
        """Return the bytes stored under *path*.

        Raises
        ------
        BlobNotFoundError
            If nothing is stored under *path*.
        """

    @abstractmethod
    async def remove(self, path: str) -> None:
        """Delete the blob under *path*.

        This is a no-op if the blob does not exist.
        """
