"""Blob stores for cache snapshots.

FileBlobStore writes snapshots to disk with an atomic rename.  MemoryBlobStore
keeps them in a dict, which is enough for tests and single-process rebuilds.
"""

from querycache.providers.blob.file_blob_store import FileBlobStore
from querycache.providers.blob.memory_blob_store import MemoryBlobStore

__all__ = ["FileBlobStore", "MemoryBlobStore"]
