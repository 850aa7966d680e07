"""Object store access for tileset metadata blobs."""

from __future__ import annotations

from .blob import BlobStore, join_blob_path
from .errors import BlobNotFoundError, BlobStoreError
from .factory import StorageBackend, create_blob_store
from .filesystem_store import FilesystemBlobStore
from .http_store import HttpBlobStore, HttpBlobStoreConfig

__all__ = [
    "BlobNotFoundError",
    "BlobStore",
    "BlobStoreError",
    "FilesystemBlobStore",
    "HttpBlobStore",
    "HttpBlobStoreConfig",
    "StorageBackend",
    "create_blob_store",
    "join_blob_path",
]
