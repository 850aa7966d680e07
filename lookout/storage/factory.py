"""Factory for creating BlobStore implementations from dispatch configuration."""

from __future__ import annotations

import enum
import typing as typ

from .filesystem_store import FilesystemBlobStore
from .http_store import HttpBlobStore, HttpBlobStoreConfig

if typ.TYPE_CHECKING:
    from lookout.dispatch.config import DispatchConfig

    from .blob import BlobStore


class StorageBackend(enum.StrEnum):
    """Supported object store backends."""

    HTTP = "http"
    FILESYSTEM = "filesystem"


def create_blob_store(config: DispatchConfig) -> BlobStore:
    """Create the BlobStore selected by ``config.storage_backend``.

    Parameters
    ----------
    config
        Dispatch configuration carrying the storage settings.

    Returns
    -------
    BlobStore
        ``FilesystemBlobStore`` rooted at ``config.storage_root`` or an
        ``HttpBlobStore`` pointed at ``config.storage_base_url``.

    Raises
    ------
    ValueError
        If the filesystem backend is selected without a root directory.

    """
    if config.storage_backend is StorageBackend.FILESYSTEM:
        if config.storage_root is None:
            msg = "filesystem storage backend requires a storage root"
            raise ValueError(msg)
        return FilesystemBlobStore(config.storage_root)

    return HttpBlobStore(
        HttpBlobStoreConfig(
            base_url=config.storage_base_url,
            token=config.storage_token,
        )
    )
