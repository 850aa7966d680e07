r"""Filesystem adapter for the BlobStore protocol.

Buckets map to directories below a root path::

    {root}/{bucket}/{path}

Used for local development and tests where no object store is reachable.
"""

from __future__ import annotations

import asyncio
import typing as typ

from .errors import BlobNotFoundError, BlobStoreError

if typ.TYPE_CHECKING:
    from pathlib import Path


class FilesystemBlobStore:
    """Read blobs from the local filesystem without blocking the event loop."""

    def __init__(self, root: Path) -> None:
        """Initialise the store with the directory holding bucket folders."""
        self._root = root

    async def download(self, bucket: str, path: str) -> bytes:
        """Return the file contents for ``bucket``/``path``."""
        bucket_dir = (self._root / bucket).resolve()
        target = (bucket_dir / path.lstrip("/")).resolve()
        if not target.is_relative_to(bucket_dir):
            msg = f"Blob path escapes bucket {bucket}: {path}"
            raise BlobStoreError(msg)
        try:
            return await asyncio.to_thread(target.read_bytes)
        except FileNotFoundError as exc:
            raise BlobNotFoundError(bucket, path) from exc
        except OSError as exc:
            msg = f"Failed to read blob {bucket}/{path}: {exc}"
            raise BlobStoreError(msg) from exc
