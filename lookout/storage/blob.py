"""BlobStore protocol for reading objects such as tileset metadata."""

from __future__ import annotations

import typing as typ


@typ.runtime_checkable
class BlobStore(typ.Protocol):
    """Read-only access to objects held in named buckets."""

    async def download(self, bucket: str, path: str) -> bytes:
        """Return the raw bytes stored at ``path`` in ``bucket``.

        Raises
        ------
        BlobNotFoundError
            If no object exists at the location.
        BlobStoreError
            If the object store fails to serve the request.

        """
        ...


def join_blob_path(*parts: str) -> str:
    """Join path segments with ``/``, dropping empty segments and stray slashes.

    >>> join_blob_path("tiles/", "/fishing", "config.json")
    'tiles/fishing/config.json'

    """
    return "/".join(segment for part in parts if (segment := part.strip("/")))
