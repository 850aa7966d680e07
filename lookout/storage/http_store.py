"""HTTP adapter for the BlobStore protocol.

Reads objects through an HTTP gateway that exposes ``{base_url}/{bucket}/{path}``
(Google Cloud Storage's public endpoint follows this layout). An optional
bearer token is sent for authenticated buckets.
"""

from __future__ import annotations

import dataclasses
import typing as typ
from urllib.parse import quote

import httpx

from .errors import BlobNotFoundError, BlobStoreError

_HTTP_NOT_FOUND = 404
_HTTP_ERROR_STATUS_THRESHOLD = 400

DEFAULT_BASE_URL = "https://storage.googleapis.com"


@dataclasses.dataclass(frozen=True, slots=True)
class HttpBlobStoreConfig:
    """Configuration for the HTTP object store client."""

    base_url: str = DEFAULT_BASE_URL
    token: str | None = None
    timeout_s: float = 20.0
    user_agent: str = "lookout/0.1"


class HttpBlobStore:
    """Download blobs over HTTP with ``httpx``."""

    def __init__(
        self,
        config: HttpBlobStoreConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Create the store, building an ``httpx`` client when none is given."""
        self._config = config or HttpBlobStoreConfig()
        headers = {"User-Agent": self._config.user_agent}
        if self._config.token:
            headers["Authorization"] = f"Bearer {self._config.token}"
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=self._config.timeout_s,
            headers=headers,
        )

    def url_for(self, bucket: str, path: str) -> str:
        """Return the URL serving ``path`` in ``bucket``."""
        base = self._config.base_url.rstrip("/")
        return f"{base}/{quote(bucket)}/{quote(path.lstrip('/'))}"

    async def download(self, bucket: str, path: str) -> bytes:
        """Fetch the blob bytes, mapping HTTP failures to store errors."""
        try:
            response = await self._client.get(self.url_for(bucket, path))
        except httpx.TimeoutException as exc:
            raise BlobStoreError.network_error(bucket, path, "timed out") from exc
        except httpx.TransportError as exc:
            raise BlobStoreError.network_error(bucket, path, str(exc)) from exc

        if response.status_code == _HTTP_NOT_FOUND:
            raise BlobNotFoundError(bucket, path)
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise BlobStoreError.http_error(bucket, path, response.status_code)
        return response.content

    async def aclose(self) -> None:
        """Close the underlying client when this store created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> typ.Self:
        """Return the store for use in ``async with`` blocks."""
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        """Release the HTTP client."""
        await self.aclose()
