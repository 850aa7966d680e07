"""Object store errors."""

from __future__ import annotations


class BlobStoreError(RuntimeError):
    """Raised when the object store cannot serve a blob."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, bucket: str, path: str, status_code: int) -> BlobStoreError:
        """Return an error for non-2xx object store responses."""
        return cls(
            f"Object store HTTP {status_code} for {bucket}/{path}",
            status_code=status_code,
        )

    @classmethod
    def network_error(cls, bucket: str, path: str, detail: str) -> BlobStoreError:
        """Return an error for transport failures (DNS, connection, TLS)."""
        return cls(f"Object store network error for {bucket}/{path}: {detail}")


class BlobNotFoundError(BlobStoreError):
    """Raised when the requested blob does not exist."""

    def __init__(self, bucket: str, path: str) -> None:
        """Record the missing blob location."""
        self.bucket = bucket
        self.path = path
        super().__init__(f"Blob not found: {bucket}/{path}", status_code=404)
