"""Tileset readiness checks gating report requests.

A report may only be requested once the tileset it queries holds validated
data up to the end of the report window. Each tileset publishes its data
horizon as ``data_end_date`` in ``{tilesets_path}/{tileset}/config.json``.
"""

from __future__ import annotations

import datetime as dt
import typing as typ

import msgspec

from lookout.common.time import ensure_utc
from lookout.dispatch.errors import TilesetMetadataError
from lookout.logging import get_logger, log_debug
from lookout.storage.blob import join_blob_path

if typ.TYPE_CHECKING:
    from lookout.storage.blob import BlobStore
    from lookout.subscriptions.models import Subscription

logger = get_logger(__name__)

METADATA_FILENAME = "config.json"


class TilesetMetadata(msgspec.Struct, kw_only=True):
    """Subset of a tileset's ``config.json`` the dispatcher relies on.

    Attributes
    ----------
    data_end_date : str
        ISO 8601 date or date-time up to which the tileset has validated data.

    """

    data_end_date: str


class ReadinessChecker(typ.Protocol):
    """Decides whether a subscription's next report can be requested."""

    async def is_ready(self, subscription: Subscription) -> bool:
        """Return whether data covers the subscription's report window."""
        ...


def parse_data_end_date(raw: str, *, tileset: str) -> dt.datetime:
    """Parse ``data_end_date`` into an aware UTC instant.

    Date-only values mean midnight UTC of that date; naive date-times are
    read as UTC.
    """
    try:
        parsed = dt.datetime.fromisoformat(raw.strip())
    except ValueError as exc:
        raise TilesetMetadataError.invalid_data_end_date(tileset, raw) from exc
    return ensure_utc(parsed)


class TilesetReadinessChecker:
    """Decide whether a subscription's tileset covers its next report window.

    Parameters
    ----------
    blob_store
        Object store serving tileset metadata blobs.
    bucket
        Bucket holding the tilesets.
    tilesets_path
        Path from the bucket root to the tileset directories.

    """

    def __init__(
        self,
        blob_store: BlobStore,
        *,
        bucket: str,
        tilesets_path: str,
    ) -> None:
        """Configure the checker with its object store location."""
        self._blob_store = blob_store
        self._bucket = bucket
        self._tilesets_path = tilesets_path

    def metadata_path(self, tileset: str) -> str:
        """Return the blob path of ``tileset``'s metadata file."""
        return join_blob_path(self._tilesets_path, tileset, METADATA_FILENAME)

    async def fetch_metadata(self, tileset: str) -> TilesetMetadata:
        """Download and decode the tileset's metadata.

        Raises
        ------
        BlobNotFoundError
            If the metadata blob does not exist.
        TilesetMetadataError
            If the blob is not JSON or lacks a string ``data_end_date``.

        """
        payload = await self._blob_store.download(
            self._bucket, self.metadata_path(tileset)
        )
        try:
            return msgspec.json.decode(payload, type=TilesetMetadata)
        except msgspec.DecodeError as exc:
            raise TilesetMetadataError.undecodable(tileset, str(exc)) from exc

    async def data_end(self, tileset: str) -> dt.datetime:
        """Return the instant up to which ``tileset`` has data."""
        metadata = await self.fetch_metadata(tileset)
        return parse_data_end_date(metadata.data_end_date, tileset=tileset)

    async def is_ready(self, subscription: Subscription) -> bool:
        """Return whether data covers the subscription's window end."""
        tileset = subscription.tileset
        data_end = await self.data_end(tileset)
        report_end = ensure_utc(subscription.next_report_timestamp)
        log_debug(
            logger,
            "[Subscription %s] tileset %s has data up to %s; report queries up to %s",
            subscription.id,
            tileset,
            data_end.isoformat(),
            report_end.isoformat(),
        )
        return data_end >= report_end
