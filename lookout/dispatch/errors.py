"""Errors specific to the dispatch module."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc


class DispatchError(Exception):
    """Base class for dispatch module errors."""


class DispatchConfigError(DispatchError):
    """Raised when dispatch configuration is missing or invalid."""

    @classmethod
    def missing(cls, key: str, doc: str) -> DispatchConfigError:
        """Return an error naming the environment variable to configure."""
        return cls(f"You need to configure the environment variable {key}. {doc}")

    @classmethod
    def invalid(cls, key: str, raw: str, expected: str) -> DispatchConfigError:
        """Return an error for an environment variable with a bad value."""
        return cls(f"{key} must be {expected}, got: {raw!r}")


class UnknownRecurrencyError(DispatchError):
    """Raised when a subscription carries an unrecognised recurrency."""

    def __init__(self, value: object) -> None:
        """Record the offending value."""
        self.value = value
        super().__init__(
            f"Unknown recurrency {value!r}; expected one of daily, weekly, monthly"
        )


class TilesetMetadataError(DispatchError):
    """Raised when tileset metadata cannot be decoded or lacks a data end date."""

    def __init__(self, tileset: str, reason: str) -> None:
        """Initialise with the tileset identifier and failure reason."""
        self.tileset = tileset
        self.reason = reason
        super().__init__(f"Invalid metadata for tileset {tileset}: {reason}")

    @classmethod
    def undecodable(cls, tileset: str, detail: str) -> TilesetMetadataError:
        """Return an error for metadata that is not valid JSON of the right shape."""
        return cls(tileset, f"failed to decode config.json: {detail}")

    @classmethod
    def invalid_data_end_date(cls, tileset: str, raw: str) -> TilesetMetadataError:
        """Return an error for a ``data_end_date`` that is not ISO 8601."""
        return cls(tileset, f"data_end_date is not an ISO-8601 date: {raw!r}")


class TopicNotFoundError(DispatchError):
    """Raised when the report topic does not exist and auto-create is off."""

    def __init__(self, name: str) -> None:
        """Record the missing topic name."""
        self.name = name
        super().__init__(f"Report topic not found: {name}")


class BatchDispatchError(DispatchError):
    """Raised when one or more subscription pipelines in a batch failed.

    Parameters
    ----------
    failures
        Mapping of subscription id to the exception its pipeline raised.

    Attributes
    ----------
    exceptions
        Immutable tuple of the underlying exceptions.
    subscription_ids
        Identifiers of the failed subscriptions, in the same order.

    """

    exceptions: tuple[Exception, ...]
    subscription_ids: tuple[str, ...]

    def __init__(self, failures: cabc.Mapping[str, Exception]) -> None:
        """Initialise with the failed subscriptions and their exceptions."""
        self.subscription_ids = tuple(failures)
        self.exceptions = tuple(failures.values())
        count = len(self.exceptions)
        super().__init__(f"Dispatch batch failed: {count} subscription(s) errored")
