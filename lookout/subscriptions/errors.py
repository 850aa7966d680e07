"""Errors specific to report subscriptions and their store."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import datetime as dt


class SubscriptionError(Exception):
    """Base class for subscription errors."""


class SubscriptionNotFoundError(SubscriptionError):
    """Raised when a subscription cannot be found in the configured namespace."""

    def __init__(self, subscription_id: str) -> None:
        """Initialise with the missing subscription identifier."""
        self.subscription_id = subscription_id
        super().__init__(f"Subscription not found: {subscription_id}")


class SubscriptionConfigError(SubscriptionError):
    """Raised when a subscription's stored configuration is unusable."""

    def __init__(self, subscription_id: str, reason: str) -> None:
        """Initialise with the subscription identifier and failure reason."""
        self.subscription_id = subscription_id
        self.reason = reason
        super().__init__(f"Subscription {subscription_id} is misconfigured: {reason}")

    @classmethod
    def missing_field(
        cls, subscription_id: str, field: str
    ) -> SubscriptionConfigError:
        """Return an error for a required configuration field that is absent."""
        return cls(subscription_id, f"{field} is required")

    @classmethod
    def invalid_field(
        cls, subscription_id: str, field: str, expected: str
    ) -> SubscriptionConfigError:
        """Return an error for a configuration field with the wrong shape."""
        return cls(subscription_id, f"{field} must be {expected}")


class NonMonotonicTimestampError(SubscriptionError):
    """Raised when an update would move a subscription's schedule backwards."""

    def __init__(
        self,
        subscription_id: str,
        *,
        current: dt.datetime,
        proposed: dt.datetime,
    ) -> None:
        """Record both timestamps for diagnostics."""
        self.subscription_id = subscription_id
        self.current = current
        self.proposed = proposed
        super().__init__(
            f"Refusing to rewind subscription {subscription_id} from "
            f"{current.isoformat()} to {proposed.isoformat()}"
        )


class TimezoneAwareRequiredError(ValueError):
    """Raised when datetime inputs lack timezone information."""

    def __init__(self, context: str) -> None:
        """Attach a consistent message for the failing context."""
        super().__init__(f"{context} must be timezone aware")

    @classmethod
    def for_column(cls) -> TimezoneAwareRequiredError:
        """Return an error indicating a bound column value was naive."""
        return cls("subscription timestamp values")
