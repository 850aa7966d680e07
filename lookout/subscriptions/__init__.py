"""Report subscriptions: domain model, persistence and store adapters."""

from __future__ import annotations

from .errors import (
    NonMonotonicTimestampError,
    SubscriptionConfigError,
    SubscriptionError,
    SubscriptionNotFoundError,
    TimezoneAwareRequiredError,
)
from .models import Subscription
from .storage import ReportSubscription, init_subscription_storage
from .store import SqlAlchemySubscriptionStore, SubscriptionStore

__all__ = [
    "NonMonotonicTimestampError",
    "ReportSubscription",
    "SqlAlchemySubscriptionStore",
    "Subscription",
    "SubscriptionConfigError",
    "SubscriptionError",
    "SubscriptionNotFoundError",
    "SubscriptionStore",
    "TimezoneAwareRequiredError",
    "init_subscription_storage",
]
