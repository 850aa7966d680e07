"""Typed domain model for report subscriptions."""

from __future__ import annotations

import collections.abc as cabc
import dataclasses
import typing as typ

from .errors import SubscriptionConfigError

if typ.TYPE_CHECKING:
    import datetime as dt


@dataclasses.dataclass(frozen=True, slots=True)
class Subscription:
    """A recurring report request and the instant its next report is due.

    Attributes
    ----------
    id
        Store-assigned stable identifier.
    recurrency
        Raw cadence value as persisted (``daily``, ``weekly`` or ``monthly``).
        Kept as a string so an unknown value fails only this subscription.
    next_report_timestamp
        Timezone-aware instant at which the next report becomes due.
    base
        Request configuration; holds ``tileset``, ``params`` and any fixed
        fields copied into every emitted request.
    active
        Whether the subscription is eligible for dispatch.
    namespace
        Store namespace the subscription belongs to.

    """

    id: str
    recurrency: str
    next_report_timestamp: dt.datetime
    base: cabc.Mapping[str, typ.Any]
    active: bool = True
    namespace: str = "default"

    @property
    def tileset(self) -> str:
        """Return the identifier of the tileset the report queries."""
        tileset = self.base.get("tileset")
        if tileset is None:
            raise SubscriptionConfigError.missing_field(self.id, "base.tileset")
        if not isinstance(tileset, str) or not tileset.strip():
            raise SubscriptionConfigError.invalid_field(
                self.id, "base.tileset", "a non-empty string"
            )
        return tileset

    @property
    def params(self) -> cabc.Mapping[str, typ.Any]:
        """Return report-type specific parameters (empty when absent)."""
        params = self.base.get("params")
        if params is None:
            return {}
        if not isinstance(params, cabc.Mapping):
            raise SubscriptionConfigError.invalid_field(
                self.id, "base.params", "an object"
            )
        return params

    def with_next_report_timestamp(self, timestamp: dt.datetime) -> Subscription:
        """Return a copy scheduled for ``timestamp``."""
        return dataclasses.replace(self, next_report_timestamp=timestamp)
