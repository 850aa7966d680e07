"""Report request payloads published for downstream report generation."""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import msgspec

from lookout.common.time import utcnow
from lookout.dispatch.recurrence import Recurrency

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

    from lookout.dispatch.recurrence import ReportWindow
    from lookout.subscriptions.models import Subscription


@dc.dataclass(frozen=True, slots=True)
class ReportRequest:
    """A single request for report generation.

    Attributes
    ----------
    subscription_id
        Subscription the request was generated for.
    timestamp
        When the request was built (not when the report was due).
    recurrency
        Cadence of the originating subscription.
    window
        Time window the report covers.
    base
        Fixed fields copied from the subscription configuration.
    params
        Subscription parameters extended with the window bounds as ``from``
        and ``to``.

    """

    subscription_id: str
    timestamp: dt.datetime
    recurrency: Recurrency
    window: ReportWindow
    base: cabc.Mapping[str, typ.Any]
    params: cabc.Mapping[str, typ.Any]

    def to_payload(self) -> dict[str, typ.Any]:
        """Return the JSON-compatible message body.

        Base fields come first and are overridden by the request fields;
        datetimes are rendered as ISO 8601 strings.
        """
        payload = {
            **self.base,
            "subscriptionId": self.subscription_id,
            "timestamp": self.timestamp,
            "recurrency": self.recurrency,
            "params": dict(self.params),
        }
        return msgspec.to_builtins(payload)


def build_report_request(
    subscription: Subscription,
    window: ReportWindow,
    *,
    now: dt.datetime | None = None,
) -> ReportRequest:
    """Assemble the request for ``subscription`` covering ``window``.

    Parameters
    ----------
    subscription
        Due subscription whose configuration seeds the request.
    window
        Window computed from the subscription's due timestamp.
    now
        Construction instant; defaults to the current time.

    Returns
    -------
    ReportRequest
        Request that leaves ``subscription.base`` untouched.

    """
    return ReportRequest(
        subscription_id=subscription.id,
        timestamp=now or utcnow(),
        recurrency=Recurrency.parse(subscription.recurrency),
        window=window,
        base=dict(subscription.base),
        params={**subscription.params, "from": window.start, "to": window.end},
    )
