"""Dispatch due report subscriptions as report requests.

The dispatcher runs periodically. Each cycle fetches subscriptions whose
``next_report_timestamp`` has passed, checks that the tileset each one queries
holds data up to that timestamp, publishes a report request to the report
topic and advances the subscription to the end of its next calendar unit.

The Dramatiq actor triggering cycles lives in ``lookout.dispatch.actor`` and
is imported separately by workers, since importing it configures a broker.
"""

from __future__ import annotations

from lookout.dispatch.errors import (
    BatchDispatchError,
    DispatchConfigError,
    DispatchError,
    TilesetMetadataError,
    TopicNotFoundError,
    UnknownRecurrencyError,
)
from lookout.dispatch.config import DispatchConfig
from lookout.dispatch.observability import DispatchEventLogger, DispatchEventType
from lookout.dispatch.recurrence import (
    GUARD_OFFSET,
    RecurrenceCalculator,
    Recurrency,
    ReportWindow,
    TimeUnit,
    advance_timestamp,
    end_of_unit,
    subtract_unit,
    window_for,
)
from lookout.dispatch.request import ReportRequest, build_report_request
from lookout.dispatch.readiness import (
    ReadinessChecker,
    TilesetMetadata,
    TilesetReadinessChecker,
    parse_data_end_date,
)
from lookout.dispatch.queue import (
    DramatiqReportQueue,
    DramatiqReportTopic,
    ReportQueue,
    ReportTopic,
)
from lookout.dispatch.service import (
    DispatcherDependencies,
    DispatchOutcome,
    DispatchSummary,
    SubscriptionDispatcher,
    SubscriptionFailure,
)
from lookout.dispatch.factory import (
    build_dispatcher,
    open_dispatcher,
    run_dispatch_cycle,
)

__all__ = [
    "GUARD_OFFSET",
    "BatchDispatchError",
    "DispatchConfig",
    "DispatchConfigError",
    "DispatchError",
    "DispatchEventLogger",
    "DispatchEventType",
    "DispatchOutcome",
    "DispatchSummary",
    "DispatcherDependencies",
    "DramatiqReportQueue",
    "DramatiqReportTopic",
    "ReadinessChecker",
    "RecurrenceCalculator",
    "Recurrency",
    "ReportQueue",
    "ReportRequest",
    "ReportTopic",
    "ReportWindow",
    "SubscriptionDispatcher",
    "SubscriptionFailure",
    "TilesetMetadata",
    "TilesetMetadataError",
    "TilesetReadinessChecker",
    "TimeUnit",
    "TopicNotFoundError",
    "UnknownRecurrencyError",
    "advance_timestamp",
    "build_dispatcher",
    "build_report_request",
    "end_of_unit",
    "open_dispatcher",
    "parse_data_end_date",
    "run_dispatch_cycle",
    "subtract_unit",
    "window_for",
]
