"""Emit structured observability events for dispatch cycles.

This module defines event identifiers and a logger wrapper used by
``SubscriptionDispatcher`` to report batch progress and the outcome of each
subscription pipeline.

Usage
-----
>>> event_logger = DispatchEventLogger()
>>> event_logger.log_batch_started(as_of=now, namespace="prod")

"""

from __future__ import annotations

import enum
import typing as typ

from lookout.logging import LogLevel, get_logger, log_event

if typ.TYPE_CHECKING:
    import datetime as dt

    from lookout.dispatch.recurrence import ReportWindow

logger = get_logger(__name__)


class DispatchEventType(enum.StrEnum):
    """Structured log event types for dispatch cycles."""

    BATCH_STARTED = "dispatch.batch.started"
    BATCH_COMPLETED = "dispatch.batch.completed"
    SUBSCRIPTION_NOT_READY = "dispatch.subscription.not_ready"
    SUBSCRIPTION_PUBLISHED = "dispatch.subscription.published"
    SUBSCRIPTION_FAILED = "dispatch.subscription.failed"


class DispatchEventLogger:
    """Emit structured dispatch events via femtologging."""

    def log_batch_started(self, *, as_of: dt.datetime, namespace: str) -> None:
        """Log the start of a dispatch cycle."""
        log_event(
            logger,
            LogLevel.INFO,
            DispatchEventType.BATCH_STARTED,
            as_of=as_of,
            namespace=namespace,
        )

    def log_batch_completed(
        self,
        *,
        due: int,
        published: int,
        not_ready: int,
        failed: int,
        duration: dt.timedelta,
    ) -> None:
        """Log the outcome counts of a finished dispatch cycle.

        Parameters
        ----------
        due
            Number of due subscriptions the cycle attempted.
        published
            Subscriptions whose request was published and schedule advanced.
        not_ready
            Subscriptions skipped because tileset data was not yet available.
        failed
            Subscriptions whose pipeline raised.
        duration
            Elapsed time of the whole cycle.

        """
        log_event(
            logger,
            LogLevel.INFO,
            DispatchEventType.BATCH_COMPLETED,
            due=due,
            published=published,
            not_ready=not_ready,
            failed=failed,
            duration_seconds=duration,
        )

    def log_subscription_not_ready(
        self,
        *,
        subscription_id: str,
        tileset: str,
        window_end: dt.datetime,
    ) -> None:
        """Log that a subscription's tileset does not cover its window yet."""
        log_event(
            logger,
            LogLevel.INFO,
            DispatchEventType.SUBSCRIPTION_NOT_READY,
            subscription_id=subscription_id,
            tileset=tileset,
            window_end=window_end,
        )

    def log_subscription_published(
        self,
        *,
        subscription_id: str,
        message_id: str,
        window: ReportWindow,
        next_report_timestamp: dt.datetime,
    ) -> None:
        """Log a published request together with the advanced schedule."""
        log_event(
            logger,
            LogLevel.INFO,
            DispatchEventType.SUBSCRIPTION_PUBLISHED,
            subscription_id=subscription_id,
            message_id=message_id,
            window_start=window.start,
            window_end=window.end,
            next_report_timestamp=next_report_timestamp,
        )

    def log_subscription_failed(
        self,
        *,
        subscription_id: str,
        error: BaseException,
    ) -> None:
        """Log a failed pipeline with enough context to reprocess it by hand.

        Parameters
        ----------
        subscription_id
            Identifier of the subscription whose pipeline raised.
        error
            Raised exception.

        """
        log_event(
            logger,
            LogLevel.ERROR,
            DispatchEventType.SUBSCRIPTION_FAILED,
            exc_info=error,
            subscription_id=subscription_id,
            error_type=type(error).__name__,
            error_message=str(error),
        )
