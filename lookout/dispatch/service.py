"""Dispatch loop for due report subscriptions.

This module provides the SubscriptionDispatcher class which runs one dispatch
cycle: fetch due subscriptions, then for each one independently check tileset
readiness, publish a report request and advance its schedule.

Usage
-----
Wire the collaborators and run a cycle:

>>> dependencies = DispatcherDependencies(
...     store=SqlAlchemySubscriptionStore(session_factory, namespace="prod"),
...     readiness=TilesetReadinessChecker(
...         blob_store, bucket="tiles", tilesets_path="tilesets"
...     ),
...     queue=DramatiqReportQueue(broker),
... )
>>> dispatcher = SubscriptionDispatcher(dependencies, config)
>>> summary = await dispatcher.run()
>>> summary.raise_for_failures()

"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import datetime as dt
import enum
import time
import typing as typ

from lookout.common.time import ensure_utc, utcnow
from lookout.dispatch.errors import BatchDispatchError
from lookout.dispatch.observability import DispatchEventLogger
from lookout.dispatch.recurrence import RecurrenceCalculator, Recurrency
from lookout.dispatch.request import build_report_request
from lookout.logging import get_logger, log_debug, log_info

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from lookout.dispatch.config import DispatchConfig
    from lookout.dispatch.queue import ReportQueue, ReportTopic
    from lookout.dispatch.readiness import ReadinessChecker
    from lookout.subscriptions.models import Subscription
    from lookout.subscriptions.store import SubscriptionStore

logger = get_logger(__name__)


class DispatchOutcome(enum.StrEnum):
    """Terminal, non-failing outcomes of a subscription pipeline."""

    PUBLISHED = "published"
    NOT_READY = "not_ready"


@dc.dataclass(frozen=True, slots=True)
class DispatcherDependencies:
    """Collaborators the dispatcher drives.

    Attributes
    ----------
    store
        Subscription store queried for due subscriptions and updated with
        advanced schedules.
    readiness
        Checker deciding whether tileset data covers a report window.
    queue
        Queue resolving the report topic requests are published to.

    """

    store: SubscriptionStore
    readiness: ReadinessChecker
    queue: ReportQueue


@dc.dataclass(frozen=True, slots=True)
class SubscriptionFailure:
    """A subscription whose pipeline raised."""

    subscription_id: str
    error: Exception


@dc.dataclass(slots=True)
class DispatchSummary:
    """Outcome of one dispatch cycle.

    Attributes
    ----------
    as_of
        Reference instant subscriptions were checked against.
    published
        Subscriptions whose request was published and schedule persisted.
    not_ready
        Subscriptions left untouched because data was not available yet.
    failures
        Subscriptions whose pipeline raised, with the raised exception.

    """

    as_of: dt.datetime
    published: list[str] = dc.field(default_factory=list)
    not_ready: list[str] = dc.field(default_factory=list)
    failures: list[SubscriptionFailure] = dc.field(default_factory=list)

    @property
    def attempted(self) -> int:
        """Return how many due subscriptions the cycle processed."""
        return len(self.published) + len(self.not_ready) + len(self.failures)

    @property
    def ok(self) -> bool:
        """Return True when no subscription pipeline failed."""
        return not self.failures

    def raise_for_failures(self) -> None:
        """Raise ``BatchDispatchError`` if any pipeline failed."""
        if self.failures:
            raise BatchDispatchError(
                {failure.subscription_id: failure.error for failure in self.failures}
            )


class SubscriptionDispatcher:
    """Runs dispatch cycles over due report subscriptions.

    Each due subscription gets its own pipeline:

    1. Check the tileset covers the report window; stop silently if not
    2. Build the report request for the window
    3. Publish it to the report topic
    4. Persist the advanced ``next_report_timestamp``

    Pipelines run concurrently and a failing pipeline never cancels its
    siblings. Steps inside a pipeline are sequential, so a request is always
    published before the schedule moves.

    """

    def __init__(
        self,
        dependencies: DispatcherDependencies,
        config: DispatchConfig,
        *,
        event_logger: DispatchEventLogger | None = None,
        clock: cabc.Callable[[], dt.datetime] = utcnow,
    ) -> None:
        """Configure the dispatcher.

        Parameters
        ----------
        dependencies
            Store, readiness checker and queue grouped into one object.
        config
            Dispatch configuration (topic name, filters, concurrency, zone).
        event_logger
            Structured event logger; a default one is created when omitted.
        clock
            Source of the current time, used for due checks and request
            timestamps.

        """
        self._store = dependencies.store
        self._readiness = dependencies.readiness
        self._queue = dependencies.queue
        self._config = config
        self._event_logger = event_logger or DispatchEventLogger()
        self._clock = clock
        self._calculator = RecurrenceCalculator(config.tzinfo)

    async def run(self, as_of: dt.datetime | None = None) -> DispatchSummary:
        """Run one dispatch cycle.

        Parameters
        ----------
        as_of
            Reference instant for the due check; defaults to now.

        Returns
        -------
        DispatchSummary
            Per-subscription outcomes. Pipeline failures are reported here
            rather than raised.

        Raises
        ------
        Exception
            Whatever the subscription query or topic resolution raised; these
            abort the whole cycle.

        """
        reference = ensure_utc(as_of) if as_of is not None else self._clock()
        started = time.monotonic()
        self._event_logger.log_batch_started(
            as_of=reference, namespace=self._config.namespace
        )

        subscriptions = await self._store.fetch_due(
            reference, active_only=self._config.active_only
        )
        summary = DispatchSummary(as_of=reference)
        if subscriptions:
            topic = await self._queue.resolve_topic(
                self._config.reports_topic, auto_create=True
            )
            gathered = await self._fan_out(subscriptions, topic)
            self._collect(summary, subscriptions, gathered)
        else:
            log_info(logger, "No subscriptions due as of %s", reference.isoformat())

        self._event_logger.log_batch_completed(
            due=len(subscriptions),
            published=len(summary.published),
            not_ready=len(summary.not_ready),
            failed=len(summary.failures),
            duration=dt.timedelta(seconds=time.monotonic() - started),
        )
        return summary

    async def _fan_out(
        self,
        subscriptions: list[Subscription],
        topic: ReportTopic,
    ) -> list[DispatchOutcome | BaseException]:
        """Run every pipeline, bounded by ``max_concurrency``, and join all."""
        semaphore = asyncio.Semaphore(self._config.max_concurrency)

        async def bounded(subscription: Subscription) -> DispatchOutcome:
            async with semaphore:
                return await self.dispatch_subscription(subscription, topic)

        return await asyncio.gather(
            *(bounded(subscription) for subscription in subscriptions),
            return_exceptions=True,
        )

    def _collect(
        self,
        summary: DispatchSummary,
        subscriptions: list[Subscription],
        gathered: list[DispatchOutcome | BaseException],
    ) -> None:
        """Sort gathered results into the summary.

        Raises
        ------
        BaseException
            Re-raised immediately for system-level exceptions (e.g.,
            KeyboardInterrupt).

        """
        for subscription, result in zip(subscriptions, gathered, strict=True):
            if isinstance(result, Exception):
                self._event_logger.log_subscription_failed(
                    subscription_id=subscription.id, error=result
                )
                summary.failures.append(
                    SubscriptionFailure(subscription_id=subscription.id, error=result)
                )
            elif isinstance(result, BaseException):
                raise result
            elif result is DispatchOutcome.PUBLISHED:
                summary.published.append(subscription.id)
            else:
                summary.not_ready.append(subscription.id)

    async def dispatch_subscription(
        self,
        subscription: Subscription,
        topic: ReportTopic,
    ) -> DispatchOutcome:
        """Drive a single subscription through its pipeline.

        Parameters
        ----------
        subscription
            Due subscription owned by this pipeline.
        topic
            Shared report topic handle.

        Returns
        -------
        DispatchOutcome
            ``NOT_READY`` when nothing was changed, ``PUBLISHED`` when the
            request went out and the schedule was persisted.

        """
        # Rejects unknown cadences before any I/O happens.
        Recurrency.parse(subscription.recurrency)

        log_debug(
            logger,
            "[Subscription %s] Checking if the tileset data is ready",
            subscription.id,
        )
        if not await self._readiness.is_ready(subscription):
            self._event_logger.log_subscription_not_ready(
                subscription_id=subscription.id,
                tileset=subscription.tileset,
                window_end=subscription.next_report_timestamp,
            )
            return DispatchOutcome.NOT_READY

        window = self._calculator.window(subscription)
        request = build_report_request(subscription, window, now=self._clock())
        log_debug(
            logger,
            "[Subscription %s] Publishing report request to %s",
            subscription.id,
            topic.name,
        )
        message_id = await topic.publish(request.to_payload())

        next_report_timestamp = self._calculator.advance(subscription)
        await self._store.update(
            subscription.with_next_report_timestamp(next_report_timestamp)
        )
        self._event_logger.log_subscription_published(
            subscription_id=subscription.id,
            message_id=message_id,
            window=window,
            next_report_timestamp=next_report_timestamp,
        )
        return DispatchOutcome.PUBLISHED
