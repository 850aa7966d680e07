"""Report request queue port and its Dramatiq adapter.

Report requests are appended to a named topic. With Dramatiq the topic is a
broker queue and each request becomes a message addressed to the downstream
report actor, carrying the request payload as its ``request`` keyword.

Usage
-----
>>> from dramatiq.brokers.stub import StubBroker
>>> queue = DramatiqReportQueue(StubBroker())
>>> topic = await queue.resolve_topic("report-requests", auto_create=True)
>>> message_id = await topic.publish({"tileset": "fishing"})

"""

from __future__ import annotations

import asyncio
import typing as typ

from dramatiq.message import Message

from lookout.dispatch.errors import TopicNotFoundError
from lookout.logging import get_logger, log_info

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    import dramatiq

logger = get_logger(__name__)

DEFAULT_REPORT_ACTOR = "generate_report"


@typ.runtime_checkable
class ReportTopic(typ.Protocol):
    """Append-only destination for report requests."""

    @property
    def name(self) -> str:
        """Return the topic name."""
        ...

    async def publish(self, payload: cabc.Mapping[str, typ.Any]) -> str:
        """Publish one request and return the assigned message id."""
        ...


@typ.runtime_checkable
class ReportQueue(typ.Protocol):
    """Resolves report topics by name."""

    async def resolve_topic(
        self, name: str, *, auto_create: bool = True
    ) -> ReportTopic:
        """Return the topic called ``name``, creating it when allowed.

        Raises
        ------
        TopicNotFoundError
            If the topic is absent and ``auto_create`` is false.

        """
        ...


class DramatiqReportTopic:
    """Publish report requests onto a declared Dramatiq queue."""

    def __init__(
        self, broker: dramatiq.Broker, name: str, *, actor_name: str
    ) -> None:
        """Bind the topic to its broker, queue and receiving actor."""
        self._broker = broker
        self._name = name
        self._actor_name = actor_name

    @property
    def name(self) -> str:
        """Return the queue name."""
        return self._name

    async def publish(self, payload: cabc.Mapping[str, typ.Any]) -> str:
        """Enqueue ``payload`` for the report actor and return the message id."""
        message = Message(
            queue_name=self._name,
            actor_name=self._actor_name,
            args=(),
            kwargs={"request": dict(payload)},
            options={},
        )
        enqueued = await asyncio.to_thread(self._broker.enqueue, message)
        return enqueued.message_id


class DramatiqReportQueue:
    """Resolve report topics as queues on a Dramatiq broker.

    Parameters
    ----------
    broker
        Broker the queues live on.
    actor_name
        Name of the downstream actor that consumes report requests.

    """

    def __init__(
        self,
        broker: dramatiq.Broker,
        *,
        actor_name: str = DEFAULT_REPORT_ACTOR,
    ) -> None:
        """Configure the queue with its broker and consumer actor name."""
        self._broker = broker
        self._actor_name = actor_name

    async def resolve_topic(
        self, name: str, *, auto_create: bool = True
    ) -> DramatiqReportTopic:
        """Return a topic handle for ``name``, declaring the queue if needed."""
        if name not in self._broker.get_declared_queues():
            if not auto_create:
                raise TopicNotFoundError(name)
            await asyncio.to_thread(self._broker.declare_queue, name)
            log_info(logger, "Declared report topic %s", name)
        return DramatiqReportTopic(self._broker, name, actor_name=self._actor_name)
