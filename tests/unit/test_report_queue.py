"""Unit tests for the Dramatiq report queue adapter."""

from __future__ import annotations

import pytest
from dramatiq.brokers.stub import StubBroker
from dramatiq.message import Message

from lookout.dispatch import (
    DramatiqReportQueue,
    ReportQueue,
    ReportTopic,
    TopicNotFoundError,
)

TOPIC = "report-requests"


@pytest.fixture
def broker() -> StubBroker:
    """Return an isolated stub broker."""
    return StubBroker()


class TestDramatiqReportQueue:
    """Tests for topic resolution and publishing."""

    def test_satisfies_queue_protocol(self, broker: StubBroker) -> None:
        """The adapter implements the queue port."""
        assert isinstance(DramatiqReportQueue(broker), ReportQueue)

    @pytest.mark.asyncio
    async def test_auto_create_declares_missing_queue(
        self, broker: StubBroker
    ) -> None:
        """Resolving an unknown topic declares it when allowed."""
        queue = DramatiqReportQueue(broker)

        topic = await queue.resolve_topic(TOPIC, auto_create=True)

        assert isinstance(topic, ReportTopic)
        assert topic.name == TOPIC
        assert TOPIC in broker.get_declared_queues()

    @pytest.mark.asyncio
    async def test_missing_topic_without_auto_create_raises(
        self, broker: StubBroker
    ) -> None:
        """Absent topics are an error when creation is disabled."""
        queue = DramatiqReportQueue(broker)

        with pytest.raises(TopicNotFoundError) as excinfo:
            await queue.resolve_topic(TOPIC, auto_create=False)

        assert excinfo.value.name == TOPIC

    @pytest.mark.asyncio
    async def test_existing_topic_resolves_without_auto_create(
        self, broker: StubBroker
    ) -> None:
        """Declared queues resolve even when creation is disabled."""
        broker.declare_queue(TOPIC)
        queue = DramatiqReportQueue(broker)

        topic = await queue.resolve_topic(TOPIC, auto_create=False)

        assert topic.name == TOPIC

    @pytest.mark.asyncio
    async def test_publish_enqueues_message_for_report_actor(
        self, broker: StubBroker
    ) -> None:
        """Payloads travel as the ``request`` keyword of the report actor."""
        queue = DramatiqReportQueue(broker, actor_name="render_report")
        topic = await queue.resolve_topic(TOPIC)

        message_id = await topic.publish(
            {"subscriptionId": "a", "params": {"from": "x", "to": "y"}}
        )

        broker_queue = broker.queues[TOPIC]
        assert broker_queue.qsize() == 1
        message = Message.decode(broker_queue.get_nowait())
        assert message.message_id == message_id
        assert message.actor_name == "render_report"
        assert message.queue_name == TOPIC
        assert message.kwargs == {
            "request": {"subscriptionId": "a", "params": {"from": "x", "to": "y"}}
        }

    @pytest.mark.asyncio
    async def test_each_publish_gets_a_distinct_message_id(
        self, broker: StubBroker
    ) -> None:
        """Publishing the same payload twice yields two messages."""
        topic = await DramatiqReportQueue(broker).resolve_topic(TOPIC)

        first = await topic.publish({"subscriptionId": "a"})
        second = await topic.publish({"subscriptionId": "a"})

        assert first != second
        assert broker.queues[TOPIC].qsize() == 2  # noqa: PLR2004
