"""Unit tests for the dispatch Dramatiq actor."""

from __future__ import annotations

import asyncio
import datetime as dt
import typing as typ

import pytest
from dramatiq.message import Message

from lookout.common.time import parse_aware_iso
from lookout.dispatch import BatchDispatchError
from lookout.dispatch.actor import dispatch_due_subscriptions_job
from tests.helpers.subscriptions import (
    TEST_TOPIC,
    insert_subscription,
    open_session_factory,
    set_dispatch_env,
    write_tileset_config,
)

if typ.TYPE_CHECKING:
    from pathlib import Path

    from dramatiq.brokers.stub import StubBroker

DUE = dt.datetime(2024, 3, 10, tzinfo=dt.UTC)


async def _seed(database_url: str, *timestamps: dt.datetime) -> list[str]:
    async with open_session_factory(database_url) as factory:
        return [
            await insert_subscription(factory, next_report_timestamp=timestamp)
            for timestamp in timestamps
        ]


class TestParseAwareIso:
    """Tests for reference time parsing shared by the entrypoints."""

    def test_none_passes_through(self) -> None:
        """Omitting the reference time means "now"."""
        assert parse_aware_iso(None) is None

    def test_offset_is_required(self) -> None:
        """Naive timestamps are rejected with guidance."""
        with pytest.raises(ValueError, match="as_of_iso must include timezone"):
            parse_aware_iso("2024-03-10T00:00:00", name="as_of_iso")

    def test_zulu_suffix_is_accepted(self) -> None:
        """``Z`` is accepted as UTC."""
        assert parse_aware_iso("2024-03-10T00:00:00Z") == DUE


class TestDispatchDueSubscriptionsJob:
    """Tests for the ``dispatch_due_subscriptions_job`` actor."""

    def test_runs_a_cycle_and_returns_counts(
        self,
        monkeypatch: pytest.MonkeyPatch,
        tmp_path: Path,
        stub_broker: StubBroker,
    ) -> None:
        """The actor dispatches due subscriptions and reports counts."""
        database_url = set_dispatch_env(monkeypatch, tmp_path)
        asyncio.run(_seed(database_url, DUE, DUE + dt.timedelta(days=30)))
        write_tileset_config(tmp_path / "blobs", "fishing-effort", "2024-03-10")

        result = dispatch_due_subscriptions_job.fn(as_of_iso="2024-03-10T12:00:00Z")

        assert result == {"published": 1, "not_ready": 0, "failed": 0}
        assert stub_broker.queues[TEST_TOPIC].qsize() == 1

    def test_strict_mode_raises_batch_error(
        self,
        monkeypatch: pytest.MonkeyPatch,
        tmp_path: Path,
        stub_broker: StubBroker,
    ) -> None:
        """With strict mode on, failed pipelines fail the job."""
        del stub_broker
        database_url = set_dispatch_env(monkeypatch, tmp_path)
        monkeypatch.setenv("LOOKOUT_FAIL_ON_PIPELINE_ERROR", "true")
        (sub_id,) = asyncio.run(_seed(database_url, DUE))

        with pytest.raises(BatchDispatchError) as excinfo:
            dispatch_due_subscriptions_job.fn(as_of_iso="2024-03-10T12:00:00Z")

        assert excinfo.value.subscription_ids == (sub_id,)

    def test_send_enqueues_trigger_message(self) -> None:
        """Schedulers trigger cycles by sending a message to the actor."""
        broker = dispatch_due_subscriptions_job.broker
        queue_name = dispatch_due_subscriptions_job.queue_name
        broker.flush(queue_name)

        dispatch_due_subscriptions_job.send(as_of_iso="2024-03-10T00:00:00Z")

        message = Message.decode(broker.queues[queue_name].get_nowait())
        assert message.actor_name == "dispatch_due_subscriptions_job"
        assert message.kwargs == {"as_of_iso": "2024-03-10T00:00:00Z"}
