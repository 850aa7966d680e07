"""Unit tests for the SQLAlchemy subscription store."""

from __future__ import annotations

import datetime as dt
import typing as typ

import pytest
from sqlalchemy.exc import StatementError

from lookout.subscriptions import (
    NonMonotonicTimestampError,
    SqlAlchemySubscriptionStore,
    Subscription,
    SubscriptionNotFoundError,
    SubscriptionStore,
    TimezoneAwareRequiredError,
)
from tests.helpers.subscriptions import (
    TEST_NAMESPACE,
    insert_subscription,
    load_next_report_timestamp,
)

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

AS_OF = dt.datetime(2024, 3, 10, 12, tzinfo=dt.UTC)


@pytest.fixture
def store(
    session_factory: async_sessionmaker[AsyncSession],
) -> SqlAlchemySubscriptionStore:
    """Return a store scoped to the test namespace."""
    return SqlAlchemySubscriptionStore(session_factory, namespace=TEST_NAMESPACE)


class TestFetchDue:
    """Tests for ``SqlAlchemySubscriptionStore.fetch_due``."""

    def test_satisfies_store_protocol(
        self, store: SqlAlchemySubscriptionStore
    ) -> None:
        """The adapter implements the store port."""
        assert isinstance(store, SubscriptionStore)

    @pytest.mark.asyncio
    async def test_returns_only_due_subscriptions_oldest_first(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        store: SqlAlchemySubscriptionStore,
    ) -> None:
        """Subscriptions due at or before ``as_of`` are returned in order."""
        later = await insert_subscription(session_factory, next_report_timestamp=AS_OF)
        earlier = await insert_subscription(
            session_factory, next_report_timestamp=AS_OF - dt.timedelta(days=2)
        )
        await insert_subscription(
            session_factory, next_report_timestamp=AS_OF + dt.timedelta(seconds=1)
        )

        due = await store.fetch_due(AS_OF)

        assert [sub.id for sub in due] == [earlier, later]
        assert all(isinstance(sub, Subscription) for sub in due)
        assert due[0].next_report_timestamp.tzinfo is not None

    @pytest.mark.asyncio
    async def test_accepts_non_utc_reference(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        store: SqlAlchemySubscriptionStore,
    ) -> None:
        """The due comparison is made on instants, not wall-clock strings."""
        sub_id = await insert_subscription(session_factory, next_report_timestamp=AS_OF)
        tokyo = dt.timezone(dt.timedelta(hours=9))

        due = await store.fetch_due(AS_OF.astimezone(tokyo))

        assert [sub.id for sub in due] == [sub_id]

    @pytest.mark.asyncio
    async def test_excludes_inactive_when_active_only(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        store: SqlAlchemySubscriptionStore,
    ) -> None:
        """Inactive subscriptions are filtered unless asked for."""
        active = await insert_subscription(session_factory, next_report_timestamp=AS_OF)
        inactive = await insert_subscription(
            session_factory, next_report_timestamp=AS_OF, active=False
        )

        filtered = await store.fetch_due(AS_OF)
        unfiltered = await store.fetch_due(AS_OF, active_only=False)

        assert [sub.id for sub in filtered] == [active]
        assert {sub.id for sub in unfiltered} == {active, inactive}

    @pytest.mark.asyncio
    async def test_ignores_other_namespaces(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        store: SqlAlchemySubscriptionStore,
    ) -> None:
        """Queries are scoped to the store's namespace."""
        await insert_subscription(
            session_factory, next_report_timestamp=AS_OF, namespace="someone-else"
        )

        assert await store.fetch_due(AS_OF) == []

    @pytest.mark.asyncio
    async def test_returns_domain_base(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        store: SqlAlchemySubscriptionStore,
    ) -> None:
        """The stored JSON configuration is exposed on the domain object."""
        await insert_subscription(
            session_factory,
            next_report_timestamp=AS_OF,
            recurrency="monthly",
            tileset="carriers",
            params={"flag": "ESP"},
        )

        (subscription,) = await store.fetch_due(AS_OF)

        assert subscription.recurrency == "monthly"
        assert subscription.tileset == "carriers"
        assert subscription.params == {"flag": "ESP"}
        assert subscription.namespace == TEST_NAMESPACE


class TestUpdate:
    """Tests for ``SqlAlchemySubscriptionStore.update``."""

    @pytest.mark.asyncio
    async def test_persists_advanced_timestamp(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        store: SqlAlchemySubscriptionStore,
    ) -> None:
        """The new ``next_report_timestamp`` is written back."""
        await insert_subscription(session_factory, next_report_timestamp=AS_OF)
        (subscription,) = await store.fetch_due(AS_OF)
        advanced = AS_OF + dt.timedelta(days=1)

        await store.update(subscription.with_next_report_timestamp(advanced))

        stored = await load_next_report_timestamp(session_factory, subscription.id)
        assert stored == advanced

    @pytest.mark.asyncio
    async def test_refuses_to_rewind(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        store: SqlAlchemySubscriptionStore,
    ) -> None:
        """Schedules never move backwards."""
        await insert_subscription(session_factory, next_report_timestamp=AS_OF)
        (subscription,) = await store.fetch_due(AS_OF)

        with pytest.raises(NonMonotonicTimestampError) as excinfo:
            await store.update(
                subscription.with_next_report_timestamp(AS_OF - dt.timedelta(days=1))
            )

        assert excinfo.value.current == AS_OF
        stored = await load_next_report_timestamp(session_factory, subscription.id)
        assert stored == AS_OF

    @pytest.mark.asyncio
    async def test_missing_subscription_raises(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        store: SqlAlchemySubscriptionStore,
    ) -> None:
        """Updating a subscription from another namespace fails."""
        sub_id = await insert_subscription(
            session_factory, next_report_timestamp=AS_OF, namespace="elsewhere"
        )
        subscription = Subscription(
            id=sub_id,
            recurrency="daily",
            next_report_timestamp=AS_OF + dt.timedelta(days=1),
            base={"tileset": "fishing-effort"},
            namespace=TEST_NAMESPACE,
        )

        with pytest.raises(SubscriptionNotFoundError):
            await store.update(subscription)

    @pytest.mark.asyncio
    async def test_naive_timestamp_is_rejected(
        self,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        """Naive datetimes cannot be bound to the timestamp column."""
        with pytest.raises(StatementError) as excinfo:
            await insert_subscription(
                session_factory,
                next_report_timestamp=dt.datetime(2024, 3, 10),  # noqa: DTZ001
            )

        assert isinstance(excinfo.value.__cause__, TimezoneAwareRequiredError)
