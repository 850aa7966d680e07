"""Subscription store port and its SQLAlchemy adapter."""

from __future__ import annotations

import typing as typ

from sqlalchemy import select

from lookout.logging import get_logger, log_debug

from .errors import NonMonotonicTimestampError, SubscriptionNotFoundError
from .storage import ReportSubscription

if typ.TYPE_CHECKING:
    import datetime as dt

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from .models import Subscription

logger = get_logger(__name__)


@typ.runtime_checkable
class SubscriptionStore(typ.Protocol):
    """Durable store holding report subscriptions."""

    async def fetch_due(
        self, as_of: dt.datetime, *, active_only: bool = True
    ) -> list[Subscription]:
        """Return subscriptions whose next report is due at ``as_of``."""
        ...

    async def update(self, subscription: Subscription) -> None:
        """Persist the subscription's advanced schedule."""
        ...


class SqlAlchemySubscriptionStore:
    """Store subscriptions in a relational database scoped to a namespace.

    Parameters
    ----------
    session_factory
        Async session factory bound to the subscription database.
    namespace
        Namespace every query and update is restricted to.

    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        namespace: str = "default",
    ) -> None:
        """Configure the store with its session factory and namespace."""
        self._session_factory = session_factory
        self._namespace = namespace

    @property
    def namespace(self) -> str:
        """Return the namespace this store is scoped to."""
        return self._namespace

    async def fetch_due(
        self, as_of: dt.datetime, *, active_only: bool = True
    ) -> list[Subscription]:
        """Return subscriptions with ``next_report_timestamp <= as_of``.

        Parameters
        ----------
        as_of
            Timezone-aware reference instant.
        active_only
            When true, inactive subscriptions are excluded.

        Returns
        -------
        list[Subscription]
            Domain snapshots ordered by due time, oldest first.

        """
        stmt = select(ReportSubscription).where(
            ReportSubscription.namespace == self._namespace,
            ReportSubscription.next_report_timestamp <= as_of,
        )
        if active_only:
            stmt = stmt.where(ReportSubscription.active.is_(True))
        stmt = stmt.order_by(
            ReportSubscription.next_report_timestamp, ReportSubscription.id
        )

        async with self._session_factory() as session:
            rows = (await session.scalars(stmt)).all()
            subscriptions = [row.to_domain() for row in rows]

        log_debug(
            logger,
            "Fetched %d due subscription(s) in namespace %s as of %s",
            len(subscriptions),
            self._namespace,
            as_of.isoformat(),
        )
        return subscriptions

    async def update(self, subscription: Subscription) -> None:
        """Write the subscription's ``next_report_timestamp`` back to the store.

        Raises
        ------
        SubscriptionNotFoundError
            If the subscription no longer exists in this namespace.
        NonMonotonicTimestampError
            If the new timestamp is earlier than the stored one.

        """
        async with self._session_factory() as session, session.begin():
            row = await session.get(ReportSubscription, subscription.id)
            if row is None or row.namespace != self._namespace:
                raise SubscriptionNotFoundError(subscription.id)
            if subscription.next_report_timestamp < row.next_report_timestamp:
                raise NonMonotonicTimestampError(
                    subscription.id,
                    current=row.next_report_timestamp,
                    proposed=subscription.next_report_timestamp,
                )
            row.next_report_timestamp = subscription.next_report_timestamp
