"""Wire dispatcher dependencies from configuration."""

from __future__ import annotations

import contextlib
import typing as typ

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from lookout.dispatch._broker import ensure_broker_configured
from lookout.dispatch.queue import DramatiqReportQueue
from lookout.dispatch.readiness import TilesetReadinessChecker
from lookout.dispatch.service import DispatcherDependencies, SubscriptionDispatcher
from lookout.storage import HttpBlobStore, create_blob_store
from lookout.subscriptions import SqlAlchemySubscriptionStore, init_subscription_storage

if typ.TYPE_CHECKING:
    import datetime as dt

    import dramatiq
    from sqlalchemy.ext.asyncio import AsyncSession

    from lookout.dispatch.config import DispatchConfig
    from lookout.dispatch.service import DispatchSummary
    from lookout.storage import BlobStore


def build_dispatcher(
    config: DispatchConfig,
    *,
    session_factory: async_sessionmaker[AsyncSession],
    blob_store: BlobStore,
    broker: dramatiq.Broker,
) -> SubscriptionDispatcher:
    """Build a SubscriptionDispatcher from explicit collaborators.

    Parameters
    ----------
    config
        Dispatch configuration.
    session_factory
        Async session factory for the subscription database.
    blob_store
        Object store serving tileset metadata.
    broker
        Dramatiq broker report requests are published through.

    Returns
    -------
    SubscriptionDispatcher
        Dispatcher with store, readiness checker and queue wired in.

    """
    dependencies = DispatcherDependencies(
        store=SqlAlchemySubscriptionStore(session_factory, namespace=config.namespace),
        readiness=TilesetReadinessChecker(
            blob_store,
            bucket=config.storage_bucket,
            tilesets_path=config.tilesets_path,
        ),
        queue=DramatiqReportQueue(broker, actor_name=config.report_actor),
    )
    return SubscriptionDispatcher(dependencies, config)


@contextlib.asynccontextmanager
async def open_dispatcher(
    config: DispatchConfig,
) -> typ.AsyncIterator[SubscriptionDispatcher]:
    """Yield a dispatcher whose resources are released on exit.

    Creates the database engine (ensuring the subscription table exists), the
    object store client and the broker for one dispatch cycle.
    """
    broker = ensure_broker_configured(config.broker_url)
    engine = create_async_engine(config.database_url)
    blob_store = create_blob_store(config)
    try:
        await init_subscription_storage(engine)
        session_factory = async_sessionmaker(engine, expire_on_commit=False)
        yield build_dispatcher(
            config,
            session_factory=session_factory,
            blob_store=blob_store,
            broker=broker,
        )
    finally:
        if isinstance(blob_store, HttpBlobStore):
            await blob_store.aclose()
        await engine.dispose()


async def run_dispatch_cycle(
    config: DispatchConfig,
    as_of: dt.datetime | None = None,
) -> DispatchSummary:
    """Run a single dispatch cycle with freshly built dependencies."""
    async with open_dispatcher(config) as dispatcher:
        return await dispatcher.run(as_of)
