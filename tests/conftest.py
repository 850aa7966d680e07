"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import typing as typ

import dramatiq
import pytest
import pytest_asyncio
from dramatiq.brokers.stub import StubBroker
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from lookout.subscriptions import init_subscription_storage

if typ.TYPE_CHECKING:
    from pathlib import Path

_LOOKOUT_ENV_VARS = (
    "LOOKOUT_ENVIRONMENT",
    "LOOKOUT_REPORTS_TOPIC",
    "LOOKOUT_DATABASE_URL",
    "LOOKOUT_DATASTORE_NAMESPACE",
    "LOOKOUT_STORAGE_BUCKET",
    "LOOKOUT_STORAGE_TILESETS_PATH",
    "LOOKOUT_STORAGE_BACKEND",
    "LOOKOUT_STORAGE_BASE_URL",
    "LOOKOUT_STORAGE_ROOT",
    "LOOKOUT_STORAGE_TOKEN",
    "LOOKOUT_DISPATCH_ACTIVE_ONLY",
    "LOOKOUT_DISPATCH_MAX_CONCURRENCY",
    "LOOKOUT_TIMEZONE",
    "LOOKOUT_REPORT_ACTOR",
    "LOOKOUT_FAIL_ON_PIPELINE_ERROR",
    "LOOKOUT_BROKER_URL",
    "LOOKOUT_ALLOW_STUB_BROKER",
    "LOOKOUT_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_lookout_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start every test without ``LOOKOUT_*`` settings from the host."""
    for key in _LOOKOUT_ENV_VARS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def stub_broker() -> StubBroker:
    """Install and return a fresh Dramatiq stub broker."""
    broker = StubBroker()
    dramatiq.set_broker(broker)
    return broker


async def _setup_sqlite(tmp_path: Path) -> AsyncEngine:
    """Create a SQLite engine with the subscription table in place."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'lookout_test.db'}")
    try:
        await init_subscription_storage(engine)
    except Exception:
        await engine.dispose()
        raise
    return engine


@pytest_asyncio.fixture
async def session_factory(
    tmp_path: Path,
) -> typ.AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Yield a fresh async session factory backed by sqlite."""
    engine = await _setup_sqlite(tmp_path)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    try:
        yield factory
    finally:
        await engine.dispose()
