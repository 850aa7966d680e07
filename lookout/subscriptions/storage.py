"""Persistence models for report subscriptions."""

from __future__ import annotations

import datetime as dt
import typing as typ
import uuid

from sqlalchemy import JSON, Boolean, DateTime, Index, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from lookout.common.time import utcnow

from .errors import TimezoneAwareRequiredError
from .models import Subscription

if typ.TYPE_CHECKING:
    from sqlalchemy.engine import Dialect
    from sqlalchemy.ext.asyncio import AsyncEngine


class Base(DeclarativeBase):
    """Base declarative class for subscription models."""


class UTCDateTime(TypeDecorator[dt.datetime]):
    """DateTime wrapper that round-trips UTC tzinfo even on SQLite."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Force bound datetime values to UTC with tzinfo."""
        if value is None:
            return None
        if value.tzinfo is None:
            raise TimezoneAwareRequiredError.for_column()
        return value.astimezone(dt.UTC)

    def process_result_value(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Ensure result datetimes are UTC and timezone aware."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.UTC)
        return value.astimezone(dt.UTC)


class ReportSubscription(Base):
    """Stored recurring report subscription."""

    __tablename__ = "report_subscriptions"
    __table_args__ = (
        Index(
            "ix_report_subscriptions_due",
            "namespace",
            "active",
            "next_report_timestamp",
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    namespace: Mapped[str] = mapped_column(String(128), default="default")
    active: Mapped[bool] = mapped_column(Boolean(), default=True)
    recurrency: Mapped[str] = mapped_column(String(16))
    next_report_timestamp: Mapped[dt.datetime] = mapped_column(UTCDateTime())
    base: Mapped[dict[str, typ.Any]] = mapped_column(JSON, default=dict)
    created_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow
    )

    def to_domain(self) -> Subscription:
        """Return an immutable domain snapshot of this row."""
        return Subscription(
            id=self.id,
            recurrency=self.recurrency,
            next_report_timestamp=self.next_report_timestamp,
            base=dict(self.base or {}),
            active=self.active,
            namespace=self.namespace,
        )


async def init_subscription_storage(engine: AsyncEngine) -> None:
    """Create all tables registered with Base if they are absent."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
