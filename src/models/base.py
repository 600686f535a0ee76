"""SQLAlchemy declarative base with common mixins."""
import os
import time
from datetime import UTC, datetime

from sqlalchemy import DateTime, String
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

OBJECT_ID_LENGTH = 24


def new_object_id() -> str:
    """
    Generate a 24-hex-character identifier.

    Layout matches a BSON ObjectId: 4 bytes of big-endian epoch seconds followed
    by 8 random bytes, so identifiers sort roughly by creation time.
    """
    return f"{int(time.time()):08x}{os.urandom(8).hex()}"


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime that always round-trips as UTC.

    PostgreSQL stores TIMESTAMP WITH TIME ZONE natively; SQLite drops tzinfo on
    the way in, so naive values read back are tagged as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(UTC)
            if dialect.name == "sqlite":
                value = value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:  # noqa: ARG002
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class ObjectIdMixin:
    """Mixin that adds a 24-hex string primary key generated application-side."""

    id: Mapped[str] = mapped_column(
        String(OBJECT_ID_LENGTH),
        primary_key=True,
        default=new_object_id,
    )


class TimestampMixin:
    """
    Mixin that adds created_at and updated_at columns.

    All timestamps are timezone-aware UTC. Defaults are computed in Python so
    the same models run against PostgreSQL and SQLite.
    """

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utc_now,
        nullable=False,
        index=True,  # Index for cursor pagination on creation time
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )
