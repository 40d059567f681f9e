"""Mixins for SQLAlchemy models."""

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, func


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on read)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class TimestampMixin:
    """Mixin to add created_at and updated_at timestamp columns."""

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class ExpiringMixin:
    """Mixin for rows that carry an absolute expiry.

    Expiry is advisory: rows are reaped by a periodic purge, so readers must
    check it themselves.
    """

    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check if the row is past its expiry."""
        return as_utc(self.expires_at) <= (now or utcnow())
