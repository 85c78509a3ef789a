"""SQLAlchemy declarative base and shared column helpers."""
from datetime import UTC, datetime

from sqlalchemy import BigInteger
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def epoch_now() -> int:
    """Current time as whole seconds since the Unix epoch."""
    return int(datetime.now(UTC).timestamp())


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class DateAddedMixin:
    """
    Mixin that adds the immutable ``date_added`` column.

    Timestamps are stored as epoch seconds and only converted to RFC3339 at the
    API boundary.
    """

    date_added: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=epoch_now,
    )
