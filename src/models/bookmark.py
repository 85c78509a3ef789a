"""Bookmark model for storing saved URLs."""
from sqlalchemy import BigInteger, Boolean, Computed, Index, Text, UniqueConstraint, false
from sqlalchemy.dialects.postgresql import TSVECTOR
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, DateAddedMixin, epoch_now


# Generated by PostgreSQL on every INSERT/UPDATE of the row, so the text index
# can never drift from the columns it covers.
SEARCH_VECTOR_EXPRESSION = (
    "to_tsvector('english', "
    "coalesce(url, '') || ' ' || coalesce(title, '') || ' ' || "
    "coalesce(description, '') || ' ' || coalesce(notes, ''))"
)


class Bookmark(Base, DateAddedMixin):
    """Bookmark model - stores URLs with metadata, read state and tags."""

    __tablename__ = "bookmarks"
    __table_args__ = (
        UniqueConstraint("url", name="uq_bookmarks_url"),
        Index("ix_bookmarks_search_vector", "search_vector", postgresql_using="gin"),
        # Listing order: newest first, ties broken by id
        Index("ix_bookmarks_date_added_id", "date_added", "id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    unread: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false(),
    )
    date_modified: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=epoch_now,
    )

    search_vector: Mapped[str | None] = mapped_column(
        TSVECTOR,
        Computed(SEARCH_VECTOR_EXPRESSION, persisted=True),
        deferred=True,
    )
