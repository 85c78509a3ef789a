"""Tag model and the bookmark/tag junction table."""
from sqlalchemy import Column, ForeignKey, Index, Integer, Table, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, DateAddedMixin


# Many-to-many link between bookmarks and tags. Deleting either side removes the link.
bookmark_tags = Table(
    "bookmark_tags",
    Base.metadata,
    Column(
        "bookmark_id",
        Integer,
        ForeignKey("bookmarks.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "tag_id",
        Integer,
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    # Orphan checks and tag filters look links up by tag
    Index("ix_bookmark_tags_tag_id", "tag_id"),
)


class Tag(Base, DateAddedMixin):
    """
    A label shared by every bookmark that carries it.

    Names are unique and matched exactly (case-sensitive, no trimming). A tag
    exists only while at least one bookmark references it.
    """

    __tablename__ = "tags"
    __table_args__ = (
        UniqueConstraint("name", name="uq_tags_name"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
