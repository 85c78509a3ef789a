"""Pydantic schemas for bookmark endpoints."""
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

if TYPE_CHECKING:
    from models.bookmark import Bookmark


def epoch_to_datetime(value: int) -> datetime:
    """Convert stored epoch seconds to a timezone-aware UTC datetime."""
    return datetime.fromtimestamp(value, UTC)


class BookmarkRequest(BaseModel):
    """
    Schema for creating or fully replacing a bookmark.

    PUT uses the same body as POST: every mutable field is replaced and
    ``tag_names`` becomes the complete tag set (missing means "no tags").
    """

    url: str = Field(..., min_length=1)
    title: str = ""
    description: str | None = None
    notes: str | None = None
    unread: bool = False
    tag_names: list[str] = []

    @field_validator("tag_names", mode="before")
    @classmethod
    def default_tag_names(cls, v: list[str] | None) -> list[str]:
        """Treat an explicit null as an empty tag list."""
        if v is None:
            return []
        return v


class BookmarkResponse(BaseModel):
    """Schema for bookmark responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    title: str
    description: str | None
    notes: str | None
    unread: bool
    tag_names: list[str]
    date_added: datetime
    date_modified: datetime

    @field_serializer("date_added", "date_modified")
    def serialize_timestamp(self, value: datetime) -> str:
        """Render timestamps as RFC3339 with an explicit UTC offset."""
        return value.isoformat()

    @classmethod
    def from_row(cls, bookmark: "Bookmark", tag_names: list[str] | None) -> "BookmarkResponse":
        """Build a response from a Bookmark row and its aggregated tag names."""
        return cls(
            id=bookmark.id,
            url=bookmark.url,
            title=bookmark.title,
            description=bookmark.description,
            notes=bookmark.notes,
            unread=bool(bookmark.unread),
            tag_names=list(tag_names or []),
            date_added=epoch_to_datetime(bookmark.date_added),
            date_modified=epoch_to_datetime(bookmark.date_modified),
        )


class BookmarkListResponse(BaseModel):
    """Schema for paginated bookmark list responses."""

    count: int
    results: list[BookmarkResponse]


class CheckMetadata(BaseModel):
    """Metadata echoed back by the check endpoint."""

    url: str


class BookmarkCheckResponse(BaseModel):
    """Schema for ``GET /bookmarks/check`` responses."""

    bookmark: BookmarkResponse | None
    metadata: CheckMetadata
    auto_tags: list[str] = []
