"""Pydantic schemas for tag endpoints."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_serializer, field_validator

from schemas.bookmark import epoch_to_datetime


class TagResponse(BaseModel):
    """Schema for a single tag."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    date_added: datetime

    @field_validator("date_added", mode="before")
    @classmethod
    def convert_epoch(cls, v: int | datetime) -> datetime:
        """Tags are stored with epoch seconds."""
        if isinstance(v, int):
            return epoch_to_datetime(v)
        return v

    @field_serializer("date_added")
    def serialize_timestamp(self, value: datetime) -> str:
        """Render timestamps as RFC3339 with an explicit UTC offset."""
        return value.isoformat()


class TagListResponse(BaseModel):
    """Schema for the tags list response."""

    count: int
    results: list[TagResponse]
