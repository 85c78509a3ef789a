"""SQLAlchemy models."""
from models.base import Base, DateAddedMixin, epoch_now
from models.tag import Tag, bookmark_tags
from models.bookmark import Bookmark

__all__ = [
    "Base",
    "Bookmark",
    "DateAddedMixin",
    "Tag",
    "bookmark_tags",
    "epoch_now",
]
