"""Import bookmarks from a linkding JSON export."""
import json
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, TypeAdapter, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from models.base import epoch_now
from schemas.bookmark import BookmarkRequest
from services.bookmark_service import DuplicateUrlError, create_bookmark

logger = logging.getLogger(__name__)


def rfc3339_to_epoch(value: str | None) -> int | None:
    """Parse an RFC3339 timestamp into epoch seconds. Returns None if unparseable."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return int(parsed.timestamp())


class LinkdingBookmark(BaseModel):
    """One record of a linkding-compatible JSON export."""

    url: str
    title: str
    description: str | None = None
    notes: str | None = None
    unread: bool = False
    tag_names: list[str] | None = None
    date_added: str
    date_modified: str

    def to_bookmark_request(self) -> tuple[BookmarkRequest, int, int]:
        """
        Convert to a create request plus historical timestamps in epoch seconds.

        Timestamps that cannot be parsed fall back to the current time.
        """
        now = epoch_now()
        request = BookmarkRequest(
            url=self.url,
            title=self.title,
            description=self.description,
            notes=self.notes,
            unread=self.unread,
            tag_names=self.tag_names or [],
        )
        added = rfc3339_to_epoch(self.date_added)
        modified = rfc3339_to_epoch(self.date_modified)
        return (
            request,
            added if added is not None else now,
            modified if modified is not None else now,
        )


@dataclass
class ImportResult:
    """Summary of an import run."""

    imported: int = 0
    failed_urls: list[str] = field(default_factory=list)


_records_adapter = TypeAdapter(list[LinkdingBookmark])


def load_linkding_export(path: Path) -> list[LinkdingBookmark]:
    """Read and validate a JSON array of linkding bookmark records."""
    with path.open(encoding="utf-8") as f:
        return _records_adapter.validate_python(json.load(f))


async def import_bookmarks(
    db: AsyncSession,
    records: list[LinkdingBookmark],
) -> ImportResult:
    """
    Create a bookmark for each record, preserving its original timestamps.

    A failing record is counted and skipped; the rest of the batch continues.

    Note:
        Does not commit. Caller handles commit.
    """
    report = ImportResult()
    for record in records:
        try:
            request, date_added, date_modified = record.to_bookmark_request()
            await create_bookmark(
                db, request, date_added=date_added, date_modified=date_modified,
            )
        except (ValidationError, DuplicateUrlError, SQLAlchemyError):
            logger.exception("Failed to import %s", record.url)
            report.failed_urls.append(record.url)
            continue
        report.imported += 1

    if report.failed_urls:
        logger.error("Failed to import:\n%s", "\n".join(report.failed_urls))
    logger.info("Imported %d entries", report.imported)
    return report
