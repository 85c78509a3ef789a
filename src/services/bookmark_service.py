"""Service layer for bookmark CRUD operations and listing."""
import logging
from dataclasses import dataclass

from sqlalchemy import Select, delete, func, insert, select, update
from sqlalchemy.dialects.postgresql import aggregate_order_by
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from models.base import epoch_now
from models.bookmark import Bookmark
from models.tag import Tag, bookmark_tags
from schemas.bookmark import BookmarkRequest, BookmarkResponse
from services.search_query import build_filter, compile_filter, parse_search
from services.tag_service import (
    delete_tag_if_orphaned,
    get_bookmark_tag_ids,
    reconcile_bookmark_tags,
)

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100
URL_UNIQUE_CONSTRAINT = "uq_bookmarks_url"


class DuplicateUrlError(Exception):
    """Raised when a bookmark with the same URL already exists."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"A bookmark with URL '{url}' already exists")


@dataclass(frozen=True)
class ById:
    """Look a bookmark up by its id."""

    id: int


@dataclass(frozen=True)
class ByUrl:
    """Look a bookmark up by its exact URL."""

    url: str


BookmarkLookup = ById | ByUrl


@dataclass
class BookmarkQuery:
    """
    Listing parameters.

    ``limit == 0`` means no limit. Only ``unread == "yes"`` restricts results to
    unread bookmarks; any other value lists everything.
    """

    q: str | None = None
    limit: int = DEFAULT_LIMIT
    offset: int = 0
    unread: str = "no"


@dataclass
class CheckResult:
    """Outcome of checking whether a URL is already bookmarked."""

    bookmark: BookmarkResponse | None
    url: str


def _bookmarks_with_tags() -> Select:
    """Select bookmarks with their tag names aggregated into a sorted array."""
    # FILTER drops the NULL row the outer join yields for untagged bookmarks
    tag_names = (
        func.array_agg(aggregate_order_by(Tag.name, Tag.name))
        .filter(Tag.id.is_not(None))
        .label("tag_names")
    )
    return (
        select(Bookmark, tag_names)
        .outerjoin(bookmark_tags, bookmark_tags.c.bookmark_id == Bookmark.id)
        .outerjoin(Tag, Tag.id == bookmark_tags.c.tag_id)
        .group_by(Bookmark.id)
        # Writes go through bulk DML, which leaves loaded objects stale
        .execution_options(populate_existing=True)
    )


def _is_duplicate_url(error: IntegrityError) -> bool:
    return URL_UNIQUE_CONSTRAINT in str(error)


async def get_bookmark(
    db: AsyncSession,
    lookup: BookmarkLookup,
) -> BookmarkResponse | None:
    """
    Get a single bookmark by id or by URL, with its tag names.

    Returns None when no bookmark matches. Storage errors are logged and also
    reported as None.
    """
    if isinstance(lookup, ById):
        condition = Bookmark.id == lookup.id
    else:
        condition = Bookmark.url == lookup.url

    try:
        async with db.begin_nested():
            result = await db.execute(_bookmarks_with_tags().where(condition))
            row = result.one_or_none()
    except SQLAlchemyError:
        logger.exception("Failed to get bookmark %r", lookup)
        return None

    if row is None:
        return None
    return BookmarkResponse.from_row(row.Bookmark, row.tag_names)


async def list_bookmarks(
    db: AsyncSession,
    query: BookmarkQuery,
) -> list[BookmarkResponse]:
    """
    List bookmarks matching a search query, newest first.

    The ``q`` string may mix ``#tag`` tokens and free-text terms. Bookmarks
    match the tag part if they carry any of the listed tags, and the text part
    through the full-text index. When both parts are given, a bookmark must
    match both.

    Args:
        db: Database session.
        query: Search, unread filter and pagination parameters.

    Returns:
        Bookmarks ordered by date_added then id, both descending. An empty list
        when the query fails at the storage level (the failure is logged).
    """
    search = parse_search(query.q) if query.q is not None else None
    filter_tree = build_filter(search, unread_only=query.unread == "yes")

    stmt = _bookmarks_with_tags()
    if filter_tree is not None:
        stmt = stmt.where(compile_filter(filter_tree))

    stmt = stmt.order_by(Bookmark.date_added.desc(), Bookmark.id.desc())
    if query.offset > 0:
        stmt = stmt.offset(query.offset)
    if query.limit > 0:
        stmt = stmt.limit(query.limit)

    try:
        async with db.begin_nested():
            result = await db.execute(stmt)
            rows = result.all()
    except SQLAlchemyError:
        logger.exception("Failed to list bookmarks for query %r", query)
        return []

    return [BookmarkResponse.from_row(row.Bookmark, row.tag_names) for row in rows]


async def create_bookmark(
    db: AsyncSession,
    data: BookmarkRequest,
    date_added: int | None = None,
    date_modified: int | None = None,
) -> int:
    """
    Create a new bookmark and link its tags.

    Args:
        db: Database session.
        data: Bookmark creation data.
        date_added: Epoch seconds to store instead of now (used by import).
        date_modified: Epoch seconds to store instead of now (used by import).

    Returns:
        The id of the created bookmark.

    Raises:
        DuplicateUrlError: If the URL is already bookmarked.

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    now = epoch_now()
    try:
        async with db.begin_nested():
            result = await db.execute(
                insert(Bookmark)
                .values(
                    url=data.url,
                    title=data.title,
                    description=data.description,
                    notes=data.notes,
                    unread=data.unread,
                    date_added=date_added if date_added is not None else now,
                    date_modified=date_modified if date_modified is not None else now,
                )
                .returning(Bookmark.id),
            )
            bookmark_id = result.scalar_one()
    except IntegrityError as e:
        if _is_duplicate_url(e):
            logger.warning("Rejected duplicate bookmark URL %s", data.url)
            raise DuplicateUrlError(data.url) from e
        raise

    await reconcile_bookmark_tags(db, bookmark_id, data.tag_names)
    logger.info("Created bookmark id=%s for %s", bookmark_id, data.url)
    return bookmark_id


async def update_bookmark(
    db: AsyncSession,
    bookmark_id: int,
    data: BookmarkRequest,
) -> int | None:
    """
    Replace a bookmark's fields and tag set.

    Returns the bookmark id, or None if the id is unknown. The caller reloads
    the bookmark, so a failed reload is not mistaken for a missing one.

    ``date_added`` is kept; ``date_modified`` is set to now.

    Raises:
        DuplicateUrlError: If the new URL belongs to another bookmark.

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    try:
        async with db.begin_nested():
            result = await db.execute(
                update(Bookmark)
                .where(Bookmark.id == bookmark_id)
                .values(
                    url=data.url,
                    title=data.title,
                    unread=data.unread,
                    description=data.description,
                    notes=data.notes,
                    date_modified=epoch_now(),
                )
                .returning(Bookmark.id)
                .execution_options(synchronize_session=False),
            )
            updated_id = result.scalar_one_or_none()
    except IntegrityError as e:
        if _is_duplicate_url(e):
            logger.warning(
                "Rejected update of bookmark id=%s to duplicate URL %s", bookmark_id, data.url,
            )
            raise DuplicateUrlError(data.url) from e
        raise

    if updated_id is None:
        return None

    await reconcile_bookmark_tags(db, bookmark_id, data.tag_names)
    logger.info("Updated bookmark id=%s", bookmark_id)
    return bookmark_id


async def delete_bookmark(db: AsyncSession, bookmark_id: int) -> None:
    """
    Delete a bookmark. Unknown ids are ignored.

    Tag associations go with the row (ON DELETE CASCADE); tags left without
    any bookmark are deleted afterwards.

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    tag_ids = await get_bookmark_tag_ids(db, bookmark_id)
    result = await db.execute(
        delete(Bookmark)
        .where(Bookmark.id == bookmark_id)
        .execution_options(synchronize_session=False),
    )
    if result.rowcount:
        logger.info("Deleted bookmark id=%s", bookmark_id)

    for tag_id in tag_ids:
        await delete_tag_if_orphaned(db, tag_id)


async def check_bookmark(db: AsyncSession, url: str) -> CheckResult:
    """Report whether ``url`` is already bookmarked, echoing the queried URL."""
    bookmark = await get_bookmark(db, ByUrl(url))
    return CheckResult(bookmark=bookmark, url=url)
