"""Tests for bookmark service layer functionality."""
from datetime import UTC, datetime

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from schemas.bookmark import BookmarkRequest
from services import bookmark_service
from services.bookmark_service import (
    BookmarkQuery,
    ById,
    ByUrl,
    DuplicateUrlError,
    check_bookmark,
    create_bookmark,
    delete_bookmark,
    get_bookmark,
    list_bookmarks,
    update_bookmark,
)
from services.tag_service import get_tags


def _request(url: str, **fields: object) -> BookmarkRequest:
    return BookmarkRequest(url=url, **fields)


# =============================================================================
# create_bookmark / get_bookmark Tests
# =============================================================================


async def test__create_bookmark__stores_fields_and_tags(db_session: AsyncSession) -> None:
    """Test that a created bookmark can be read back by id."""
    bookmark_id = await create_bookmark(
        db_session,
        _request(
            "https://example.com",
            title="Example",
            description="desc",
            notes="notes",
            unread=True,
            tag_names=["b", "a"],
        ),
    )

    bookmark = await get_bookmark(db_session, ById(bookmark_id))
    assert bookmark is not None
    assert bookmark.url == "https://example.com"
    assert bookmark.title == "Example"
    assert bookmark.description == "desc"
    assert bookmark.notes == "notes"
    assert bookmark.unread is True
    # Aggregated in name order
    assert bookmark.tag_names == ["a", "b"]


async def test__create_bookmark__uses_supplied_timestamps(db_session: AsyncSession) -> None:
    """Test that explicit timestamps override the current time."""
    bookmark_id = await create_bookmark(
        db_session,
        _request("https://example.com/old"),
        date_added=1_000_000_000,
        date_modified=1_000_000_060,
    )

    bookmark = await get_bookmark(db_session, ById(bookmark_id))
    assert bookmark.date_added == datetime(2001, 9, 9, 1, 46, 40, tzinfo=UTC)
    assert bookmark.date_modified == datetime(2001, 9, 9, 1, 47, 40, tzinfo=UTC)


async def test__create_bookmark__duplicate_url_raises(db_session: AsyncSession) -> None:
    """Test that a second bookmark with the same URL raises DuplicateUrlError."""
    await create_bookmark(db_session, _request("https://example.com/dup", tag_names=["t"]))

    with pytest.raises(DuplicateUrlError) as exc_info:
        await create_bookmark(db_session, _request("https://example.com/dup", tag_names=["u"]))
    assert exc_info.value.url == "https://example.com/dup"

    # The session is still usable and the failed create left no tags behind
    assert [tag.name for tag in await get_tags(db_session)] == ["t"]


async def test__get_bookmark__by_url(db_session: AsyncSession) -> None:
    """Test lookup by exact URL."""
    bookmark_id = await create_bookmark(db_session, _request("https://example.com/by-url"))

    bookmark = await get_bookmark(db_session, ByUrl("https://example.com/by-url"))
    assert bookmark is not None
    assert bookmark.id == bookmark_id

    assert await get_bookmark(db_session, ByUrl("https://example.com/BY-URL")) is None


async def test__get_bookmark__missing_returns_none(db_session: AsyncSession) -> None:
    """Test that unknown ids are reported as None."""
    assert await get_bookmark(db_session, ById(123456)) is None


async def test__get_bookmark__storage_error_returns_none(
    db_session: AsyncSession,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Test that a failing read is logged and reported as absent."""
    async def broken_execute(*_args: object, **_kwargs: object) -> None:
        raise OperationalError("SELECT", {}, Exception("connection lost"))

    monkeypatch.setattr(db_session, "execute", broken_execute)

    assert await get_bookmark(db_session, ById(1)) is None


# =============================================================================
# update_bookmark Tests
# =============================================================================


async def test__update_bookmark__replaces_fields(db_session: AsyncSession) -> None:
    """Test full replacement of fields and tags."""
    bookmark_id = await create_bookmark(
        db_session,
        _request("https://example.com/u", title="old", notes="n", tag_names=["x"]),
        date_added=1_000,
        date_modified=1_000,
    )

    updated_id = await update_bookmark(
        db_session,
        bookmark_id,
        _request("https://example.com/u2", title="new", tag_names=["y"]),
    )
    assert updated_id == bookmark_id

    updated = await get_bookmark(db_session, ById(bookmark_id))
    assert updated.url == "https://example.com/u2"
    assert updated.title == "new"
    assert updated.notes is None
    assert updated.tag_names == ["y"]
    assert int(updated.date_added.timestamp()) == 1_000
    assert int(updated.date_modified.timestamp()) > 1_000


async def test__update_bookmark__unknown_id_returns_none(db_session: AsyncSession) -> None:
    """Test that updating a missing bookmark returns None and creates no tags."""
    result = await update_bookmark(
        db_session, 999_999, _request("https://example.com/none", tag_names=["ghost"]),
    )
    assert result is None
    assert await get_tags(db_session) == []


async def test__update_bookmark__duplicate_url_raises(db_session: AsyncSession) -> None:
    """Test that moving a bookmark onto another's URL raises DuplicateUrlError."""
    await create_bookmark(db_session, _request("https://example.com/a"))
    second = await create_bookmark(db_session, _request("https://example.com/b"))

    with pytest.raises(DuplicateUrlError):
        await update_bookmark(db_session, second, _request("https://example.com/a"))

    bookmark = await get_bookmark(db_session, ById(second))
    assert bookmark.url == "https://example.com/b"


# =============================================================================
# delete_bookmark Tests
# =============================================================================


async def test__delete_bookmark__removes_bookmark_and_orphan_tags(
    db_session: AsyncSession,
) -> None:
    """Test that deleting removes the row and tags nothing else uses."""
    doomed = await create_bookmark(
        db_session, _request("https://example.com/doomed", tag_names=["only", "both"]),
    )
    await create_bookmark(db_session, _request("https://example.com/kept", tag_names=["both"]))

    await delete_bookmark(db_session, doomed)

    assert await get_bookmark(db_session, ById(doomed)) is None
    assert [tag.name for tag in await get_tags(db_session)] == ["both"]


async def test__delete_bookmark__unknown_id_is_noop(db_session: AsyncSession) -> None:
    """Test that deleting a missing bookmark does nothing."""
    await create_bookmark(db_session, _request("https://example.com/stays"))

    await delete_bookmark(db_session, 999_999)

    assert len(await list_bookmarks(db_session, BookmarkQuery())) == 1


# =============================================================================
# check_bookmark Tests
# =============================================================================


async def test__check_bookmark__echoes_url(db_session: AsyncSession) -> None:
    """Test that check returns the queried URL with or without a match."""
    result = await check_bookmark(db_session, "https://example.com/c")
    assert result.bookmark is None
    assert result.url == "https://example.com/c"

    bookmark_id = await create_bookmark(db_session, _request("https://example.com/c"))
    result = await check_bookmark(db_session, "https://example.com/c")
    assert result.bookmark.id == bookmark_id


# =============================================================================
# list_bookmarks Tests
# =============================================================================


async def test__list_bookmarks__orders_by_date_added_then_id(db_session: AsyncSession) -> None:
    """Test newest-first ordering with id as the tie-breaker."""
    old = await create_bookmark(db_session, _request("https://example.com/1"), date_added=100)
    tie_a = await create_bookmark(db_session, _request("https://example.com/2"), date_added=200)
    tie_b = await create_bookmark(db_session, _request("https://example.com/3"), date_added=200)
    newest = await create_bookmark(db_session, _request("https://example.com/4"), date_added=300)

    results = await list_bookmarks(db_session, BookmarkQuery())
    assert [b.id for b in results] == [newest, tie_b, tie_a, old]


async def test__list_bookmarks__default_limit(db_session: AsyncSession) -> None:
    """Test that the default page size caps the result."""
    for i in range(bookmark_service.DEFAULT_LIMIT + 1):
        await create_bookmark(db_session, _request(f"https://example.com/{i}"))

    assert len(await list_bookmarks(db_session, BookmarkQuery())) == bookmark_service.DEFAULT_LIMIT
    assert (
        len(await list_bookmarks(db_session, BookmarkQuery(limit=0)))
        == bookmark_service.DEFAULT_LIMIT + 1
    )


async def test__list_bookmarks__offset_past_end_is_empty(db_session: AsyncSession) -> None:
    """Test that an offset beyond the data returns nothing."""
    await create_bookmark(db_session, _request("https://example.com/only"))
    assert await list_bookmarks(db_session, BookmarkQuery(offset=5)) == []


async def test__list_bookmarks__unread_values(db_session: AsyncSession) -> None:
    """Test that only 'yes' restricts to unread bookmarks."""
    unread = await create_bookmark(db_session, _request("https://example.com/u", unread=True))
    await create_bookmark(db_session, _request("https://example.com/r"))

    assert [b.id for b in await list_bookmarks(db_session, BookmarkQuery(unread="yes"))] == [unread]
    assert len(await list_bookmarks(db_session, BookmarkQuery(unread="no"))) == 2
    assert len(await list_bookmarks(db_session, BookmarkQuery(unread="maybe"))) == 2


async def test__list_bookmarks__untagged_bookmark_has_empty_tags(
    db_session: AsyncSession,
) -> None:
    """Test that the outer join yields an empty tag list, not a missing row."""
    await create_bookmark(db_session, _request("https://example.com/plain"))

    results = await list_bookmarks(db_session, BookmarkQuery())
    assert len(results) == 1
    assert results[0].tag_names == []


async def test__list_bookmarks__text_matches_url(db_session: AsyncSession) -> None:
    """Test that the URL is part of the text index."""
    match = await create_bookmark(db_session, _request("https://docs.python.org/3/library"))
    await create_bookmark(db_session, _request("https://example.com/other"))

    results = await list_bookmarks(db_session, BookmarkQuery(q="docs.python.org"))
    assert [b.id for b in results] == [match]


async def test__list_bookmarks__storage_error_returns_empty(
    db_session: AsyncSession,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Test that a failing listing is logged and reported as empty."""
    await create_bookmark(db_session, _request("https://example.com/x"))

    async def broken_execute(*_args: object, **_kwargs: object) -> None:
        raise OperationalError("SELECT", {}, Exception("connection lost"))

    monkeypatch.setattr(db_session, "execute", broken_execute)

    assert await list_bookmarks(db_session, BookmarkQuery(q="#anything")) == []


async def test__get_bookmark__tag_names_with_commas_round_trip(db_session: AsyncSession) -> None:
    """Test that a comma inside a tag name does not split the tag."""
    bookmark_id = await create_bookmark(
        db_session, _request("https://example.com/commas", tag_names=["e", "c,d"]),
    )

    bookmark = await get_bookmark(db_session, ById(bookmark_id))
    assert bookmark.tag_names == ["c,d", "e"]

    results = await list_bookmarks(db_session, BookmarkQuery(q="#c,d"))
    assert [b.tag_names for b in results] == [["c,d", "e"]]
