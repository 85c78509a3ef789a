"""Bookmark CRUD, listing and check endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, verify_token
from schemas.bookmark import (
    BookmarkCheckResponse,
    BookmarkListResponse,
    BookmarkRequest,
    BookmarkResponse,
    CheckMetadata,
)
from services import bookmark_service
from services.bookmark_service import DEFAULT_LIMIT, BookmarkQuery, ById, DuplicateUrlError

router = APIRouter(
    prefix="/bookmarks",
    tags=["bookmarks"],
    dependencies=[Depends(verify_token)],
)


async def _reload_written(db: AsyncSession, bookmark_id: int) -> BookmarkResponse:
    # The write succeeded, so a missing row here is a read failure, not a 404
    bookmark = await bookmark_service.get_bookmark(db, ById(bookmark_id))
    if bookmark is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load the saved bookmark",
        )
    return bookmark


@router.get("", response_model=BookmarkListResponse)
async def list_bookmarks(
    q: str | None = Query(default=None, description="Search query: '#tag' tokens and free text"),  # noqa: E501
    limit: int = Query(default=DEFAULT_LIMIT, ge=0, description="Page size, 0 for no limit"),
    offset: int = Query(default=0, ge=0, description="Pagination offset"),
    unread: str = Query(default="no", description="'yes' to list unread bookmarks only"),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkListResponse:
    """
    List bookmarks, newest first.

    - **q**: `#tag` tokens match bookmarks with any of the tags; other words are
      matched against url, title, description and notes. Both parts must match
      when both are given.
    - **unread**: `yes` restricts the list to unread bookmarks
    """
    bookmarks = await bookmark_service.list_bookmarks(
        db,
        BookmarkQuery(q=q, limit=limit, offset=offset, unread=unread),
    )
    return BookmarkListResponse(count=len(bookmarks), results=bookmarks)


@router.get("/check", response_model=BookmarkCheckResponse)
async def check_bookmark(
    url: str = Query(..., description="URL to look up"),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkCheckResponse:
    """Tell whether a URL is already bookmarked. `bookmark` is null when it is not."""
    result = await bookmark_service.check_bookmark(db, url)
    return BookmarkCheckResponse(
        bookmark=result.bookmark,
        metadata=CheckMetadata(url=result.url),
        auto_tags=[],
    )


@router.post("", response_model=BookmarkResponse, status_code=201)
async def create_bookmark(
    data: BookmarkRequest,
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Create a new bookmark. Returns 400 if the URL is already bookmarked."""
    try:
        bookmark_id = await bookmark_service.create_bookmark(db, data)
    except DuplicateUrlError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    return await _reload_written(db, bookmark_id)


@router.get("/{bookmark_id}", response_model=BookmarkResponse)
async def get_bookmark(
    bookmark_id: int,
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Get a single bookmark by ID."""
    bookmark = await bookmark_service.get_bookmark(db, ById(bookmark_id))
    if bookmark is None:
        raise HTTPException(status_code=404, detail="Bookmark not found")
    return bookmark


@router.put("/{bookmark_id}", response_model=BookmarkResponse)
async def update_bookmark(
    bookmark_id: int,
    data: BookmarkRequest,
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Replace a bookmark's fields and tags."""
    try:
        updated_id = await bookmark_service.update_bookmark(db, bookmark_id, data)
    except DuplicateUrlError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    if updated_id is None:
        raise HTTPException(status_code=404, detail="Bookmark not found")
    return await _reload_written(db, updated_id)


@router.delete("/{bookmark_id}", status_code=200)
async def delete_bookmark(
    bookmark_id: int,
    db: AsyncSession = Depends(get_async_session),
) -> Response:
    """Delete a bookmark. Deleting an unknown id also succeeds."""
    await bookmark_service.delete_bookmark(db, bookmark_id)
    return Response(status_code=status.HTTP_200_OK)
