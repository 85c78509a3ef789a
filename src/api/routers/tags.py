"""Tag listing endpoint."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, verify_token
from schemas.tag import TagListResponse, TagResponse
from services.tag_service import get_tags

router = APIRouter(prefix="/tags", tags=["tags"], dependencies=[Depends(verify_token)])


@router.get("", response_model=TagListResponse)
async def list_tags(
    db: AsyncSession = Depends(get_async_session),
) -> TagListResponse:
    """
    Get all tags, sorted by name.

    Only tags used by at least one bookmark exist; unused tags are removed
    when their last bookmark drops them.
    """
    tags = await get_tags(db)
    return TagListResponse(
        count=len(tags),
        results=[TagResponse.model_validate(tag) for tag in tags],
    )
