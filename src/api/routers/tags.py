"""Tag management endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user_id
from schemas.common import ApiResponse
from schemas.tag import TagCreate, TagResponse, TagUpdate
from services import tag_service

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("", response_model=ApiResponse[list[TagResponse]])
async def list_tags(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[list[TagResponse]]:
    """
    Get all tags for the current user with their usage counts.

    Results are sorted by count DESC, then name ASC.
    """
    tags = await tag_service.get_user_tags_with_counts(db, user_id)
    return ApiResponse(data=tags)


@router.post("", response_model=ApiResponse[TagResponse], status_code=201)
async def create_tag(
    data: TagCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[TagResponse]:
    """
    Create a tag.

    Returns 400 if a tag with this name already exists.
    """
    tag = await tag_service.create_tag(db, user_id, data)
    return ApiResponse(message="Tag created successfully", data=tag)


@router.patch("/{tag_id}", response_model=ApiResponse[TagResponse])
async def update_tag(
    tag_id: str,
    data: TagUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[TagResponse]:
    """
    Rename or recolor a tag.

    Bookmarks using the tag reflect the change automatically.
    Returns 404 if the tag doesn't exist, 400 if the new name is taken.
    """
    tag = await tag_service.update_tag(db, user_id, tag_id, data)
    return ApiResponse(message="Tag updated successfully", data=tag)


@router.delete("/{tag_id}", response_model=ApiResponse[None])
async def delete_tag(
    tag_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[None]:
    """Delete a tag and remove it from every bookmark. Bookmarks are kept."""
    await tag_service.delete_tag(db, user_id, tag_id)
    return ApiResponse(message="Tag deleted successfully")
