"""Collection endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user_id
from schemas.collection import CollectionCreate, CollectionResponse, CollectionUpdate
from schemas.common import ApiResponse
from services import collection_service

router = APIRouter(prefix="/collections", tags=["collections"])


@router.get("", response_model=ApiResponse[list[CollectionResponse]])
async def list_collections(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[list[CollectionResponse]]:
    """
    List collections.

    The smart collections (all, unread, recent) come first, followed by the
    user's own collections in creation order. Each carries ``bookmarkCount``.
    """
    collections = await collection_service.list_collections(db, user_id)
    return ApiResponse(data=collections)


@router.post("", response_model=ApiResponse[CollectionResponse], status_code=201)
async def create_collection(
    data: CollectionCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[CollectionResponse]:
    """
    Create a collection.

    Returns 400 if a collection with this name already exists.
    """
    collection = await collection_service.create_collection(db, user_id, data)
    return ApiResponse(message="Collection created successfully", data=collection)


@router.patch("/{collection_id}", response_model=ApiResponse[CollectionResponse])
async def update_collection(
    collection_id: str,
    data: CollectionUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[CollectionResponse]:
    """Update a collection's name, description or icon."""
    collection = await collection_service.update_collection(db, user_id, collection_id, data)
    return ApiResponse(message="Collection updated successfully", data=collection)


@router.delete("/{collection_id}", response_model=ApiResponse[None])
async def delete_collection(
    collection_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[None]:
    """Delete a collection. Bookmarks filed in it are kept."""
    await collection_service.delete_collection(db, user_id, collection_id)
    return ApiResponse(message="Collection deleted successfully")
