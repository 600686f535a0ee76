"""Bookmark CRUD, search and bulk endpoints."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user_id
from schemas.bookmark import (
    BookmarkCreate,
    BookmarkListResponse,
    BookmarkResponse,
    BookmarkSort,
    BookmarkUpdate,
    BulkDeleteRequest,
    BulkDeleteResponse,
    CountResponse,
    Pagination,
)
from schemas.common import ApiResponse
from services import bookmark_service
from services.bookmark_service import BookmarkNotFoundError

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


def split_ids(values: list[str]) -> list[str]:
    """Accept both repeated query params and comma-separated lists."""
    return [part.strip() for value in values for part in value.split(",") if part.strip()]


@router.get("", response_model=ApiResponse[BookmarkListResponse])
async def list_bookmarks(  # noqa: PLR0913
    search: str | None = Query(default=None, description="Matches title, description or URL (case-insensitive)"),  # noqa: E501
    tags: list[str] = Query(default=[], description="Tag ids; bookmarks with any of them match"),
    collections: list[str] = Query(default=[], description="Collection ids; bookmarks in any of them match"),  # noqa: E501
    is_unread: bool | None = Query(default=None, alias="isUnread"),
    date_from: str | None = Query(default=None, alias="dateFrom", description="Inclusive lower bound (ISO date or timestamp)"),  # noqa: E501
    date_to: str | None = Query(default=None, alias="dateTo", description="Inclusive upper bound (ISO date or timestamp)"),  # noqa: E501
    sort: BookmarkSort = Query(default="-createdAt"),
    limit: int = Query(default=bookmark_service.DEFAULT_PAGE_SIZE, ge=1, le=bookmark_service.MAX_PAGE_SIZE),  # noqa: E501
    cursor: str | None = Query(default=None, description="nextCursor from the previous page"),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[BookmarkListResponse]:
    """
    List the current user's bookmarks with filtering, sorting and cursor pagination.

    - **sort**: createdAt, -createdAt (default), title or -title
    - **cursor**: pass `pagination.nextCursor` from the previous response
    """
    page = await bookmark_service.search_bookmarks(
        db=db,
        user_id=user_id,
        search=search,
        tag_ids=split_ids(tags) or None,
        collection_ids=split_ids(collections) or None,
        is_unread=is_unread,
        date_from=bookmark_service.parse_date_bound(date_from, "dateFrom"),
        date_to=bookmark_service.parse_date_bound(date_to, "dateTo", end=True),
        date_to_exclusive=date_to is not None and len(date_to) == 10,
        sort=sort,
        limit=limit,
        cursor=cursor,
    )
    return ApiResponse(
        data=BookmarkListResponse(
            items=[BookmarkResponse.model_validate(b) for b in page.items],
            pagination=Pagination(
                limit=page.limit,
                has_more=page.has_more,
                next_cursor=page.next_cursor,
            ),
        ),
    )


@router.post("", response_model=ApiResponse[BookmarkResponse], status_code=201)
async def create_bookmark(
    data: BookmarkCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[BookmarkResponse]:
    """
    Save a bookmark.

    Tags may be given as ids or names; unknown names are created. A missing
    title or image is filled from the page's metadata when it can be fetched.
    Returns 400 if any collection id is unknown.
    """
    bookmark = await bookmark_service.create_bookmark(db, user_id, data)
    return ApiResponse(
        message="Bookmark created successfully",
        data=BookmarkResponse.model_validate(bookmark),
    )


@router.delete("", response_model=ApiResponse[BulkDeleteResponse])
async def bulk_delete_bookmarks(
    data: BulkDeleteRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[BulkDeleteResponse]:
    """
    Delete several bookmarks at once.

    Only the caller's bookmarks are deleted; other ids are ignored and not
    counted. Returns 400 if no ids are given.
    """
    deleted = await bookmark_service.bulk_delete_bookmarks(db, user_id, data.ids)
    return ApiResponse(
        message=f"{deleted} bookmark(s) deleted successfully",
        data=BulkDeleteResponse(deleted_count=deleted, requested_count=len(data.ids)),
    )


@router.get("/count", response_model=ApiResponse[CountResponse])
async def count_bookmarks(
    is_unread: bool | None = Query(default=None, alias="isUnread"),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[CountResponse]:
    """Count the current user's bookmarks, optionally only unread or read ones."""
    count = await bookmark_service.count_bookmarks(db, user_id, is_unread)
    return ApiResponse(data=CountResponse(count=count))


@router.get("/{bookmark_id}", response_model=ApiResponse[BookmarkResponse])
async def get_bookmark(
    bookmark_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[BookmarkResponse]:
    """Get a single bookmark by ID."""
    bookmark = await bookmark_service.get_bookmark(db, user_id, bookmark_id)
    if bookmark is None:
        raise BookmarkNotFoundError
    return ApiResponse(data=BookmarkResponse.model_validate(bookmark))


@router.patch("/{bookmark_id}", response_model=ApiResponse[BookmarkResponse])
async def update_bookmark(
    bookmark_id: str,
    data: BookmarkUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[BookmarkResponse]:
    """
    Update a bookmark.

    Only fields present in the body change. Use `{"isUnread": false}` to mark
    a bookmark as read.
    """
    bookmark = await bookmark_service.update_bookmark(db, user_id, bookmark_id, data)
    return ApiResponse(
        message="Bookmark updated successfully",
        data=BookmarkResponse.model_validate(bookmark),
    )


@router.delete("/{bookmark_id}", response_model=ApiResponse[None])
async def delete_bookmark(
    bookmark_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[None]:
    """Delete a bookmark."""
    await bookmark_service.delete_bookmark(db, user_id, bookmark_id)
    return ApiResponse(message="Bookmark deleted successfully")
