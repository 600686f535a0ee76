"""Service layer for collections, including computed smart collections."""
from collections.abc import Sequence
from datetime import timedelta

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ConflictError, NotFoundError, UnknownCollectionError
from models.base import utc_now
from models.bookmark import Bookmark
from models.collection import DEFAULT_COLLECTION_ICON, Collection, bookmark_collections
from schemas.collection import CollectionCreate, CollectionResponse, CollectionUpdate

RECENT_WINDOW = timedelta(days=7)

# (type, display name, icon) in display order
SMART_COLLECTIONS: tuple[tuple[str, str, str], ...] = (
    ("all", "All Bookmarks", "\u2b50"),
    ("unread", "Unread", "\U0001f4d6"),
    ("recent", "Recently Added", "\U0001f525"),
)


class CollectionNotFoundError(NotFoundError):
    """Raised when a collection doesn't exist or belongs to another user."""

    def __init__(self) -> None:
        super().__init__("Collection")


class CollectionAlreadyExistsError(ConflictError):
    """Raised when the user already has a collection with the requested name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__("Collection with this name already exists")


async def get_collection(
    db: AsyncSession,
    user_id: str,
    collection_id: str,
) -> Collection | None:
    """Get a collection by id, scoped to its owner."""
    result = await db.execute(
        select(Collection).where(
            Collection.id == collection_id,
            Collection.user_id == user_id,
        ),
    )
    return result.scalar_one_or_none()


async def resolve_collections(
    db: AsyncSession,
    user_id: str,
    collection_ids: Sequence[str],
) -> list[Collection]:
    """
    Load the user's collections for a bookmark write.

    The requested ids are validated as a set: every distinct id must name a
    collection owned by the user.

    Raises:
        UnknownCollectionError: If any id is unknown or owned by another user.
    """
    requested = list(dict.fromkeys(collection_ids))
    if not requested:
        return []

    result = await db.execute(
        select(Collection).where(
            Collection.user_id == user_id,
            Collection.id.in_(requested),
        ),
    )
    found = {c.id: c for c in result.scalars()}
    if len(found) != len(requested):
        raise UnknownCollectionError(requested)
    return [found[cid] for cid in requested]


async def _count_bookmarks(db: AsyncSession, user_id: str, *conditions) -> int:  # noqa: ANN002
    result = await db.execute(
        select(func.count(Bookmark.id)).where(Bookmark.user_id == user_id, *conditions),
    )
    return result.scalar_one()


async def get_smart_collections(db: AsyncSession, user_id: str) -> list[CollectionResponse]:
    """
    Compute the smart collections for a user.

    They are never persisted; counts are recomputed on every call.
    """
    counts = {
        "all": await _count_bookmarks(db, user_id),
        "unread": await _count_bookmarks(db, user_id, Bookmark.is_unread.is_(True)),
        "recent": await _count_bookmarks(
            db, user_id, Bookmark.created_at >= utc_now() - RECENT_WINDOW,
        ),
    }
    return [
        CollectionResponse(
            id=smart_type,
            name=name,
            icon=icon,
            bookmark_count=counts[smart_type],
            is_smart_collection=True,
            smart_collection_type=smart_type,
        )
        for smart_type, name, icon in SMART_COLLECTIONS
    ]


def _to_response(collection: Collection, count: int) -> CollectionResponse:
    return CollectionResponse(
        id=collection.id,
        name=collection.name,
        description=collection.description,
        icon=collection.icon,
        bookmark_count=count,
        created_at=collection.created_at,
        updated_at=collection.updated_at,
    )


async def count_bookmarks_in_collection(db: AsyncSession, collection_id: str) -> int:
    """Number of bookmarks filed in a collection."""
    result = await db.execute(
        select(func.count())
        .select_from(bookmark_collections)
        .where(bookmark_collections.c.collection_id == collection_id),
    )
    return result.scalar_one()


async def list_collections(db: AsyncSession, user_id: str) -> list[CollectionResponse]:
    """
    List smart collections followed by the user's own collections.

    Real collections are ordered by creation time and annotated with the
    number of bookmarks filed in each.
    """
    count = func.count(bookmark_collections.c.bookmark_id).label("count")
    result = await db.execute(
        select(Collection, count)
        .outerjoin(
            bookmark_collections,
            Collection.id == bookmark_collections.c.collection_id,
        )
        .where(Collection.user_id == user_id)
        .group_by(Collection.id)
        .order_by(Collection.created_at.asc(), Collection.id.asc()),
    )
    real = [_to_response(collection, n) for collection, n in result.all()]
    return await get_smart_collections(db, user_id) + real


async def _name_taken(
    db: AsyncSession,
    user_id: str,
    name: str,
    exclude_id: str | None = None,
) -> bool:
    query = select(Collection.id).where(
        Collection.user_id == user_id,
        Collection.name == name,
    )
    if exclude_id is not None:
        query = query.where(Collection.id != exclude_id)
    result = await db.execute(query)
    return result.first() is not None


async def create_collection(
    db: AsyncSession,
    user_id: str,
    data: CollectionCreate,
) -> CollectionResponse:
    """
    Create a collection.

    Raises:
        CollectionAlreadyExistsError: If the user already has one with this name.
    """
    if await _name_taken(db, user_id, data.name):
        raise CollectionAlreadyExistsError(data.name)

    collection = Collection(
        user_id=user_id,
        name=data.name,
        description=data.description or None,
        icon=data.icon or DEFAULT_COLLECTION_ICON,
    )
    try:
        async with db.begin_nested():
            db.add(collection)
            await db.flush()
    except IntegrityError as e:
        raise CollectionAlreadyExistsError(data.name) from e
    await db.refresh(collection)
    return _to_response(collection, 0)


async def update_collection(
    db: AsyncSession,
    user_id: str,
    collection_id: str,
    data: CollectionUpdate,
) -> CollectionResponse:
    """
    Update a collection's name, description or icon.

    Raises:
        CollectionNotFoundError: If the collection doesn't exist or isn't owned.
        CollectionAlreadyExistsError: If another collection has the new name.
    """
    collection = await get_collection(db, user_id, collection_id)
    if collection is None:
        raise CollectionNotFoundError

    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("name") is not None and update_data["name"] != collection.name:
        if await _name_taken(db, user_id, update_data["name"], exclude_id=collection.id):
            raise CollectionAlreadyExistsError(update_data["name"])
        collection.name = update_data["name"]
    if "description" in update_data:
        collection.description = update_data["description"] or None
    if update_data.get("icon") is not None:
        collection.icon = update_data["icon"]

    try:
        async with db.begin_nested():
            await db.flush()
    except IntegrityError as e:
        raise CollectionAlreadyExistsError(collection.name) from e
    await db.refresh(collection)
    return _to_response(collection, await count_bookmarks_in_collection(db, collection.id))


async def delete_collection(db: AsyncSession, user_id: str, collection_id: str) -> None:
    """
    Delete a collection, removing it from every bookmark filed in it.

    Raises:
        CollectionNotFoundError: If the collection doesn't exist or isn't owned.
    """
    collection = await get_collection(db, user_id, collection_id)
    if collection is None:
        raise CollectionNotFoundError

    await db.execute(
        delete(bookmark_collections).where(
            bookmark_collections.c.collection_id == collection.id,
        ),
    )
    await db.delete(collection)
    await db.flush()
