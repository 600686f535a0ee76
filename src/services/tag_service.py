"""Service layer for tag operations, including find-or-create reconciliation."""
import logging
from collections.abc import Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ConflictError, NotFoundError
from models.tag import DEFAULT_TAG_COLOR, Tag, bookmark_tags
from schemas.bookmark import TagRef
from schemas.tag import TagCreate, TagResponse, TagUpdate

logger = logging.getLogger(__name__)


class TagNotFoundError(NotFoundError):
    """Raised when a tag doesn't exist or belongs to another user."""

    def __init__(self) -> None:
        super().__init__("Tag")


class TagAlreadyExistsError(ConflictError):
    """Raised when creating or renaming a tag to a name the user already has."""

    def __init__(self, tag_name: str) -> None:
        self.tag_name = tag_name
        super().__init__("Tag with this name already exists")


async def get_tag(db: AsyncSession, user_id: str, tag_id: str) -> Tag | None:
    """Get a tag by id, scoped to its owner."""
    result = await db.execute(
        select(Tag).where(Tag.id == tag_id, Tag.user_id == user_id),
    )
    return result.scalar_one_or_none()


async def get_tag_by_name(db: AsyncSession, user_id: str, tag_name: str) -> Tag | None:
    """
    Get a tag by name for a user.

    Args:
        db: Database session.
        user_id: User ID to scope the tag.
        tag_name: Name of the tag to find (normalized before lookup).

    Returns:
        The Tag if found, None otherwise.
    """
    normalized = tag_name.lower().strip()
    result = await db.execute(
        select(Tag).where(Tag.user_id == user_id, Tag.name == normalized),
    )
    return result.scalar_one_or_none()


async def get_or_create_tag(db: AsyncSession, user_id: str, tag_name: str) -> Tag:
    """
    Get a tag by name, creating it with the default color if missing.

    A concurrent request may insert the same name between the lookup and the
    insert. The insert runs in a savepoint so the uniqueness violation only
    rolls back that insert; the existing tag is then looked up again.
    """
    tag = await get_tag_by_name(db, user_id, tag_name)
    if tag is not None:
        return tag

    new_tag = Tag(user_id=user_id, name=tag_name, color=DEFAULT_TAG_COLOR)
    try:
        async with db.begin_nested():
            db.add(new_tag)
            await db.flush()
    except IntegrityError:
        logger.info("Tag %r created concurrently, reusing existing row", tag_name)
        tag = await get_tag_by_name(db, user_id, tag_name)
        if tag is None:
            raise
        return tag
    return new_tag


async def reconcile_tags(
    db: AsyncSession,
    user_id: str,
    refs: Sequence[TagRef],
) -> list[Tag]:
    """
    Resolve tag references to the user's tags, creating named tags as needed.

    Args:
        db: Database session.
        user_id: Owner of the tags.
        refs: References in submission order. ``id`` refs that are unknown or
            owned by another user are skipped; ``name`` refs are found or created.

    Returns:
        Tags in input order, each appearing once.
    """
    tags: list[Tag] = []
    seen: set[str] = set()
    for ref in refs:
        if ref.kind == "id":
            tag = await get_tag(db, user_id, ref.value)
            if tag is None:
                logger.debug("Skipping unknown tag id %s", ref.value)
                continue
        else:
            tag = await get_or_create_tag(db, user_id, ref.value)
        if tag.id not in seen:
            seen.add(tag.id)
            tags.append(tag)
    return tags


async def count_bookmarks_for_tag(db: AsyncSession, tag_id: str) -> int:
    """Number of bookmarks referencing a tag."""
    result = await db.execute(
        select(func.count()).select_from(bookmark_tags).where(bookmark_tags.c.tag_id == tag_id),
    )
    return result.scalar_one()


def _to_response(tag: Tag, count: int) -> TagResponse:
    return TagResponse(
        id=tag.id,
        name=tag.name,
        color=tag.color,
        count=count,
        created_at=tag.created_at,
        updated_at=tag.updated_at,
    )


async def get_user_tags_with_counts(db: AsyncSession, user_id: str) -> list[TagResponse]:
    """
    Get all tags for a user with the number of bookmarks using each.

    Returns:
        Tags sorted by count desc, then name asc. Unused tags have count 0.
    """
    # LEFT JOIN to include tags with zero count; COUNT ignores NULLs
    count = func.count(bookmark_tags.c.bookmark_id).label("count")
    result = await db.execute(
        select(Tag, count)
        .outerjoin(bookmark_tags, Tag.id == bookmark_tags.c.tag_id)
        .where(Tag.user_id == user_id)
        .group_by(Tag.id)
        .order_by(count.desc(), Tag.name.asc()),
    )
    return [_to_response(tag, tag_count) for tag, tag_count in result.all()]


async def create_tag(db: AsyncSession, user_id: str, data: TagCreate) -> TagResponse:
    """
    Create a tag.

    Raises:
        TagAlreadyExistsError: If the user already has a tag with this name.
    """
    if await get_tag_by_name(db, user_id, data.name) is not None:
        raise TagAlreadyExistsError(data.name)

    tag = Tag(user_id=user_id, name=data.name, color=data.color or DEFAULT_TAG_COLOR)
    try:
        async with db.begin_nested():
            db.add(tag)
            await db.flush()
    except IntegrityError as e:
        raise TagAlreadyExistsError(data.name) from e
    await db.refresh(tag)
    return _to_response(tag, 0)


async def update_tag(
    db: AsyncSession,
    user_id: str,
    tag_id: str,
    data: TagUpdate,
) -> TagResponse:
    """
    Rename and/or recolor a tag.

    Raises:
        TagNotFoundError: If the tag doesn't exist or isn't owned by the user.
        TagAlreadyExistsError: If another of the user's tags has the new name.
    """
    tag = await get_tag(db, user_id, tag_id)
    if tag is None:
        raise TagNotFoundError

    if data.name is not None and data.name != tag.name:
        # Early check for better error message; the constraint still guards races
        existing = await get_tag_by_name(db, user_id, data.name)
        if existing is not None:
            raise TagAlreadyExistsError(data.name)
        tag.name = data.name
    if data.color is not None:
        tag.color = data.color

    try:
        async with db.begin_nested():
            await db.flush()
    except IntegrityError as e:
        raise TagAlreadyExistsError(tag.name) from e
    await db.refresh(tag)
    return _to_response(tag, await count_bookmarks_for_tag(db, tag.id))


async def delete_tag(db: AsyncSession, user_id: str, tag_id: str) -> None:
    """
    Delete a tag after detaching it from every bookmark that references it.

    Bookmarks themselves are left intact.

    Raises:
        TagNotFoundError: If the tag doesn't exist or isn't owned by the user.
    """
    tag = await get_tag(db, user_id, tag_id)
    if tag is None:
        raise TagNotFoundError

    await db.execute(delete(bookmark_tags).where(bookmark_tags.c.tag_id == tag.id))
    await db.delete(tag)
    await db.flush()
