"""Service layer for bookmark CRUD, cursor-paginated search and enrichment."""
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.sql.elements import ColumnElement

from core.config import get_settings
from core.exceptions import FieldError, NotFoundError, ValidationError
from models.base import utc_now
from models.bookmark import Bookmark
from models.collection import bookmark_collections
from models.tag import bookmark_tags
from schemas.bookmark import BookmarkCreate, BookmarkSort, BookmarkUpdate
from schemas.validators import truncate_description
from services.collection_service import resolve_collections
from services.tag_service import reconcile_tags
from services.url_scraper import scrape_metadata
from services.utils import escape_ilike

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class BookmarkNotFoundError(NotFoundError):
    """Raised when a bookmark doesn't exist or belongs to another user."""

    def __init__(self) -> None:
        super().__init__("Bookmark")


@dataclass
class EnrichedFields:
    """Display fields for a new bookmark after merging scraped metadata."""

    title: str
    description: str | None
    image: str | None


@dataclass
class BookmarkPage:
    """One page of search results."""

    items: list[Bookmark]
    limit: int
    has_more: bool
    next_cursor: str | None


def _with_relationships(query):  # noqa: ANN001, ANN202
    # populate_existing so tag/collection detaches done with bulk deletes show up
    return query.options(
        selectinload(Bookmark.tag_objects),
        selectinload(Bookmark.collection_objects),
    ).execution_options(populate_existing=True)


def _clamp_title(title: str) -> str:
    max_len = get_settings().max_title_length
    return title[:max_len]


async def enrich_metadata(data: BookmarkCreate) -> EnrichedFields:
    """
    Fill a new bookmark's missing title/description/image from the page.

    Fetching only happens when the title or image is missing. Client-supplied
    values always win. Any fetch or parse failure is logged and ignored, and
    the URL becomes the title if none is known.
    """
    url = data.url
    title = data.title
    description = data.description
    image = data.image

    if title and image:
        return EnrichedFields(title=title, description=description, image=image)

    settings = get_settings()
    page = await scrape_metadata(
        url,
        timeout=settings.metadata_fetch_timeout,
        retries=settings.metadata_fetch_retries,
    )
    if page.error or page.metadata is None:
        logger.warning("Metadata enrichment failed for %s: %s", url, page.error)
    else:
        meta = page.metadata
        title = title or (meta.title.strip() if meta.title else None)
        description = description or truncate_description(meta.description)
        image = image or meta.image

    return EnrichedFields(
        title=_clamp_title(title or url),
        description=description or None,
        image=image or None,
    )


async def create_bookmark(
    db: AsyncSession,
    user_id: str,
    data: BookmarkCreate,
) -> Bookmark:
    """
    Create a bookmark with its tags and collections.

    Collections are validated before any tag is created. Everything happens in
    the caller's transaction, so a failure leaves no partial writes.

    Raises:
        UnknownCollectionError: If a collection id is unknown or not owned.
    """
    collections = await resolve_collections(db, user_id, data.collections)
    tags = await reconcile_tags(db, user_id, data.tags)
    fields = await enrich_metadata(data)

    bookmark = Bookmark(
        user_id=user_id,
        url=data.url,
        title=fields.title,
        description=fields.description,
        image=fields.image,
        reading_time=data.reading_time,
        is_unread=True,
    )
    bookmark.tag_objects = tags
    bookmark.collection_objects = collections
    db.add(bookmark)
    await db.flush()
    logger.debug("Created bookmark %s for user %s", bookmark.id, user_id)
    return bookmark


async def get_bookmark(
    db: AsyncSession,
    user_id: str,
    bookmark_id: str,
) -> Bookmark | None:
    """Get a bookmark by id, scoped to its owner, with tags and collections loaded."""
    result = await db.execute(
        _with_relationships(
            select(Bookmark).where(
                Bookmark.id == bookmark_id,
                Bookmark.user_id == user_id,
            ),
        ),
    )
    return result.scalar_one_or_none()


async def update_bookmark(
    db: AsyncSession,
    user_id: str,
    bookmark_id: str,
    data: BookmarkUpdate,
) -> Bookmark:
    """
    Apply a partial update.

    Only fields present in the request are changed; ``tags`` and
    ``collections`` replace the current sets when given.

    Raises:
        BookmarkNotFoundError: If the bookmark doesn't exist or isn't owned.
        UnknownCollectionError: If a collection id is unknown or not owned.
    """
    bookmark = await get_bookmark(db, user_id, bookmark_id)
    if bookmark is None:
        raise BookmarkNotFoundError

    # Validate collections before creating any tags
    collections = None
    if data.collections is not None:
        collections = await resolve_collections(db, user_id, data.collections)
    if data.tags is not None:
        bookmark.tag_objects = await reconcile_tags(db, user_id, data.tags)
    if collections is not None:
        bookmark.collection_objects = collections

    update_data = data.model_dump(exclude_unset=True, exclude={"tags", "collections"})
    for field, value in update_data.items():
        setattr(bookmark, field, value)

    # Relationship-only changes don't touch a column, so bump updated_at explicitly
    bookmark.updated_at = utc_now()
    await db.flush()
    return bookmark


async def delete_bookmark(db: AsyncSession, user_id: str, bookmark_id: str) -> None:
    """
    Delete a bookmark.

    Raises:
        BookmarkNotFoundError: If the bookmark doesn't exist or isn't owned.
    """
    bookmark = await get_bookmark(db, user_id, bookmark_id)
    if bookmark is None:
        raise BookmarkNotFoundError
    await db.delete(bookmark)
    await db.flush()


async def bulk_delete_bookmarks(
    db: AsyncSession,
    user_id: str,
    bookmark_ids: Sequence[str],
) -> int:
    """
    Delete the caller's bookmarks among the given ids.

    Ids that are unknown or owned by another user are ignored and not counted.

    Returns:
        Number of bookmarks deleted.

    Raises:
        ValidationError: If no ids are given.
    """
    if not bookmark_ids:
        raise ValidationError("No bookmark IDs provided")

    result = await db.execute(
        select(Bookmark.id).where(
            Bookmark.user_id == user_id,
            Bookmark.id.in_(set(bookmark_ids)),
        ),
    )
    owned = list(result.scalars())
    if not owned:
        return 0

    await db.execute(delete(bookmark_tags).where(bookmark_tags.c.bookmark_id.in_(owned)))
    await db.execute(
        delete(bookmark_collections).where(bookmark_collections.c.bookmark_id.in_(owned)),
    )
    await db.execute(
        delete(Bookmark)
        .where(Bookmark.user_id == user_id, Bookmark.id.in_(owned))
        .execution_options(synchronize_session=False),
    )
    await db.flush()
    return len(owned)


async def count_bookmarks(
    db: AsyncSession,
    user_id: str,
    is_unread: bool | None = None,
) -> int:
    """Count the user's bookmarks, optionally only read or unread ones."""
    query = select(func.count(Bookmark.id)).where(Bookmark.user_id == user_id)
    if is_unread is not None:
        query = query.where(Bookmark.is_unread.is_(is_unread))
    result = await db.execute(query)
    return result.scalar_one()


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_date_bound(value: str | None, field: str, end: bool = False) -> datetime | None:
    """
    Parse a ``dateFrom``/``dateTo`` query value.

    Accepts a full ISO-8601 timestamp or a bare date. A bare ``dateTo`` covers
    the whole day, so the returned bound is the following midnight and the
    caller compares with ``<``.

    Raises:
        ValidationError: If the value isn't a date or timestamp.
    """
    if not value:
        return None
    try:
        if len(value) == 10:  # YYYY-MM-DD
            day = date.fromisoformat(value)
            if end:
                day += timedelta(days=1)
            return datetime(day.year, day.month, day.day, tzinfo=UTC)
        return _as_utc(datetime.fromisoformat(value))
    except ValueError as e:
        raise ValidationError(
            "Validation failed",
            errors=[FieldError(field=field, message="Invalid date")],
        ) from e


def format_cursor_timestamp(value: datetime) -> str:
    """Render a creation time the same way it appears in responses."""
    return _as_utc(value).isoformat().replace("+00:00", "Z")


def _parse_cursor_timestamp(cursor: str) -> datetime | None:
    try:
        return _as_utc(datetime.fromisoformat(cursor))
    except ValueError:
        logger.warning("Ignoring unparseable cursor %r", cursor)
        return None


async def _title_keyset(
    db: AsyncSession,
    user_id: str,
    cursor: str,
    descending: bool,
) -> ColumnElement[bool] | None:
    """Keyset predicate on (title, id) positioned after the cursor bookmark."""
    result = await db.execute(
        select(Bookmark.title).where(Bookmark.id == cursor, Bookmark.user_id == user_id),
    )
    title = result.scalar_one_or_none()
    if title is None:
        logger.warning("Ignoring cursor for unknown bookmark %r", cursor)
        return None
    if descending:
        return or_(
            Bookmark.title < title,
            and_(Bookmark.title == title, Bookmark.id < cursor),
        )
    return or_(
        Bookmark.title > title,
        and_(Bookmark.title == title, Bookmark.id > cursor),
    )


async def search_bookmarks(  # noqa: PLR0913
    db: AsyncSession,
    user_id: str,
    search: str | None = None,
    tag_ids: Sequence[str] | None = None,
    collection_ids: Sequence[str] | None = None,
    is_unread: bool | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    date_to_exclusive: bool = False,
    sort: BookmarkSort = "-createdAt",
    limit: int = DEFAULT_PAGE_SIZE,
    cursor: str | None = None,
) -> BookmarkPage:
    """
    Search the user's bookmarks with filtering, sorting and cursor pagination.

    Args:
        db: Database session.
        user_id: Owner whose bookmarks are searched.
        search: Case-insensitive substring matched against title, description
            and URL (any of them).
        tag_ids: Keep bookmarks carrying any of these tags.
        collection_ids: Keep bookmarks filed in any of these collections.
        is_unread: Keep only unread (True) or read (False) bookmarks.
        date_from: Inclusive lower bound on creation time.
        date_to: Upper bound on creation time; inclusive unless
            ``date_to_exclusive`` is set.
        date_to_exclusive: Compare ``date_to`` with ``<`` instead of ``<=``.
        sort: ``createdAt``/``title``, prefixed with ``-`` for descending.
        limit: Page size (clamped to 1-100).
        cursor: For creation-time sorts, the ISO timestamp of the previous
            page's last item; for title sorts, that item's id. Cursors that
            can't be used are ignored.

    Returns:
        BookmarkPage with the items, whether more remain, and the next cursor.
    """
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    descending = sort.startswith("-")
    by_title = sort.lstrip("-") == "title"

    query = select(Bookmark).where(Bookmark.user_id == user_id)

    if search:
        pattern = f"%{escape_ilike(search)}%"
        query = query.where(
            or_(
                Bookmark.title.ilike(pattern, escape="\\"),
                Bookmark.description.ilike(pattern, escape="\\"),
                Bookmark.url.ilike(pattern, escape="\\"),
            ),
        )

    if tag_ids:
        query = query.where(
            Bookmark.id.in_(
                select(bookmark_tags.c.bookmark_id).where(bookmark_tags.c.tag_id.in_(tag_ids)),
            ),
        )

    if collection_ids:
        query = query.where(
            Bookmark.id.in_(
                select(bookmark_collections.c.bookmark_id).where(
                    bookmark_collections.c.collection_id.in_(collection_ids),
                ),
            ),
        )

    if is_unread is not None:
        query = query.where(Bookmark.is_unread.is_(is_unread))

    if date_from is not None:
        query = query.where(Bookmark.created_at >= date_from)
    if date_to is not None:
        query = query.where(
            Bookmark.created_at < date_to if date_to_exclusive else Bookmark.created_at <= date_to,
        )

    if cursor:
        if by_title:
            predicate = await _title_keyset(db, user_id, cursor, descending)
            if predicate is not None:
                query = query.where(predicate)
        else:
            cursor_time = _parse_cursor_timestamp(cursor)
            if cursor_time is not None:
                query = query.where(
                    Bookmark.created_at < cursor_time
                    if descending
                    else Bookmark.created_at > cursor_time,
                )

    sort_column = Bookmark.title if by_title else Bookmark.created_at
    if descending:
        query = query.order_by(sort_column.desc(), Bookmark.id.desc())
    else:
        query = query.order_by(sort_column.asc(), Bookmark.id.asc())

    result = await db.execute(_with_relationships(query.limit(limit + 1)))
    rows = list(result.scalars().unique())

    has_more = len(rows) > limit
    items = rows[:limit]
    next_cursor = None
    if has_more and items:
        last = items[-1]
        next_cursor = last.id if by_title else format_cursor_timestamp(last.created_at)

    return BookmarkPage(items=items, limit=limit, has_more=has_more, next_cursor=next_cursor)
