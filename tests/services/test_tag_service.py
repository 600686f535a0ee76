"""Tests for tag service reconciliation and CRUD."""
from unittest.mock import patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.bookmark import Bookmark
from models.tag import Tag, bookmark_tags
from models.user import User
from schemas.bookmark import TagRef
from schemas.tag import TagCreate, TagUpdate
from services import tag_service
from services.tag_service import (
    TagAlreadyExistsError,
    TagNotFoundError,
    create_tag,
    delete_tag,
    get_or_create_tag,
    get_user_tags_with_counts,
    reconcile_tags,
    update_tag,
)


def name(value: str) -> TagRef:
    """Build a name reference."""
    return TagRef(kind="name", value=value)


class TestReconcileTags:
    """Tests for reconcile_tags."""

    async def test__reconcile_tags__creates_missing_with_default_color(
        self, db_session: AsyncSession, test_user: User,
    ) -> None:
        """Unknown names become new tags."""
        tags = await reconcile_tags(db_session, test_user.id, [name("Python"), name("web")])

        assert [t.name for t in tags] == ["python", "web"]
        assert all(t.color == "#6366f1" for t in tags)
        assert all(t.user_id == test_user.id for t in tags)

    async def test__reconcile_tags__idempotent_by_name(
        self, db_session: AsyncSession, test_user: User,
    ) -> None:
        """The same name resolves to the same tag across calls."""
        first = await reconcile_tags(db_session, test_user.id, [name("react")])
        second = await reconcile_tags(db_session, test_user.id, [name("react")])

        assert first[0].id == second[0].id
        count = await db_session.scalar(select(func.count(Tag.id)))
        assert count == 1

    async def test__reconcile_tags__deduplicates_preserving_order(
        self, db_session: AsyncSession, test_user: User,
    ) -> None:
        """An id and a name pointing at the same tag collapse to one entry."""
        existing = await get_or_create_tag(db_session, test_user.id, "go")
        tags = await reconcile_tags(
            db_session,
            test_user.id,
            [name("rust"), TagRef(kind="id", value=existing.id), name("go"), name("rust")],
        )
        assert [t.name for t in tags] == ["rust", "go"]

    async def test__reconcile_tags__skips_foreign_and_unknown_ids(
        self, db_session: AsyncSession, test_user: User, other_user: User,
    ) -> None:
        """Ids that the user doesn't own are ignored."""
        foreign = await get_or_create_tag(db_session, other_user.id, "secret")
        tags = await reconcile_tags(
            db_session,
            test_user.id,
            [TagRef(kind="id", value=foreign.id), TagRef(kind="id", value="0" * 24)],
        )
        assert tags == []

    async def test__reconcile_tags__same_name_per_user_is_separate(
        self, db_session: AsyncSession, test_user: User, other_user: User,
    ) -> None:
        """Two users naming a tag the same get different tags."""
        mine = await reconcile_tags(db_session, test_user.id, [name("news")])
        theirs = await reconcile_tags(db_session, other_user.id, [name("news")])
        assert mine[0].id != theirs[0].id

    async def test__get_or_create_tag__recovers_from_concurrent_insert(
        self, db_session: AsyncSession, test_user: User,
    ) -> None:
        """A uniqueness violation from a racing insert falls back to the existing tag."""
        winner = Tag(user_id=test_user.id, name="race")
        db_session.add(winner)
        await db_session.flush()

        real_lookup = tag_service.get_tag_by_name
        calls = 0

        async def stale_first_lookup(db: AsyncSession, user_id: str, tag_name: str) -> Tag | None:
            nonlocal calls
            calls += 1
            if calls == 1:
                return None  # the racing request hasn't been seen yet
            return await real_lookup(db, user_id, tag_name)

        with patch.object(tag_service, "get_tag_by_name", side_effect=stale_first_lookup):
            tag = await get_or_create_tag(db_session, test_user.id, "race")

        assert tag.id == winner.id
        count = await db_session.scalar(select(func.count(Tag.id)).where(Tag.name == "race"))
        assert count == 1


class TestTagCrud:
    """Tests for tag create/list/update/delete."""

    async def test__get_user_tags_with_counts__orders_by_count_then_name(
        self, db_session: AsyncSession, test_user: User,
    ) -> None:
        """Counts reflect attached bookmarks; zero-count tags are included."""
        b, a, z = await reconcile_tags(db_session, test_user.id, [name("b"), name("a"), name("z")])
        for i in range(2):
            bookmark = Bookmark(user_id=test_user.id, url=f"https://e.com/{i}", title="t")
            bookmark.tag_objects = [b] if i == 0 else [b, a]
            db_session.add(bookmark)
        await db_session.flush()

        result = await get_user_tags_with_counts(db_session, test_user.id)
        assert [(t.name, t.count) for t in result] == [("b", 2), ("a", 1), ("z", 0)]

    async def test__create_tag__duplicate_raises(
        self, db_session: AsyncSession, test_user: User,
    ) -> None:
        """Creating a name twice is a conflict."""
        await create_tag(db_session, test_user.id, TagCreate(name="dup"))
        with pytest.raises(TagAlreadyExistsError):
            await create_tag(db_session, test_user.id, TagCreate(name="DUP"))

    async def test__update_tag__not_owned_raises(
        self, db_session: AsyncSession, test_user: User, other_user: User,
    ) -> None:
        """Another user's tag can't be updated."""
        created = await create_tag(db_session, other_user.id, TagCreate(name="theirs"))
        with pytest.raises(TagNotFoundError):
            await update_tag(db_session, test_user.id, created.id, TagUpdate(name="mine"))

    async def test__update_tag__same_name_is_noop(
        self, db_session: AsyncSession, test_user: User,
    ) -> None:
        """Renaming to the current name only applies the color."""
        created = await create_tag(db_session, test_user.id, TagCreate(name="same"))
        updated = await update_tag(
            db_session, test_user.id, created.id, TagUpdate(name="Same", color="#000000"),
        )
        assert updated.name == "same"
        assert updated.color == "#000000"

    async def test__delete_tag__detaches_and_keeps_bookmarks(
        self, db_session: AsyncSession, test_user: User,
    ) -> None:
        """Deleting a tag removes junction rows only."""
        (tag,) = await reconcile_tags(db_session, test_user.id, [name("temp")])
        bookmark = Bookmark(user_id=test_user.id, url="https://e.com", title="t")
        bookmark.tag_objects = [tag]
        db_session.add(bookmark)
        await db_session.flush()

        await delete_tag(db_session, test_user.id, tag.id)

        links = await db_session.scalar(select(func.count()).select_from(bookmark_tags))
        bookmarks = await db_session.scalar(select(func.count(Bookmark.id)))
        assert links == 0
        assert bookmarks == 1
        assert await db_session.get(Tag, tag.id) is None
