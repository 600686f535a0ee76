"""Bookmark model for storing user bookmarks."""
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, ObjectIdMixin, TimestampMixin
from models.collection import bookmark_collections
from models.tag import bookmark_tags

if TYPE_CHECKING:
    from models.collection import Collection
    from models.tag import Tag
    from models.user import User


class Bookmark(Base, ObjectIdMixin, TimestampMixin):
    """Bookmark model - stores URLs with metadata, tags and collections."""

    __tablename__ = "bookmarks"
    __table_args__ = (
        Index("ix_bookmarks_user_id_created_at", "user_id", "created_at"),
        Index("ix_bookmarks_user_id_is_unread", "user_id", "is_unread"),
    )

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image: Mapped[str | None] = mapped_column(Text, nullable=True)
    reading_time: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_unread: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    user: Mapped["User"] = relationship(back_populates="bookmarks")
    tag_objects: Mapped[list["Tag"]] = relationship(secondary=bookmark_tags)
    collection_objects: Mapped[list["Collection"]] = relationship(
        secondary=bookmark_collections,
    )
