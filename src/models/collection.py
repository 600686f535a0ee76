"""Collection model for grouping bookmarks."""
from typing import TYPE_CHECKING

from sqlalchemy import (
    Column,
    ForeignKey,
    Index,
    String,
    Table,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import OBJECT_ID_LENGTH, Base, ObjectIdMixin, TimestampMixin

if TYPE_CHECKING:
    from models.user import User

DEFAULT_COLLECTION_ICON = "\U0001f4c1"  # file folder


# Junction table for many-to-many relationship between bookmarks and collections
bookmark_collections = Table(
    "bookmark_collections",
    Base.metadata,
    Column(
        "bookmark_id",
        String(OBJECT_ID_LENGTH),
        ForeignKey("bookmarks.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "collection_id",
        String(OBJECT_ID_LENGTH),
        ForeignKey("collections.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Index("ix_bookmark_collections_collection_id", "collection_id"),
)


class Collection(Base, ObjectIdMixin, TimestampMixin):
    """
    Collection model - a user-named group of bookmarks.

    Smart collections (all/unread/recent) are not rows in this table; they are
    computed by the collection service at read time.
    """

    __tablename__ = "collections"
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_collections_user_id_name"),
    )

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(300), nullable=True)
    icon: Mapped[str | None] = mapped_column(
        String(16), nullable=True, default=DEFAULT_COLLECTION_ICON,
    )

    user: Mapped["User"] = relationship(back_populates="collections")
