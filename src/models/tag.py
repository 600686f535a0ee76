"""Tag model for storing user tags."""
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

DEFAULT_TAG_COLOR = "#6366f1"


# Junction table for many-to-many relationship between bookmarks and tags
bookmark_tags = Table(
    "bookmark_tags",
    Base.metadata,
    Column(
        "bookmark_id",
        String(OBJECT_ID_LENGTH),
        ForeignKey("bookmarks.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "tag_id",
        String(OBJECT_ID_LENGTH),
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    # Index for lookups by tag (composite PK already indexes bookmark_id first)
    Index("ix_bookmark_tags_tag_id", "tag_id"),
)


class Tag(Base, ObjectIdMixin, TimestampMixin):
    """Tag model - unique lowercase name per user with a display color."""

    __tablename__ = "tags"
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_tags_user_id_name"),
    )

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    color: Mapped[str] = mapped_column(String(7), nullable=False, default=DEFAULT_TAG_COLOR)

    user: Mapped["User"] = relationship(back_populates="tags")
