"""User model for storing registered accounts."""
from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, ObjectIdMixin, TimestampMixin

if TYPE_CHECKING:
    from models.bookmark import Bookmark
    from models.collection import Collection
    from models.tag import Tag


class User(Base, ObjectIdMixin, TimestampMixin):
    """User model - identity with unique email and an argon2 password hash."""

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        comment="Stored lowercase; login lookups normalize the same way",
    )
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)

    bookmarks: Mapped[list["Bookmark"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )
    tags: Mapped[list["Tag"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )
    collections: Mapped[list["Collection"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )
