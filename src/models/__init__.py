"""SQLAlchemy models."""
from models.base import Base, ObjectIdMixin, TimestampMixin
from models.tag import Tag, bookmark_tags  # Must be before bookmark due to import
from models.collection import Collection, bookmark_collections
from models.bookmark import Bookmark
from models.user import User

__all__ = [
    "Base",
    "Bookmark",
    "Collection",
    "ObjectIdMixin",
    "Tag",
    "TimestampMixin",
    "User",
    "bookmark_collections",
    "bookmark_tags",
]
