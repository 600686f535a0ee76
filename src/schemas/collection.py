"""Pydantic schemas for collection endpoints."""
from datetime import datetime
from typing import Literal

from pydantic import Field, field_validator

from schemas.common import CamelModel

SmartCollectionType = Literal["all", "unread", "recent"]


def _strip(v: str | None) -> str | None:
    return v.strip() if isinstance(v, str) else v


class CollectionCreate(CamelModel):
    """Schema for creating a collection."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=300)
    icon: str | None = Field(default=None, min_length=1, max_length=16)

    @field_validator("name", "description", mode="before")
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        """Trim surrounding whitespace."""
        return _strip(v)


class CollectionUpdate(CamelModel):
    """Schema for updating a collection. Omitted fields are left unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=300)
    icon: str | None = Field(default=None, min_length=1, max_length=16)

    @field_validator("name", "description", mode="before")
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        """Trim surrounding whitespace."""
        return _strip(v)


class CollectionResponse(CamelModel):
    """
    A collection as listed to the client.

    Smart collections share this shape: they have a fixed id equal to their
    type, ``is_smart_collection`` set, and no timestamps.
    """

    id: str
    name: str
    description: str | None = None
    icon: str
    bookmark_count: int = 0
    is_smart_collection: bool = False
    smart_collection_type: SmartCollectionType | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
