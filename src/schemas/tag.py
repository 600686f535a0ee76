"""Pydantic schemas for tag endpoints."""
from datetime import datetime

from pydantic import Field, field_validator

from schemas.common import CamelModel
from schemas.validators import validate_and_normalize_tag, validate_hex_color


class TagCreate(CamelModel):
    """Schema for creating a tag."""

    name: str = Field(..., min_length=1)
    color: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        """Normalize and validate the tag name."""
        if not isinstance(v, str):
            raise ValueError("Tag name must be a string")
        return validate_and_normalize_tag(v)

    @field_validator("color")
    @classmethod
    def check_color(cls, v: str | None) -> str | None:
        """Validate the hex color."""
        return validate_hex_color(v)


class TagUpdate(CamelModel):
    """Schema for renaming or recoloring a tag. Omitted fields are left unchanged."""

    name: str | None = None
    color: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        """Normalize and validate the tag name if provided."""
        if v is None:
            return None
        if not isinstance(v, str):
            raise ValueError("Tag name must be a string")
        return validate_and_normalize_tag(v)

    @field_validator("color")
    @classmethod
    def check_color(cls, v: str | None) -> str | None:
        """Validate the hex color if provided."""
        return validate_hex_color(v)


class TagResponse(CamelModel):
    """A tag with the number of bookmarks that reference it."""

    id: str
    name: str
    color: str
    count: int = 0
    created_at: datetime
    updated_at: datetime
