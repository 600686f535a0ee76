"""Pydantic schemas for bookmark endpoints."""
from datetime import datetime
from typing import Any, Literal

from pydantic import (
    BaseModel,
    Field,
    field_validator,
    model_validator,
)

from schemas.common import CamelModel
from schemas.validators import (
    is_object_id,
    truncate_description,
    validate_and_normalize_tag,
    validate_http_url,
    validate_image_url,
    validate_object_id,
    validate_title_length,
)

BookmarkSort = Literal["createdAt", "-createdAt", "title", "-title"]


class TagRef(BaseModel):
    """
    A reference to a tag in bookmark input: either an existing tag id or a name.

    Names are normalized here; ids are checked for shape only, ownership is
    checked by the reconciler.
    """

    kind: Literal["id", "name"]
    value: str

    @model_validator(mode="after")
    def normalize_value(self) -> "TagRef":
        """Normalize a name, or validate an identifier's shape."""
        if self.kind == "name":
            self.value = validate_and_normalize_tag(self.value)
        else:
            validate_object_id(self.value)
        return self


def classify_tag_input(value: Any) -> Any:
    """
    Turn a bare string into a TagRef payload.

    Strings shaped like an identifier are treated as ids, everything else as a
    name. Explicit ``{"kind": ..., "value": ...}`` objects pass through.
    """
    if isinstance(value, str):
        kind = "id" if is_object_id(value.strip()) else "name"
        return {"kind": kind, "value": value.strip()}
    return value


def normalize_tag_refs(v: Any) -> Any:
    """Classify bare strings and drop blank names from a tags list."""
    if v is None or not isinstance(v, list):
        return v
    refs = []
    for item in v:
        if isinstance(item, str) and not item.strip():
            continue  # Skip empty tags silently
        refs.append(classify_tag_input(item))
    return refs


def dedupe_tag_refs(refs: list[TagRef]) -> list[TagRef]:
    """Remove repeated references, preserving first occurrence order."""
    seen: set[tuple[str, str]] = set()
    result = []
    for ref in refs:
        key = (ref.kind, ref.value)
        if key not in seen:
            seen.add(key)
            result.append(ref)
    return result


def dedupe_ids(ids: list[str]) -> list[str]:
    """Validate identifiers and remove repeats, preserving order."""
    return list(dict.fromkeys(validate_object_id(i) for i in ids))


class BookmarkCreate(CamelModel):
    """
    Schema for creating a new bookmark.

    Missing title or image are filled from the page's metadata when possible.
    """

    url: str
    title: str | None = None
    description: str | None = None
    image: str | None = None
    reading_time: str | None = Field(default=None, max_length=50)
    tags: list[TagRef] = []
    collections: list[str] = []

    @field_validator("tags", mode="before")
    @classmethod
    def classify_tags(cls, v: Any) -> Any:
        """Accept bare strings alongside explicit tag references."""
        if v is None:
            return []
        return normalize_tag_refs(v)

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, v: list[TagRef]) -> list[TagRef]:
        """Drop repeated tag references."""
        return dedupe_tag_refs(v)

    @field_validator("collections", mode="before")
    @classmethod
    def default_collections(cls, v: Any) -> Any:
        """Treat null as an empty list."""
        return [] if v is None else v

    @field_validator("collections")
    @classmethod
    def check_collections(cls, v: list[str]) -> list[str]:
        """Validate collection identifiers."""
        return dedupe_ids(v)

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str | None) -> str | None:
        """Validate title length."""
        return validate_title_length(v)

    @field_validator("description", mode="before")
    @classmethod
    def clamp_description(cls, v: str | None) -> str | None:
        """Truncate over-long descriptions instead of rejecting them."""
        if not isinstance(v, str):
            return v
        return truncate_description(v.strip()) or None

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str | None) -> str | None:
        """Validate the URL, keeping the submitted form."""
        return validate_http_url(v)

    @field_validator("image")
    @classmethod
    def check_image(cls, v: str | None) -> str | None:
        """Validate the image URL."""
        return validate_image_url(v)


class BookmarkUpdate(CamelModel):
    """
    Schema for updating a bookmark.

    Only fields present in the request body are changed. ``tags`` and
    ``collections`` replace the bookmark's current sets when given.
    """

    url: str | None = None
    title: str | None = None
    description: str | None = None
    image: str | None = None
    reading_time: str | None = Field(default=None, max_length=50)
    is_unread: bool | None = None
    tags: list[TagRef] | None = None
    collections: list[str] | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def classify_tags(cls, v: Any) -> Any:
        """Accept bare strings alongside explicit tag references."""
        return normalize_tag_refs(v)

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, v: list[TagRef] | None) -> list[TagRef] | None:
        """Drop repeated tag references."""
        if v is None:
            return None
        return dedupe_tag_refs(v)

    @field_validator("collections")
    @classmethod
    def check_collections(cls, v: list[str] | None) -> list[str] | None:
        """Validate collection identifiers if provided."""
        if v is None:
            return None
        return dedupe_ids(v)

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str | None) -> str | None:
        """Validate title length."""
        return validate_title_length(v)

    @field_validator("description", mode="before")
    @classmethod
    def clamp_description(cls, v: str | None) -> str | None:
        """Truncate over-long descriptions instead of rejecting them."""
        if not isinstance(v, str):
            return v
        return truncate_description(v.strip()) or None

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str | None) -> str | None:
        """Validate the URL, keeping the submitted form."""
        return validate_http_url(v)

    @field_validator("image")
    @classmethod
    def check_image(cls, v: str | None) -> str | None:
        """Validate the image URL."""
        return validate_image_url(v)

    @model_validator(mode="after")
    def reject_null_required(self) -> "BookmarkUpdate":
        """Title, URL and read state can be changed but not cleared."""
        for name in ("url", "title", "is_unread"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class BookmarkTag(CamelModel):
    """A tag as embedded in a bookmark."""

    id: str
    name: str
    color: str


class BookmarkCollection(CamelModel):
    """A collection as embedded in a bookmark."""

    id: str
    name: str
    icon: str


class BookmarkResponse(CamelModel):
    """
    Schema for bookmark responses.

    Note: Uses model_validator to read tags and collections from the
    tag_objects/collection_objects relationships when eagerly loaded.
    """

    id: str
    url: str
    title: str
    description: str | None
    image: str | None
    reading_time: str | None
    is_unread: bool
    tags: list[BookmarkTag]
    collections: list[BookmarkCollection]
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="before")
    @classmethod
    def extract_relationships(cls, data: Any) -> Any:
        """
        Extract tags and collections from the ORM relationships.

        Only accesses relationships that are already loaded (not lazy) to avoid
        triggering database queries outside async context.
        """
        if hasattr(data, "__dict__") and hasattr(type(data), "tag_objects"):
            data_dict = {
                key: getattr(data, key)
                for key in [
                    "id", "url", "title", "description", "image",
                    "reading_time", "is_unread", "created_at", "updated_at",
                ]
            }
            data_dict["tags"] = list(data.__dict__.get("tag_objects") or [])
            data_dict["collections"] = list(data.__dict__.get("collection_objects") or [])
            return data_dict
        return data


class Pagination(CamelModel):
    """Cursor pagination state for a page of results."""

    limit: int
    has_more: bool
    next_cursor: str | None = None


class BookmarkListResponse(CamelModel):
    """A page of bookmarks."""

    items: list[BookmarkResponse]
    pagination: Pagination


class BulkDeleteRequest(CamelModel):
    """Identifiers of bookmarks to delete."""

    ids: list[str] = []


class BulkDeleteResponse(CamelModel):
    """Outcome of a bulk delete."""

    deleted_count: int
    requested_count: int


class CountResponse(CamelModel):
    """Number of matching bookmarks."""

    count: int
