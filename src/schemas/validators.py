"""
Shared validation functions for Pydantic schemas.

Used by the bookmark, tag and collection schemas.
"""
import re

from pydantic import HttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from core.config import get_settings

# 24 lowercase hex characters, the shape of every stored identifier
OBJECT_ID_PATTERN = re.compile(r"^[0-9a-f]{24}$")

HEX_COLOR_PATTERN = re.compile(r"^#[0-9a-fA-F]{6}$")

_HTTP_URL = TypeAdapter(HttpUrl)

MAX_TAG_NAME_LENGTH = 50


def is_object_id(value: str) -> bool:
    """True if the value has the shape of a stored identifier."""
    return bool(OBJECT_ID_PATTERN.match(value))


def validate_object_id(value: str) -> str:
    """Validate a single identifier, raising ValueError on a malformed one."""
    if not isinstance(value, str) or not is_object_id(value):
        raise ValueError(f"Invalid identifier: {value!r}")
    return value


def validate_and_normalize_tag(tag: str) -> str:
    """
    Normalize and validate a single tag name.

    Args:
        tag: The tag name to validate.

    Returns:
        The normalized name (lowercase, trimmed).

    Raises:
        ValueError: If the name is empty or too long.
    """
    normalized = tag.lower().strip()
    if not normalized:
        raise ValueError("Tag name cannot be empty")
    if len(normalized) > MAX_TAG_NAME_LENGTH:
        raise ValueError(f"Tag name cannot exceed {MAX_TAG_NAME_LENGTH} characters")
    return normalized


def validate_hex_color(color: str | None) -> str | None:
    """Validate a ``#rrggbb`` color, returning it lowercased."""
    if color is None:
        return None
    if not HEX_COLOR_PATTERN.match(color):
        raise ValueError("Color must be a hex value like #6366f1")
    return color.lower()


def truncate_description(description: str | None) -> str | None:
    """
    Clamp a description to the configured maximum length.

    Over-long descriptions are cut and suffixed with ``...`` so the result is
    exactly the maximum length. Applies to client input and scraped metadata.
    """
    if description is None:
        return None
    max_len = get_settings().max_description_length
    if len(description) > max_len:
        return description[: max_len - 3] + "..."
    return description


def validate_title_length(title: str | None) -> str | None:
    """Validate that a title is non-blank and doesn't exceed the maximum length."""
    if title is None:
        return None
    settings = get_settings()
    title = title.strip()
    if not title:
        raise ValueError("Title cannot be empty")
    if len(title) > settings.max_title_length:
        raise ValueError(
            f"Title exceeds maximum length of {settings.max_title_length:,} characters "
            f"(got {len(title):,} characters).",
        )
    return title


def validate_image_url(image: str | None) -> str | None:
    """Accept an http(s) URL or an empty value; empty values are stored as None."""
    if image is None or not image.strip():
        return None
    image = image.strip()
    if not image.startswith(("http://", "https://")):
        raise ValueError("Image must be a valid URL")
    return image


def validate_http_url(url: str | None) -> str | None:
    """
    Validate an absolute http(s) URL and return it as the client sent it.

    Only surrounding whitespace is removed; the parsed form (which may gain a
    trailing slash or punycode host) is used for the check alone.
    """
    if url is None:
        return None
    url = url.strip()
    try:
        _HTTP_URL.validate_python(url)
    except PydanticValidationError as e:
        raise ValueError("URL must be a valid http or https URL") from e
    return url
