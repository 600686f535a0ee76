"""Pydantic schemas for the metadata preview endpoint."""
from pydantic import HttpUrl

from schemas.common import CamelModel


class MetadataRequest(CamelModel):
    """URL to preview."""

    url: HttpUrl


class MetadataPreviewResponse(CamelModel):
    """Page metadata extracted from a URL."""

    url: str
    title: str
    description: str | None = None
    image: str | None = None
    site_name: str | None = None
