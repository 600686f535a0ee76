"""Shared response envelope and base model for camelCase JSON."""
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base model whose fields are read and written as camelCase JSON keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ErrorDetail(BaseModel):
    """A field-level validation message."""

    field: str
    message: str


class ApiResponse(BaseModel, Generic[T]):
    """Envelope wrapping every JSON response body."""

    success: bool = True
    message: str | None = None
    data: T | None = None
