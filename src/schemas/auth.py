"""Pydantic schemas for registration, login and the session probe."""
from datetime import datetime
from typing import Any

from pydantic import EmailStr, Field, field_validator

from schemas.common import CamelModel


def strip_text(value: Any) -> Any:
    """Trim surrounding whitespace from string input."""
    return value.strip() if isinstance(value, str) else value


class RegisterRequest(CamelModel):
    """Schema for creating an account."""

    username: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)

    @field_validator("username", "email", mode="before")
    @classmethod
    def strip_whitespace(cls, v: Any) -> Any:
        """Trim surrounding whitespace before validation."""
        return strip_text(v)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        """Emails are stored and looked up lowercase."""
        return v.lower()


class LoginRequest(CamelModel):
    """Schema for exchanging credentials for a token."""

    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def strip_whitespace(cls, v: Any) -> Any:
        """Trim surrounding whitespace before validation."""
        return strip_text(v)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        """Emails are stored and looked up lowercase."""
        return v.lower()


class UserResponse(CamelModel):
    """Public view of a user. The password hash is never exposed."""

    id: str
    username: str
    email: str
    created_at: datetime
    updated_at: datetime


class LoginResponse(CamelModel):
    """Token plus the authenticated user."""

    token: str
    user: UserResponse
