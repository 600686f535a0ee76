"""
Application exception hierarchy.

Services raise these; api.main maps each one to the JSON response envelope
using the status code carried on the exception.
"""
from dataclasses import dataclass


@dataclass
class FieldError:
    """A single field-level validation failure."""

    field: str
    message: str


class AppError(Exception):
    """Base class for errors that are rendered verbatim to the client."""

    status_code: int = 400

    def __init__(self, message: str, errors: list[FieldError] | None = None) -> None:
        self.message = message
        self.errors = errors or []
        super().__init__(message)


class ValidationError(AppError):
    """Malformed input, with optional field-level messages."""

    status_code = 400


class ConflictError(AppError):
    """Raised when a uniquely-named resource (email, tag, collection) already exists."""

    status_code = 400


class UnknownCollectionError(AppError):
    """Raised when a bookmark write references collections the user doesn't own."""

    status_code = 400

    def __init__(self, requested: list[str]) -> None:
        self.requested = requested
        super().__init__("One or more collections not found")


class UnauthenticatedError(AppError):
    """Raised when a protected request carries no bearer token."""

    status_code = 401

    def __init__(self, message: str = "No token provided") -> None:
        super().__init__(message)


class InvalidTokenError(AppError):
    """Raised when a bearer token fails signature or expiry checks."""

    status_code = 401

    def __init__(self, message: str = "Invalid or expired token") -> None:
        super().__init__(message)


class InvalidCredentialsError(AppError):
    """Raised on login with an unknown email or a wrong password."""

    status_code = 401

    def __init__(self) -> None:
        super().__init__("Invalid email or password")


class NotFoundError(AppError):
    """
    Raised when a resource doesn't exist or belongs to another user.

    Both cases produce the same message so responses never reveal whether
    another user's resource exists.
    """

    status_code = 404

    def __init__(self, resource: str) -> None:
        self.resource = resource
        super().__init__(f"{resource} not found")


class UserNotFoundError(NotFoundError):
    """Raised by the session probe when the token's user no longer exists."""

    def __init__(self) -> None:
        super().__init__("User")


class ServerMisconfiguredError(AppError):
    """Raised when the JWT signing key is not configured."""

    status_code = 500

    def __init__(self) -> None:
        super().__init__("Server configuration error")
