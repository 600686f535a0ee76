"""Password hashing (argon2) and JWT issue/verify helpers."""
import logging
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from core.config import Settings
from core.exceptions import InvalidTokenError, ServerMisconfiguredError

logger = logging.getLogger(__name__)

_password_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    """Hash a password using argon2id."""
    return _password_hasher.hash(password)


def verify_password(password: str, hashed_password: str) -> bool:
    """Check a password against its hash. Never raises on mismatch."""
    try:
        return _password_hasher.verify(hashed_password, password)
    except (VerificationError, InvalidHashError):
        return False


def _require_secret(settings: Settings) -> str:
    if not settings.jwt_secret:
        logger.error("JWT_SECRET is not configured")
        raise ServerMisconfiguredError
    return settings.jwt_secret


def create_access_token(
    user_id: str,
    email: str,
    settings: Settings,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Issue a signed token for a user.

    Args:
        user_id: The user's identifier, stored in the ``userId`` claim.
        email: The user's email, stored for client convenience.
        settings: Settings providing the secret, algorithm and default lifetime.
        expires_delta: Optional override for the token lifetime.

    Raises:
        ServerMisconfiguredError: If no signing key is configured.
    """
    secret = _require_secret(settings)
    now = datetime.now(UTC)
    expire = now + (expires_delta or timedelta(days=settings.access_token_expire_days))
    payload: dict[str, Any] = {
        "userId": user_id,
        "email": email,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings) -> str:
    """
    Verify a token's signature and expiry and return its user id.

    Raises:
        ServerMisconfiguredError: If no signing key is configured.
        InvalidTokenError: If the token is malformed, expired, tampered with,
            or has no ``userId`` claim.
    """
    secret = _require_secret(settings)
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp"]},
        )
    except jwt.ExpiredSignatureError as e:
        logger.info("Rejected expired token")
        raise InvalidTokenError from e
    except jwt.PyJWTError as e:
        logger.warning("JWT validation failed: %s", e)
        raise InvalidTokenError from e

    user_id = payload.get("userId")
    if not isinstance(user_id, str) or not user_id:
        raise InvalidTokenError
    return user_id
