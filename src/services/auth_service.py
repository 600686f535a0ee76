"""Service layer for registration, login and the session probe."""
import logging

from sqlalchemy import select
from starlette.concurrency import run_in_threadpool
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from core.exceptions import ConflictError, InvalidCredentialsError, UserNotFoundError
from core.security import create_access_token, hash_password, verify_password
from models.user import User
from schemas.auth import LoginRequest, RegisterRequest

logger = logging.getLogger(__name__)


class EmailAlreadyRegisteredError(ConflictError):
    """Raised when registering with an email that already has an account."""

    def __init__(self) -> None:
        super().__init__("User with this email already exists")


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Look up a user by (normalized) email."""
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def get_user(db: AsyncSession, user_id: str) -> User:
    """
    Load the user behind an authenticated request.

    Raises:
        UserNotFoundError: If the user was deleted after the token was issued.
    """
    user = await db.get(User, user_id)
    if user is None:
        raise UserNotFoundError
    return user


async def register_user(db: AsyncSession, data: RegisterRequest) -> User:
    """
    Create an account.

    Raises:
        EmailAlreadyRegisteredError: If the email is taken. No second record
            is created.
    """
    if await get_user_by_email(db, data.email) is not None:
        raise EmailAlreadyRegisteredError

    # argon2 is CPU-bound; run it on a worker thread
    hashed = await run_in_threadpool(hash_password, data.password)
    user = User(username=data.username, email=data.email, hashed_password=hashed)
    try:
        async with db.begin_nested():
            db.add(user)
            await db.flush()
    except IntegrityError as e:
        raise EmailAlreadyRegisteredError from e
    logger.info("Registered user %s", user.id)
    return user


async def authenticate(
    db: AsyncSession,
    data: LoginRequest,
    settings: Settings,
) -> tuple[User, str]:
    """
    Verify credentials and issue an access token.

    Returns:
        The user and a signed token.

    Raises:
        InvalidCredentialsError: Unknown email or wrong password (indistinguishable).
        ServerMisconfiguredError: If no signing key is configured.
    """
    user = await get_user_by_email(db, data.email)
    if user is None or not await run_in_threadpool(
        verify_password, data.password, user.hashed_password,
    ):
        logger.info("Failed login attempt")
        raise InvalidCredentialsError

    token = create_access_token(user.id, user.email, settings)
    logger.info("User %s logged in", user.id)
    return user, token
