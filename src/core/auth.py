"""
Edge authentication gate and request-context accessors.

The gate runs before routing for every request under a protected prefix. It is
the only writer of ``request.state.user_id``; route handlers read the value via
``get_current_user_id``. Errors raised here never reach the FastAPI exception
handlers (middleware sits outside them), so the gate renders its own envelope.
"""
import logging

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from fastapi.security.utils import get_authorization_scheme_param
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from core.config import get_settings
from core.exceptions import AppError, UnauthenticatedError
from core.security import decode_access_token

logger = logging.getLogger(__name__)

PROTECTED_PREFIXES: tuple[str, ...] = ("/bookmarks", "/tags", "/collections", "/metadata")


def is_protected_path(path: str) -> bool:
    """True if the path is one of the protected prefixes or nested beneath one."""
    return any(path == prefix or path.startswith(prefix + "/") for prefix in PROTECTED_PREFIXES)


def extract_bearer_token(request: Request) -> str | None:
    """Return the bearer token from the Authorization header, if any."""
    scheme, token = get_authorization_scheme_param(request.headers.get("Authorization"))
    if scheme.lower() != "bearer" or not token:
        return None
    return token


def authenticate_request(request: Request) -> str:
    """
    Verify the request's bearer token and return the user id it carries.

    Raises:
        UnauthenticatedError: No bearer token present.
        InvalidTokenError: Token failed signature or expiry checks.
        ServerMisconfiguredError: Signing key not configured.
    """
    token = extract_bearer_token(request)
    if token is None:
        raise UnauthenticatedError
    return decode_access_token(token, get_settings())


class AuthGateMiddleware(BaseHTTPMiddleware):
    """Reject unauthenticated requests to protected paths before routing."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        """Authenticate protected requests and attach the caller's user id."""
        # Preflight requests carry no credentials
        if request.method == "OPTIONS" or not is_protected_path(request.url.path):
            return await call_next(request)

        try:
            request.state.user_id = authenticate_request(request)
        except AppError as e:
            return JSONResponse(
                status_code=e.status_code,
                content={"success": False, "message": e.message},
            )
        return await call_next(request)


def get_current_user_id(request: Request) -> str:
    """
    Return the authenticated user id placed on the request by the gate.

    Routes outside the gate's prefixes (e.g. ``/auth/me``) fall back to
    verifying the token here.
    """
    user_id = getattr(request.state, "user_id", None)
    if user_id is None:
        user_id = authenticate_request(request)
        request.state.user_id = user_id
    return user_id
