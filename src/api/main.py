"""FastAPI application entry point."""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from api.routers import auth, bookmarks, collections, health, metadata, tags
from core.auth import AuthGateMiddleware
from core.config import get_settings
from core.exceptions import AppError
from db.session import get_engine

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - startup and shutdown."""
    app_settings = get_settings()
    configure_logging(app_settings.log_level)
    if not app_settings.jwt_secret:
        logger.error("JWT_SECRET is not set; protected endpoints will answer 500")

    yield

    # Shutdown: release pooled connections
    await get_engine().dispose()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request and add security headers to response."""
        response = await call_next(request)
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Prevent clickjacking - API shouldn't be framed
        response.headers["X-Frame-Options"] = "DENY"
        return response


app_settings = get_settings()

app = FastAPI(
    title="Read-Later Bookmarks API",
    description="Save links for later, organize them with tags and collections.",
    version="0.1.0",
    lifespan=lifespan,
)


def _format_location(loc: tuple) -> str:
    # Drop the "body"/"query" prefix so field names match the request keys
    parts = [str(part) for part in loc if part not in ("body", "query", "path")]
    return ".".join(parts) or "request"


@app.exception_handler(AppError)
async def app_error_handler(_request: Request, exc: AppError) -> JSONResponse:
    """Render domain errors with their own status code and message."""
    content: dict = {"success": False, "message": exc.message}
    if exc.errors:
        content["errors"] = [{"field": e.field, "message": e.message} for e in exc.errors]
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    _request: Request, exc: RequestValidationError,
) -> JSONResponse:
    """Render request validation failures as 400 with field-level messages."""
    errors = [
        {"field": _format_location(tuple(err.get("loc", ()))), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "Validation failed", "errors": errors},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map anything unexpected to 500, attaching the error for diagnostics."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal server error", "error": str(exc)},
    )


# Gate runs before routing; added first so CORS wraps it
app.add_middleware(AuthGateMiddleware)

# Security headers middleware (runs after CORS, adds headers to responses)
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(bookmarks.router)
app.include_router(tags.router)
app.include_router(collections.router)
app.include_router(metadata.router)
