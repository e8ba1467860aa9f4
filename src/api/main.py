"""FastAPI application entry point."""
import logging
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from datetime import datetime

import pydantic
from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from api.dependencies import CsrfTokenInvalidError
from api.flash import FORM_ERROR_MESSAGE, redirect_error
from api.routers import admin, bookmarks, feeds, health, public, session, tags, tools
from core.config import ConfigurationError, Settings, get_settings
from core.csrf import CsrfService
from core.paginate import PageNumberOutOfBoundsError, PageNumberParseError
from db.session import dispose_engine
from services.exceptions import (
    AuthenticationError,
    ConflictError,
    DomainError,
    FeedFetchError,
    NotFoundError,
    ValidationError,
)
from services.feed_fetcher import FeedFetcher, HTTPFeedFetcher
from services.utils import utc_now
from stores.base import StoreFactory
from stores.postgres import postgres_stores

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - startup and shutdown."""
    logging.basicConfig(
        level=app.state.settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("SparkleMuffin starting, public URL: %s", app.state.settings.public_url)

    yield

    # Shutdown: close pooled database connections
    await dispose_engine()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request and add security headers to response."""
        response = await call_next(request)
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Pages must not be framed
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "same-origin"
        return response


# =============================================================================
# Exception handlers
# =============================================================================


def _form_error(request: Request, message: str) -> Response:
    """Redirect a form submission back to its form; reject anything else with a 400."""
    if request.method == "GET":
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": message})
    return redirect_error(request.url.path, message)


async def validation_error_handler(request: Request, exc: DomainError) -> Response:
    """Validation and conflict errors are shown to the user on the submitting form."""
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
    return _form_error(request, str(exc))


async def csrf_error_handler(request: Request, exc: CsrfTokenInvalidError) -> Response:
    logger.warning("CSRF validation failed on %s: %s", request.url.path, exc)
    return redirect_error(request.url.path, FORM_ERROR_MESSAGE)


async def authentication_error_handler(request: Request, exc: AuthenticationError) -> Response:
    logger.warning("Authentication failed on %s: %s", request.url.path, exc)
    return _form_error(request, str(exc))


async def feed_fetch_error_handler(request: Request, exc: FeedFetchError) -> Response:
    logger.warning("Feed retrieval failed: %s", exc)
    return _form_error(request, str(exc))


async def not_found_handler(request: Request, exc: Exception) -> Response:
    logger.info("Not found: %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": "Not Found"})


async def page_number_parse_error_handler(
    _request: Request, exc: PageNumberParseError,
) -> Response:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


async def internal_error_handler(request: Request, exc: Exception) -> Response:
    """Store errors and anything unexpected: logged with context, 500."""
    logger.exception(
        "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal Server Error"},
    )


# =============================================================================
# Application factory
# =============================================================================


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise ConfigurationError(message)


def create_app(
    *,
    settings: Settings | None = None,
    csrf: CsrfService | None = None,
    store_factory: StoreFactory | None = None,
    feed_fetcher: FeedFetcher | None = None,
    clock: Callable[[], datetime] | None = None,
) -> FastAPI:
    """
    Build the application.

    Every input falls back to its production default: settings from the
    environment, a CSRF service keyed with CSRF_KEY, PostgreSQL stores, an HTTP
    feed fetcher and the UTC wall clock.

    Raises:
        ConfigurationError: If an input is missing or invalid.
    """
    if settings is None:
        try:
            settings = get_settings()
        except pydantic.ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e
    _require(bool(settings.csrf_key), "A CSRF key is required")
    _require(bool(settings.public_url), "A public URL is required")

    if csrf is None:
        csrf = CsrfService(settings.csrf_key, timeout_seconds=settings.csrf_timeout_seconds)
    if store_factory is None:
        store_factory = postgres_stores
    if feed_fetcher is None:
        feed_fetcher = HTTPFeedFetcher(
            timeout=settings.feed_fetch_timeout, user_agent=settings.feed_user_agent,
        )
    if clock is None:
        clock = utc_now

    _require(isinstance(csrf, CsrfService), "csrf must be a CsrfService")
    _require(callable(store_factory), "store_factory must be callable")
    _require(callable(getattr(feed_fetcher, "fetch", None)), "feed_fetcher must have a fetch method")
    _require(callable(clock), "clock must be callable")

    app = FastAPI(
        title="SparkleMuffin",
        description="A multi-user bookmark and feed manager.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.csrf = csrf
    app.state.store_factory = store_factory
    app.state.feed_fetcher = feed_fetcher
    app.state.clock = clock

    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(ConflictError, validation_error_handler)
    app.add_exception_handler(CsrfTokenInvalidError, csrf_error_handler)
    app.add_exception_handler(AuthenticationError, authentication_error_handler)
    app.add_exception_handler(FeedFetchError, feed_fetch_error_handler)
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(PageNumberOutOfBoundsError, not_found_handler)
    app.add_exception_handler(PageNumberParseError, page_number_parse_error_handler)
    # StoreError, FeedRenderError and any other domain failure
    app.add_exception_handler(DomainError, internal_error_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    app.add_middleware(SecurityHeadersMiddleware)

    app.include_router(health.router)
    app.include_router(session.router)
    app.include_router(tags.router)
    app.include_router(bookmarks.router)
    app.include_router(public.router)
    app.include_router(feeds.router)
    app.include_router(tools.router)
    app.include_router(admin.router)
    return app


app = create_app()
