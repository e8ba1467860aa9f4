"""FastAPI dependencies for injection."""
from collections.abc import Callable
from datetime import datetime

from fastapi import Depends, Request

from api.flash import pop_flash
from core.auth import get_request_context, require_admin, require_user, session_service
from core.config import Settings
from core.csrf import CsrfAction, CsrfService
from db.session import get_async_session
from db.stores import get_stores
from schemas.user import User
from services.bookmark_export_service import BookmarkExportService
from services.bookmark_import_service import BookmarkImportService
from services.bookmark_query_service import BookmarkQueryService
from services.bookmark_service import BookmarkService
from services.exceptions import AuthenticationError
from services.feed_export_service import FeedExportService
from services.feed_import_service import FeedImportService
from services.feed_query_service import FeedQueryService
from services.feed_service import FeedService
from services.session_service import SessionService
from services.user_service import UserService
from stores.base import Stores


class CsrfTokenInvalidError(AuthenticationError):
    """Raised when a form carries a missing, expired or foreign CSRF token."""

    def __init__(self, action: CsrfAction) -> None:
        self.action = action
        super().__init__(f"Invalid CSRF token for action {action}")


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_clock(request: Request) -> Callable[[], datetime]:
    return request.app.state.clock


def get_csrf(request: Request) -> CsrfService:
    return request.app.state.csrf


class Csrf:
    """Mint and check CSRF tokens for the authenticated user."""

    def __init__(self, service: CsrfService, user: User) -> None:
        self._service = service
        self._user = user

    def token(self, action: CsrfAction) -> str:
        return self._service.generate(str(self._user.uuid), action)

    def tokens(self, *actions: CsrfAction) -> dict[str, str]:
        """Return a token per action, keyed by action identifier."""
        return {str(action): self.token(action) for action in actions}

    def verify(self, token: str, action: CsrfAction) -> None:
        """Raises CsrfTokenInvalidError."""
        if not self._service.validate(token, str(self._user.uuid), action):
            raise CsrfTokenInvalidError(action)


def get_user_csrf(
    service: CsrfService = Depends(get_csrf),
    user: User = Depends(require_user),
) -> Csrf:
    return Csrf(service, user)


def get_admin_csrf(
    service: CsrfService = Depends(get_csrf),
    user: User = Depends(require_admin),
) -> Csrf:
    return Csrf(service, user)


# =============================================================================
# Services
# =============================================================================


def get_bookmark_service(
    stores: Stores = Depends(get_stores), clock=Depends(get_clock),
) -> BookmarkService:
    return BookmarkService(stores.bookmarks, clock=clock)


def get_bookmark_query_service(stores: Stores = Depends(get_stores)) -> BookmarkQueryService:
    return BookmarkQueryService(stores.bookmarks, stores.users)


def get_bookmark_import_service(
    stores: Stores = Depends(get_stores), clock=Depends(get_clock),
) -> BookmarkImportService:
    return BookmarkImportService(stores.bookmarks, clock=clock)


def get_bookmark_export_service(
    stores: Stores = Depends(get_stores), clock=Depends(get_clock),
) -> BookmarkExportService:
    return BookmarkExportService(stores.bookmarks, clock=clock)


def get_user_service(
    stores: Stores = Depends(get_stores), clock=Depends(get_clock),
) -> UserService:
    return UserService(stores.users, clock=clock)


def get_session_service(
    request: Request, stores: Stores = Depends(get_stores),
) -> SessionService:
    return session_service(request, stores)


def get_feed_service(
    request: Request, stores: Stores = Depends(get_stores), clock=Depends(get_clock),
) -> FeedService:
    return FeedService(stores.feeds, request.app.state.feed_fetcher, clock=clock)


def get_feed_query_service(stores: Stores = Depends(get_stores)) -> FeedQueryService:
    return FeedQueryService(stores.feeds)


def get_feed_import_service(
    feed_service: FeedService = Depends(get_feed_service),
) -> FeedImportService:
    return FeedImportService(feed_service)


def get_feed_export_service(
    stores: Stores = Depends(get_stores), clock=Depends(get_clock),
) -> FeedExportService:
    return FeedExportService(stores.feeds, clock=clock)


__all__ = [
    "Csrf",
    "CsrfTokenInvalidError",
    "get_admin_csrf",
    "get_app_settings",
    "get_async_session",
    "get_bookmark_export_service",
    "get_bookmark_import_service",
    "get_bookmark_query_service",
    "get_bookmark_service",
    "get_clock",
    "get_csrf",
    "get_feed_export_service",
    "get_feed_import_service",
    "get_feed_query_service",
    "get_feed_service",
    "get_request_context",
    "get_session_service",
    "get_stores",
    "get_user_csrf",
    "get_user_service",
    "pop_flash",
    "require_admin",
    "require_user",
]
