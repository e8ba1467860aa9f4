"""
Remember-me authentication and access gates.

Every request (except health and robots) is hydrated from the `remember_me` cookie:
the token is looked up through SessionService and the matching user is loaded.
Any failure leaves the request anonymous.

Gates:
- `require_user`: anonymous requests get a 404, hiding protected resources.
- `require_admin`: anonymous requests get a 404, non-admin users a 401.
"""
import logging
from datetime import timedelta

from fastapi import Depends, HTTPException, Request, status

from core.request_context import RequestContext
from db.stores import get_stores
from schemas.user import User
from services.exceptions import DomainError
from services.session_service import SessionService
from stores.base import Stores

logger = logging.getLogger(__name__)

REMEMBER_ME_COOKIE = "remember_me"


def session_service(request: Request, stores: Stores) -> SessionService:
    """Build a SessionService from the application state."""
    settings = request.app.state.settings
    return SessionService(
        stores.sessions,
        settings.csrf_key,
        duration=timedelta(days=settings.session_duration_days),
        clock=request.app.state.clock,
    )


async def get_request_context(
    request: Request,
    stores: Stores = Depends(get_stores),
) -> RequestContext:
    """Resolve the user behind the remember-me cookie, if any."""
    cached = getattr(request.state, "request_context", None)
    if cached is not None:
        return cached

    context = RequestContext()
    token = request.cookies.get(REMEMBER_ME_COOKIE, "")
    if token:
        try:
            session = await session_service(request, stores).by_remember_token(token)
            context.user = await stores.users.get_by_uuid(session.user_uuid)
        except DomainError as e:
            logger.info("Ignoring remember-me cookie: %s", type(e).__name__)

    request.state.request_context = context
    return context


async def require_user(
    context: RequestContext = Depends(get_request_context),
) -> User:
    """Return the authenticated user. Anonymous requests get a 404."""
    if context.user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    return context.user


async def require_admin(
    context: RequestContext = Depends(get_request_context),
) -> User:
    """Return the authenticated administrator."""
    if context.user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    if not context.user.is_admin:
        logger.warning("Non-admin user %s denied access", context.user.nick_name)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return context.user
