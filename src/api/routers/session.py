"""Login, logout and the home page."""
import logging

from fastapi import APIRouter, Depends, Request, Response

from api.dependencies import (
    get_request_context,
    get_session_service,
    get_user_service,
    pop_flash,
)
from api.flash import redirect, redirect_error
from core.auth import REMEMBER_ME_COOKIE
from core.request_context import RequestContext
from schemas.flash import Flash
from schemas.pages import HomeResponse
from schemas.user import LoginForm, UserInfo
from services.exceptions import InvalidCredentialsError
from services.session_service import SessionService
from services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["session"])


def _home(context: RequestContext, flash: Flash | None) -> HomeResponse:
    user = UserInfo.model_validate(context.user) if context.user is not None else None
    return HomeResponse(flash=flash, user=user)


@router.get("/", response_model=HomeResponse)
async def home(
    context: RequestContext = Depends(get_request_context),
    flash: Flash | None = Depends(pop_flash),
) -> HomeResponse:
    return _home(context, flash)


@router.get("/login", response_model=HomeResponse)
async def login_view(
    context: RequestContext = Depends(get_request_context),
    flash: Flash | None = Depends(pop_flash),
) -> HomeResponse:
    return _home(context, flash)


@router.post("/login")
async def login(
    form: LoginForm,
    users: UserService = Depends(get_user_service),
    sessions: SessionService = Depends(get_session_service),
) -> Response:
    """
    Authenticate with an email and password.

    On success the remember-me cookie is set and the user is sent to their
    bookmarks. Unknown emails and wrong passwords get the same message.
    """
    try:
        user = await users.authenticate(form.email, form.password)
    except InvalidCredentialsError:
        logger.warning("Failed login attempt")
        return redirect_error("/login", "invalid email or password")

    session = await sessions.create(user.uuid)
    response = redirect("/bookmarks")
    response.set_cookie(
        REMEMBER_ME_COOKIE,
        session.remember_token,
        path="/",
        expires=session.expires_at,
        httponly=True,
    )
    logger.info("User %s logged in", user.nick_name)
    return response


@router.post("/logout")
async def logout(
    request: Request,
    context: RequestContext = Depends(get_request_context),
    sessions: SessionService = Depends(get_session_service),
) -> Response:
    """Clear the remember-me cookie and invalidate the current token."""
    response = redirect("/")
    response.delete_cookie(REMEMBER_ME_COOKIE, path="/", httponly=True)
    if context.user is not None:
        await sessions.rotate(context.user.uuid, request.cookies.get(REMEMBER_ME_COOKIE, ""))
    return response
