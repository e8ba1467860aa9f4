"""Flash messages carried by a short-lived cookie, deleted once read."""
import logging

from fastapi import Request, Response
from fastapi.responses import RedirectResponse

from schemas.flash import Flash, FlashLevel

logger = logging.getLogger(__name__)

FLASH_COOKIE = "flash"

# Shown for every CSRF failure, whatever the cause
FORM_ERROR_MESSAGE = "There was an error processing the form"


def put_flash(response: Response, level: FlashLevel, message: str) -> None:
    """Set the flash cookie on a response."""
    if level == FlashLevel.ERROR:
        message = f"Error: {message}"
    elif level == FlashLevel.WARNING:
        message = f"Warning: {message}"
    response.set_cookie(
        FLASH_COOKIE, Flash(level=level, message=message).encode(), path="/", httponly=True,
    )


def pop_flash(request: Request, response: Response) -> Flash | None:
    """
    FastAPI dependency returning the pending flash message, if any.

    The cookie is deleted on the response being built.
    """
    value = request.cookies.get(FLASH_COOKIE)
    if not value:
        return None
    response.delete_cookie(FLASH_COOKIE, path="/", httponly=True)
    try:
        return Flash.decode(value)
    except ValueError as e:
        logger.warning("Failed to decode flash cookie: %s", e)
        return None


def redirect(
    url: str,
    message: str = "",
    level: FlashLevel = FlashLevel.SUCCESS,
) -> RedirectResponse:
    """Return a 303 See Other, with an optional flash message."""
    response = RedirectResponse(url, status_code=303)
    if message:
        put_flash(response, level, message)
    return response


def redirect_error(url: str, message: str) -> RedirectResponse:
    return redirect(url, message, FlashLevel.ERROR)
