"""Public bookmark pages and Atom feed of a user, open to anonymous visitors."""
from collections.abc import Callable
from datetime import datetime

from fastapi import APIRouter, Depends, Response

from api.dependencies import (
    get_app_settings,
    get_bookmark_query_service,
    get_clock,
    get_user_service,
    pop_flash,
)
from core.config import Settings
from core.paginate import parse_page_number
from schemas.flash import Flash
from schemas.pages import PublicBookmarkListResponse
from schemas.user import User
from services.atom import ATOM_MEDIA_TYPE, render_atom_feed
from services.bookmark_query_service import BookmarkQueryService
from services.user_service import UserService

router = APIRouter(prefix="/u/{nick_name}", tags=["public"])


def _atom_feed_url(settings: Settings, nick_name: str) -> str:
    return f"{settings.public_url}/u/{nick_name}/feed/atom"


async def _owner(nick_name: str, users: UserService) -> User:
    """Raises UserNotFoundError, rendered as a 404."""
    return await users.by_nick_name(nick_name)


@router.get("/bookmarks", response_model=PublicBookmarkListResponse)
async def list_public_bookmarks(
    nick_name: str,
    page: str | None = None,
    search: str = "",
    flash: Flash | None = Depends(pop_flash),
    settings: Settings = Depends(get_app_settings),
    users: UserService = Depends(get_user_service),
    queries: BookmarkQueryService = Depends(get_bookmark_query_service),
) -> PublicBookmarkListResponse:
    """List the public bookmarks of a user, newest first."""
    owner = await _owner(nick_name, users)
    number = parse_page_number(page)
    if search:
        bookmarks = await queries.public_bookmarks_by_search_query_and_page(
            owner.uuid, search, number,
        )
    else:
        bookmarks = await queries.public_bookmarks_by_page(owner.uuid, number)
    return PublicBookmarkListResponse(
        flash=flash,
        bookmarks=bookmarks,
        atom_feed_url=_atom_feed_url(settings, owner.nick_name),
    )


@router.get("/bookmarks/{uid}", response_model=PublicBookmarkListResponse)
async def public_bookmark(
    nick_name: str,
    uid: str,
    settings: Settings = Depends(get_app_settings),
    users: UserService = Depends(get_user_service),
    queries: BookmarkQueryService = Depends(get_bookmark_query_service),
) -> PublicBookmarkListResponse:
    """Permalink of a public bookmark. Private or unknown bookmarks yield an empty page."""
    owner = await _owner(nick_name, users)
    return PublicBookmarkListResponse(
        bookmarks=await queries.public_bookmark_by_uid(owner.uuid, uid),
        atom_feed_url=_atom_feed_url(settings, owner.nick_name),
    )


@router.get("/feed/atom")
async def public_atom_feed(
    nick_name: str,
    settings: Settings = Depends(get_app_settings),
    clock: Callable[[], datetime] = Depends(get_clock),
    users: UserService = Depends(get_user_service),
    queries: BookmarkQueryService = Depends(get_bookmark_query_service),
) -> Response:
    """Atom feed of the first page of public bookmarks."""
    owner = await _owner(nick_name, users)
    bookmarks = await queries.public_bookmarks_by_page(owner.uuid, 1)
    content = render_atom_feed(
        settings.public_url, bookmarks.owner, bookmarks.bookmarks, clock(),
    )
    return Response(
        content=content,
        media_type=ATOM_MEDIA_TYPE,
        headers={
            "Content-Disposition": f"attachment; filename={bookmarks.owner.nick_name}.atom",
        },
    )
