"""Bookmark pages and forms of the authenticated user."""
from fastapi import APIRouter, Depends, Response

from api.dependencies import (
    Csrf,
    get_bookmark_query_service,
    get_bookmark_service,
    get_user_csrf,
    pop_flash,
    require_user,
)
from api.flash import redirect
from core.csrf import CsrfAction
from core.paginate import parse_page_number
from schemas.bookmark import Bookmark, BookmarkForm, CsrfForm, Visibility
from schemas.flash import Flash
from schemas.pages import BookmarkFormResponse, BookmarkListResponse
from schemas.user import User
from schemas.validators import split_tags
from services.bookmark_query_service import BookmarkQueryService
from services.bookmark_service import BookmarkService

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


def _form_bookmark(user: User, form: BookmarkForm, uid: str = "") -> Bookmark:
    tags = split_tags(form.tags) if isinstance(form.tags, str) else form.tags
    return Bookmark(
        uid=uid,
        user_uuid=user.uuid,
        url=form.url,
        title=form.title,
        description=form.description,
        private=form.private,
        tags=tags,
    )


@router.get("", response_model=BookmarkListResponse)
async def list_bookmarks(
    page: str | None = None,
    search: str = "",
    user: User = Depends(require_user),
    flash: Flash | None = Depends(pop_flash),
    queries: BookmarkQueryService = Depends(get_bookmark_query_service),
) -> BookmarkListResponse:
    """
    List the user's bookmarks, newest first.

    With `search`, only bookmarks matching the web-search style query are
    listed.
    """
    number = parse_page_number(page)
    if search:
        bookmarks = await queries.bookmarks_by_search_query_and_page(
            user.uuid, Visibility.ALL, search, number,
        )
    else:
        bookmarks = await queries.bookmarks_by_page(user.uuid, Visibility.ALL, number)
    return BookmarkListResponse(flash=flash, bookmarks=bookmarks)


@router.get("/add", response_model=BookmarkFormResponse)
async def add_bookmark_view(
    url: str = "",
    title: str = "",
    description: str = "",
    csrf: Csrf = Depends(get_user_csrf),
    flash: Flash | None = Depends(pop_flash),
) -> BookmarkFormResponse:
    """Form to add a bookmark, pre-filled from the query string (bookmarklet)."""
    return BookmarkFormResponse(
        flash=flash,
        csrf_token=csrf.token(CsrfAction.BOOKMARK_ADD),
        bookmark=Bookmark(url=url, title=title, description=description),
    )


@router.post("/add")
async def add_bookmark(
    form: BookmarkForm,
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    bookmarks: BookmarkService = Depends(get_bookmark_service),
) -> Response:
    csrf.verify(form.csrf_token, CsrfAction.BOOKMARK_ADD)
    await bookmarks.add(_form_bookmark(user, form))
    return redirect("/bookmarks", "The bookmark has been successfully added")


@router.get("/{uid}/edit", response_model=BookmarkFormResponse)
async def edit_bookmark_view(
    uid: str,
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    flash: Flash | None = Depends(pop_flash),
    bookmarks: BookmarkService = Depends(get_bookmark_service),
) -> BookmarkFormResponse:
    return BookmarkFormResponse(
        flash=flash,
        csrf_token=csrf.token(CsrfAction.BOOKMARK_EDIT),
        bookmark=await bookmarks.by_uid(user.uuid, uid),
    )


@router.post("/{uid}/edit")
async def edit_bookmark(
    uid: str,
    form: BookmarkForm,
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    bookmarks: BookmarkService = Depends(get_bookmark_service),
) -> Response:
    csrf.verify(form.csrf_token, CsrfAction.BOOKMARK_EDIT)
    await bookmarks.update(_form_bookmark(user, form, uid=uid))
    return redirect("/bookmarks", "The bookmark has been successfully updated")


@router.get("/{uid}/delete", response_model=BookmarkFormResponse)
async def delete_bookmark_view(
    uid: str,
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    flash: Flash | None = Depends(pop_flash),
    bookmarks: BookmarkService = Depends(get_bookmark_service),
) -> BookmarkFormResponse:
    return BookmarkFormResponse(
        flash=flash,
        csrf_token=csrf.token(CsrfAction.BOOKMARK_DELETE),
        bookmark=await bookmarks.by_uid(user.uuid, uid),
    )


@router.post("/{uid}/delete")
async def delete_bookmark(
    uid: str,
    form: CsrfForm,
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    bookmarks: BookmarkService = Depends(get_bookmark_service),
) -> Response:
    csrf.verify(form.csrf_token, CsrfAction.BOOKMARK_DELETE)
    await bookmarks.delete(user.uuid, uid)
    return redirect("/bookmarks", "The bookmark has been successfully deleted")
