"""Tag management endpoints. Tag names travel base64-URL-encoded in paths."""
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

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
from schemas.bookmark import CsrfForm, TagRenameForm, Visibility, decode_tag_name
from schemas.flash import Flash
from schemas.pages import TagFormResponse, TagListResponse
from schemas.user import User
from services.bookmark_query_service import BookmarkQueryService
from services.bookmark_service import BookmarkService

router = APIRouter(prefix="/bookmarks/tags", tags=["tags"])


def _decode(encoded_name: str) -> str:
    try:
        return decode_tag_name(encoded_name)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found") from e


@router.get("", response_model=TagListResponse)
async def list_tags(
    page: str | None = None,
    filter_term: str = Query(default="", alias="filter"),
    user: User = Depends(require_user),
    flash: Flash | None = Depends(pop_flash),
    queries: BookmarkQueryService = Depends(get_bookmark_query_service),
) -> TagListResponse:
    """
    List the user's tags by descending count, then name.

    `filter` keeps the tags whose name contains it, ignoring case.
    """
    tags = await queries.tags_by_filter_query_and_page(
        user.uuid, Visibility.ALL, filter_term, parse_page_number(page),
    )
    return TagListResponse(flash=flash, tags=tags)


@router.get("/{encoded_name}/edit", response_model=TagFormResponse)
async def rename_tag_view(
    encoded_name: str,
    csrf: Csrf = Depends(get_user_csrf),
    flash: Flash | None = Depends(pop_flash),
) -> TagFormResponse:
    return TagFormResponse(
        flash=flash,
        csrf_token=csrf.token(CsrfAction.BOOKMARK_TAG_EDIT),
        name=_decode(encoded_name),
        encoded_name=encoded_name,
    )


@router.post("/{encoded_name}/edit")
async def rename_tag(
    encoded_name: str,
    form: TagRenameForm,
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    bookmarks: BookmarkService = Depends(get_bookmark_service),
) -> Response:
    """Rename a tag on every bookmark carrying it."""
    name = _decode(encoded_name)
    csrf.verify(form.csrf_token, CsrfAction.BOOKMARK_TAG_EDIT)
    updated = await bookmarks.update_tag(user.uuid, name, form.new_name)
    return redirect("/bookmarks/tags", f"Tag renamed on {updated} bookmarks")


@router.get("/{encoded_name}/delete", response_model=TagFormResponse)
async def delete_tag_view(
    encoded_name: str,
    csrf: Csrf = Depends(get_user_csrf),
    flash: Flash | None = Depends(pop_flash),
) -> TagFormResponse:
    return TagFormResponse(
        flash=flash,
        csrf_token=csrf.token(CsrfAction.BOOKMARK_TAG_DELETE),
        name=_decode(encoded_name),
        encoded_name=encoded_name,
    )


@router.post("/{encoded_name}/delete")
async def delete_tag(
    encoded_name: str,
    form: CsrfForm,
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    bookmarks: BookmarkService = Depends(get_bookmark_service),
) -> Response:
    """Remove a tag from every bookmark carrying it."""
    name = _decode(encoded_name)
    csrf.verify(form.csrf_token, CsrfAction.BOOKMARK_TAG_DELETE)
    updated = await bookmarks.delete_tag(user.uuid, name)
    return redirect("/bookmarks/tags", f"Tag deleted from {updated} bookmarks")
