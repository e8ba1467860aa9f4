"""
Import and export tools.

Exports are answered with a file attachment. Imports take the document as the
raw request body; the CSRF token travels in the X-CSRF-Token header.
"""
from fastapi import APIRouter, Depends, Header, Request, Response
from fastapi.responses import JSONResponse

from api.dependencies import (
    Csrf,
    get_bookmark_export_service,
    get_bookmark_import_service,
    get_feed_export_service,
    get_feed_import_service,
    get_user_csrf,
    pop_flash,
    require_user,
)
from api.flash import redirect
from core.csrf import CsrfAction
from schemas.feed import CsrfOnlyForm
from schemas.flash import Flash, FlashLevel
from schemas.importing import BookmarkExportForm, ExportFormat
from schemas.pages import FormResponse
from schemas.user import User
from services.bookmark_export_service import BookmarkExportService
from services.bookmark_import_service import BookmarkImportService
from services.feed_export_service import FeedExportService
from services.feed_import_service import FeedImportService

router = APIRouter(prefix="/tools", tags=["tools"])

NETSCAPE_MEDIA_TYPE = "text/html; charset=utf-8"
OPML_MEDIA_TYPE = "text/x-opml; charset=utf-8"


def _attachment(filename: str) -> dict[str, str]:
    return {"Content-Disposition": f"attachment; filename={filename}"}


# =============================================================================
# Bookmarks
# =============================================================================


@router.get("/bookmarks/export", response_model=FormResponse)
async def export_bookmarks_view(
    csrf: Csrf = Depends(get_user_csrf),
    flash: Flash | None = Depends(pop_flash),
) -> FormResponse:
    return FormResponse(flash=flash, csrf_token=csrf.token(CsrfAction.TOOLS_BOOKMARK_EXPORT))


@router.post("/bookmarks/export")
async def export_bookmarks(
    form: BookmarkExportForm,
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    exporter: BookmarkExportService = Depends(get_bookmark_export_service),
) -> Response:
    """Download bookmarks as a JSON document or a Netscape Bookmark File."""
    csrf.verify(form.csrf_token, CsrfAction.TOOLS_BOOKMARK_EXPORT)
    if form.format == ExportFormat.NETSCAPE:
        document = await exporter.export_as_netscape_document(user.uuid, form.visibility)
        return Response(
            content=document,
            media_type=NETSCAPE_MEDIA_TYPE,
            headers=_attachment(f"bookmarks-{form.visibility}.htm"),
        )

    document = await exporter.export_as_json_document(user.uuid, form.visibility)
    return JSONResponse(
        content=document.to_dict(),
        headers=_attachment(f"bookmarks-{form.visibility}.json"),
    )


@router.get("/bookmarks/import", response_model=FormResponse)
async def import_bookmarks_view(
    csrf: Csrf = Depends(get_user_csrf),
    flash: Flash | None = Depends(pop_flash),
) -> FormResponse:
    return FormResponse(flash=flash, csrf_token=csrf.token(CsrfAction.TOOLS_BOOKMARK_IMPORT))


@router.post("/bookmarks/import")
async def import_bookmarks(
    request: Request,
    visibility: str = "default",
    on_conflict: str = "keep",
    csrf_token: str = Header(default="", alias="X-CSRF-Token"),
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    importer: BookmarkImportService = Depends(get_bookmark_import_service),
) -> Response:
    """
    Import a Netscape Bookmark File.

    `visibility` is `default` (keep the file's flag), `private` or `public`.
    `on_conflict` is `keep` or `overwrite`.
    """
    csrf.verify(csrf_token, CsrfAction.TOOLS_BOOKMARK_IMPORT)
    status = await importer.import_from_netscape_document(
        user.uuid, await request.body(), visibility, on_conflict,
    )
    return redirect("/tools/bookmarks/import", f"Import status: {status.summary}")


# =============================================================================
# Feeds
# =============================================================================


@router.get("/feeds/export", response_model=FormResponse)
async def export_feeds_view(
    csrf: Csrf = Depends(get_user_csrf),
    flash: Flash | None = Depends(pop_flash),
) -> FormResponse:
    return FormResponse(flash=flash, csrf_token=csrf.token(CsrfAction.TOOLS_FEED_EXPORT))


@router.post("/feeds/export")
async def export_feeds(
    form: CsrfOnlyForm,
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    exporter: FeedExportService = Depends(get_feed_export_service),
) -> Response:
    """Download subscriptions as an OPML document."""
    csrf.verify(form.csrf_token, CsrfAction.TOOLS_FEED_EXPORT)
    return Response(
        content=await exporter.export_as_opml_document(user),
        media_type=OPML_MEDIA_TYPE,
        headers=_attachment(f"{user.nick_name}-feeds.opml"),
    )


@router.get("/feeds/import", response_model=FormResponse)
async def import_feeds_view(
    csrf: Csrf = Depends(get_user_csrf),
    flash: Flash | None = Depends(pop_flash),
) -> FormResponse:
    return FormResponse(flash=flash, csrf_token=csrf.token(CsrfAction.TOOLS_FEED_IMPORT))


@router.post("/feeds/import")
async def import_feeds(
    request: Request,
    csrf_token: str = Header(default="", alias="X-CSRF-Token"),
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    importer: FeedImportService = Depends(get_feed_import_service),
) -> Response:
    """Import subscriptions from an OPML document; feeds that cannot be retrieved are skipped."""
    csrf.verify(csrf_token, CsrfAction.TOOLS_FEED_IMPORT)
    status = await importer.import_from_opml_document(user.uuid, await request.body())
    level = FlashLevel.WARNING if status.failed_feed_urls else FlashLevel.SUCCESS
    return redirect("/feeds", f"Import status: {status.summary}", level)
