"""Bulk import of bookmarks from a Netscape Bookmark File."""
import logging
from collections.abc import Callable
from datetime import datetime
from uuid import UUID

from core.uid import new_uid
from schemas.bookmark import Bookmark
from schemas.importing import ImportStatus, ImportVisibility, OnConflictStrategy
from services.bookmark_service import normalize_bookmark, validate_bookmark_fields
from services.exceptions import (
    ImportDocumentInvalidError,
    OnConflictStrategyInvalidError,
    ValidationError,
    VisibilityInvalidError,
)
from services.netscape import NetscapeBookmark, parse_netscape
from services.utils import utc_now
from stores.base import BookmarkStore

logger = logging.getLogger(__name__)


def parse_import_visibility(value: str | ImportVisibility) -> ImportVisibility:
    """Raises VisibilityInvalidError for values other than default, private and public."""
    try:
        return ImportVisibility(value)
    except ValueError as e:
        raise VisibilityInvalidError(str(value)) from e


def parse_on_conflict_strategy(value: str | OnConflictStrategy) -> OnConflictStrategy:
    """Raises OnConflictStrategyInvalidError for values other than overwrite and keep."""
    try:
        return OnConflictStrategy(value)
    except ValueError as e:
        raise OnConflictStrategyInvalidError(str(value)) from e


class BookmarkImportService:
    """Import bookmarks with a visibility override and a conflict policy."""

    def __init__(
        self,
        store: BookmarkStore,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._clock = clock

    def _to_bookmark(
        self,
        user_uuid: UUID,
        entry: NetscapeBookmark,
        visibility: ImportVisibility,
        now: datetime,
    ) -> Bookmark:
        # Timestamps from the future are clamped to the import time
        created_at = min(entry.created_at or now, now)
        updated_at = min(max(entry.updated_at or created_at, created_at), now)

        if visibility == ImportVisibility.DEFAULT:
            private = entry.private
        else:
            private = visibility == ImportVisibility.PRIVATE

        return normalize_bookmark(Bookmark(
            uid=new_uid(),
            user_uuid=user_uuid,
            url=entry.url,
            title=entry.title,
            description=entry.description,
            private=private,
            tags=entry.tags,
            created_at=created_at,
            updated_at=updated_at,
        ))

    async def import_bookmarks(
        self,
        user_uuid: UUID,
        bookmarks: list[Bookmark],
        on_conflict: OnConflictStrategy,
    ) -> ImportStatus:
        """
        Store a batch of normalized bookmarks.

        Invalid bookmarks and repeated URLs (after the first) are counted as
        invalid. The remaining ones are written in a single store call.
        """
        status = ImportStatus(on_conflict=on_conflict)
        unique_urls: set[str] = set()
        filtered = []
        for bookmark in bookmarks:
            try:
                validate_bookmark_fields(bookmark)
            except ValidationError:
                status.invalid += 1
                continue
            if bookmark.url in unique_urls:
                status.invalid += 1
                continue
            unique_urls.add(bookmark.url)
            filtered.append(bookmark)

        if not filtered:
            return status

        if on_conflict == OnConflictStrategy.OVERWRITE:
            written = await self._store.upsert_many(filtered)
        else:
            written = await self._store.add_many_if_absent(filtered)

        status.new_or_updated = written
        status.skipped = len(filtered) - written
        logger.info("Imported bookmarks for user %s: %s", user_uuid, status.summary)
        return status

    async def import_from_netscape_document(
        self,
        user_uuid: UUID,
        document: str | bytes,
        visibility: ImportVisibility | str,
        on_conflict: OnConflictStrategy | str,
    ) -> ImportStatus:
        """
        Import bookmarks from a Netscape Bookmark File.

        Args:
            user_uuid: Owner of the imported bookmarks.
            document: The file content.
            visibility: `default` keeps the flag from the file; `private` and
                `public` override it for every bookmark.
            on_conflict: `overwrite` replaces bookmarks with the same URL;
                `keep` leaves them untouched.

        Raises:
            VisibilityInvalidError: If visibility is unknown.
            OnConflictStrategyInvalidError: If on_conflict is unknown.
            ImportDocumentInvalidError: If the document is empty.
        """
        visibility = parse_import_visibility(visibility)
        on_conflict = parse_on_conflict_strategy(on_conflict)
        if not document or not document.strip():
            raise ImportDocumentInvalidError("empty document")

        now = self._clock()
        bookmarks = [
            self._to_bookmark(user_uuid, entry, visibility, now)
            for entry in parse_netscape(document)
        ]
        return await self.import_bookmarks(user_uuid, bookmarks, on_conflict)
