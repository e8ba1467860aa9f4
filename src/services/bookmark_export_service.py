"""Export of bookmarks as JSON or Netscape Bookmark File documents."""
from collections.abc import Callable
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from schemas.bookmark import Bookmark, Visibility
from services.bookmark_query_service import parse_visibility
from services.netscape import write_netscape
from services.utils import utc_now
from stores.base import BookmarkStore


class JsonBookmark(BaseModel):
    """A bookmark in a JSON export."""

    url: str
    title: str
    description: str = ""
    private: bool
    tags: list[str] = []
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Serialize, omitting an empty description and empty tags."""
        data = self.model_dump(mode="json")
        if not self.description:
            del data["description"]
        if not self.tags:
            del data["tags"]
        return data


class JsonDocument(BaseModel):
    """A JSON bookmark export."""

    title: str
    exported_at: datetime
    bookmarks: list[JsonBookmark]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "title": self.title,
            "exported_at": self.exported_at.isoformat(),
            "bookmarks": [bookmark.to_dict() for bookmark in self.bookmarks],
        }


def export_title(visibility: Visibility) -> str:
    """Title of an export document."""
    return f"SparkleMuffin export of {visibility} bookmarks"


class BookmarkExportService:
    """Export a user's bookmarks, oldest first."""

    def __init__(
        self,
        store: BookmarkStore,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._clock = clock

    async def _bookmarks(
        self, user_uuid: UUID, visibility: Visibility | str,
    ) -> tuple[Visibility, list[Bookmark]]:
        visibility = parse_visibility(visibility)
        return visibility, await self._store.get_all(user_uuid, visibility)

    async def export_as_json_document(
        self, user_uuid: UUID, visibility: Visibility | str,
    ) -> JsonDocument:
        """
        Export bookmarks as a JSON document.

        Raises:
            VisibilityInvalidError: If visibility is not all, private or public.
        """
        visibility, bookmarks = await self._bookmarks(user_uuid, visibility)
        return JsonDocument(
            title=export_title(visibility),
            exported_at=self._clock(),
            bookmarks=[
                JsonBookmark(
                    url=b.url,
                    title=b.title,
                    description=b.description,
                    private=b.private,
                    tags=b.tags,
                    created_at=b.created_at,
                    updated_at=b.updated_at,
                )
                for b in bookmarks
            ],
        )

    async def export_as_netscape_document(
        self, user_uuid: UUID, visibility: Visibility | str,
    ) -> str:
        """
        Export bookmarks as a Netscape Bookmark File.

        Raises:
            VisibilityInvalidError: If visibility is not all, private or public.
        """
        visibility, bookmarks = await self._bookmarks(user_uuid, visibility)
        return write_netscape(bookmarks, title=export_title(visibility))
