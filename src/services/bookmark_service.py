"""Service layer for bookmark writes and tag rewrites."""
import logging
from collections.abc import Callable
from datetime import datetime
from uuid import UUID

from core.uid import is_valid_uid, new_uid
from schemas.bookmark import Bookmark
from schemas.validators import contains_whitespace, is_absolute_url, normalize_tags, normalize_text
from services.exceptions import (
    BookmarkNotFoundError,
    TagCurrentNameContainsWhitespaceError,
    TagNameRequiredError,
    TagNewNameContainsWhitespaceError,
    TagNewNameEqualsCurrentNameError,
    TitleRequiredError,
    UIDInvalidError,
    UIDRequiredError,
    URLAlreadyRegisteredError,
    URLInvalidError,
    URLRequiredError,
    UserUUIDRequiredError,
)
from services.utils import utc_now
from stores.base import BookmarkStore

logger = logging.getLogger(__name__)


def normalize_bookmark(bookmark: Bookmark) -> Bookmark:
    """
    Return a normalized copy of a bookmark.

    URL, title and description are trimmed. Tags are trimmed, de-duplicated,
    stripped of empty values and sorted. Normalization is idempotent.
    """
    return bookmark.model_copy(
        update={
            "url": normalize_text(bookmark.url),
            "title": normalize_text(bookmark.title),
            "description": normalize_text(bookmark.description),
            "tags": normalize_tags(bookmark.tags),
        },
    )


def validate_uid(uid: str) -> None:
    """
    Check that a UID is present and well-formed.

    Raises:
        UIDRequiredError: If uid is empty.
        UIDInvalidError: If uid is not a valid UID.
    """
    if not uid:
        raise UIDRequiredError()
    if not is_valid_uid(uid):
        raise UIDInvalidError(uid)


def validate_bookmark_fields(bookmark: Bookmark) -> None:
    """
    Check the field invariants shared by addition and update.

    Raises:
        UserUUIDRequiredError, URLRequiredError, URLInvalidError, TitleRequiredError
    """
    if bookmark.user_uuid is None:
        raise UserUUIDRequiredError()
    if not bookmark.url:
        raise URLRequiredError()
    if not is_absolute_url(bookmark.url):
        raise URLInvalidError(bookmark.url)
    if not bookmark.title:
        raise TitleRequiredError()


def validate_tag_name(name: str, error: type[Exception]) -> None:
    """Check a tag name is non-empty and free of whitespace."""
    if not name:
        raise TagNameRequiredError()
    if contains_whitespace(name):
        raise error(name)


class BookmarkService:
    """Add, edit and delete bookmarks, and rewrite tags across bookmarks."""

    def __init__(
        self,
        store: BookmarkStore,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._clock = clock

    async def add(self, bookmark: Bookmark) -> Bookmark:
        """
        Add a new bookmark.

        The UID and timestamps are generated here; any value set by the caller
        is ignored.

        Returns:
            The normalized bookmark as stored.

        Raises:
            ValidationError: If a field is missing or invalid.
            URLAlreadyRegisteredError: If the user already saved this URL.
        """
        now = self._clock()
        bookmark = normalize_bookmark(bookmark).model_copy(
            update={"uid": new_uid(), "created_at": now, "updated_at": now},
        )
        validate_bookmark_fields(bookmark)
        if await self._store.is_url_registered(bookmark.user_uuid, bookmark.url):
            raise URLAlreadyRegisteredError(bookmark.url)

        # The store raises URLAlreadyRegisteredError as well if a concurrent
        # request registered the URL after the check above.
        await self._store.add(bookmark)
        logger.debug("Added bookmark %s for user %s", bookmark.uid, bookmark.user_uuid)
        return bookmark

    async def update(self, bookmark: Bookmark) -> Bookmark:
        """
        Update an existing bookmark.

        Raises:
            ValidationError: If a field is missing or invalid.
            BookmarkNotFoundError: If the bookmark does not exist for the user.
            URLAlreadyRegisteredError: If another bookmark of the user has this URL.
        """
        bookmark = normalize_bookmark(bookmark).model_copy(update={"updated_at": self._clock()})
        validate_uid(bookmark.uid)
        validate_bookmark_fields(bookmark)

        current = await self._store.get_by_uid(bookmark.user_uuid, bookmark.uid)
        if await self._store.is_url_registered(
            bookmark.user_uuid, bookmark.url, exclude_uid=bookmark.uid,
        ):
            raise URLAlreadyRegisteredError(bookmark.url)

        # updated_at never goes backwards
        if current.updated_at is not None and bookmark.updated_at < current.updated_at:
            bookmark = bookmark.model_copy(update={"updated_at": current.updated_at})

        await self._store.update(bookmark)
        return bookmark.model_copy(update={"created_at": current.created_at})

    async def delete(self, user_uuid: UUID, uid: str) -> None:
        """
        Permanently delete a bookmark.

        Raises:
            UIDRequiredError, UIDInvalidError: If uid is malformed.
            BookmarkNotFoundError: If nothing was deleted.
        """
        validate_uid(uid)
        deleted = await self._store.delete(user_uuid, uid)
        if not deleted:
            raise BookmarkNotFoundError(uid)

    async def by_uid(self, user_uuid: UUID, uid: str) -> Bookmark:
        """Return a bookmark by UID. Raises BookmarkNotFoundError."""
        validate_uid(uid)
        return await self._store.get_by_uid(user_uuid, uid)

    async def by_url(self, user_uuid: UUID, url: str) -> Bookmark:
        """Return a bookmark by URL. Raises BookmarkNotFoundError."""
        url = normalize_text(url)
        if not url:
            raise URLRequiredError()
        return await self._store.get_by_url(user_uuid, url)

    async def delete_tag(self, user_uuid: UUID, name: str) -> int:
        """
        Remove a tag from every bookmark of the user.

        Returns:
            The number of bookmarks rewritten.

        Raises:
            TagNameRequiredError, TagCurrentNameContainsWhitespaceError
        """
        name = normalize_text(name)
        validate_tag_name(name, TagCurrentNameContainsWhitespaceError)

        now = self._clock()
        bookmarks = await self._store.get_by_tag(user_uuid, name)
        rewritten = [
            b.model_copy(update={
                "tags": [tag for tag in b.tags if tag != name],
                "updated_at": now,
            })
            for b in bookmarks
        ]
        if not rewritten:
            return 0
        count = await self._store.upsert_many(rewritten)
        logger.info("Deleted tag from %d bookmarks for user %s", count, user_uuid)
        return count

    async def update_tag(self, user_uuid: UUID, current_name: str, new_name: str) -> int:
        """
        Rename a tag on every bookmark of the user.

        Bookmarks that already carry the new name keep a single copy of it.

        Returns:
            The number of bookmarks rewritten.

        Raises:
            TagNameRequiredError, TagCurrentNameContainsWhitespaceError,
            TagNewNameContainsWhitespaceError, TagNewNameEqualsCurrentNameError
        """
        current_name = normalize_text(current_name)
        new_name = normalize_text(new_name)
        validate_tag_name(current_name, TagCurrentNameContainsWhitespaceError)
        validate_tag_name(new_name, TagNewNameContainsWhitespaceError)
        if current_name == new_name:
            raise TagNewNameEqualsCurrentNameError(new_name)

        now = self._clock()
        bookmarks = await self._store.get_by_tag(user_uuid, current_name)
        rewritten = [
            b.model_copy(update={
                "tags": normalize_tags(
                    [new_name if tag == current_name else tag for tag in b.tags],
                ),
                "updated_at": now,
            })
            for b in bookmarks
        ]
        if not rewritten:
            return 0
        count = await self._store.upsert_many(rewritten)
        logger.info("Renamed tag on %d bookmarks for user %s", count, user_uuid)
        return count
