"""Paginated bookmark listings, full-text search and tag pages."""
from uuid import UUID

from core.paginate import PageNumberOutOfBoundsError, new_page, paginate
from schemas.bookmark import BookmarkPage, Tag, TagPage, Visibility
from services.exceptions import BookmarkNotFoundError, VisibilityInvalidError
from stores.base import BookmarkStore, UserStore

BOOKMARKS_PER_PAGE = 20
TAGS_PER_PAGE = 90


def parse_visibility(value: str | Visibility) -> Visibility:
    """
    Convert a string to a Visibility.

    Raises:
        VisibilityInvalidError: If value is not one of all, private or public.
    """
    try:
        return Visibility(value)
    except ValueError as e:
        raise VisibilityInvalidError(str(value)) from e


class BookmarkQueryService:
    """Read-side service for bookmark pages and tags."""

    def __init__(self, bookmarks: BookmarkStore, users: UserStore) -> None:
        self._bookmarks = bookmarks
        self._users = users

    async def bookmarks_by_page(
        self, owner_uuid: UUID, visibility: Visibility, number: int,
    ) -> BookmarkPage:
        """
        Return a page of bookmarks, newest first.

        Raises:
            OwnerNotFoundError: If the owner does not exist.
            PageNumberOutOfBoundsError: If number is outside [1, total pages].
        """
        owner = await self._users.owner_by_uuid(owner_uuid)
        if number < 1:
            raise PageNumberOutOfBoundsError(number, 0)

        count = await self._bookmarks.count(owner_uuid, visibility)
        page = paginate(number, count, BOOKMARKS_PER_PAGE)
        if count == 0:
            return BookmarkPage(page=page, owner=owner, bookmarks=[])

        bookmarks = await self._bookmarks.get_n(
            owner_uuid, visibility, BOOKMARKS_PER_PAGE, page.db_offset,
        )
        return BookmarkPage(page=page, owner=owner, bookmarks=bookmarks)

    async def bookmarks_by_search_query_and_page(
        self,
        owner_uuid: UUID,
        visibility: Visibility,
        search_terms: str,
        number: int,
    ) -> BookmarkPage:
        """
        Return a page of bookmarks matching a web-search style query, newest first.

        Raises:
            OwnerNotFoundError: If the owner does not exist.
            PageNumberOutOfBoundsError: If number is outside [1, total pages].
        """
        owner = await self._users.owner_by_uuid(owner_uuid)
        if number < 1:
            raise PageNumberOutOfBoundsError(number, 0)

        count = await self._bookmarks.search_count(owner_uuid, visibility, search_terms)
        page = paginate(number, count, BOOKMARKS_PER_PAGE, search_terms=search_terms)
        if count == 0:
            return BookmarkPage(page=page, owner=owner, bookmarks=[])

        bookmarks = await self._bookmarks.search_n(
            owner_uuid, visibility, search_terms, BOOKMARKS_PER_PAGE, page.db_offset,
        )
        return BookmarkPage(page=page, owner=owner, bookmarks=bookmarks)

    async def public_bookmarks_by_page(self, owner_uuid: UUID, number: int) -> BookmarkPage:
        return await self.bookmarks_by_page(owner_uuid, Visibility.PUBLIC, number)

    async def public_bookmarks_by_search_query_and_page(
        self, owner_uuid: UUID, search_terms: str, number: int,
    ) -> BookmarkPage:
        return await self.bookmarks_by_search_query_and_page(
            owner_uuid, Visibility.PUBLIC, search_terms, number,
        )

    async def public_bookmark_by_uid(self, owner_uuid: UUID, uid: str) -> BookmarkPage:
        """
        Return a page holding a single public bookmark.

        Private or unknown bookmarks yield an empty page rather than an error.
        """
        owner = await self._users.owner_by_uuid(owner_uuid)
        try:
            bookmark = await self._bookmarks.get_public_by_uid(owner_uuid, uid)
        except BookmarkNotFoundError:
            return BookmarkPage(page=new_page(1, 1, 1, 0), owner=owner, bookmarks=[])
        return BookmarkPage(page=new_page(1, 1, 1, 1), owner=owner, bookmarks=[bookmark])

    async def tags(self, user_uuid: UUID, visibility: Visibility) -> list[Tag]:
        """Return all tags of a user by descending count, then name."""
        return await self._bookmarks.tag_get_all(user_uuid, visibility)

    async def tag_names_by_count(self, user_uuid: UUID, visibility: Visibility) -> list[str]:
        """Return tag names ordered as in tags()."""
        return [tag.name for tag in await self.tags(user_uuid, visibility)]

    async def tags_by_page(self, user_uuid: UUID, visibility: Visibility, number: int) -> TagPage:
        """
        Return a page of tags.

        Raises:
            PageNumberOutOfBoundsError: If number is outside [1, total pages].
        """
        return await self.tags_by_filter_query_and_page(user_uuid, visibility, "", number)

    async def tags_by_filter_query_and_page(
        self,
        user_uuid: UUID,
        visibility: Visibility,
        filter_term: str,
        number: int,
    ) -> TagPage:
        """
        Return a page of tags whose name contains filter_term, ignoring case.

        Raises:
            PageNumberOutOfBoundsError: If number is outside [1, total pages].
        """
        if number < 1:
            raise PageNumberOutOfBoundsError(number, 0)

        count = await self._bookmarks.tag_count(user_uuid, visibility, filter_term)
        page = paginate(number, count, TAGS_PER_PAGE, search_terms=filter_term)
        if count == 0:
            return TagPage(page=page, filter=filter_term, tags=[])

        tags = await self._bookmarks.tag_get_n(
            user_uuid, visibility, TAGS_PER_PAGE, page.db_offset, filter_term,
        )
        return TagPage(page=page, filter=filter_term, tags=tags)
