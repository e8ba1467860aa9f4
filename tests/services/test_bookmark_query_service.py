"""Tests for bookmark listings, search and tag pages."""
from uuid import uuid4

import pytest

from core.paginate import PageNumberOutOfBoundsError
from schemas.bookmark import Bookmark, Visibility
from schemas.user import User
from services.bookmark_query_service import (
    BOOKMARKS_PER_PAGE,
    BookmarkQueryService,
    parse_visibility,
)
from services.bookmark_service import BookmarkService
from services.exceptions import OwnerNotFoundError, VisibilityInvalidError
from stores.base import Stores
from tests.helpers import FixedClock


@pytest.fixture
def queries(stores: Stores) -> BookmarkQueryService:
    return BookmarkQueryService(stores.bookmarks, stores.users)


@pytest.fixture
def bookmarks(stores: Stores, clock: FixedClock) -> BookmarkService:
    return BookmarkService(stores.bookmarks, clock=clock)


async def _add(
    bookmarks: BookmarkService,
    clock: FixedClock,
    user: User,
    n: int,
    **overrides: object,
) -> Bookmark:
    clock.advance(minutes=1)
    values = {
        "user_uuid": user.uuid,
        "url": f"https://example.com/{n}",
        "title": f"Bookmark {n}",
    }
    values.update(overrides)
    return await bookmarks.add(Bookmark(**values))


def test_parse_visibility() -> None:
    assert parse_visibility("public") == Visibility.PUBLIC
    with pytest.raises(VisibilityInvalidError):
        parse_visibility("friends")


async def test_bookmarks_by_page_newest_first_with_pagination(
    queries: BookmarkQueryService,
    bookmarks: BookmarkService,
    clock: FixedClock,
    user: User,
) -> None:
    for n in range(BOOKMARKS_PER_PAGE + 5):
        await _add(bookmarks, clock, user, n)

    first = await queries.bookmarks_by_page(user.uuid, Visibility.ALL, 1)
    assert first.owner.nick_name == user.nick_name
    assert first.page.total_pages == 2
    assert first.page.item_count == BOOKMARKS_PER_PAGE + 5
    assert len(first.bookmarks) == BOOKMARKS_PER_PAGE
    assert first.bookmarks[0].title == f"Bookmark {BOOKMARKS_PER_PAGE + 4}"

    second = await queries.bookmarks_by_page(user.uuid, Visibility.ALL, 2)
    assert [b.title for b in second.bookmarks] == [f"Bookmark {n}" for n in range(4, -1, -1)]

    with pytest.raises(PageNumberOutOfBoundsError):
        await queries.bookmarks_by_page(user.uuid, Visibility.ALL, 3)


async def test_bookmarks_by_page_empty_first_page(
    queries: BookmarkQueryService, user: User,
) -> None:
    """Test that a user without bookmarks gets an empty first page."""
    page = await queries.bookmarks_by_page(user.uuid, Visibility.ALL, 1)
    assert page.bookmarks == []
    assert page.page.total_pages == 1
    with pytest.raises(PageNumberOutOfBoundsError):
        await queries.bookmarks_by_page(user.uuid, Visibility.ALL, 2)


async def test_bookmarks_by_page_page_zero_is_out_of_bounds(
    queries: BookmarkQueryService, user: User,
) -> None:
    with pytest.raises(PageNumberOutOfBoundsError):
        await queries.bookmarks_by_page(user.uuid, Visibility.ALL, 0)


async def test_bookmarks_by_page_unknown_owner(queries: BookmarkQueryService) -> None:
    """Test that an unknown owner raises."""
    with pytest.raises(OwnerNotFoundError):
        await queries.bookmarks_by_page(uuid4(), Visibility.ALL, 1)


async def test_bookmarks_by_page_filters_visibility(
    queries: BookmarkQueryService,
    bookmarks: BookmarkService,
    clock: FixedClock,
    user: User,
) -> None:
    await _add(bookmarks, clock, user, 1, private=True)
    await _add(bookmarks, clock, user, 2)

    public = await queries.public_bookmarks_by_page(user.uuid, 1)
    assert [b.title for b in public.bookmarks] == ["Bookmark 2"]
    private = await queries.bookmarks_by_page(user.uuid, Visibility.PRIVATE, 1)
    assert [b.title for b in private.bookmarks] == ["Bookmark 1"]
    everything = await queries.bookmarks_by_page(user.uuid, Visibility.ALL, 1)
    assert everything.page.item_count == 2


async def test_bookmarks_by_search_query_and_page_matches_title_description_and_tags(
    queries: BookmarkQueryService,
    bookmarks: BookmarkService,
    clock: FixedClock,
    user: User,
) -> None:
    await _add(bookmarks, clock, user, 1, title="Python packaging guide")
    await _add(bookmarks, clock, user, 2, description="Notes about python/asyncio")
    await _add(bookmarks, clock, user, 3, tags=["lang/python"])
    await _add(bookmarks, clock, user, 4, title="Rust ownership")

    page = await queries.bookmarks_by_search_query_and_page(
        user.uuid, Visibility.ALL, "python", 1,
    )
    assert page.page.search_terms == "python"
    assert [b.url for b in page.bookmarks] == [
        "https://example.com/3", "https://example.com/2", "https://example.com/1",
    ]

    negated = await queries.bookmarks_by_search_query_and_page(
        user.uuid, Visibility.ALL, "python -asyncio", 1,
    )
    assert len(negated.bookmarks) == 2


async def test_public_bookmarks_by_search_query_and_page_hides_private(
    queries: BookmarkQueryService,
    bookmarks: BookmarkService,
    clock: FixedClock,
    user: User,
) -> None:
    await _add(bookmarks, clock, user, 1, title="secret python", private=True)
    await _add(bookmarks, clock, user, 2, title="public python")
    page = await queries.public_bookmarks_by_search_query_and_page(user.uuid, "python", 1)
    assert [b.title for b in page.bookmarks] == ["public python"]


async def test_public_bookmark_by_uid_private_or_unknown_gives_empty_page(
    queries: BookmarkQueryService,
    bookmarks: BookmarkService,
    clock: FixedClock,
    user: User,
) -> None:
    """Test that private and unknown UIDs give an empty page."""
    public = await _add(bookmarks, clock, user, 1)
    private = await _add(bookmarks, clock, user, 2, private=True)

    found = await queries.public_bookmark_by_uid(user.uuid, public.uid)
    assert [b.uid for b in found.bookmarks] == [public.uid]

    hidden = await queries.public_bookmark_by_uid(user.uuid, private.uid)
    assert hidden.bookmarks == []
    assert (await queries.public_bookmark_by_uid(user.uuid, "unknown")).bookmarks == []


async def test_tags_ordered_by_count_then_name(
    queries: BookmarkQueryService,
    bookmarks: BookmarkService,
    clock: FixedClock,
    user: User,
) -> None:
    await _add(bookmarks, clock, user, 1, tags=["b", "a", "c"])
    await _add(bookmarks, clock, user, 2, tags=["c", "a"])
    await _add(bookmarks, clock, user, 3, tags=["c"], private=True)

    tags = await queries.tags(user.uuid, Visibility.ALL)
    assert [(t.name, t.count) for t in tags] == [("c", 3), ("a", 2), ("b", 1)]
    assert await queries.tag_names_by_count(user.uuid, Visibility.PUBLIC) == ["a", "c", "b"]


async def test_tags_by_filter_query_and_page_filters_case_insensitively(
    queries: BookmarkQueryService,
    bookmarks: BookmarkService,
    clock: FixedClock,
    user: User,
) -> None:
    await _add(bookmarks, clock, user, 1, tags=["Python", "rust", "cpython"])

    page = await queries.tags_by_filter_query_and_page(user.uuid, Visibility.ALL, "PYTH", 1)
    assert page.filter == "PYTH"
    assert [t.name for t in page.tags] == ["Python", "cpython"]

    unfiltered = await queries.tags_by_page(user.uuid, Visibility.ALL, 1)
    assert unfiltered.page.item_count == 3
