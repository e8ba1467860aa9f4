"""Tests for the subscribed entry pages."""
from uuid import uuid4

import pytest

from core.paginate import PageNumberOutOfBoundsError
from schemas.user import User
from services.exceptions import SubscriptionNotFoundError
from services.feed_query_service import ALL_FEEDS_HEADER, ENTRIES_PER_PAGE, FeedQueryService
from services.feed_service import FeedService
from stores.base import Stores
from tests.helpers import FakeFeedFetcher, FixedClock

BLOG_URL = "https://blog.example.com/feed.xml"
NEWS_URL = "https://news.example.com/rss"


@pytest.fixture
def feeds(stores: Stores, feed_fetcher: FakeFeedFetcher, clock: FixedClock) -> FeedService:
    feed_fetcher.register(BLOG_URL, "Example Blog", entry_count=ENTRIES_PER_PAGE + 2)
    feed_fetcher.register(NEWS_URL, "News Site", entry_count=3)
    return FeedService(stores.feeds, feed_fetcher, clock=clock)


@pytest.fixture
def queries(stores: Stores) -> FeedQueryService:
    return FeedQueryService(stores.feeds)


async def test_feeds_by_page_empty_for_new_user(queries: FeedQueryService, user: User) -> None:
    page = await queries.feeds_by_page(user.uuid, 1)
    assert page.header == ALL_FEEDS_HEADER
    assert page.entries == []
    assert page.unread == 0
    with pytest.raises(PageNumberOutOfBoundsError):
        await queries.feeds_by_page(user.uuid, 2)


async def test_feeds_by_page_newest_first_across_subscriptions(
    feeds: FeedService, queries: FeedQueryService, user: User,
) -> None:
    """Test that entries of all subscriptions are merged newest first."""
    blogs = await feeds.add_category(user.uuid, "Blogs")
    news = await feeds.add_category(user.uuid, "News")
    await feeds.subscribe(user.uuid, blogs.uuid, BLOG_URL)
    await feeds.subscribe(user.uuid, news.uuid, NEWS_URL, alias="The News")

    first = await queries.feeds_by_page(user.uuid, 1)
    assert first.page.item_count == ENTRIES_PER_PAGE + 5
    assert first.page.total_pages == 2
    assert len(first.entries) == ENTRIES_PER_PAGE
    published = [entry.published_at for entry in first.entries]
    assert published == sorted(published, reverse=True)
    assert [c.category.name for c in first.categories] == ["Blogs", "News"]
    assert first.unread == ENTRIES_PER_PAGE + 5

    second = await queries.feeds_by_page(user.uuid, 2)
    assert len(second.entries) == 5
    oldest_news = [e for e in second.entries if e.feed_title == "News Site"]
    assert all(e.subscription_alias == "The News" for e in oldest_news)


async def test_feeds_by_category_and_page_uses_category_header(
    feeds: FeedService, queries: FeedQueryService, user: User,
) -> None:
    news = await feeds.add_category(user.uuid, "News")
    blogs = await feeds.add_category(user.uuid, "Blogs")
    await feeds.subscribe(user.uuid, news.uuid, NEWS_URL)
    await feeds.subscribe(user.uuid, blogs.uuid, BLOG_URL)

    page = await queries.feeds_by_category_and_page(user.uuid, news, 1)
    assert page.header == "News"
    assert {entry.feed_title for entry in page.entries} == {"News Site"}
    assert page.page.item_count == 3


async def test_feeds_by_subscription_and_page_uses_alias_then_title(
    feeds: FeedService, queries: FeedQueryService, user: User,
) -> None:
    """Test that the page header is the alias, or else the feed title."""
    news = await feeds.add_category(user.uuid, "News")
    aliased = await feeds.subscribe(user.uuid, news.uuid, NEWS_URL, alias="Headlines")
    plain = await feeds.subscribe(user.uuid, news.uuid, BLOG_URL)

    assert (await queries.feeds_by_subscription_and_page(user.uuid, aliased.uuid, 1)).header == (
        "Headlines"
    )
    page = await queries.feeds_by_subscription_and_page(user.uuid, plain.uuid, 1)
    assert page.header == "Example Blog"
    assert {entry.subscription_uuid for entry in page.entries} == {plain.uuid}


async def test_feeds_by_subscription_and_page_other_users_subscription(
    feeds: FeedService, queries: FeedQueryService, user: User,
) -> None:
    news = await feeds.add_category(user.uuid, "News")
    subscription = await feeds.subscribe(user.uuid, news.uuid, NEWS_URL)
    with pytest.raises(SubscriptionNotFoundError):
        await queries.feeds_by_subscription_and_page(uuid4(), subscription.uuid, 1)


async def test_feeds_by_query_and_page_searches_title_and_summary(
    feeds: FeedService, queries: FeedQueryService, user: User,
) -> None:
    news = await feeds.add_category(user.uuid, "News")
    await feeds.subscribe(user.uuid, news.uuid, NEWS_URL)

    page = await queries.feeds_by_query_and_page(user.uuid, '"News Site entry 1"', 1)
    assert [entry.title for entry in page.entries] == ["News Site entry 1"]
    assert page.page.search_terms == '"News Site entry 1"'


async def test_subscriptions_by_category_groups_and_sorts(
    feeds: FeedService, queries: FeedQueryService, user: User,
) -> None:
    """Test subscriptions grouped by category with unread counts."""
    news = await feeds.add_category(user.uuid, "News")
    await feeds.add_category(user.uuid, "Empty")
    await feeds.subscribe(user.uuid, news.uuid, NEWS_URL, alias="zz last")
    await feeds.subscribe(user.uuid, news.uuid, BLOG_URL)

    grouped = await queries.subscriptions_by_category(user.uuid)
    assert [group.category.name for group in grouped] == ["Empty", "News"]
    assert grouped[0].subscriptions == []
    assert [s.title for s in grouped[1].subscriptions] == ["Example Blog", "zz last"]


async def test_subscription_by_feed_returns_view(
    feeds: FeedService, queries: FeedQueryService, user: User,
) -> None:
    news = await feeds.add_category(user.uuid, "News")
    subscription = await feeds.subscribe(user.uuid, news.uuid, NEWS_URL)
    view = await queries.subscription_by_feed(user.uuid, subscription.feed_uuid)
    assert view.subscription_uuid == subscription.uuid
    assert view.feed_url == NEWS_URL
    assert view.unread == 3
