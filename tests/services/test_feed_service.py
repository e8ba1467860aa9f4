"""Tests for categories, subscriptions and read state."""
from uuid import uuid4

import pytest

from schemas.feed import Category, Subscription
from schemas.user import User
from services.exceptions import (
    CategoryAlreadyRegisteredError,
    CategoryNameRequiredError,
    CategoryNotFoundError,
    CategorySlugRequiredError,
    EntryNotFoundError,
    FeedFetchError,
    FeedURLInvalidError,
    SubscriptionAlreadyRegisteredError,
    SubscriptionNotFoundError,
)
from services.feed_query_service import FeedQueryService
from services.feed_service import FeedService, slugify, validate_feed_url
from stores.base import Stores
from stores.memory import MemoryDatabase
from tests.helpers import FakeFeedFetcher, FixedClock

FEED_URL = "https://blog.example.com/feed.xml"


@pytest.fixture
def service(stores: Stores, feed_fetcher: FakeFeedFetcher, clock: FixedClock) -> FeedService:
    feed_fetcher.register(FEED_URL, "Example Blog", entry_count=3)
    return FeedService(stores.feeds, feed_fetcher, clock=clock)


@pytest.fixture
def queries(stores: Stores) -> FeedQueryService:
    return FeedQueryService(stores.feeds)


@pytest.mark.parametrize(
    ("name", "slug"),
    [
        ("Tech News", "tech-news"),
        ("  Café & Crème  ", "cafe-creme"),
        ("--Already--slugged--", "already-slugged"),
        ("日本", ""),
    ],
)
def test_slugify(name: str, slug: str) -> None:
    assert slugify(name) == slug


@pytest.mark.parametrize(
    "url", ["", "example.com/feed", "ftp://example.com/feed", "https://", "file:///etc/passwd"],
)
def test_validate_feed_url_rejects_invalid_urls(url: str) -> None:
    with pytest.raises(FeedURLInvalidError):
        validate_feed_url(url)


async def test_add_category_derives_slug(service: FeedService, user: User) -> None:
    category = await service.add_category(user.uuid, "  Tech News ")
    assert category.name == "Tech News"
    assert category.slug == "tech-news"
    assert (await service.category_by_slug(user.uuid, "tech-news")).uuid == category.uuid


@pytest.mark.parametrize(
    ("name", "error"), [("", CategoryNameRequiredError), ("!!!", CategorySlugRequiredError)],
)
async def test_add_category_validates_name(
    service: FeedService, user: User, name: str, error: type[Exception],
) -> None:
    with pytest.raises(error):
        await service.add_category(user.uuid, name)


async def test_add_category_rejects_duplicate_name_or_slug(
    service: FeedService, user: User,
) -> None:
    await service.add_category(user.uuid, "Tech News")
    with pytest.raises(CategoryAlreadyRegisteredError):
        await service.add_category(user.uuid, "Tech News")
    with pytest.raises(CategoryAlreadyRegisteredError):
        await service.add_category(user.uuid, "tech news!")


async def test_add_category_same_name_for_other_users(service: FeedService, user: User) -> None:
    await service.add_category(user.uuid, "News")
    other = await service.add_category(uuid4(), "News")
    assert other.slug == "news"


async def test_get_or_create_category_reuses_by_slug(service: FeedService, user: User) -> None:
    created, was_created = await service.get_or_create_category(user.uuid, "Tech News")
    again, again_created = await service.get_or_create_category(user.uuid, "tech-news")
    assert was_created is True
    assert again_created is False
    assert again.uuid == created.uuid


async def test_update_category_renames_and_reslugs(
    service: FeedService, user: User, clock: FixedClock,
) -> None:
    category = await service.add_category(user.uuid, "News")
    later = clock.advance(hours=1)
    updated = await service.update_category(Category(
        uuid=category.uuid, user_uuid=user.uuid, name="World News",
    ))
    assert updated.slug == "world-news"
    assert updated.updated_at == later
    assert updated.created_at == category.created_at


async def test_update_category_rejects_taken_name(service: FeedService, user: User) -> None:
    await service.add_category(user.uuid, "News")
    other = await service.add_category(user.uuid, "Sports")
    with pytest.raises(CategoryAlreadyRegisteredError):
        await service.update_category(other.model_copy(update={"name": "News"}))


async def test_update_category_other_users_category_is_not_found(
    service: FeedService, user: User,
) -> None:
    category = await service.add_category(user.uuid, "News")
    with pytest.raises(CategoryNotFoundError):
        await service.update_category(category.model_copy(update={"user_uuid": uuid4()}))


async def test_subscribe_fetches_feed_and_stores_entries(
    service: FeedService,
    memory_db: MemoryDatabase,
    feed_fetcher: FakeFeedFetcher,
    user: User,
) -> None:
    category = await service.add_category(user.uuid, "Blogs")
    subscription = await service.subscribe(user.uuid, category.uuid, f"  {FEED_URL} ", "  My blog ")

    assert subscription.alias == "My blog"
    feed = memory_db.feeds[subscription.feed_uuid]
    assert feed.title == "Example Blog"
    assert feed.slug == "example-blog"
    assert len([e for e in memory_db.entries.values() if e.feed_uuid == feed.uuid]) == 3
    assert feed_fetcher.calls == [FEED_URL]


async def test_subscribe_shares_feed_between_users(
    service: FeedService, memory_db: MemoryDatabase, feed_fetcher: FakeFeedFetcher, user: User,
) -> None:
    """Test that two users subscribing to a URL share one feed."""
    other_uuid = uuid4()
    first = await service.subscribe(
        user.uuid, (await service.add_category(user.uuid, "Blogs")).uuid, FEED_URL,
    )
    second = await service.subscribe(
        other_uuid, (await service.add_category(other_uuid, "Blogs")).uuid, FEED_URL,
    )
    assert first.feed_uuid == second.feed_uuid
    assert len(memory_db.feeds) == 1
    assert feed_fetcher.calls == [FEED_URL]


async def test_subscribe_rejects_second_subscription_to_a_feed(
    service: FeedService, user: User,
) -> None:
    """Test that subscribing twice to a feed is a conflict."""
    category = await service.add_category(user.uuid, "Blogs")
    await service.subscribe(user.uuid, category.uuid, FEED_URL)
    with pytest.raises(SubscriptionAlreadyRegisteredError):
        await service.subscribe(user.uuid, category.uuid, FEED_URL)


async def test_subscribe_unknown_category(service: FeedService, user: User) -> None:
    with pytest.raises(CategoryNotFoundError):
        await service.subscribe(user.uuid, uuid4(), FEED_URL)


async def test_subscribe_unreachable_feed(service: FeedService, user: User) -> None:
    category = await service.add_category(user.uuid, "Blogs")
    with pytest.raises(FeedFetchError):
        await service.subscribe(user.uuid, category.uuid, "https://unknown.example.com/rss")


async def test_update_subscription_moves_and_aliases(service: FeedService, user: User) -> None:
    blogs = await service.add_category(user.uuid, "Blogs")
    news = await service.add_category(user.uuid, "News")
    subscription = await service.subscribe(user.uuid, blogs.uuid, FEED_URL)

    updated = await service.update_subscription(Subscription(
        uuid=subscription.uuid, user_uuid=user.uuid, category_uuid=news.uuid, alias="Renamed",
    ))
    assert updated.category_uuid == news.uuid
    assert updated.alias == "Renamed"

    with pytest.raises(CategoryNotFoundError):
        await service.update_subscription(updated.model_copy(update={"category_uuid": uuid4()}))


async def test_delete_subscription_keeps_shared_feed(
    service: FeedService, memory_db: MemoryDatabase, user: User,
) -> None:
    """Test that the feed outlives its last subscription."""
    category = await service.add_category(user.uuid, "Blogs")
    subscription = await service.subscribe(user.uuid, category.uuid, FEED_URL)

    await service.delete_subscription(user.uuid, subscription.uuid)

    assert subscription.uuid not in memory_db.subscriptions
    assert subscription.feed_uuid in memory_db.feeds
    with pytest.raises(SubscriptionNotFoundError):
        await service.delete_subscription(user.uuid, subscription.uuid)


async def test_delete_category_deletes_its_subscriptions(
    service: FeedService, memory_db: MemoryDatabase, user: User,
) -> None:
    category = await service.add_category(user.uuid, "Blogs")
    subscription = await service.subscribe(user.uuid, category.uuid, FEED_URL)

    await service.delete_category(user.uuid, category.uuid)

    assert subscription.uuid not in memory_db.subscriptions
    with pytest.raises(CategoryNotFoundError):
        await service.delete_category(user.uuid, category.uuid)


async def test_toggle_entry_read_flips_read_state(
    service: FeedService, queries: FeedQueryService, user: User,
) -> None:
    """Test toggling an entry between read and unread."""
    category = await service.add_category(user.uuid, "Blogs")
    await service.subscribe(user.uuid, category.uuid, FEED_URL)
    entry = (await queries.feeds_by_page(user.uuid, 1)).entries[0]
    assert entry.read is False

    assert (await service.toggle_entry_read(user.uuid, entry.uid)).read is True
    assert (await queries.feeds_by_page(user.uuid, 1)).entries[0].read is True
    assert (await service.toggle_entry_read(user.uuid, entry.uid)).read is False


async def test_toggle_entry_read_entry_of_unsubscribed_feed(
    service: FeedService, queries: FeedQueryService, user: User,
) -> None:
    category = await service.add_category(user.uuid, "Blogs")
    await service.subscribe(user.uuid, category.uuid, FEED_URL)
    entry = (await queries.feeds_by_page(user.uuid, 1)).entries[0]

    with pytest.raises(EntryNotFoundError):
        await service.toggle_entry_read(uuid4(), entry.uid)


async def test_mark_all_as_read_scoped_to_category(
    service: FeedService,
    queries: FeedQueryService,
    feed_fetcher: FakeFeedFetcher,
    user: User,
) -> None:
    """Test that marking a category as read leaves other categories unread."""
    other_url = "https://news.example.com/rss"
    feed_fetcher.register(other_url, "News Site", entry_count=2)
    blogs = await service.add_category(user.uuid, "Blogs")
    news = await service.add_category(user.uuid, "News")
    await service.subscribe(user.uuid, blogs.uuid, FEED_URL)
    await service.subscribe(user.uuid, news.uuid, other_url)

    assert (await queries.feeds_by_page(user.uuid, 1)).unread == 5
    assert await service.mark_all_as_read_by_category(user.uuid, news.uuid) == 2
    assert (await queries.feeds_by_page(user.uuid, 1)).unread == 3
    assert await service.mark_all_as_read(user.uuid) == 5
    assert (await queries.feeds_by_page(user.uuid, 1)).unread == 0


async def test_mark_all_as_read_by_subscription_unknown_subscription(
    service: FeedService, user: User,
) -> None:
    with pytest.raises(SubscriptionNotFoundError):
        await service.mark_all_as_read_by_subscription(user.uuid, uuid4())
