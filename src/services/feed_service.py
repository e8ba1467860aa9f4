"""Service layer for feed categories, subscriptions and read state."""
import logging
import re
import unicodedata
from collections.abc import Callable
from datetime import datetime
from urllib.parse import urlparse
from uuid import UUID, uuid4

from core.uid import new_uid
from schemas.feed import Category, Entry, EntryMetadata, Feed, Subscription
from schemas.validators import normalize_text
from services.exceptions import (
    CategoryAlreadyRegisteredError,
    CategoryNameRequiredError,
    CategoryNotFoundError,
    CategorySlugRequiredError,
    FeedNotFoundError,
    FeedURLInvalidError,
    SubscriptionAlreadyRegisteredError,
    SubscriptionNotFoundError,
)
from services.feed_fetcher import ALLOWED_SCHEMES, FeedFetcher, FetchedFeed
from services.utils import utc_now
from stores.base import FeedStore

logger = logging.getLogger(__name__)


def slugify(value: str) -> str:
    """Convert a name to a lowercase, ASCII, hyphen-separated slug."""
    ascii_value = (
        unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    )
    slug = ascii_value.lower()
    slug = re.sub(r"[^a-z0-9]+", "-", slug)
    return slug.strip("-")


def validate_feed_url(feed_url: str) -> None:
    """
    Check a feed URL is absolute and uses HTTP(S).

    Raises:
        FeedURLInvalidError: If the URL is empty, has no or an unsupported scheme,
            or has no host.
    """
    if not feed_url:
        raise FeedURLInvalidError(feed_url, "URL is required")
    try:
        parsed = urlparse(feed_url)
    except ValueError as e:
        raise FeedURLInvalidError(feed_url) from e
    if not parsed.scheme:
        raise FeedURLInvalidError(feed_url, "missing scheme")
    if parsed.scheme not in ALLOWED_SCHEMES:
        raise FeedURLInvalidError(feed_url, f"unsupported scheme {parsed.scheme!r}")
    if not parsed.netloc:
        raise FeedURLInvalidError(feed_url, "missing host")


class FeedService:
    """Manage categories and subscriptions, and track read state."""

    def __init__(
        self,
        store: FeedStore,
        fetcher: FeedFetcher,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._clock = clock

    # =========================================================================
    # Categories
    # =========================================================================

    async def add_category(self, user_uuid: UUID, name: str) -> Category:
        """
        Create a category.

        Raises:
            CategoryNameRequiredError, CategorySlugRequiredError
            CategoryAlreadyRegisteredError: If the name or slug is taken.
        """
        now = self._clock()
        category = self._normalize_category(Category(
            uuid=uuid4(), user_uuid=user_uuid, name=name, created_at=now, updated_at=now,
        ))
        if await self._store.category_is_registered(user_uuid, category.name, category.slug):
            raise CategoryAlreadyRegisteredError(category.name)
        await self._store.category_add(category)
        return category

    async def get_or_create_category(self, user_uuid: UUID, name: str) -> tuple[Category, bool]:
        """
        Return the user's category with the slug of name, creating it if needed.

        Returns:
            The category and whether it was created.
        """
        slug = slugify(normalize_text(name))
        try:
            return await self._store.category_get_by_slug(user_uuid, slug), False
        except CategoryNotFoundError:
            pass
        return await self.add_category(user_uuid, name), True

    async def update_category(self, category: Category) -> Category:
        """
        Rename a category.

        Raises:
            CategoryNotFoundError: If the category does not exist for the user.
            CategoryNameRequiredError, CategorySlugRequiredError
            CategoryAlreadyRegisteredError: If another category has the name or slug.
        """
        current = await self._store.category_get_by_uuid(category.user_uuid, category.uuid)
        category = self._normalize_category(current.model_copy(update={
            "name": category.name,
            "updated_at": self._clock(),
        }))
        if await self._store.category_is_registered(
            category.user_uuid, category.name, category.slug, exclude_uuid=category.uuid,
        ):
            raise CategoryAlreadyRegisteredError(category.name)
        await self._store.category_update(category)
        return category

    async def delete_category(self, user_uuid: UUID, category_uuid: UUID) -> None:
        """Delete a category and its subscriptions. Raises CategoryNotFoundError."""
        await self._store.category_get_by_uuid(user_uuid, category_uuid)
        await self._store.category_delete(user_uuid, category_uuid)

    async def category_by_uuid(self, user_uuid: UUID, category_uuid: UUID) -> Category:
        return await self._store.category_get_by_uuid(user_uuid, category_uuid)

    async def category_by_slug(self, user_uuid: UUID, slug: str) -> Category:
        return await self._store.category_get_by_slug(user_uuid, slug)

    async def categories(self, user_uuid: UUID) -> list[Category]:
        return await self._store.category_get_all(user_uuid)

    @staticmethod
    def _normalize_category(category: Category) -> Category:
        name = normalize_text(category.name)
        if not name:
            raise CategoryNameRequiredError()
        slug = slugify(name)
        if not slug:
            raise CategorySlugRequiredError(name)
        return category.model_copy(update={"name": name, "slug": slug})

    # =========================================================================
    # Feeds and subscriptions
    # =========================================================================

    async def get_or_create_feed(self, feed_url: str) -> tuple[Feed, bool]:
        """
        Return the feed registered for a URL, fetching and storing it if needed.

        Returns:
            The feed and whether it was created.

        Raises:
            FeedURLInvalidError: If the URL is invalid.
            FeedFetchError: If a new feed cannot be retrieved.
        """
        feed_url = normalize_text(feed_url)
        validate_feed_url(feed_url)
        try:
            return await self._store.feed_get_by_url(feed_url), False
        except FeedNotFoundError:
            pass

        fetched = await self._fetcher.fetch(feed_url)
        feed = await self._create_feed(fetched)
        return feed, True

    async def _create_feed(self, fetched: FetchedFeed) -> Feed:
        now = self._clock()
        title = normalize_text(fetched.title) or fetched.feed_url
        feed = Feed(
            uuid=uuid4(),
            feed_url=fetched.feed_url,
            title=title,
            description=normalize_text(fetched.description),
            slug=slugify(title),
            created_at=now,
            updated_at=now,
            fetched_at=now,
        )
        await self._store.feed_add(feed)

        entries = [
            Entry(
                uid=new_uid(),
                feed_uuid=feed.uuid,
                url=item.url,
                title=normalize_text(item.title),
                summary=normalize_text(item.summary),
                published_at=item.published_at or now,
                created_at=now,
                updated_at=now,
            )
            for item in fetched.entries
        ]
        if entries:
            inserted = await self._store.entry_add_many(entries)
            logger.info("Stored feed %s with %d entries", feed.feed_url, inserted)
        return feed

    async def subscribe(
        self,
        user_uuid: UUID,
        category_uuid: UUID,
        feed_url: str,
        alias: str = "",
    ) -> Subscription:
        """
        Subscribe a user to a feed under one of their categories.

        Raises:
            CategoryNotFoundError: If the category does not exist for the user.
            FeedURLInvalidError, FeedFetchError
            SubscriptionAlreadyRegisteredError: If the user already follows the feed.
        """
        await self._store.category_get_by_uuid(user_uuid, category_uuid)
        feed, _ = await self.get_or_create_feed(feed_url)
        if await self._store.subscription_is_registered(user_uuid, feed.uuid):
            raise SubscriptionAlreadyRegisteredError(feed.feed_url)

        now = self._clock()
        subscription = Subscription(
            uuid=uuid4(),
            user_uuid=user_uuid,
            feed_uuid=feed.uuid,
            category_uuid=category_uuid,
            alias=normalize_text(alias),
            created_at=now,
            updated_at=now,
        )
        await self._store.subscription_add(subscription)
        return subscription

    async def get_or_create_subscription(
        self, user_uuid: UUID, category_uuid: UUID, feed: Feed,
    ) -> tuple[Subscription, bool]:
        """
        Return the user's subscription to a feed, creating it under category_uuid if needed.

        An existing subscription is left in its current category.
        """
        try:
            return await self._store.subscription_get_by_feed(user_uuid, feed.uuid), False
        except SubscriptionNotFoundError:
            pass

        now = self._clock()
        subscription = Subscription(
            uuid=uuid4(),
            user_uuid=user_uuid,
            feed_uuid=feed.uuid,
            category_uuid=category_uuid,
            created_at=now,
            updated_at=now,
        )
        await self._store.subscription_add(subscription)
        return subscription, True

    async def update_subscription(self, subscription: Subscription) -> Subscription:
        """
        Move a subscription to another category and/or change its alias.

        Raises:
            SubscriptionNotFoundError, CategoryNotFoundError
        """
        current = await self._store.subscription_get_by_uuid(
            subscription.user_uuid, subscription.uuid,
        )
        category_uuid = subscription.category_uuid or current.category_uuid
        await self._store.category_get_by_uuid(subscription.user_uuid, category_uuid)

        updated = current.model_copy(update={
            "category_uuid": category_uuid,
            "alias": normalize_text(subscription.alias),
            "updated_at": self._clock(),
        })
        await self._store.subscription_update(updated)
        return updated

    async def delete_subscription(self, user_uuid: UUID, subscription_uuid: UUID) -> None:
        """
        Unsubscribe. The shared feed and its entries are kept.

        Raises:
            SubscriptionNotFoundError
        """
        await self._store.subscription_get_by_uuid(user_uuid, subscription_uuid)
        await self._store.subscription_delete(user_uuid, subscription_uuid)

    # =========================================================================
    # Read state
    # =========================================================================

    async def toggle_entry_read(self, user_uuid: UUID, entry_uid: str) -> EntryMetadata:
        """
        Flip the read flag of an entry for a user; a missing flag means unread.

        Raises:
            EntryNotFoundError: If the entry is not in one of the user's feeds.
        """
        await self._store.entry_get_subscribed(user_uuid, entry_uid)
        current = await self._store.entry_metadata_get(user_uuid, entry_uid)
        metadata = EntryMetadata(
            user_uuid=user_uuid,
            entry_uid=entry_uid,
            read=not (current is not None and current.read),
            updated_at=self._clock(),
        )
        await self._store.entry_metadata_upsert(metadata)
        return metadata

    async def mark_all_as_read(self, user_uuid: UUID) -> int:
        """Mark every subscribed entry as read; return the number of entries."""
        return await self._store.entry_mark_all_as_read(user_uuid, self._clock())

    async def mark_all_as_read_by_category(self, user_uuid: UUID, category_uuid: UUID) -> int:
        """Raises CategoryNotFoundError."""
        await self._store.category_get_by_uuid(user_uuid, category_uuid)
        return await self._store.entry_mark_all_as_read(
            user_uuid, self._clock(), category_uuid=category_uuid,
        )

    async def mark_all_as_read_by_subscription(
        self, user_uuid: UUID, subscription_uuid: UUID,
    ) -> int:
        """Raises SubscriptionNotFoundError."""
        await self._store.subscription_get_by_uuid(user_uuid, subscription_uuid)
        return await self._store.entry_mark_all_as_read(
            user_uuid, self._clock(), subscription_uuid=subscription_uuid,
        )
