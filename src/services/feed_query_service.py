"""Paginated views of a user's subscribed feed entries."""
from uuid import UUID

from core.paginate import paginate
from schemas.feed import (
    Category,
    FeedPage,
    SubscribedFeed,
    SubscribedFeedsByCategory,
    SubscriptionsByCategory,
)
from services.exceptions import SubscriptionNotFoundError
from stores.base import FeedStore

ENTRIES_PER_PAGE = 20
ALL_FEEDS_HEADER = "All"


def _find_subscribed_feed(
    categories: list[SubscribedFeedsByCategory], subscription_uuid: UUID,
) -> SubscribedFeed | None:
    for category in categories:
        for subscribed_feed in category.subscribed_feeds:
            if subscribed_feed.subscription_uuid == subscription_uuid:
                return subscribed_feed
    return None


class FeedQueryService:
    """Read-side service composing subscriptions, entries and read state."""

    def __init__(self, store: FeedStore) -> None:
        self._store = store

    async def _feed_page(
        self,
        user_uuid: UUID,
        number: int,
        header: str,
        categories: list[SubscribedFeedsByCategory],
        category_uuid: UUID | None = None,
        subscription_uuid: UUID | None = None,
        search_terms: str = "",
    ) -> FeedPage:
        scope = {
            "category_uuid": category_uuid,
            "subscription_uuid": subscription_uuid,
            "search_terms": search_terms,
        }
        count = await self._store.entry_count(user_uuid, **scope)
        page = paginate(number, count, ENTRIES_PER_PAGE, search_terms=search_terms)
        entries = []
        if count > 0:
            entries = await self._store.entry_get_n(
                user_uuid, ENTRIES_PER_PAGE, page.db_offset, **scope,
            )
        return FeedPage(
            page=page,
            header=header,
            unread=sum(category.unread for category in categories),
            categories=categories,
            entries=entries,
        )

    # =========================================================================
    # Entry pages
    # =========================================================================

    async def feeds_by_page(self, user_uuid: UUID, number: int) -> FeedPage:
        """
        Return a page of entries from every subscription, newest first.

        Raises:
            PageNumberOutOfBoundsError: If number is outside [1, total pages].
        """
        return await self.feeds_by_query_and_page(user_uuid, "", number)

    async def feeds_by_query_and_page(
        self, user_uuid: UUID, search_terms: str, number: int,
    ) -> FeedPage:
        categories = await self._store.subscriptions_by_category(user_uuid)
        return await self._feed_page(
            user_uuid, number, ALL_FEEDS_HEADER, categories, search_terms=search_terms,
        )

    async def feeds_by_category_and_page(
        self, user_uuid: UUID, category: Category, number: int,
    ) -> FeedPage:
        """
        Return a page of entries from the subscriptions of one category.

        Raises:
            PageNumberOutOfBoundsError: If number is outside [1, total pages].
        """
        return await self.feeds_by_category_and_query_and_page(user_uuid, category, "", number)

    async def feeds_by_category_and_query_and_page(
        self, user_uuid: UUID, category: Category, search_terms: str, number: int,
    ) -> FeedPage:
        categories = await self._store.subscriptions_by_category(user_uuid)
        return await self._feed_page(
            user_uuid,
            number,
            category.name,
            categories,
            category_uuid=category.uuid,
            search_terms=search_terms,
        )

    async def feeds_by_subscription_and_page(
        self, user_uuid: UUID, subscription_uuid: UUID, number: int,
    ) -> FeedPage:
        """
        Return a page of entries from a single subscription.

        Raises:
            SubscriptionNotFoundError: If the user has no such subscription.
            PageNumberOutOfBoundsError: If number is outside [1, total pages].
        """
        return await self.feeds_by_subscription_and_query_and_page(
            user_uuid, subscription_uuid, "", number,
        )

    async def feeds_by_subscription_and_query_and_page(
        self, user_uuid: UUID, subscription_uuid: UUID, search_terms: str, number: int,
    ) -> FeedPage:
        categories = await self._store.subscriptions_by_category(user_uuid)
        subscribed_feed = _find_subscribed_feed(categories, subscription_uuid)
        if subscribed_feed is None:
            raise SubscriptionNotFoundError(str(subscription_uuid))
        return await self._feed_page(
            user_uuid,
            number,
            subscribed_feed.title,
            categories,
            subscription_uuid=subscription_uuid,
            search_terms=search_terms,
        )

    # =========================================================================
    # Subscriptions
    # =========================================================================

    async def subscriptions_by_category(self, user_uuid: UUID) -> list[SubscriptionsByCategory]:
        """Return subscriptions grouped by category, categories by name."""
        return [
            SubscriptionsByCategory(
                category=category.category,
                subscriptions=category.subscribed_feeds,
            )
            for category in await self._store.subscriptions_by_category(user_uuid)
        ]

    async def subscribed_feeds_by_category(
        self, user_uuid: UUID,
    ) -> list[SubscribedFeedsByCategory]:
        """Return categories with their subscriptions and unread counts."""
        return await self._store.subscriptions_by_category(user_uuid)

    async def subscription_by_uuid(
        self, user_uuid: UUID, subscription_uuid: UUID,
    ) -> SubscribedFeed:
        """Raises SubscriptionNotFoundError."""
        categories = await self._store.subscriptions_by_category(user_uuid)
        subscribed_feed = _find_subscribed_feed(categories, subscription_uuid)
        if subscribed_feed is None:
            raise SubscriptionNotFoundError(str(subscription_uuid))
        return subscribed_feed

    async def subscription_by_feed(self, user_uuid: UUID, feed_uuid: UUID) -> SubscribedFeed:
        """Raises SubscriptionNotFoundError."""
        subscription = await self._store.subscription_get_by_feed(user_uuid, feed_uuid)
        return await self.subscription_by_uuid(user_uuid, subscription.uuid)
