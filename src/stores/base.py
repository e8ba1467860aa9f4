"""
Store interfaces consumed by the domain services.

Each domain has one store protocol. Two implementations satisfy each of them:
the in-memory fakes in `stores.memory` and the PostgreSQL stores in
`stores.postgres_*`. Both enforce the same uniqueness rules and orderings:

- bookmarks are listed newest-first by creation time (UID as tie-breaker);
- tags are listed by descending count, then ascending name;
- feed entries are listed newest-first by publication time.
"""
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID

from schemas.bookmark import Bookmark, Tag, Visibility
from schemas.feed import (
    Category,
    Entry,
    EntryMetadata,
    Feed,
    SubscribedFeedEntry,
    SubscribedFeedsByCategory,
    Subscription,
)
from schemas.user import Owner, Session, User


class BookmarkStore(Protocol):
    """Persistence of bookmarks, full-text search and tag aggregation."""

    # --- Writes ---

    async def add(self, bookmark: Bookmark) -> None:
        """Insert a bookmark. Raises URLAlreadyRegisteredError on (user, URL) conflict."""
        ...

    async def add_many_if_absent(self, bookmarks: list[Bookmark]) -> int:
        """Insert bookmarks whose (user, URL) is not registered; return the number inserted."""
        ...

    async def upsert_many(self, bookmarks: list[Bookmark]) -> int:
        """Insert or replace bookmarks by (user, URL) atomically; return rows written."""
        ...

    async def update(self, bookmark: Bookmark) -> None:
        """Update a bookmark. Raises BookmarkNotFoundError or URLAlreadyRegisteredError."""
        ...

    async def delete(self, user_uuid: UUID, uid: str) -> bool:
        """Delete a bookmark; return False if nothing matched."""
        ...

    # --- Lookups ---

    async def get_by_uid(self, user_uuid: UUID, uid: str) -> Bookmark:
        """Raises BookmarkNotFoundError."""
        ...

    async def get_by_url(self, user_uuid: UUID, url: str) -> Bookmark:
        """Raises BookmarkNotFoundError."""
        ...

    async def get_public_by_uid(self, user_uuid: UUID, uid: str) -> Bookmark:
        """Raises BookmarkNotFoundError for private or missing bookmarks."""
        ...

    async def get_by_tag(self, user_uuid: UUID, tag: str) -> list[Bookmark]:
        """Return every bookmark of the user carrying the exact tag, newest first."""
        ...

    async def get_all(self, user_uuid: UUID, visibility: Visibility) -> list[Bookmark]:
        """Return bookmarks in insertion order (oldest first)."""
        ...

    async def is_url_registered(
        self, user_uuid: UUID, url: str, exclude_uid: str | None = None,
    ) -> bool:
        """Return True if the user has a bookmark (other than exclude_uid) with this URL."""
        ...

    # --- Paginated queries ---

    async def count(self, user_uuid: UUID, visibility: Visibility) -> int:
        ...

    async def get_n(
        self, user_uuid: UUID, visibility: Visibility, limit: int, offset: int,
    ) -> list[Bookmark]:
        ...

    async def search_count(
        self, user_uuid: UUID, visibility: Visibility, search_terms: str,
    ) -> int:
        ...

    async def search_n(
        self,
        user_uuid: UUID,
        visibility: Visibility,
        search_terms: str,
        limit: int,
        offset: int,
    ) -> list[Bookmark]:
        ...

    # --- Tags ---

    async def tag_get_all(self, user_uuid: UUID, visibility: Visibility) -> list[Tag]:
        ...

    async def tag_count(
        self, user_uuid: UUID, visibility: Visibility, filter_term: str = "",
    ) -> int:
        """Count distinct tags, optionally keeping names containing filter_term."""
        ...

    async def tag_get_n(
        self,
        user_uuid: UUID,
        visibility: Visibility,
        limit: int,
        offset: int,
        filter_term: str = "",
    ) -> list[Tag]:
        ...


class UserStore(Protocol):
    """Persistence of user accounts."""

    async def add(self, user: User) -> None:
        ...

    async def update(self, user: User) -> None:
        ...

    async def delete(self, user_uuid: UUID) -> bool:
        """Delete a user and every row they own; return False if nothing matched."""
        ...

    async def get_all(self) -> list[User]:
        ...

    async def get_by_uuid(self, user_uuid: UUID) -> User:
        """Raises UserNotFoundError."""
        ...

    async def get_by_email(self, email: str) -> User:
        """Raises UserNotFoundError."""
        ...

    async def get_by_nick_name(self, nick_name: str) -> User:
        """Raises UserNotFoundError."""
        ...

    async def is_email_registered(self, email: str, exclude_uuid: UUID | None = None) -> bool:
        ...

    async def is_nick_name_registered(
        self, nick_name: str, exclude_uuid: UUID | None = None,
    ) -> bool:
        ...

    async def owner_by_uuid(self, user_uuid: UUID) -> Owner:
        """Raises OwnerNotFoundError."""
        ...

    async def owner_by_nick_name(self, nick_name: str) -> Owner:
        """Raises OwnerNotFoundError."""
        ...


class SessionStore(Protocol):
    """Persistence of remember-me sessions, keyed by the token hash."""

    async def add(self, session: Session) -> None:
        ...

    async def get_by_remember_token_hash(self, token_hash: str) -> Session:
        """Raises SessionNotFoundError."""
        ...

    async def delete_by_remember_token_hash(self, token_hash: str) -> bool:
        ...


class FeedStore(Protocol):
    """Persistence of categories, feeds, subscriptions, entries and read state."""

    # --- Categories ---

    async def category_add(self, category: Category) -> None:
        ...

    async def category_update(self, category: Category) -> None:
        ...

    async def category_delete(self, user_uuid: UUID, category_uuid: UUID) -> bool:
        """Delete a category and its subscriptions."""
        ...

    async def category_get_by_uuid(self, user_uuid: UUID, category_uuid: UUID) -> Category:
        """Raises CategoryNotFoundError."""
        ...

    async def category_get_by_slug(self, user_uuid: UUID, slug: str) -> Category:
        """Raises CategoryNotFoundError."""
        ...

    async def category_get_all(self, user_uuid: UUID) -> list[Category]:
        """Return categories sorted by name."""
        ...

    async def category_is_registered(
        self, user_uuid: UUID, name: str, slug: str, exclude_uuid: UUID | None = None,
    ) -> bool:
        """Return True if another category of the user has this name or slug."""
        ...

    # --- Feeds and entries ---

    async def feed_add(self, feed: Feed) -> None:
        ...

    async def feed_get_by_url(self, feed_url: str) -> Feed:
        """Raises FeedNotFoundError."""
        ...

    async def feed_get_by_uuid(self, feed_uuid: UUID) -> Feed:
        """Raises FeedNotFoundError."""
        ...

    async def entry_add_many(self, entries: list[Entry]) -> int:
        """Insert entries not yet known for their feed (by URL); return the number inserted."""
        ...

    async def entry_get_subscribed(self, user_uuid: UUID, entry_uid: str) -> Entry:
        """Return an entry from a feed the user subscribes to. Raises EntryNotFoundError."""
        ...

    # --- Subscriptions ---

    async def subscription_add(self, subscription: Subscription) -> None:
        """Raises SubscriptionAlreadyRegisteredError on (user, feed) conflict."""
        ...

    async def subscription_update(self, subscription: Subscription) -> None:
        ...

    async def subscription_delete(self, user_uuid: UUID, subscription_uuid: UUID) -> bool:
        ...

    async def subscription_get_by_uuid(
        self, user_uuid: UUID, subscription_uuid: UUID,
    ) -> Subscription:
        """Raises SubscriptionNotFoundError."""
        ...

    async def subscription_get_by_feed(self, user_uuid: UUID, feed_uuid: UUID) -> Subscription:
        """Raises SubscriptionNotFoundError."""
        ...

    async def subscription_is_registered(self, user_uuid: UUID, feed_uuid: UUID) -> bool:
        ...

    # --- Read state ---

    async def entry_metadata_get(self, user_uuid: UUID, entry_uid: str) -> EntryMetadata | None:
        ...

    async def entry_metadata_upsert(self, metadata: EntryMetadata) -> None:
        ...

    async def entry_mark_all_as_read(
        self,
        user_uuid: UUID,
        now: datetime,
        category_uuid: UUID | None = None,
        subscription_uuid: UUID | None = None,
    ) -> int:
        """Mark every entry in scope as read; return the number of entries affected."""
        ...

    # --- Queries ---

    async def subscriptions_by_category(self, user_uuid: UUID) -> list[SubscribedFeedsByCategory]:
        """Return categories (by name) with subscriptions (by title) and unread counts."""
        ...

    async def entry_count(
        self,
        user_uuid: UUID,
        category_uuid: UUID | None = None,
        subscription_uuid: UUID | None = None,
        search_terms: str = "",
    ) -> int:
        ...

    async def entry_get_n(
        self,
        user_uuid: UUID,
        limit: int,
        offset: int,
        category_uuid: UUID | None = None,
        subscription_uuid: UUID | None = None,
        search_terms: str = "",
    ) -> list[SubscribedFeedEntry]:
        ...


@dataclass
class Stores:
    """The set of stores a request works with."""

    bookmarks: BookmarkStore
    users: UserStore
    sessions: SessionStore
    feeds: FeedStore


StoreFactory = Callable[..., Stores]
