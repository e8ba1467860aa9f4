"""
In-memory store implementations.

Used by the service and API test suites. They honor the same uniqueness
constraints and orderings as the PostgreSQL stores, and return copies so that
callers never mutate stored state by accident.
"""
from datetime import datetime
from typing import Any
from uuid import UUID

from schemas.bookmark import Bookmark, Tag, Visibility
from schemas.feed import (
    Category,
    Entry,
    EntryMetadata,
    Feed,
    SubscribedFeed,
    SubscribedFeedEntry,
    SubscribedFeedsByCategory,
    Subscription,
)
from schemas.user import Owner, Session, User
from services.exceptions import (
    BookmarkNotFoundError,
    CategoryAlreadyRegisteredError,
    CategoryNotFoundError,
    EmailAlreadyRegisteredError,
    EntryNotFoundError,
    FeedNotFoundError,
    NickNameAlreadyRegisteredError,
    OwnerNotFoundError,
    SessionNotFoundError,
    SubscriptionAlreadyRegisteredError,
    SubscriptionNotFoundError,
    URLAlreadyRegisteredError,
    UserNotFoundError,
)
from stores.base import Stores
from stores.search import WebSearchQuery, bookmark_search_text


class MemoryDatabase:
    """Shared state behind the in-memory stores."""

    def __init__(self) -> None:
        self.users: dict[UUID, User] = {}
        self.sessions: dict[str, Session] = {}
        self.bookmarks: dict[str, Bookmark] = {}
        self.categories: dict[UUID, Category] = {}
        self.feeds: dict[UUID, Feed] = {}
        self.subscriptions: dict[UUID, Subscription] = {}
        self.entries: dict[str, Entry] = {}
        self.entry_metadata: dict[tuple[UUID, str], EntryMetadata] = {}

    def stores(self, _db: Any = None) -> Stores:
        """Return stores sharing this database. The argument is the ignored DB session."""
        return Stores(
            bookmarks=MemoryBookmarkStore(self),
            users=MemoryUserStore(self),
            sessions=MemorySessionStore(self),
            feeds=MemoryFeedStore(self),
        )


def _by_creation(bookmark: Bookmark) -> tuple:
    return (bookmark.created_at, bookmark.uid)


def _visible(bookmark: Bookmark, user_uuid: UUID, visibility: Visibility) -> bool:
    if bookmark.user_uuid != user_uuid:
        return False
    if visibility == Visibility.PRIVATE:
        return bookmark.private
    if visibility == Visibility.PUBLIC:
        return not bookmark.private
    return True


class MemoryBookmarkStore:
    """In-memory BookmarkStore."""

    def __init__(self, database: MemoryDatabase) -> None:
        self._db = database

    def _find_by_url(self, user_uuid: UUID, url: str) -> Bookmark | None:
        for bookmark in self._db.bookmarks.values():
            if bookmark.user_uuid == user_uuid and bookmark.url == url:
                return bookmark
        return None

    def _select(self, user_uuid: UUID, visibility: Visibility) -> list[Bookmark]:
        return [b for b in self._db.bookmarks.values() if _visible(b, user_uuid, visibility)]

    def _search(self, user_uuid: UUID, visibility: Visibility, search_terms: str) -> list[Bookmark]:
        query = WebSearchQuery(search_terms)
        return [
            b for b in self._select(user_uuid, visibility)
            if query.matches(bookmark_search_text(b.title, b.description, b.tags))
        ]

    async def add(self, bookmark: Bookmark) -> None:
        if self._find_by_url(bookmark.user_uuid, bookmark.url) is not None:
            raise URLAlreadyRegisteredError(bookmark.url)
        self._db.bookmarks[bookmark.uid] = bookmark.model_copy(deep=True)

    async def add_many_if_absent(self, bookmarks: list[Bookmark]) -> int:
        inserted = 0
        for bookmark in bookmarks:
            if self._find_by_url(bookmark.user_uuid, bookmark.url) is not None:
                continue
            self._db.bookmarks[bookmark.uid] = bookmark.model_copy(deep=True)
            inserted += 1
        return inserted

    async def upsert_many(self, bookmarks: list[Bookmark]) -> int:
        staged = dict(self._db.bookmarks)
        for bookmark in bookmarks:
            existing = next(
                (
                    b for b in staged.values()
                    if b.user_uuid == bookmark.user_uuid and b.url == bookmark.url
                ),
                None,
            )
            if existing is None:
                staged[bookmark.uid] = bookmark.model_copy(deep=True)
                continue
            staged[existing.uid] = existing.model_copy(
                update={
                    "title": bookmark.title,
                    "description": bookmark.description,
                    "private": bookmark.private,
                    "tags": list(bookmark.tags),
                    "created_at": bookmark.created_at,
                    "updated_at": bookmark.updated_at,
                },
            )
        self._db.bookmarks = staged
        return len(bookmarks)

    async def update(self, bookmark: Bookmark) -> None:
        current = self._db.bookmarks.get(bookmark.uid)
        if current is None or current.user_uuid != bookmark.user_uuid:
            raise BookmarkNotFoundError(bookmark.uid)
        other = self._find_by_url(bookmark.user_uuid, bookmark.url)
        if other is not None and other.uid != bookmark.uid:
            raise URLAlreadyRegisteredError(bookmark.url)
        self._db.bookmarks[bookmark.uid] = current.model_copy(
            update={
                "url": bookmark.url,
                "title": bookmark.title,
                "description": bookmark.description,
                "private": bookmark.private,
                "tags": list(bookmark.tags),
                "updated_at": bookmark.updated_at,
            },
        )

    async def delete(self, user_uuid: UUID, uid: str) -> bool:
        bookmark = self._db.bookmarks.get(uid)
        if bookmark is None or bookmark.user_uuid != user_uuid:
            return False
        del self._db.bookmarks[uid]
        return True

    async def get_by_uid(self, user_uuid: UUID, uid: str) -> Bookmark:
        bookmark = self._db.bookmarks.get(uid)
        if bookmark is None or bookmark.user_uuid != user_uuid:
            raise BookmarkNotFoundError(uid)
        return bookmark.model_copy(deep=True)

    async def get_by_url(self, user_uuid: UUID, url: str) -> Bookmark:
        bookmark = self._find_by_url(user_uuid, url)
        if bookmark is None:
            raise BookmarkNotFoundError(url)
        return bookmark.model_copy(deep=True)

    async def get_public_by_uid(self, user_uuid: UUID, uid: str) -> Bookmark:
        bookmark = self._db.bookmarks.get(uid)
        if bookmark is None or not _visible(bookmark, user_uuid, Visibility.PUBLIC):
            raise BookmarkNotFoundError(uid)
        return bookmark.model_copy(deep=True)

    async def get_by_tag(self, user_uuid: UUID, tag: str) -> list[Bookmark]:
        matches = [
            b for b in self._select(user_uuid, Visibility.ALL) if tag in b.tags
        ]
        return [b.model_copy(deep=True) for b in sorted(matches, key=_by_creation, reverse=True)]

    async def get_all(self, user_uuid: UUID, visibility: Visibility) -> list[Bookmark]:
        matches = sorted(self._select(user_uuid, visibility), key=_by_creation)
        return [b.model_copy(deep=True) for b in matches]

    async def is_url_registered(
        self, user_uuid: UUID, url: str, exclude_uid: str | None = None,
    ) -> bool:
        bookmark = self._find_by_url(user_uuid, url)
        return bookmark is not None and bookmark.uid != exclude_uid

    async def count(self, user_uuid: UUID, visibility: Visibility) -> int:
        return len(self._select(user_uuid, visibility))

    async def get_n(
        self, user_uuid: UUID, visibility: Visibility, limit: int, offset: int,
    ) -> list[Bookmark]:
        matches = sorted(self._select(user_uuid, visibility), key=_by_creation, reverse=True)
        return [b.model_copy(deep=True) for b in matches[offset:offset + limit]]

    async def search_count(
        self, user_uuid: UUID, visibility: Visibility, search_terms: str,
    ) -> int:
        return len(self._search(user_uuid, visibility, search_terms))

    async def search_n(
        self,
        user_uuid: UUID,
        visibility: Visibility,
        search_terms: str,
        limit: int,
        offset: int,
    ) -> list[Bookmark]:
        matches = sorted(
            self._search(user_uuid, visibility, search_terms), key=_by_creation, reverse=True,
        )
        return [b.model_copy(deep=True) for b in matches[offset:offset + limit]]

    def _tags(self, user_uuid: UUID, visibility: Visibility, filter_term: str) -> list[Tag]:
        counts: dict[str, int] = {}
        for bookmark in self._select(user_uuid, visibility):
            for tag in bookmark.tags:
                counts[tag] = counts.get(tag, 0) + 1
        needle = filter_term.lower()
        tags = [
            Tag(name=name, count=count)
            for name, count in counts.items()
            if needle in name.lower()
        ]
        return sorted(tags, key=lambda tag: (-tag.count, tag.name))

    async def tag_get_all(self, user_uuid: UUID, visibility: Visibility) -> list[Tag]:
        return self._tags(user_uuid, visibility, "")

    async def tag_count(
        self, user_uuid: UUID, visibility: Visibility, filter_term: str = "",
    ) -> int:
        return len(self._tags(user_uuid, visibility, filter_term))

    async def tag_get_n(
        self,
        user_uuid: UUID,
        visibility: Visibility,
        limit: int,
        offset: int,
        filter_term: str = "",
    ) -> list[Tag]:
        return self._tags(user_uuid, visibility, filter_term)[offset:offset + limit]


class MemoryUserStore:
    """In-memory UserStore."""

    def __init__(self, database: MemoryDatabase) -> None:
        self._db = database

    def _find(self, **criteria: Any) -> User | None:
        for user in self._db.users.values():
            if all(getattr(user, key) == value for key, value in criteria.items()):
                return user
        return None

    async def add(self, user: User) -> None:
        if await self.is_email_registered(user.email):
            raise EmailAlreadyRegisteredError(user.email)
        if await self.is_nick_name_registered(user.nick_name):
            raise NickNameAlreadyRegisteredError(user.nick_name)
        self._db.users[user.uuid] = user.model_copy(deep=True)

    async def update(self, user: User) -> None:
        if user.uuid not in self._db.users:
            raise UserNotFoundError(str(user.uuid))
        if await self.is_email_registered(user.email, user.uuid):
            raise EmailAlreadyRegisteredError(user.email)
        if await self.is_nick_name_registered(user.nick_name, user.uuid):
            raise NickNameAlreadyRegisteredError(user.nick_name)
        self._db.users[user.uuid] = user.model_copy(deep=True)

    async def delete(self, user_uuid: UUID) -> bool:
        if self._db.users.pop(user_uuid, None) is None:
            return False
        db = self._db
        db.bookmarks = {k: v for k, v in db.bookmarks.items() if v.user_uuid != user_uuid}
        db.sessions = {k: v for k, v in db.sessions.items() if v.user_uuid != user_uuid}
        db.categories = {k: v for k, v in db.categories.items() if v.user_uuid != user_uuid}
        db.subscriptions = {
            k: v for k, v in db.subscriptions.items() if v.user_uuid != user_uuid
        }
        db.entry_metadata = {
            k: v for k, v in db.entry_metadata.items() if v.user_uuid != user_uuid
        }
        return True

    async def get_all(self) -> list[User]:
        users = sorted(self._db.users.values(), key=lambda u: u.nick_name.lower())
        return [u.model_copy(deep=True) for u in users]

    async def get_by_uuid(self, user_uuid: UUID) -> User:
        user = self._db.users.get(user_uuid)
        if user is None:
            raise UserNotFoundError(str(user_uuid))
        return user.model_copy(deep=True)

    async def get_by_email(self, email: str) -> User:
        user = self._find(email=email)
        if user is None:
            raise UserNotFoundError(email)
        return user.model_copy(deep=True)

    async def get_by_nick_name(self, nick_name: str) -> User:
        user = self._find(nick_name=nick_name)
        if user is None:
            raise UserNotFoundError(nick_name)
        return user.model_copy(deep=True)

    async def is_email_registered(self, email: str, exclude_uuid: UUID | None = None) -> bool:
        user = self._find(email=email)
        return user is not None and user.uuid != exclude_uuid

    async def is_nick_name_registered(
        self, nick_name: str, exclude_uuid: UUID | None = None,
    ) -> bool:
        user = self._find(nick_name=nick_name)
        return user is not None and user.uuid != exclude_uuid

    async def owner_by_uuid(self, user_uuid: UUID) -> Owner:
        user = self._db.users.get(user_uuid)
        if user is None:
            raise OwnerNotFoundError(str(user_uuid))
        return Owner.model_validate(user)

    async def owner_by_nick_name(self, nick_name: str) -> Owner:
        user = self._find(nick_name=nick_name)
        if user is None:
            raise OwnerNotFoundError(nick_name)
        return Owner.model_validate(user)


class MemorySessionStore:
    """In-memory SessionStore."""

    def __init__(self, database: MemoryDatabase) -> None:
        self._db = database

    async def add(self, session: Session) -> None:
        self._db.sessions[session.remember_token_hash] = session.model_copy(
            update={"remember_token": ""},
        )

    async def get_by_remember_token_hash(self, token_hash: str) -> Session:
        session = self._db.sessions.get(token_hash)
        if session is None:
            raise SessionNotFoundError()
        return session.model_copy()

    async def delete_by_remember_token_hash(self, token_hash: str) -> bool:
        return self._db.sessions.pop(token_hash, None) is not None


class MemoryFeedStore:
    """In-memory FeedStore."""

    def __init__(self, database: MemoryDatabase) -> None:
        self._db = database

    # --- Categories ---

    async def category_add(self, category: Category) -> None:
        if await self.category_is_registered(category.user_uuid, category.name, category.slug):
            raise CategoryAlreadyRegisteredError(category.name)
        self._db.categories[category.uuid] = category.model_copy()

    async def category_update(self, category: Category) -> None:
        current = self._db.categories.get(category.uuid)
        if current is None or current.user_uuid != category.user_uuid:
            raise CategoryNotFoundError(str(category.uuid))
        if await self.category_is_registered(
            category.user_uuid, category.name, category.slug, category.uuid,
        ):
            raise CategoryAlreadyRegisteredError(category.name)
        self._db.categories[category.uuid] = current.model_copy(
            update={
                "name": category.name,
                "slug": category.slug,
                "updated_at": category.updated_at,
            },
        )

    async def category_delete(self, user_uuid: UUID, category_uuid: UUID) -> bool:
        category = self._db.categories.get(category_uuid)
        if category is None or category.user_uuid != user_uuid:
            return False
        del self._db.categories[category_uuid]
        self._db.subscriptions = {
            k: v for k, v in self._db.subscriptions.items() if v.category_uuid != category_uuid
        }
        return True

    async def category_get_by_uuid(self, user_uuid: UUID, category_uuid: UUID) -> Category:
        category = self._db.categories.get(category_uuid)
        if category is None or category.user_uuid != user_uuid:
            raise CategoryNotFoundError(str(category_uuid))
        return category.model_copy()

    async def category_get_by_slug(self, user_uuid: UUID, slug: str) -> Category:
        for category in self._db.categories.values():
            if category.user_uuid == user_uuid and category.slug == slug:
                return category.model_copy()
        raise CategoryNotFoundError(slug)

    async def category_get_all(self, user_uuid: UUID) -> list[Category]:
        categories = [c for c in self._db.categories.values() if c.user_uuid == user_uuid]
        return [c.model_copy() for c in sorted(categories, key=lambda c: c.name)]

    async def category_is_registered(
        self, user_uuid: UUID, name: str, slug: str, exclude_uuid: UUID | None = None,
    ) -> bool:
        return any(
            c.user_uuid == user_uuid
            and c.uuid != exclude_uuid
            and (c.name == name or c.slug == slug)
            for c in self._db.categories.values()
        )

    # --- Feeds and entries ---

    async def feed_add(self, feed: Feed) -> None:
        self._db.feeds[feed.uuid] = feed.model_copy()

    async def feed_get_by_url(self, feed_url: str) -> Feed:
        for feed in self._db.feeds.values():
            if feed.feed_url == feed_url:
                return feed.model_copy()
        raise FeedNotFoundError(feed_url)

    async def feed_get_by_uuid(self, feed_uuid: UUID) -> Feed:
        feed = self._db.feeds.get(feed_uuid)
        if feed is None:
            raise FeedNotFoundError(str(feed_uuid))
        return feed.model_copy()

    async def entry_add_many(self, entries: list[Entry]) -> int:
        known = {(e.feed_uuid, e.url) for e in self._db.entries.values()}
        inserted = 0
        for entry in entries:
            if (entry.feed_uuid, entry.url) in known:
                continue
            self._db.entries[entry.uid] = entry.model_copy()
            known.add((entry.feed_uuid, entry.url))
            inserted += 1
        return inserted

    async def entry_get_subscribed(self, user_uuid: UUID, entry_uid: str) -> Entry:
        entry = self._db.entries.get(entry_uid)
        if entry is None or entry.feed_uuid not in self._subscribed_feed_uuids(user_uuid):
            raise EntryNotFoundError(entry_uid)
        return entry.model_copy()

    # --- Subscriptions ---

    async def subscription_add(self, subscription: Subscription) -> None:
        if await self.subscription_is_registered(subscription.user_uuid, subscription.feed_uuid):
            feed = self._db.feeds.get(subscription.feed_uuid)
            raise SubscriptionAlreadyRegisteredError(feed.feed_url if feed else "")
        self._db.subscriptions[subscription.uuid] = subscription.model_copy()

    async def subscription_update(self, subscription: Subscription) -> None:
        current = self._db.subscriptions.get(subscription.uuid)
        if current is None or current.user_uuid != subscription.user_uuid:
            raise SubscriptionNotFoundError(str(subscription.uuid))
        self._db.subscriptions[subscription.uuid] = current.model_copy(
            update={
                "category_uuid": subscription.category_uuid,
                "alias": subscription.alias,
                "updated_at": subscription.updated_at,
            },
        )

    async def subscription_delete(self, user_uuid: UUID, subscription_uuid: UUID) -> bool:
        subscription = self._db.subscriptions.get(subscription_uuid)
        if subscription is None or subscription.user_uuid != user_uuid:
            return False
        del self._db.subscriptions[subscription_uuid]
        return True

    async def subscription_get_by_uuid(
        self, user_uuid: UUID, subscription_uuid: UUID,
    ) -> Subscription:
        subscription = self._db.subscriptions.get(subscription_uuid)
        if subscription is None or subscription.user_uuid != user_uuid:
            raise SubscriptionNotFoundError(str(subscription_uuid))
        return subscription.model_copy()

    async def subscription_get_by_feed(self, user_uuid: UUID, feed_uuid: UUID) -> Subscription:
        for subscription in self._db.subscriptions.values():
            if subscription.user_uuid == user_uuid and subscription.feed_uuid == feed_uuid:
                return subscription.model_copy()
        raise SubscriptionNotFoundError(str(feed_uuid))

    async def subscription_is_registered(self, user_uuid: UUID, feed_uuid: UUID) -> bool:
        return any(
            s.user_uuid == user_uuid and s.feed_uuid == feed_uuid
            for s in self._db.subscriptions.values()
        )

    # --- Read state ---

    async def entry_metadata_get(self, user_uuid: UUID, entry_uid: str) -> EntryMetadata | None:
        metadata = self._db.entry_metadata.get((user_uuid, entry_uid))
        return metadata.model_copy() if metadata is not None else None

    async def entry_metadata_upsert(self, metadata: EntryMetadata) -> None:
        self._db.entry_metadata[(metadata.user_uuid, metadata.entry_uid)] = metadata.model_copy()

    async def entry_mark_all_as_read(
        self,
        user_uuid: UUID,
        now: datetime,
        category_uuid: UUID | None = None,
        subscription_uuid: UUID | None = None,
    ) -> int:
        scoped = self._scoped_entries(user_uuid, category_uuid, subscription_uuid)
        for entry, _subscription in scoped:
            self._db.entry_metadata[(user_uuid, entry.uid)] = EntryMetadata(
                user_uuid=user_uuid, entry_uid=entry.uid, read=True, updated_at=now,
            )
        return len(scoped)

    # --- Queries ---

    def _subscribed_feed_uuids(self, user_uuid: UUID) -> set[UUID]:
        return {s.feed_uuid for s in self._db.subscriptions.values() if s.user_uuid == user_uuid}

    def _is_read(self, user_uuid: UUID, entry_uid: str) -> bool:
        metadata = self._db.entry_metadata.get((user_uuid, entry_uid))
        return metadata is not None and metadata.read

    def _scoped_entries(
        self,
        user_uuid: UUID,
        category_uuid: UUID | None,
        subscription_uuid: UUID | None,
        search_terms: str = "",
    ) -> list[tuple[Entry, Subscription]]:
        subscriptions = {
            s.feed_uuid: s
            for s in self._db.subscriptions.values()
            if s.user_uuid == user_uuid
            and (category_uuid is None or s.category_uuid == category_uuid)
            and (subscription_uuid is None or s.uuid == subscription_uuid)
        }
        query = WebSearchQuery(search_terms) if search_terms else None
        scoped = [
            (entry, subscriptions[entry.feed_uuid])
            for entry in self._db.entries.values()
            if entry.feed_uuid in subscriptions
            and (query is None or query.matches(f"{entry.title} {entry.summary}"))
        ]
        return sorted(scoped, key=lambda pair: (pair[0].published_at, pair[0].uid), reverse=True)

    async def subscriptions_by_category(self, user_uuid: UUID) -> list[SubscribedFeedsByCategory]:
        results = []
        for category in await self.category_get_all(user_uuid):
            subscribed_feeds = []
            for subscription in self._db.subscriptions.values():
                if subscription.category_uuid != category.uuid:
                    continue
                feed = self._db.feeds[subscription.feed_uuid]
                unread = sum(
                    1 for entry in self._db.entries.values()
                    if entry.feed_uuid == feed.uuid and not self._is_read(user_uuid, entry.uid)
                )
                subscribed_feeds.append(SubscribedFeed(
                    subscription_uuid=subscription.uuid,
                    feed_uuid=feed.uuid,
                    category_uuid=category.uuid,
                    feed_url=feed.feed_url,
                    feed_title=feed.title,
                    feed_description=feed.description,
                    alias=subscription.alias,
                    unread=unread,
                ))
            subscribed_feeds.sort(key=lambda sf: sf.title.lower())
            results.append(SubscribedFeedsByCategory(
                category=category,
                unread=sum(sf.unread for sf in subscribed_feeds),
                subscribed_feeds=subscribed_feeds,
            ))
        return results

    async def entry_count(
        self,
        user_uuid: UUID,
        category_uuid: UUID | None = None,
        subscription_uuid: UUID | None = None,
        search_terms: str = "",
    ) -> int:
        return len(self._scoped_entries(user_uuid, category_uuid, subscription_uuid, search_terms))

    async def entry_get_n(
        self,
        user_uuid: UUID,
        limit: int,
        offset: int,
        category_uuid: UUID | None = None,
        subscription_uuid: UUID | None = None,
        search_terms: str = "",
    ) -> list[SubscribedFeedEntry]:
        scoped = self._scoped_entries(user_uuid, category_uuid, subscription_uuid, search_terms)
        return [
            SubscribedFeedEntry(
                uid=entry.uid,
                feed_uuid=entry.feed_uuid,
                subscription_uuid=subscription.uuid,
                url=entry.url,
                title=entry.title,
                summary=entry.summary,
                published_at=entry.published_at,
                feed_title=self._db.feeds[entry.feed_uuid].title,
                subscription_alias=subscription.alias,
                read=self._is_read(user_uuid, entry.uid),
            )
            for entry, subscription in scoped[offset:offset + limit]
        ]
