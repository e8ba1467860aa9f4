"""PostgreSQL FeedStore."""
from collections import defaultdict
from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, Uuid, and_, delete, false, func, literal, or_, select, true, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.sql import Select
from sqlalchemy.sql.elements import ColumnElement

from models.feed import Feed as FeedModel
from models.feed import FeedCategory, FeedEntry, FeedEntryMetadata, FeedSubscription
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
from services.exceptions import (
    CategoryAlreadyRegisteredError,
    CategoryNotFoundError,
    EntryNotFoundError,
    FeedNotFoundError,
    SubscriptionAlreadyRegisteredError,
    SubscriptionNotFoundError,
)
from stores.postgres_helpers import PostgresStore, chunked, to_tsvector, violates, websearch_query
from stores.search import replace_search_characters

CATEGORY_CONSTRAINTS = (
    "uq_feed_categories_user_uuid_name",
    "uq_feed_categories_user_uuid_slug",
)
SUBSCRIPTION_CONSTRAINT = "uq_feed_subscriptions_user_uuid_feed_uuid"
ENTRY_URL_CONSTRAINT = "uq_feed_entries_feed_uuid_url"

_CATEGORY_COLUMNS = (
    FeedCategory.uuid,
    FeedCategory.user_uuid,
    FeedCategory.name,
    FeedCategory.slug,
    FeedCategory.created_at,
    FeedCategory.updated_at,
)
_FEED_COLUMNS = (
    FeedModel.uuid,
    FeedModel.feed_url,
    FeedModel.title,
    FeedModel.description,
    FeedModel.slug,
    FeedModel.created_at,
    FeedModel.updated_at,
    FeedModel.fetched_at,
)
_SUBSCRIPTION_COLUMNS = (
    FeedSubscription.uuid,
    FeedSubscription.user_uuid,
    FeedSubscription.feed_uuid,
    FeedSubscription.category_uuid,
    FeedSubscription.alias,
    FeedSubscription.created_at,
    FeedSubscription.updated_at,
)
_ENTRY_COLUMNS = (
    FeedEntry.uid,
    FeedEntry.feed_uuid,
    FeedEntry.url,
    FeedEntry.title,
    FeedEntry.summary,
    FeedEntry.published_at,
    FeedEntry.created_at,
    FeedEntry.updated_at,
)


def _entry_search_text(entry: Entry) -> str:
    return f"{entry.title} {replace_search_characters(entry.summary)}"


def _metadata_join(user_uuid: UUID) -> ColumnElement[bool]:
    return and_(
        FeedEntryMetadata.entry_uid == FeedEntry.uid,
        FeedEntryMetadata.user_uuid == user_uuid,
    )


def _scope_criteria(
    user_uuid: UUID,
    category_uuid: UUID | None,
    subscription_uuid: UUID | None,
    search_terms: str = "",
) -> list[ColumnElement[bool]]:
    criteria = [FeedSubscription.user_uuid == user_uuid]
    if category_uuid is not None:
        criteria.append(FeedSubscription.category_uuid == category_uuid)
    if subscription_uuid is not None:
        criteria.append(FeedSubscription.uuid == subscription_uuid)
    if search_terms:
        criteria.append(
            FeedEntry.textsearchable_index_col.op("@@")(websearch_query(search_terms)),
        )
    return criteria


class PostgresFeedStore(PostgresStore):
    """FeedStore backed by the `feed_*` tables."""

    # --- Categories ---

    async def category_add(self, category: Category) -> None:
        statement = pg_insert(FeedCategory).values(
            uuid=category.uuid,
            user_uuid=category.user_uuid,
            name=category.name,
            slug=category.slug,
            created_at=category.created_at,
            updated_at=category.updated_at,
        )
        try:
            async with self._savepoint("adding category"):
                await self._execute(statement, "adding category")
        except IntegrityError as e:
            if any(violates(e, name) for name in CATEGORY_CONSTRAINTS):
                raise CategoryAlreadyRegisteredError(category.name) from e
            raise

    async def category_update(self, category: Category) -> None:
        statement = (
            update(FeedCategory)
            .where(FeedCategory.user_uuid == category.user_uuid, FeedCategory.uuid == category.uuid)
            .values(name=category.name, slug=category.slug, updated_at=category.updated_at)
            .execution_options(synchronize_session=False)
        )
        try:
            async with self._savepoint("updating category"):
                result = await self._execute(statement, "updating category")
        except IntegrityError as e:
            if any(violates(e, name) for name in CATEGORY_CONSTRAINTS):
                raise CategoryAlreadyRegisteredError(category.name) from e
            raise
        if result.rowcount == 0:
            raise CategoryNotFoundError(str(category.uuid))

    async def category_delete(self, user_uuid: UUID, category_uuid: UUID) -> bool:
        # Subscriptions of the category go through ON DELETE CASCADE
        result = await self._execute(
            delete(FeedCategory)
            .where(FeedCategory.user_uuid == user_uuid, FeedCategory.uuid == category_uuid)
            .execution_options(synchronize_session=False),
            "deleting category",
        )
        return result.rowcount > 0

    async def _category(self, identifier: str, *criteria: ColumnElement) -> Category:
        result = await self._execute(
            select(*_CATEGORY_COLUMNS).where(*criteria), "getting category",
        )
        row = result.one_or_none()
        if row is None:
            raise CategoryNotFoundError(identifier)
        return Category.model_validate(row, from_attributes=True)

    async def category_get_by_uuid(self, user_uuid: UUID, category_uuid: UUID) -> Category:
        return await self._category(
            str(category_uuid),
            FeedCategory.user_uuid == user_uuid,
            FeedCategory.uuid == category_uuid,
        )

    async def category_get_by_slug(self, user_uuid: UUID, slug: str) -> Category:
        return await self._category(
            slug, FeedCategory.user_uuid == user_uuid, FeedCategory.slug == slug,
        )

    async def category_get_all(self, user_uuid: UUID) -> list[Category]:
        result = await self._execute(
            select(*_CATEGORY_COLUMNS)
            .where(FeedCategory.user_uuid == user_uuid)
            .order_by(FeedCategory.name.collate("C")),
            "getting categories",
        )
        return [Category.model_validate(row, from_attributes=True) for row in result]

    async def category_is_registered(
        self, user_uuid: UUID, name: str, slug: str, exclude_uuid: UUID | None = None,
    ) -> bool:
        criteria = [
            FeedCategory.user_uuid == user_uuid,
            or_(FeedCategory.name == name, FeedCategory.slug == slug),
        ]
        if exclude_uuid is not None:
            criteria.append(FeedCategory.uuid != exclude_uuid)
        result = await self._execute(
            select(select(FeedCategory.uuid).where(*criteria).exists()), "checking category",
        )
        return bool(result.scalar())

    # --- Feeds and entries ---

    async def feed_add(self, feed: Feed) -> None:
        await self._execute(
            pg_insert(FeedModel).values(
                uuid=feed.uuid,
                feed_url=feed.feed_url,
                title=feed.title,
                description=feed.description,
                slug=feed.slug,
                created_at=feed.created_at,
                updated_at=feed.updated_at,
                fetched_at=feed.fetched_at,
            ),
            "adding feed",
        )

    async def _feed(self, identifier: str, criterion: ColumnElement) -> Feed:
        result = await self._execute(select(*_FEED_COLUMNS).where(criterion), "getting feed")
        row = result.one_or_none()
        if row is None:
            raise FeedNotFoundError(identifier)
        return Feed.model_validate(row, from_attributes=True)

    async def feed_get_by_url(self, feed_url: str) -> Feed:
        return await self._feed(feed_url, FeedModel.feed_url == feed_url)

    async def feed_get_by_uuid(self, feed_uuid: UUID) -> Feed:
        return await self._feed(str(feed_uuid), FeedModel.uuid == feed_uuid)

    async def entry_add_many(self, entries: list[Entry]) -> int:
        inserted = 0
        async with self._savepoint("adding entries"):
            for batch in chunked(entries):
                statement = (
                    pg_insert(FeedEntry)
                    .values([
                        {
                            "uid": entry.uid,
                            "feed_uuid": entry.feed_uuid,
                            "url": entry.url,
                            "title": entry.title,
                            "summary": entry.summary,
                            "published_at": entry.published_at,
                            "textsearchable_index_col": to_tsvector(_entry_search_text(entry)),
                            "created_at": entry.created_at,
                            "updated_at": entry.updated_at,
                        }
                        for entry in batch
                    ])
                    .on_conflict_do_nothing(constraint=ENTRY_URL_CONSTRAINT)
                    .returning(FeedEntry.uid)
                )
                result = await self._execute(statement, "adding entries")
                inserted += len(result.all())
        return inserted

    async def entry_get_subscribed(self, user_uuid: UUID, entry_uid: str) -> Entry:
        result = await self._execute(
            select(*_ENTRY_COLUMNS)
            .join(FeedSubscription, FeedSubscription.feed_uuid == FeedEntry.feed_uuid)
            .where(FeedSubscription.user_uuid == user_uuid, FeedEntry.uid == entry_uid),
            "getting entry",
        )
        row = result.first()
        if row is None:
            raise EntryNotFoundError(entry_uid)
        return Entry.model_validate(row, from_attributes=True)

    # --- Subscriptions ---

    async def subscription_add(self, subscription: Subscription) -> None:
        statement = pg_insert(FeedSubscription).values(
            uuid=subscription.uuid,
            user_uuid=subscription.user_uuid,
            feed_uuid=subscription.feed_uuid,
            category_uuid=subscription.category_uuid,
            alias=subscription.alias,
            created_at=subscription.created_at,
            updated_at=subscription.updated_at,
        )
        try:
            async with self._savepoint("adding subscription"):
                await self._execute(statement, "adding subscription")
        except IntegrityError as e:
            if violates(e, SUBSCRIPTION_CONSTRAINT):
                raise SubscriptionAlreadyRegisteredError(str(subscription.feed_uuid)) from e
            raise

    async def subscription_update(self, subscription: Subscription) -> None:
        result = await self._execute(
            update(FeedSubscription)
            .where(
                FeedSubscription.user_uuid == subscription.user_uuid,
                FeedSubscription.uuid == subscription.uuid,
            )
            .values(
                category_uuid=subscription.category_uuid,
                alias=subscription.alias,
                updated_at=subscription.updated_at,
            )
            .execution_options(synchronize_session=False),
            "updating subscription",
        )
        if result.rowcount == 0:
            raise SubscriptionNotFoundError(str(subscription.uuid))

    async def subscription_delete(self, user_uuid: UUID, subscription_uuid: UUID) -> bool:
        result = await self._execute(
            delete(FeedSubscription)
            .where(
                FeedSubscription.user_uuid == user_uuid,
                FeedSubscription.uuid == subscription_uuid,
            )
            .execution_options(synchronize_session=False),
            "deleting subscription",
        )
        return result.rowcount > 0

    async def _subscription(self, identifier: str, *criteria: ColumnElement) -> Subscription:
        result = await self._execute(
            select(*_SUBSCRIPTION_COLUMNS).where(*criteria), "getting subscription",
        )
        row = result.one_or_none()
        if row is None:
            raise SubscriptionNotFoundError(identifier)
        return Subscription.model_validate(row, from_attributes=True)

    async def subscription_get_by_uuid(
        self, user_uuid: UUID, subscription_uuid: UUID,
    ) -> Subscription:
        return await self._subscription(
            str(subscription_uuid),
            FeedSubscription.user_uuid == user_uuid,
            FeedSubscription.uuid == subscription_uuid,
        )

    async def subscription_get_by_feed(self, user_uuid: UUID, feed_uuid: UUID) -> Subscription:
        return await self._subscription(
            str(feed_uuid),
            FeedSubscription.user_uuid == user_uuid,
            FeedSubscription.feed_uuid == feed_uuid,
        )

    async def subscription_is_registered(self, user_uuid: UUID, feed_uuid: UUID) -> bool:
        result = await self._execute(
            select(
                select(FeedSubscription.uuid)
                .where(
                    FeedSubscription.user_uuid == user_uuid,
                    FeedSubscription.feed_uuid == feed_uuid,
                )
                .exists(),
            ),
            "checking subscription",
        )
        return bool(result.scalar())

    # --- Read state ---

    async def entry_metadata_get(self, user_uuid: UUID, entry_uid: str) -> EntryMetadata | None:
        result = await self._execute(
            select(
                FeedEntryMetadata.user_uuid,
                FeedEntryMetadata.entry_uid,
                FeedEntryMetadata.read,
                FeedEntryMetadata.updated_at,
            ).where(
                FeedEntryMetadata.user_uuid == user_uuid,
                FeedEntryMetadata.entry_uid == entry_uid,
            ),
            "getting entry metadata",
        )
        row = result.one_or_none()
        return EntryMetadata.model_validate(row, from_attributes=True) if row is not None else None

    async def entry_metadata_upsert(self, metadata: EntryMetadata) -> None:
        statement = pg_insert(FeedEntryMetadata).values(
            user_uuid=metadata.user_uuid,
            entry_uid=metadata.entry_uid,
            read=metadata.read,
            updated_at=metadata.updated_at,
        )
        statement = statement.on_conflict_do_update(
            index_elements=[FeedEntryMetadata.user_uuid, FeedEntryMetadata.entry_uid],
            set_={"read": statement.excluded.read, "updated_at": statement.excluded.updated_at},
        )
        await self._execute(statement, "updating entry metadata")

    async def entry_mark_all_as_read(
        self,
        user_uuid: UUID,
        now: datetime,
        category_uuid: UUID | None = None,
        subscription_uuid: UUID | None = None,
    ) -> int:
        scoped = (
            select(
                literal(user_uuid, Uuid()),
                FeedEntry.uid,
                true(),
                literal(now, DateTime(timezone=True)),
            )
            .join(FeedSubscription, FeedSubscription.feed_uuid == FeedEntry.feed_uuid)
            .where(*_scope_criteria(user_uuid, category_uuid, subscription_uuid))
        )
        statement = pg_insert(FeedEntryMetadata).from_select(
            ["user_uuid", "entry_uid", "read", "updated_at"], scoped,
        )
        statement = statement.on_conflict_do_update(
            index_elements=[FeedEntryMetadata.user_uuid, FeedEntryMetadata.entry_uid],
            set_={"read": true(), "updated_at": statement.excluded.updated_at},
        ).returning(FeedEntryMetadata.entry_uid)
        result = await self._execute(statement, "marking entries as read")
        return len(result.all())

    # --- Queries ---

    async def subscriptions_by_category(self, user_uuid: UUID) -> list[SubscribedFeedsByCategory]:
        unread = (
            select(func.count())
            .select_from(FeedEntry)
            .outerjoin(FeedEntryMetadata, _metadata_join(user_uuid))
            .where(
                FeedEntry.feed_uuid == FeedSubscription.feed_uuid,
                FeedEntryMetadata.read.is_not(True),
            )
            .correlate(FeedSubscription)
            .scalar_subquery()
        )
        title = func.coalesce(func.nullif(FeedSubscription.alias, ""), FeedModel.title)
        result = await self._execute(
            select(
                FeedSubscription.uuid.label("subscription_uuid"),
                FeedSubscription.feed_uuid,
                FeedSubscription.category_uuid,
                FeedModel.feed_url,
                FeedModel.title.label("feed_title"),
                FeedModel.description.label("feed_description"),
                FeedSubscription.alias,
                unread.label("unread"),
            )
            .join(FeedModel, FeedModel.uuid == FeedSubscription.feed_uuid)
            .where(FeedSubscription.user_uuid == user_uuid)
            .order_by(func.lower(title).collate("C")),
            "getting subscriptions by category",
        )
        feeds_by_category: dict[UUID, list[SubscribedFeed]] = defaultdict(list)
        for row in result:
            subscribed_feed = SubscribedFeed.model_validate(row, from_attributes=True)
            feeds_by_category[subscribed_feed.category_uuid].append(subscribed_feed)

        return [
            SubscribedFeedsByCategory(
                category=category,
                unread=sum(f.unread for f in feeds_by_category[category.uuid]),
                subscribed_feeds=feeds_by_category[category.uuid],
            )
            for category in await self.category_get_all(user_uuid)
        ]

    def _scoped(self, columns: tuple, criteria: list[ColumnElement[bool]]) -> Select:
        return (
            select(*columns)
            .select_from(FeedEntry)
            .join(FeedSubscription, FeedSubscription.feed_uuid == FeedEntry.feed_uuid)
            .where(*criteria)
        )

    async def entry_count(
        self,
        user_uuid: UUID,
        category_uuid: UUID | None = None,
        subscription_uuid: UUID | None = None,
        search_terms: str = "",
    ) -> int:
        criteria = _scope_criteria(user_uuid, category_uuid, subscription_uuid, search_terms)
        result = await self._execute(
            self._scoped((func.count(),), criteria), "counting entries",
        )
        return result.scalar_one()

    async def entry_get_n(
        self,
        user_uuid: UUID,
        limit: int,
        offset: int,
        category_uuid: UUID | None = None,
        subscription_uuid: UUID | None = None,
        search_terms: str = "",
    ) -> list[SubscribedFeedEntry]:
        criteria = _scope_criteria(user_uuid, category_uuid, subscription_uuid, search_terms)
        columns = (
            FeedEntry.uid,
            FeedEntry.feed_uuid,
            FeedSubscription.uuid.label("subscription_uuid"),
            FeedEntry.url,
            FeedEntry.title,
            FeedEntry.summary,
            FeedEntry.published_at,
            FeedModel.title.label("feed_title"),
            FeedSubscription.alias.label("subscription_alias"),
            func.coalesce(FeedEntryMetadata.read, false()).label("read"),
        )
        statement = (
            self._scoped(columns, criteria)
            .join(FeedModel, FeedModel.uuid == FeedEntry.feed_uuid)
            .outerjoin(FeedEntryMetadata, _metadata_join(user_uuid))
            .order_by(FeedEntry.published_at.desc(), FeedEntry.uid.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self._execute(statement, "getting entries")
        return [SubscribedFeedEntry.model_validate(row, from_attributes=True) for row in result]
