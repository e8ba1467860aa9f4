"""Feed domain types, query views and request schemas."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from core.paginate import Page


class Category(BaseModel):
    """A user-defined group of feed subscriptions."""

    model_config = ConfigDict(from_attributes=True)

    uuid: UUID | None = None
    user_uuid: UUID | None = None
    name: str = ""
    slug: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Feed(BaseModel):
    """A syndication source, shared by every subscriber."""

    model_config = ConfigDict(from_attributes=True)

    uuid: UUID | None = None
    feed_url: str = ""
    title: str = ""
    description: str = ""
    slug: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    fetched_at: datetime | None = None


class Subscription(BaseModel):
    """A user's binding of a feed into one of their categories."""

    model_config = ConfigDict(from_attributes=True)

    uuid: UUID | None = None
    user_uuid: UUID | None = None
    feed_uuid: UUID | None = None
    category_uuid: UUID | None = None
    alias: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Entry(BaseModel):
    """An item published by a feed."""

    model_config = ConfigDict(from_attributes=True)

    uid: str = ""
    feed_uuid: UUID | None = None
    url: str = ""
    title: str = ""
    summary: str = ""
    published_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class EntryMetadata(BaseModel):
    """Per-user read state of an entry. A missing row means unread."""

    model_config = ConfigDict(from_attributes=True)

    user_uuid: UUID
    entry_uid: str
    read: bool = False
    updated_at: datetime | None = None


# =============================================================================
# Query views
# =============================================================================


class SubscribedFeedEntry(BaseModel):
    """An entry as seen by a subscriber."""

    uid: str
    feed_uuid: UUID
    subscription_uuid: UUID
    url: str
    title: str
    summary: str = ""
    published_at: datetime | None = None
    feed_title: str = ""
    subscription_alias: str = ""
    read: bool = False


class SubscribedFeed(BaseModel):
    """A subscription with its feed details and unread entry count."""

    subscription_uuid: UUID
    feed_uuid: UUID
    category_uuid: UUID
    feed_url: str
    feed_title: str
    feed_description: str = ""
    alias: str = ""
    unread: int = 0

    @property
    def title(self) -> str:
        """Alias if set, feed title otherwise."""
        return self.alias or self.feed_title


class SubscribedFeedsByCategory(BaseModel):
    """A category with its subscriptions and unread entry count."""

    category: Category
    unread: int = 0
    subscribed_feeds: list[SubscribedFeed] = Field(default_factory=list)


class FeedPage(BaseModel):
    """A page of subscribed entries with the sidebar of categories."""

    page: Page
    header: str
    unread: int
    categories: list[SubscribedFeedsByCategory]
    entries: list[SubscribedFeedEntry]


class SubscriptionsByCategory(BaseModel):
    """Subscriptions grouped under their category, used by exports."""

    category: Category
    subscriptions: list[SubscribedFeed] = Field(default_factory=list)


# =============================================================================
# Request bodies
# =============================================================================


class CategoryForm(BaseModel):
    """Schema for adding or renaming a category."""

    csrf_token: str = ""
    name: str = ""


class SubscriptionAddForm(BaseModel):
    """Schema for subscribing to a feed."""

    csrf_token: str = ""
    url: str = ""
    category_uuid: UUID | None = None


class SubscriptionEditForm(BaseModel):
    """Schema for editing a subscription."""

    csrf_token: str = ""
    category_uuid: UUID | None = None
    alias: str = ""


class CsrfOnlyForm(BaseModel):
    """Schema for forms that only carry a CSRF token."""

    csrf_token: str = ""
