"""Feed, category, subscription and entry models."""
from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, UniqueConstraint, false
from sqlalchemy.dialects.postgresql import TSVECTOR
from sqlalchemy.orm import Mapped, mapped_column

from core.uid import UID_STRING_LENGTH
from models.base import Base, TimestampMixin


class FeedCategory(Base, TimestampMixin):
    """A user's group of subscriptions."""

    __tablename__ = "feed_categories"
    __table_args__ = (
        UniqueConstraint("user_uuid", "name", name="uq_feed_categories_user_uuid_name"),
        UniqueConstraint("user_uuid", "slug", name="uq_feed_categories_user_uuid_slug"),
    )

    uuid: Mapped[UUID] = mapped_column(primary_key=True)
    user_uuid: Mapped[UUID] = mapped_column(
        ForeignKey("users.uuid", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(Text, nullable=False)


class Feed(Base, TimestampMixin):
    """A syndication source shared by all its subscribers."""

    __tablename__ = "feeds"

    uuid: Mapped[UUID] = mapped_column(primary_key=True)
    feed_url: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    slug: Mapped[str] = mapped_column(Text, nullable=False)
    fetched_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class FeedSubscription(Base, TimestampMixin):
    """A user's binding of a feed into one of their categories."""

    __tablename__ = "feed_subscriptions"
    __table_args__ = (
        UniqueConstraint("user_uuid", "feed_uuid", name="uq_feed_subscriptions_user_uuid_feed_uuid"),
    )

    uuid: Mapped[UUID] = mapped_column(primary_key=True)
    user_uuid: Mapped[UUID] = mapped_column(
        ForeignKey("users.uuid", ondelete="CASCADE"),
        nullable=False,
    )
    category_uuid: Mapped[UUID] = mapped_column(
        ForeignKey("feed_categories.uuid", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    feed_uuid: Mapped[UUID] = mapped_column(
        ForeignKey("feeds.uuid", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    alias: Mapped[str] = mapped_column(Text, nullable=False, server_default="")


class FeedEntry(Base, TimestampMixin):
    """An item published by a feed."""

    __tablename__ = "feed_entries"
    __table_args__ = (
        UniqueConstraint("feed_uuid", "url", name="uq_feed_entries_feed_uuid_url"),
        Index("ix_feed_entries_feed_uuid_published_at", "feed_uuid", "published_at"),
        Index(
            "ix_feed_entries_textsearchable_index_col",
            "textsearchable_index_col",
            postgresql_using="gin",
        ),
    )

    uid: Mapped[str] = mapped_column(String(UID_STRING_LENGTH), primary_key=True)
    feed_uuid: Mapped[UUID] = mapped_column(
        ForeignKey("feeds.uuid", ondelete="CASCADE"),
        nullable=False,
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    published_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # Computed by the store from title and summary on insert
    textsearchable_index_col: Mapped[str | None] = mapped_column(TSVECTOR, nullable=True)


class FeedEntryMetadata(Base):
    """Per-user read state of an entry. A missing row means unread."""

    __tablename__ = "feed_entry_metadata"

    user_uuid: Mapped[UUID] = mapped_column(
        ForeignKey("users.uuid", ondelete="CASCADE"),
        primary_key=True,
    )
    entry_uid: Mapped[str] = mapped_column(
        String(UID_STRING_LENGTH),
        ForeignKey("feed_entries.uid", ondelete="CASCADE"),
        primary_key=True,
    )
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=false())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
