"""SQLAlchemy models."""
from models.base import Base, TimestampMixin
from models.bookmark import Bookmark
from models.feed import Feed, FeedCategory, FeedEntry, FeedEntryMetadata, FeedSubscription
from models.user import Session, User

__all__ = [
    "Base",
    "Bookmark",
    "Feed",
    "FeedCategory",
    "FeedEntry",
    "FeedEntryMetadata",
    "FeedSubscription",
    "Session",
    "TimestampMixin",
    "User",
]
