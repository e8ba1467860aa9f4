"""Wiring of the PostgreSQL stores for a request's session."""
from sqlalchemy.ext.asyncio import AsyncSession

from stores.base import Stores
from stores.postgres_bookmarks import PostgresBookmarkStore
from stores.postgres_feeds import PostgresFeedStore
from stores.postgres_users import PostgresSessionStore, PostgresUserStore


def postgres_stores(db: AsyncSession) -> Stores:
    """Return stores sharing one session, and therefore one transaction."""
    return Stores(
        bookmarks=PostgresBookmarkStore(db),
        users=PostgresUserStore(db),
        sessions=PostgresSessionStore(db),
        feeds=PostgresFeedStore(db),
    )
