"""Export of feed subscriptions as OPML."""
from collections.abc import Callable
from datetime import datetime

from schemas.user import User
from services.opml import OPMLCategoryOutline, OPMLSubscription, write_opml
from services.utils import utc_now
from stores.base import FeedStore


def opml_title(display_name: str) -> str:
    """Title of an OPML export."""
    return f"{display_name}'s feed subscriptions on SparkleMuffin"


class FeedExportService:
    """Export a user's subscriptions, grouped by category."""

    def __init__(self, store: FeedStore, clock: Callable[[], datetime] = utc_now) -> None:
        self._store = store
        self._clock = clock

    async def export_as_opml_document(self, user: User) -> bytes:
        categories = await self._store.subscriptions_by_category(user.uuid)
        outlines = [
            OPMLCategoryOutline(
                name=category.category.name,
                subscriptions=[
                    OPMLSubscription(title=feed.title, feed_url=feed.feed_url)
                    for feed in category.subscribed_feeds
                ],
            )
            for category in categories
        ]
        return write_opml(opml_title(user.display_name), outlines, self._clock())
