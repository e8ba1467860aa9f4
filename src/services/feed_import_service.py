"""Import of feed subscriptions from OPML documents."""
import logging
from uuid import UUID

from schemas.importing import FeedImportStatus
from services.exceptions import FeedFetchError, FeedURLInvalidError, ImportDocumentInvalidError
from services.feed_service import FeedService
from services.opml import parse_opml

logger = logging.getLogger(__name__)


class FeedImportService:
    """Create categories, feeds and subscriptions from an OPML document."""

    def __init__(self, feed_service: FeedService) -> None:
        self._feeds = feed_service

    async def import_from_opml_document(
        self, user_uuid: UUID, document: str | bytes,
    ) -> FeedImportStatus:
        """
        Import the subscriptions listed in an OPML document.

        Existing categories and subscriptions are reused. Feeds that cannot be
        retrieved are reported in the status and do not stop the import.

        Raises:
            ImportDocumentInvalidError: If the document is empty or not OPML.
        """
        if not document or not document.strip():
            raise ImportDocumentInvalidError("empty document")

        status = FeedImportStatus()
        for opml_category in parse_opml(document):
            category, created = await self._feeds.get_or_create_category(
                user_uuid, opml_category.name,
            )
            status.categories.record(created)

            for feed_url in opml_category.feed_urls:
                try:
                    feed, created = await self._feeds.get_or_create_feed(feed_url)
                except (FeedFetchError, FeedURLInvalidError) as e:
                    logger.warning("Skipping feed %s during OPML import: %s", feed_url, e)
                    status.failed_feed_urls.append(feed_url)
                    continue
                status.feeds.record(created)

                _, created = await self._feeds.get_or_create_subscription(
                    user_uuid, category.uuid, feed,
                )
                status.subscriptions.record(created)

        logger.info("Imported feeds for user %s: %s", user_uuid, status.summary)
        return status
