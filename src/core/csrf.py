"""Stateless CSRF tokens bound to a user and a form action."""
import hashlib
import logging
import time
from collections.abc import Callable
from enum import StrEnum
from typing import Any

from itsdangerous import BadData, TimestampSigner, URLSafeTimedSerializer


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 3600


class CsrfAction(StrEnum):
    """Form actions a CSRF token can be bound to."""

    BOOKMARK_ADD = "bookmark-add"
    BOOKMARK_EDIT = "bookmark-edit"
    BOOKMARK_DELETE = "bookmark-delete"
    BOOKMARK_TAG_EDIT = "bookmark-tag-edit"
    BOOKMARK_TAG_DELETE = "bookmark-tag-delete"
    FEED_SUBSCRIPTION_ADD = "feed-subscription-add"
    FEED_SUBSCRIPTION_EDIT = "feed-subscription-edit"
    FEED_SUBSCRIPTION_DELETE = "feed-subscription-delete"
    FEED_CATEGORY_ADD = "feed-category-add"
    FEED_CATEGORY_EDIT = "feed-category-edit"
    FEED_CATEGORY_DELETE = "feed-category-delete"
    FEED_ENTRY_METADATA_EDIT = "feed-entry-metadata-edit"
    TOOLS_BOOKMARK_EXPORT = "tools-bookmark-export"
    TOOLS_BOOKMARK_IMPORT = "tools-bookmark-import"
    TOOLS_FEED_EXPORT = "tools-feed-export"
    TOOLS_FEED_IMPORT = "tools-feed-import"


class _ClockedTimestampSigner(TimestampSigner):
    """Timestamp signer reading the current time from an injectable clock."""

    def __init__(self, *args: Any, clock: Callable[[], float] = time.time, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._clock = clock

    def get_timestamp(self) -> int:
        return int(self._clock())


class CsrfService:
    """
    Generate and validate CSRF tokens.

    A token is the signed user UUID, salted with the action identifier and
    stamped with its creation time. Validation fails for a malformed token, a
    signature mismatch, an expired timestamp, another user or another action.
    All failures collapse into a single boolean result.
    """

    def __init__(
        self,
        key: str,
        timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not key:
            raise ValueError("A CSRF key is required")
        self._key = key
        self._timeout_seconds = timeout_seconds
        self._clock = clock

    def _serializer(self, action: CsrfAction) -> URLSafeTimedSerializer:
        return URLSafeTimedSerializer(
            self._key,
            salt=f"csrf:{action}",
            signer=_ClockedTimestampSigner,
            signer_kwargs={"clock": self._clock, "digest_method": hashlib.sha256},
        )

    def generate(self, user_uuid: str, action: CsrfAction) -> str:
        """Return a token valid for the given user and action."""
        return self._serializer(action).dumps(str(user_uuid))

    def validate(self, token: str, user_uuid: str, action: CsrfAction) -> bool:
        """Return True if token was minted for this user and action and has not expired."""
        if not token:
            return False
        try:
            payload = self._serializer(action).loads(token, max_age=self._timeout_seconds)
        except BadData as e:
            logger.info("Rejected CSRF token for action %s: %s", action, type(e).__name__)
            return False
        return payload == str(user_uuid)
