"""Remember-me session lifecycle."""
import base64
import hashlib
import hmac
import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from uuid import UUID

from core.rand import remember_token
from schemas.user import Session
from services.exceptions import SessionNotFoundError
from services.utils import utc_now
from stores.base import SessionStore

logger = logging.getLogger(__name__)

DEFAULT_SESSION_DURATION = timedelta(days=30)


class SessionService:
    """
    Create, look up and rotate remember-me sessions.

    Only an HMAC-SHA256 hash of each token is stored; the clear token lives in
    the client cookie.
    """

    def __init__(
        self,
        store: SessionStore,
        hmac_key: str,
        duration: timedelta = DEFAULT_SESSION_DURATION,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if not hmac_key:
            raise ValueError("An HMAC key is required")
        self._store = store
        self._key = hmac_key.encode("utf-8")
        self._duration = duration
        self._clock = clock

    def hash_token(self, token: str) -> str:
        """Return the URL-safe base64 HMAC of a remember token."""
        digest = hmac.new(self._key, token.encode("utf-8"), hashlib.sha256).digest()
        return base64.urlsafe_b64encode(digest).decode("ascii")

    async def create(self, user_uuid: UUID) -> Session:
        """
        Start a new session for a user.

        Returns:
            The session, carrying the clear token to send to the client.
        """
        token = remember_token()
        session = Session(
            user_uuid=user_uuid,
            remember_token=token,
            remember_token_hash=self.hash_token(token),
            expires_at=self._clock() + self._duration,
        )
        await self._store.add(session)
        return session

    async def by_remember_token(self, token: str) -> Session:
        """
        Return the live session for a remember token.

        Raises:
            SessionNotFoundError: If the token is empty, unknown or expired.
        """
        if not token:
            raise SessionNotFoundError()
        session = await self._store.get_by_remember_token_hash(self.hash_token(token))
        if session.expires_at is not None and session.expires_at <= self._clock():
            raise SessionNotFoundError()
        return session

    async def rotate(self, user_uuid: UUID, current_token: str = "") -> Session:
        """
        Invalidate the current token and store a fresh one with no expiry.

        The new token is never sent to the client, so the user is logged out.
        """
        if current_token:
            await self._store.delete_by_remember_token_hash(self.hash_token(current_token))
        token = remember_token()
        session = Session(
            user_uuid=user_uuid,
            remember_token=token,
            remember_token_hash=self.hash_token(token),
            expires_at=None,
        )
        await self._store.add(session)
        logger.debug("Rotated session for user %s", user_uuid)
        return session
