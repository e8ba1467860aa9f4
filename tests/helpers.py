"""Test doubles and helpers shared across the test suites."""
from datetime import UTC, datetime, timedelta
from typing import Any

from httpx import AsyncClient, Response

from core.auth import REMEMBER_ME_COOKIE
from schemas.flash import Flash
from schemas.user import User
from services.exceptions import FeedFetchError
from services.feed_fetcher import FetchedEntry, FetchedFeed
from services.session_service import SessionService
from services.user_service import UserService
from stores.base import Stores

TEST_CSRF_KEY = "test-csrf-key-0123456789abcdef"
TEST_PUBLIC_URL = "https://bookmarks.example.com"
TEST_PASSWORD = "correct horse battery staple"


class FixedClock:
    """Clock returning a settable instant."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakeFeedFetcher:
    """Serves registered feeds; any other URL fails to fetch."""

    def __init__(self) -> None:
        self.feeds: dict[str, FetchedFeed] = {}
        self.calls: list[str] = []

    def register(self, feed_url: str, title: str, entry_count: int = 2) -> FetchedFeed:
        start = datetime(2024, 1, 1, tzinfo=UTC)
        feed = FetchedFeed(
            feed_url=feed_url,
            title=title,
            description=f"{title} description",
            entries=[
                FetchedEntry(
                    url=f"{feed_url.rstrip('/')}/entries/{i}",
                    title=f"{title} entry {i}",
                    summary=f"Summary of {title} entry {i}",
                    published_at=start + timedelta(days=i),
                )
                for i in range(entry_count)
            ],
        )
        self.feeds[feed_url] = feed
        return feed

    async def fetch(self, feed_url: str) -> FetchedFeed:
        self.calls.append(feed_url)
        if feed_url not in self.feeds:
            raise FeedFetchError(feed_url, "HTTP 404")
        return self.feeds[feed_url]


async def create_user(
    stores: Stores,
    nick_name: str = "alice",
    is_admin: bool = False,
    password: str = TEST_PASSWORD,
) -> User:
    """Register an account directly through the user service."""
    return await UserService(stores.users).add(User(
        email=f"{nick_name}@example.com",
        nick_name=nick_name,
        display_name=nick_name.capitalize(),
        password=password,
        is_admin=is_admin,
    ))


async def log_in(client: AsyncClient, stores: Stores, user: User, clock: FixedClock) -> str:
    """Start a session for user and store its token in the client cookie jar."""
    session = await SessionService(stores.sessions, TEST_CSRF_KEY, clock=clock).create(user.uuid)
    client.cookies.set(REMEMBER_ME_COOKIE, session.remember_token)
    return session.remember_token


def flash_of(response: Response) -> Flash | None:
    """Decode the flash cookie set by a response, if any."""
    value = response.cookies.get("flash")
    return Flash.decode(value) if value else None


async def csrf_token(client: AsyncClient, form_url: str) -> str:
    """Fetch a form page and return the CSRF token it was rendered with."""
    response = await client.get(form_url)
    assert response.status_code == 200, response.text
    return response.json()["csrf_token"]


def set_cookie_value(response: Response, name: str) -> str | None:
    """
    Return the raw value of a cookie set by a response.

    Reads the header itself: the cookie jar drops cookies whose expiry, computed
    from the fixed test clock, is already in the past.
    """
    for header in response.headers.get_list("set-cookie"):
        cookie_name, _, rest = header.partition("=")
        if cookie_name == name:
            return rest.split(";", 1)[0].strip('"')
    return None
