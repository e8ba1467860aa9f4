"""Retrieval and parsing of syndication feeds."""
import ipaddress
import logging
import socket
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol
from urllib.parse import urlparse

import feedparser
import httpx

from services.exceptions import FeedFetchError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
USER_AGENT = "Mozilla/5.0 (compatible; SparkleMuffin/1.0)"
ALLOWED_SCHEMES = ("http", "https")


@dataclass
class FetchedEntry:
    """An entry read from a feed document."""

    url: str
    title: str
    summary: str = ""
    published_at: datetime | None = None


@dataclass
class FetchedFeed:
    """A feed document reduced to the fields that are stored."""

    feed_url: str
    title: str
    description: str = ""
    entries: list[FetchedEntry] = field(default_factory=list)


class FeedFetcher(Protocol):
    """Retrieves a feed when a user subscribes to it."""

    async def fetch(self, feed_url: str) -> FetchedFeed:
        """Raises FeedFetchError."""
        ...


def is_private_ip(ip_str: str) -> bool:
    """Check if an IP address is private, loopback, or otherwise internal."""
    try:
        ip = ipaddress.ip_address(ip_str)
    except ValueError:
        return True
    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_multicast
        or ip.is_reserved
        or ip.is_unspecified
    )


def validate_url_not_private(url: str) -> None:
    """
    Reject URLs whose host resolves to a private or internal address.

    Raises:
        FeedFetchError: If the URL has no host, cannot be resolved or is internal.
    """
    hostname = urlparse(url).hostname
    if not hostname:
        raise FeedFetchError(url, "no hostname")
    if hostname.lower() in ("localhost", "localhost.localdomain"):
        raise FeedFetchError(url, "blocked request to localhost")
    try:
        addrinfo = socket.getaddrinfo(hostname, None, socket.AF_UNSPEC, socket.SOCK_STREAM)
    except socket.gaierror as e:
        raise FeedFetchError(url, f"could not resolve {hostname}") from e
    for _, _, _, _, sockaddr in addrinfo:
        if is_private_ip(sockaddr[0]):
            raise FeedFetchError(url, f"blocked request to internal address {sockaddr[0]}")


def _published_at(item: Any) -> datetime | None:
    parsed = item.get("published_parsed") or item.get("updated_parsed")
    if not parsed:
        return None
    return datetime(*parsed[:6], tzinfo=UTC)


def parse_feed(feed_url: str, content: bytes | str) -> FetchedFeed:
    """
    Parse an Atom or RSS document.

    Entries without a link or with a non-HTTP link are dropped.

    Raises:
        FeedFetchError: If the document is not a feed.
    """
    parsed = feedparser.parse(content)
    if parsed.bozo and not parsed.entries and not parsed.feed.get("title"):
        raise FeedFetchError(feed_url, f"not a valid feed ({parsed.get('bozo_exception')})")

    entries = []
    for item in parsed.entries:
        link = (item.get("link") or "").strip()
        if urlparse(link).scheme not in ALLOWED_SCHEMES:
            continue
        entries.append(FetchedEntry(
            url=link,
            title=(item.get("title") or link).strip(),
            summary=(item.get("summary") or "").strip(),
            published_at=_published_at(item),
        ))

    return FetchedFeed(
        feed_url=feed_url,
        title=(parsed.feed.get("title") or feed_url).strip(),
        description=(parsed.feed.get("subtitle") or parsed.feed.get("description") or "").strip(),
        entries=entries,
    )


class HTTPFeedFetcher:
    """Fetch feeds over HTTP with httpx and parse them with feedparser."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = USER_AGENT,
        block_private_networks: bool = True,
    ) -> None:
        self._timeout = timeout
        self._user_agent = user_agent
        self._block_private_networks = block_private_networks

    async def fetch(self, feed_url: str) -> FetchedFeed:
        """
        Download and parse a feed.

        Raises:
            FeedFetchError: On network errors, non-2xx responses, blocked hosts
                or unparseable documents.
        """
        if self._block_private_networks:
            validate_url_not_private(feed_url)

        try:
            async with httpx.AsyncClient(
                follow_redirects=True,
                timeout=self._timeout,
                headers={"User-Agent": self._user_agent},
            ) as client:
                response = await client.get(feed_url)

                # The final URL after redirects must not be internal either
                if self._block_private_networks:
                    try:
                        validate_url_not_private(str(response.url))
                    except FeedFetchError as e:
                        raise FeedFetchError(feed_url, f"redirect blocked: {e.reason}") from e
        except httpx.TimeoutException as e:
            raise FeedFetchError(feed_url, "request timed out") from e
        except httpx.RequestError as e:
            raise FeedFetchError(feed_url, f"request failed: {e}") from e

        if not response.is_success:
            raise FeedFetchError(feed_url, f"HTTP {response.status_code}")

        logger.debug("Fetched feed %s (%d bytes)", feed_url, len(response.content))
        return parse_feed(feed_url, response.content)
