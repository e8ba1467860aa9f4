"""
Shared normalization functions for the domain schemas.

Normalization never fails: it trims, de-duplicates and sorts. Validation rules
that reject input live in the services.
"""
import re
from urllib.parse import urlparse

WHITESPACE_PATTERN = re.compile(r"\s")

# URL-safe public handle
NICK_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def normalize_text(value: str | None) -> str:
    """Trim leading and trailing whitespace; None becomes an empty string."""
    if value is None:
        return ""
    return value.strip()


def normalize_tags(tags: list[str] | None) -> list[str]:
    """
    Normalize a list of tags.

    Each tag is trimmed, empty tags are dropped, duplicates are removed
    and the result is sorted in ascending order.
    """
    if not tags:
        return []
    return sorted({tag.strip() for tag in tags if tag and tag.strip()})


def contains_whitespace(value: str) -> bool:
    """Return True if value contains any Unicode whitespace character."""
    return WHITESPACE_PATTERN.search(value) is not None


def is_absolute_url(value: str) -> bool:
    """Return True if value parses as an absolute URL with a scheme and a host."""
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc)


def is_valid_nick_name(value: str) -> bool:
    """Return True if value is a URL-safe handle."""
    return NICK_NAME_PATTERN.match(value) is not None


def split_tags(raw: str | None, separator: str | None = None) -> list[str]:
    """Split a tag string on whitespace, or on separator when given."""
    if not raw:
        return []
    return [tag for tag in raw.split(separator) if tag]
