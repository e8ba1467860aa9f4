"""Offset-based pagination primitives."""
import math
from dataclasses import dataclass


class PageNumberOutOfBoundsError(Exception):
    """Raised when a requested page number is outside the available range."""

    def __init__(self, number: int, total_pages: int) -> None:
        self.number = number
        self.total_pages = total_pages
        super().__init__(f"Page number out of bounds: {number} (total pages: {total_pages})")


class PageNumberParseError(ValueError):
    """Raised when a page query parameter is not an unsigned integer."""

    def __init__(self, raw: str) -> None:
        self.raw = raw
        super().__init__(f"Invalid page number: {raw!r}")


@dataclass
class Page:
    """Page metadata shared by every paginated listing."""

    page_number: int
    previous_page_number: int
    next_page_number: int
    total_pages: int
    pages_left: int
    items_per_page: int
    item_count: int
    item_offset: int  # 1-based, for display
    db_offset: int  # 0-based, for the store
    search_terms: str = ""


def page_count(item_count: int, items_per_page: int) -> int:
    """Return the number of pages needed to display item_count items (at least 1)."""
    if items_per_page <= 0:
        raise ValueError("items_per_page must be a positive integer")
    if item_count <= 0:
        return 1
    return math.ceil(item_count / items_per_page)


def new_page(
    number: int,
    total_pages: int,
    items_per_page: int,
    item_count: int,
    search_terms: str = "",
) -> Page:
    """Derive page metadata for a 1-based page number."""
    return Page(
        page_number=number,
        previous_page_number=max(1, number - 1),
        next_page_number=min(total_pages, number + 1),
        total_pages=total_pages,
        pages_left=total_pages - number,
        items_per_page=items_per_page,
        item_count=item_count,
        item_offset=(number - 1) * items_per_page + 1,
        db_offset=(number - 1) * items_per_page,
        search_terms=search_terms,
    )


def paginate(
    number: int,
    item_count: int,
    items_per_page: int,
    search_terms: str = "",
) -> Page:
    """
    Check a page number against an item count and return the page metadata.

    Page 1 is always valid when there are no items.

    Raises:
        PageNumberOutOfBoundsError: If number < 1 or number exceeds the page count.
    """
    total_pages = page_count(item_count, items_per_page)
    if number < 1 or number > total_pages:
        raise PageNumberOutOfBoundsError(number, total_pages)
    return new_page(number, total_pages, items_per_page, item_count, search_terms)


def parse_page_number(raw: str | None) -> int:
    """
    Parse the `page` query parameter.

    An empty or missing value means page 1.

    Raises:
        PageNumberParseError: If the value is not an unsigned decimal integer.
    """
    if raw is None or raw == "":
        return 1
    if not raw.isascii() or not raw.isdigit():
        raise PageNumberParseError(raw)
    return int(raw)
