"""Reading and writing the Netscape Bookmark File format."""
from dataclasses import dataclass, field
from datetime import UTC, datetime
from html import escape

from bs4 import BeautifulSoup, Tag

from schemas.bookmark import Bookmark
from schemas.validators import split_tags

NETSCAPE_HEADER = """<!DOCTYPE NETSCAPE-Bookmark-file-1>
<!-- This is an automatically generated file.
     It will be read and overwritten.
     DO NOT EDIT! -->
<META HTTP-EQUIV="Content-Type" CONTENT="text/html; charset=UTF-8">
<TITLE>{title}</TITLE>
<H1>{title}</H1>
"""


@dataclass
class NetscapeBookmark:
    """A bookmark as read from a Netscape file."""

    url: str
    title: str
    description: str = ""
    private: bool = False
    tags: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromtimestamp(int(value.strip()), tz=UTC)
    except (ValueError, OverflowError, OSError):
        return None


def _description(anchor: Tag) -> str:
    """Return the text of the <DD> element following an <A>, if any."""
    following = anchor.find_next(["dd", "dt", "a"])
    if following is None or following.name != "dd":
        return ""
    # Direct strings only: with implicit closing, later entries may nest in the <DD>
    return "".join(following.find_all(string=True, recursive=False)).strip()


def parse_netscape(document: str | bytes) -> list[NetscapeBookmark]:
    """
    Parse a Netscape Bookmark File into a flat list of bookmarks.

    Folders are flattened, and links without an HREF are ignored.
    """
    soup = BeautifulSoup(document, "lxml")
    bookmarks = []
    for anchor in soup.find_all("a"):
        href = anchor.get("href")
        if href is None:
            continue
        bookmarks.append(NetscapeBookmark(
            url=href,
            title=anchor.get_text(),
            description=_description(anchor),
            private=anchor.get("private", "0").strip() == "1",
            tags=split_tags(anchor.get("tags"), ","),
            created_at=_parse_timestamp(anchor.get("add_date")),
            updated_at=_parse_timestamp(anchor.get("last_modified")),
        ))
    return bookmarks


def _timestamp(value: datetime | None) -> str:
    return str(int(value.timestamp())) if value is not None else ""


def write_netscape(bookmarks: list[Bookmark], title: str = "Bookmarks") -> str:
    """Render bookmarks as a Netscape Bookmark File."""
    header = NETSCAPE_HEADER.format(title=escape(title, quote=False))
    lines = [header.rstrip("\n"), "<DL><p>"]
    for bookmark in bookmarks:
        attributes = (
            f'HREF="{escape(bookmark.url)}" '
            f'ADD_DATE="{_timestamp(bookmark.created_at)}" '
            f'LAST_MODIFIED="{_timestamp(bookmark.updated_at)}" '
            f'PRIVATE="{1 if bookmark.private else 0}" '
            f'TAGS="{escape(",".join(bookmark.tags))}"'
        )
        lines.append(f"<DT><A {attributes}>{escape(bookmark.title, quote=False)}</A>")
        if bookmark.description:
            lines.append(f"<DD>{escape(bookmark.description, quote=False)}")
    lines.append("</DL><p>")
    return "\n".join(lines) + "\n"
