"""Tests for the Netscape Bookmark File reader and writer."""
from datetime import UTC, datetime

from schemas.bookmark import Bookmark
from services.netscape import parse_netscape, write_netscape

DOCUMENT = """<!DOCTYPE NETSCAPE-Bookmark-file-1>
<META HTTP-EQUIV="Content-Type" CONTENT="text/html; charset=UTF-8">
<TITLE>Bookmarks</TITLE>
<H1>Bookmarks</H1>
<DL><p>
<DT><A HREF="https://example.com/one" ADD_DATE="1600000000" LAST_MODIFIED="1600000100" PRIVATE="1" TAGS="python,web">First &amp; best</A>
<DD>A description
<DT><H3>Folder</H3>
<DL><p>
<DT><A HREF="https://example.com/two" ADD_DATE="1500000000">Second</A>
</DL><p>
<DT><A>No href</A>
<DT><A HREF="https://example.com/three" ADD_DATE="garbage" TAGS="">Third</A>
<DD>Third description
</DL><p>
"""


def test_parse_netscape_reads_attributes() -> None:
    bookmarks = parse_netscape(DOCUMENT)
    assert [b.url for b in bookmarks] == [
        "https://example.com/one", "https://example.com/two", "https://example.com/three",
    ]

    first = bookmarks[0]
    assert first.title == "First & best"
    assert first.description == "A description"
    assert first.private is True
    assert first.tags == ["python", "web"]
    assert first.created_at == datetime.fromtimestamp(1600000000, tz=UTC)
    assert first.updated_at == datetime.fromtimestamp(1600000100, tz=UTC)


def test_parse_netscape_flattens_folders_and_tolerates_missing_fields() -> None:
    """Test that nested folders are flattened."""
    second, third = parse_netscape(DOCUMENT)[1:]
    assert second.description == ""
    assert second.private is False
    assert second.tags == []
    assert second.updated_at is None
    assert third.created_at is None
    assert third.description == "Third description"


def test_parse_netscape_accepts_bytes() -> None:
    assert len(parse_netscape(DOCUMENT.encode("utf-8"))) == 3


def test_write_netscape_can_be_read_back() -> None:
    created = datetime(2023, 5, 1, 8, 30, tzinfo=UTC)
    document = write_netscape(
        [
            Bookmark(
                url="https://example.com/?a=1&b=2",
                title="<Tricky> \"title\"",
                description="Line & more",
                private=True,
                tags=["a", "b"],
                created_at=created,
                updated_at=created,
            ),
        ],
        title="Export",
    )
    assert document.startswith("<!DOCTYPE NETSCAPE-Bookmark-file-1>")
    assert "<TITLE>Export</TITLE>" in document

    (bookmark,) = parse_netscape(document)
    assert bookmark.url == "https://example.com/?a=1&b=2"
    assert bookmark.title == "<Tricky> \"title\""
    assert bookmark.description == "Line & more"
    assert bookmark.private is True
    assert bookmark.tags == ["a", "b"]
    assert bookmark.created_at == created
