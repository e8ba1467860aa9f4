"""Tests for the Atom feed and Markdown rendering."""
from datetime import UTC, datetime
from uuid import uuid4

import pytest
from lxml import etree

from schemas.bookmark import Bookmark
from schemas.user import Owner
from services.atom import ATOM_NAMESPACE, render_atom_feed
from services.exceptions import FeedRenderError
from services.markdown_renderer import render_markdown

NS = {"a": ATOM_NAMESPACE}
PUBLIC_URL = "https://bookmarks.example.com"


@pytest.fixture
def owner() -> Owner:
    return Owner(uuid=uuid4(), nick_name="alice", display_name="Alice")


def _bookmark(uid: str, updated_at: datetime, description: str = "") -> Bookmark:
    return Bookmark(
        uid=uid,
        url=f"https://example.com/{uid}",
        title=f"Title {uid}",
        description=description,
        created_at=datetime(2024, 1, 1, tzinfo=UTC),
        updated_at=updated_at,
    )


def test_render_markdown_renders_commonmark() -> None:
    assert render_markdown("**bold** text") == "<p><strong>bold</strong> text</p>\n"
    assert render_markdown("") == ""


def test_render_markdown_escapes_raw_html() -> None:
    """Test that raw HTML in descriptions is escaped."""
    html = render_markdown("<script>alert(1)</script>")
    assert "<script>" not in html
    assert "&lt;script&gt;" in html


def test_render_atom_feed_feed_metadata(owner: Owner) -> None:
    latest = datetime(2024, 3, 1, tzinfo=UTC)
    document = render_atom_feed(
        PUBLIC_URL,
        owner,
        [_bookmark("b2", latest), _bookmark("b1", datetime(2024, 2, 1, tzinfo=UTC))],
        generated_at=datetime(2024, 6, 1, tzinfo=UTC),
    )
    assert document.startswith(b"<?xml version='1.0' encoding='UTF-8'?>")

    feed = etree.fromstring(document)
    assert feed.findtext("a:title", namespaces=NS) == "Alice's bookmarks"
    assert feed.findtext("a:id", namespaces=NS) == f"{PUBLIC_URL}/u/alice/bookmarks"
    assert feed.findtext("a:updated", namespaces=NS) == latest.isoformat()
    assert feed.findtext("a:author/a:name", namespaces=NS) == "Alice"

    entries = feed.findall("a:entry", namespaces=NS)
    assert [e.findtext("a:id", namespaces=NS) for e in entries] == [
        f"{PUBLIC_URL}/u/alice/bookmarks/b2", f"{PUBLIC_URL}/u/alice/bookmarks/b1",
    ]
    assert entries[0].find("a:link", namespaces=NS).get("href") == "https://example.com/b2"
    assert entries[0].find("a:content", namespaces=NS) is None


def test_render_atom_feed_description_is_rendered_as_html(owner: Owner) -> None:
    bookmark = _bookmark("b1", datetime(2024, 2, 1, tzinfo=UTC), description="# Heading")
    feed = etree.fromstring(
        render_atom_feed(PUBLIC_URL, owner, [bookmark], datetime(2024, 6, 1, tzinfo=UTC)),
    )
    content = feed.find("a:entry/a:content", namespaces=NS)
    assert content.get("type") == "html"
    assert content.text == "<h1>Heading</h1>\n"


def test_render_atom_feed_empty_feed_uses_generation_time(owner: Owner) -> None:
    generated_at = datetime(2024, 6, 1, tzinfo=UTC)
    feed = etree.fromstring(render_atom_feed(PUBLIC_URL, owner, [], generated_at))
    assert feed.findtext("a:updated", namespaces=NS) == generated_at.isoformat()
    assert feed.findall("a:entry", namespaces=NS) == []


def test_render_atom_feed_fails_whole_feed_on_bad_entry(owner: Owner) -> None:
    """Test that one bad entry fails the whole feed."""
    broken = Bookmark(uid="bad", url="https://example.com", title="Bad", created_at=None,
                      updated_at=datetime(2024, 1, 1, tzinfo=UTC))
    with pytest.raises(FeedRenderError):
        render_atom_feed(PUBLIC_URL, owner, [broken], datetime(2024, 6, 1, tzinfo=UTC))
