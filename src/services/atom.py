"""Atom 1.0 rendering of a user's public bookmarks."""
from datetime import datetime

from lxml import etree

from schemas.bookmark import Bookmark
from schemas.user import Owner
from services.exceptions import FeedRenderError
from services.markdown_renderer import render_markdown

ATOM_NAMESPACE = "http://www.w3.org/2005/Atom"
ATOM_MEDIA_TYPE = "application/atom+xml"

_NSMAP = {None: ATOM_NAMESPACE}


def _tag(name: str) -> str:
    return f"{{{ATOM_NAMESPACE}}}{name}"


def _text_element(parent: etree._Element, name: str, text: str) -> etree._Element:
    element = etree.SubElement(parent, _tag(name))
    element.text = text
    return element


def _timestamp(value: datetime) -> str:
    return value.isoformat()


def bookmarks_url(public_url: str, owner: Owner) -> str:
    return f"{public_url}/u/{owner.nick_name}/bookmarks"


def _add_entry(feed: etree._Element, base_url: str, bookmark: Bookmark) -> None:
    entry = etree.SubElement(feed, _tag("entry"))
    _text_element(entry, "id", f"{base_url}/{bookmark.uid}")
    _text_element(entry, "title", bookmark.title)
    etree.SubElement(entry, _tag("link"), href=bookmark.url)
    _text_element(entry, "published", _timestamp(bookmark.created_at))
    _text_element(entry, "updated", _timestamp(bookmark.updated_at))
    if bookmark.description:
        content = _text_element(entry, "content", render_markdown(bookmark.description))
        content.set("type", "html")


def render_atom_feed(
    public_url: str,
    owner: Owner,
    bookmarks: list[Bookmark],
    generated_at: datetime,
) -> bytes:
    """
    Build an Atom feed of bookmarks.

    Args:
        public_url: Base URL used to mint absolute identifiers.
        owner: The user whose bookmarks are published.
        bookmarks: Public bookmarks, newest first.
        generated_at: Feed update time when there are no bookmarks.

    Raises:
        FeedRenderError: If any entry fails to render; no partial feed is returned.
    """
    base_url = bookmarks_url(public_url, owner)
    updated = max((b.updated_at for b in bookmarks), default=generated_at)

    feed = etree.Element(_tag("feed"), nsmap=_NSMAP)
    _text_element(feed, "title", f"{owner.display_name}'s bookmarks")
    _text_element(feed, "id", base_url)
    _text_element(feed, "updated", _timestamp(updated))
    etree.SubElement(feed, _tag("link"), rel="self", href=base_url)
    author = etree.SubElement(feed, _tag("author"))
    _text_element(author, "name", owner.display_name)

    for bookmark in bookmarks:
        try:
            _add_entry(feed, base_url, bookmark)
        except (ValueError, TypeError, AttributeError) as e:
            raise FeedRenderError(f"rendering bookmark {bookmark.uid}", e) from e

    return etree.tostring(feed, xml_declaration=True, encoding="UTF-8", pretty_print=True)
