"""Reading and writing OPML subscription lists."""
from dataclasses import dataclass, field
from datetime import datetime
from email.utils import format_datetime

from lxml import etree

from services.exceptions import ImportDocumentInvalidError

DEFAULT_CATEGORY_NAME = "Default"


@dataclass
class OPMLCategory:
    """A category outline and the feed URLs found beneath it."""

    name: str
    feed_urls: list[str] = field(default_factory=list)


@dataclass
class OPMLSubscription:
    title: str
    feed_url: str


@dataclass
class OPMLCategoryOutline:
    name: str
    subscriptions: list[OPMLSubscription] = field(default_factory=list)


def _outline_text(outline: etree._Element) -> str:
    return (outline.get("text") or outline.get("title") or "").strip()


def _is_subscription(outline: etree._Element) -> bool:
    return bool((outline.get("xmlUrl") or "").strip())


def _collect_feed_urls(outline: etree._Element) -> list[str]:
    """Return the feed URLs of every subscription below an outline, at any depth."""
    return [
        child.get("xmlUrl").strip()
        for child in outline.iter("outline")
        if child is not outline and _is_subscription(child)
    ]


def parse_opml(document: str | bytes) -> list[OPMLCategory]:
    """
    Parse an OPML 1.0 or 2.0 document into categories of feed URLs.

    Subscriptions at the top level of the body go to the "Default" category.
    Nested directories are flattened onto their top-level directory.

    Raises:
        ImportDocumentInvalidError: If the document is not well-formed OPML.
    """
    if isinstance(document, str):
        document = document.encode("utf-8")
    parser = etree.XMLParser(resolve_entities=False, no_network=True, remove_comments=True)
    try:
        root = etree.fromstring(document, parser=parser)
    except etree.XMLSyntaxError as e:
        raise ImportDocumentInvalidError(f"malformed OPML: {e}") from e
    if root is None or root.tag != "opml":
        raise ImportDocumentInvalidError("missing <opml> root element")
    body = root.find("body")
    if body is None:
        raise ImportDocumentInvalidError("missing <body> element")

    categories: dict[str, OPMLCategory] = {}

    def category(name: str) -> OPMLCategory:
        if name not in categories:
            categories[name] = OPMLCategory(name=name)
        return categories[name]

    for outline in body.findall("outline"):
        if _is_subscription(outline):
            category(DEFAULT_CATEGORY_NAME).feed_urls.append(outline.get("xmlUrl").strip())
        elif len(outline):
            name = _outline_text(outline) or DEFAULT_CATEGORY_NAME
            category(name).feed_urls.extend(_collect_feed_urls(outline))

    return list(categories.values())


def write_opml(
    title: str,
    categories: list[OPMLCategoryOutline],
    created_at: datetime,
) -> bytes:
    """Render an OPML 2.0 document with one directory outline per category."""
    root = etree.Element("opml", version="2.0")
    head = etree.SubElement(root, "head")
    etree.SubElement(head, "title").text = title
    etree.SubElement(head, "dateCreated").text = format_datetime(created_at)

    body = etree.SubElement(root, "body")
    for category in categories:
        category_outline = etree.SubElement(
            body, "outline", text=category.name, title=category.name,
        )
        for subscription in category.subscriptions:
            etree.SubElement(
                category_outline,
                "outline",
                text=subscription.title,
                title=subscription.title,
                type="rss",
                xmlUrl=subscription.feed_url,
            )

    return etree.tostring(root, xml_declaration=True, encoding="UTF-8", pretty_print=True)
