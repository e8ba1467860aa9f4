"""Tests for the public bookmark pages and the Atom feed."""
import pytest
from httpx import AsyncClient
from lxml import etree

from core.auth import REMEMBER_ME_COOKIE
from stores.memory import MemoryDatabase
from tests.helpers import TEST_PUBLIC_URL, csrf_token

ATOM = "{http://www.w3.org/2005/Atom}"


@pytest.fixture
async def published(user_client: AsyncClient, memory_db: MemoryDatabase) -> dict[str, str]:
    """Add a public and a private bookmark, then log out; return their UIDs by title."""
    for title, private in (("Public post", False), ("Secret post", True)):
        token = await csrf_token(user_client, "/bookmarks/add")
        await user_client.post("/bookmarks/add", json={
            "csrf_token": token,
            "url": f"https://example.com/{title.split()[0].lower()}",
            "title": title,
            "description": "Some **bold** text",
            "private": private,
        })
    user_client.cookies.delete(REMEMBER_ME_COOKIE)
    return {b.title: b.uid for b in memory_db.bookmarks.values()}


async def test_public_bookmarks_hide_private_ones(
    client: AsyncClient, published: dict[str, str],
) -> None:
    """Test that public pages never list private bookmarks."""
    response = await client.get("/u/alice/bookmarks")

    assert response.status_code == 200
    body = response.json()
    assert [b["title"] for b in body["bookmarks"]["bookmarks"]] == ["Public post"]
    assert body["bookmarks"]["owner"]["display_name"] == "Alice"
    assert body["atom_feed_url"] == f"{TEST_PUBLIC_URL}/u/alice/feed/atom"


async def test_public_bookmarks_search(client: AsyncClient, published: dict[str, str]) -> None:
    """Test searching a user's public bookmarks."""
    response = await client.get("/u/alice/bookmarks", params={"search": "post"})
    assert [b["title"] for b in response.json()["bookmarks"]["bookmarks"]] == ["Public post"]


async def test_public_bookmarks_unknown_user(client: AsyncClient) -> None:
    """Test that an unknown nickname returns 404."""
    response = await client.get("/u/nobody/bookmarks")
    assert response.status_code == 404
    assert response.json() == {"detail": "Not Found"}


async def test_public_permalink(client: AsyncClient, published: dict[str, str]) -> None:
    """Test the permalink of a public and of a private bookmark."""
    public = await client.get(f"/u/alice/bookmarks/{published['Public post']}")
    assert [b["title"] for b in public.json()["bookmarks"]["bookmarks"]] == ["Public post"]

    private = await client.get(f"/u/alice/bookmarks/{published['Secret post']}")
    assert private.status_code == 200
    assert private.json()["bookmarks"]["bookmarks"] == []


async def test_atom_feed(client: AsyncClient, published: dict[str, str]) -> None:
    """Test the Atom feed of a user's public bookmarks."""
    response = await client.get("/u/alice/feed/atom")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/atom+xml")
    assert response.headers["content-disposition"] == "attachment; filename=alice.atom"

    feed = etree.fromstring(response.content)
    assert feed.findtext(f"{ATOM}title") == "Alice's bookmarks"
    assert feed.findtext(f"{ATOM}id") == f"{TEST_PUBLIC_URL}/u/alice/bookmarks"
    entries = feed.findall(f"{ATOM}entry")
    assert [e.findtext(f"{ATOM}title") for e in entries] == ["Public post"]
    entry = entries[0]
    assert entry.findtext(f"{ATOM}id") == (
        f"{TEST_PUBLIC_URL}/u/alice/bookmarks/{published['Public post']}"
    )
    assert entry.find(f"{ATOM}link").get("href") == "https://example.com/public"
    content = entry.find(f"{ATOM}content")
    assert content.get("type") == "html"
    assert "<strong>bold</strong>" in content.text


async def test_atom_feed_unknown_user(client: AsyncClient) -> None:
    """Test that the Atom feed of an unknown user returns 404."""
    assert (await client.get("/u/nobody/feed/atom")).status_code == 404
