"""End-to-end flows through the HTTP surface, backed by the in-memory stores."""
from datetime import timedelta
from uuid import uuid4

from httpx import AsyncClient
from lxml import etree

from core.auth import REMEMBER_ME_COOKIE
from core.csrf import CsrfAction, CsrfService
from core.rand import random_base64_url_string
from core.uid import new_uid
from schemas.bookmark import Bookmark, encode_tag_name
from schemas.user import User
from services.bookmark_service import BookmarkService
from stores.base import Stores
from stores.memory import MemoryDatabase
from tests.helpers import TEST_CSRF_KEY, FixedClock, create_user, csrf_token, flash_of, log_in

ATOM = "{http://www.w3.org/2005/Atom}"


async def _add(client: AsyncClient, **fields: object) -> None:
    token = await csrf_token(client, "/bookmarks/add")
    response = await client.post("/bookmarks/add", json={"csrf_token": token, **fields})
    assert response.status_code == 303
    assert flash_of(response).message == "The bookmark has been successfully added"


async def test_add_then_list(user_client: AsyncClient) -> None:
    """Test that an added bookmark shows on the first page."""
    await _add(user_client, url="https://a.test", title="A")

    body = (await user_client.get("/bookmarks")).json()["bookmarks"]

    [bookmark] = body["bookmarks"]
    assert (bookmark["title"], bookmark["tags"]) == ("A", [])
    assert (body["page"]["item_count"], body["page"]["total_pages"]) == (1, 1)


async def test_markdown_description_in_atom_feed(
    client: AsyncClient, stores: Stores, clock: FixedClock,
) -> None:
    """Test that a Markdown description is rendered as HTML in the Atom feed."""
    ann = await create_user(stores, "ann")
    await log_in(client, stores, ann, clock)
    await _add(client, url="https://b.test", title="B", description="Tags:\n- feed/atom\n- test\n")
    client.cookies.delete(REMEMBER_ME_COOKIE)

    response = await client.get("/u/ann/feed/atom")

    feed = etree.fromstring(response.content)
    [entry] = feed.findall(f"{ATOM}entry")
    assert entry.findtext(f"{ATOM}content") == (
        "<p>Tags:</p>\n<ul>\n<li>feed/atom</li>\n<li>test</li>\n</ul>\n"
    )


async def test_tag_rename_across_bookmarks(
    user_client: AsyncClient, memory_db: MemoryDatabase, stores: Stores, user: User,
    clock: FixedClock,
) -> None:
    """Test renaming a tag shared by ten bookmarks."""
    service = BookmarkService(stores.bookmarks, clock=clock)
    for i in range(10):
        random_tags = [random_base64_url_string(8) for _ in range(10)]
        await service.add(Bookmark(
            user_uuid=user.uuid,
            url=f"https://example.com/{i}",
            title=f"Bookmark {i}",
            tags=["common/tag1", "common/tag2", *random_tags],
        ))
    encoded = encode_tag_name("common/tag2")
    token = await csrf_token(user_client, f"/bookmarks/tags/{encoded}/edit")

    response = await user_client.post(f"/bookmarks/tags/{encoded}/edit", json={
        "csrf_token": token, "new_name": "common/renamed",
    })

    assert flash_of(response).message == "Tag renamed on 10 bookmarks"
    for bookmark in memory_db.bookmarks.values():
        assert "common/tag2" not in bookmark.tags
        assert "common/renamed" in bookmark.tags
        assert "common/tag1" in bookmark.tags


async def test_import_keep_then_overwrite(user_client: AsyncClient) -> None:
    """Test importing over existing bookmarks with both conflict strategies."""
    await _add(user_client, url="https://one.test", title="One")
    await _add(user_client, url="https://two.test", title="Two")
    document = """<!DOCTYPE NETSCAPE-Bookmark-file-1>
<DL><p>
<DT><A HREF="https://one.test" ADD_DATE="1600000000">One again</A>
<DT><A HREF="https://two.test" ADD_DATE="1600000000">Two again</A>
<DT><A HREF="https://three.test" ADD_DATE="1600000000">Three</A>
</DL><p>
"""

    async def import_document(on_conflict: str) -> str:
        token = await csrf_token(user_client, "/tools/bookmarks/import")
        response = await user_client.post(
            "/tools/bookmarks/import",
            params={"on_conflict": on_conflict},
            content=document.encode(),
            headers={"X-CSRF-Token": token},
        )
        return flash_of(response).message

    assert await import_document("keep") == "Import status: 1 new, 2 skipped, 0 invalid"
    assert await import_document("overwrite") == (
        "Import status: 3 new or updated, 0 skipped, 0 invalid"
    )


async def test_pagination_of_one_hundred_bookmarks(
    user_client: AsyncClient, stores: Stores, user: User, clock: FixedClock,
) -> None:
    """Test paging through one hundred bookmarks."""
    start = clock()
    for i in range(100):
        created_at = start + timedelta(minutes=i)
        await stores.bookmarks.add(Bookmark(
            uid=new_uid(),
            user_uuid=user.uuid,
            url=f"https://example.com/{i}",
            title=f"Bookmark {i}",
            created_at=created_at,
            updated_at=created_at,
        ))

    first = (await user_client.get("/bookmarks", params={"page": "1"})).json()["bookmarks"]
    second = (await user_client.get("/bookmarks", params={"page": "2"})).json()["bookmarks"]

    assert [b["title"] for b in first["bookmarks"]] == [f"Bookmark {i}" for i in range(99, 79, -1)]
    assert [b["title"] for b in second["bookmarks"]] == [f"Bookmark {i}" for i in range(79, 59, -1)]
    assert first["page"]["total_pages"] == 5
    assert (await user_client.get("/bookmarks", params={"page": "6"})).status_code == 404


def test_csrf_round_trip() -> None:
    """Test that a CSRF token only validates for its own user and action."""
    csrf = CsrfService(TEST_CSRF_KEY)
    user_uuid, other_uuid = str(uuid4()), str(uuid4())

    token = csrf.generate(user_uuid, CsrfAction.BOOKMARK_ADD)

    assert csrf.validate(token, user_uuid, CsrfAction.BOOKMARK_ADD) is True
    assert csrf.validate(token, user_uuid, CsrfAction.BOOKMARK_EDIT) is False
    assert csrf.validate(token, other_uuid, CsrfAction.BOOKMARK_ADD) is False
