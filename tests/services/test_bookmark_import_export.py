"""Tests for bookmark import and export services."""
from datetime import UTC, datetime

import pytest

from schemas.bookmark import Bookmark, Visibility
from schemas.importing import ImportStatus, ImportVisibility, OnConflictStrategy
from schemas.user import User
from services.bookmark_export_service import BookmarkExportService, JsonBookmark
from services.bookmark_import_service import BookmarkImportService
from services.bookmark_service import BookmarkService
from services.exceptions import (
    ImportDocumentInvalidError,
    OnConflictStrategyInvalidError,
    VisibilityInvalidError,
)
from services.netscape import parse_netscape
from stores.base import Stores
from tests.helpers import FixedClock

DOCUMENT = """<!DOCTYPE NETSCAPE-Bookmark-file-1>
<DL><p>
<DT><A HREF="https://example.com/one" ADD_DATE="1600000000" PRIVATE="1" TAGS="a,b">One</A>
<DT><A HREF="https://example.com/two" ADD_DATE="1600000500" PRIVATE="0">Two</A>
<DT><A HREF="https://example.com/one" ADD_DATE="1600000900">One again</A>
<DT><A HREF="not-a-url">Broken</A>
<DT><A HREF="https://example.com/untitled"></A>
<DT><A HREF="https://example.com/future" ADD_DATE="4102444800">Future</A>
</DL><p>
"""


@pytest.fixture
def importer(stores: Stores, clock: FixedClock) -> BookmarkImportService:
    return BookmarkImportService(stores.bookmarks, clock=clock)


@pytest.fixture
def exporter(stores: Stores, clock: FixedClock) -> BookmarkExportService:
    return BookmarkExportService(stores.bookmarks, clock=clock)


@pytest.fixture
def bookmarks(stores: Stores, clock: FixedClock) -> BookmarkService:
    return BookmarkService(stores.bookmarks, clock=clock)


def test_import_status_summary() -> None:
    keep = ImportStatus(on_conflict=OnConflictStrategy.KEEP, new_or_updated=3, skipped=1)
    assert keep.summary == "3 new, 1 skipped, 0 invalid"
    overwrite = ImportStatus(on_conflict=OnConflictStrategy.OVERWRITE, new_or_updated=2, invalid=4)
    assert overwrite.summary == "2 new or updated, 0 skipped, 4 invalid"
    assert overwrite.to_dict()["invalid"] == 4


async def test_import_from_netscape_document_counts_new_and_invalid(
    importer: BookmarkImportService, bookmarks: BookmarkService, user: User, clock: FixedClock,
) -> None:
    status = await importer.import_from_netscape_document(
        user.uuid, DOCUMENT, ImportVisibility.DEFAULT, OnConflictStrategy.KEEP,
    )
    # duplicate URL, invalid URL and missing title
    assert (status.new_or_updated, status.skipped, status.invalid) == (3, 0, 3)

    one = await bookmarks.by_url(user.uuid, "https://example.com/one")
    assert one.private is True
    assert one.tags == ["a", "b"]
    assert one.created_at == datetime.fromtimestamp(1600000000, tz=UTC)
    assert one.updated_at == one.created_at

    future = await bookmarks.by_url(user.uuid, "https://example.com/future")
    assert future.created_at == clock.now


async def test_import_from_netscape_document_keep_skips_registered_urls(
    importer: BookmarkImportService, bookmarks: BookmarkService, user: User,
) -> None:
    """Test that the keep strategy skips registered URLs."""
    existing = await bookmarks.add(Bookmark(
        user_uuid=user.uuid, url="https://example.com/one", title="Mine",
    ))
    status = await importer.import_from_netscape_document(
        user.uuid, DOCUMENT, "default", "keep",
    )
    assert (status.new_or_updated, status.skipped) == (2, 1)
    assert (await bookmarks.by_uid(user.uuid, existing.uid)).title == "Mine"


async def test_import_from_netscape_document_overwrite_replaces_registered_urls(
    importer: BookmarkImportService, bookmarks: BookmarkService, user: User,
) -> None:
    """Test that the overwrite strategy replaces registered URLs."""
    existing = await bookmarks.add(Bookmark(
        user_uuid=user.uuid, url="https://example.com/one", title="Mine",
    ))
    status = await importer.import_from_netscape_document(
        user.uuid, DOCUMENT, "default", "overwrite",
    )
    assert status.new_or_updated == 3
    assert status.summary.startswith("3 new or updated")

    replaced = await bookmarks.by_uid(user.uuid, existing.uid)
    assert replaced.title == "One"
    assert replaced.private is True


@pytest.mark.parametrize(("visibility", "private"), [("private", True), ("public", False)])
async def test_import_from_netscape_document_visibility_overrides_file(
    importer: BookmarkImportService,
    bookmarks: BookmarkService,
    user: User,
    visibility: str,
    private: bool,
) -> None:
    await importer.import_from_netscape_document(user.uuid, DOCUMENT, visibility, "keep")
    for url in ("https://example.com/one", "https://example.com/two"):
        assert (await bookmarks.by_url(user.uuid, url)).private is private


async def test_import_from_netscape_document_rejects_bad_options(
    importer: BookmarkImportService, user: User,
) -> None:
    with pytest.raises(VisibilityInvalidError):
        await importer.import_from_netscape_document(user.uuid, DOCUMENT, "friends", "keep")
    with pytest.raises(OnConflictStrategyInvalidError):
        await importer.import_from_netscape_document(user.uuid, DOCUMENT, "default", "merge")


@pytest.mark.parametrize("document", ["", "   \n", b""])
async def test_import_from_netscape_document_rejects_empty_document(
    importer: BookmarkImportService, user: User, document: str | bytes,
) -> None:
    with pytest.raises(ImportDocumentInvalidError):
        await importer.import_from_netscape_document(user.uuid, document, "default", "keep")


def test_json_bookmark_omits_empty_description_and_tags() -> None:
    now = datetime(2024, 1, 1, tzinfo=UTC)
    data = JsonBookmark(
        url="https://example.com", title="T", private=False, created_at=now, updated_at=now,
    ).to_dict()
    assert "description" not in data
    assert "tags" not in data
    assert data["created_at"] == "2024-01-01T00:00:00Z"


async def test_export_as_json_document_oldest_first_by_visibility(
    exporter: BookmarkExportService, bookmarks: BookmarkService, user: User, clock: FixedClock,
) -> None:
    await bookmarks.add(Bookmark(user_uuid=user.uuid, url="https://a.example.com", title="A"))
    clock.advance(minutes=1)
    await bookmarks.add(Bookmark(
        user_uuid=user.uuid, url="https://b.example.com", title="B", private=True, tags=["t"],
    ))

    everything = await exporter.export_as_json_document(user.uuid, "all")
    assert everything.title == "SparkleMuffin export of all bookmarks"
    assert everything.exported_at == clock.now
    assert [b.title for b in everything.bookmarks] == ["A", "B"]

    public = await exporter.export_as_json_document(user.uuid, Visibility.PUBLIC)
    exported = public.to_dict()["bookmarks"]
    assert [b["title"] for b in exported] == ["A"]
    assert "tags" not in exported[0]


async def test_export_as_netscape_document_round_trips_through_the_parser(
    exporter: BookmarkExportService, bookmarks: BookmarkService, user: User,
) -> None:
    """Test that an exported file can be imported again."""
    await bookmarks.add(Bookmark(
        user_uuid=user.uuid, url="https://a.example.com", title="A", tags=["x", "y"],
        description="desc",
    ))
    document = await exporter.export_as_netscape_document(user.uuid, "all")
    (parsed,) = parse_netscape(document)
    assert (parsed.url, parsed.title, parsed.tags, parsed.description) == (
        "https://a.example.com", "A", ["x", "y"], "desc",
    )


async def test_export_rejects_unknown_visibility(
    exporter: BookmarkExportService, user: User,
) -> None:
    with pytest.raises(VisibilityInvalidError):
        await exporter.export_as_json_document(user.uuid, "friends")
