"""PostgreSQL BookmarkStore."""
import logging
from uuid import UUID

from sqlalchemy import delete, func, select, true, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.sql.elements import ColumnElement

from models.bookmark import Bookmark as BookmarkModel
from schemas.bookmark import Bookmark, Tag, Visibility
from services.exceptions import BookmarkNotFoundError, URLAlreadyRegisteredError
from services.utils import escape_ilike
from stores.postgres_helpers import (
    PostgresStore,
    chunked,
    to_tsvector,
    violates,
    websearch_query,
)
from stores.search import bookmark_search_text

logger = logging.getLogger(__name__)

URL_CONSTRAINT = "uq_bookmarks_user_uuid_url"

_COLUMNS = (
    BookmarkModel.uid,
    BookmarkModel.user_uuid,
    BookmarkModel.url,
    BookmarkModel.title,
    BookmarkModel.description,
    BookmarkModel.private,
    BookmarkModel.tags,
    BookmarkModel.created_at,
    BookmarkModel.updated_at,
)

_NEWEST_FIRST = (BookmarkModel.created_at.desc(), BookmarkModel.uid.desc())
_OLDEST_FIRST = (BookmarkModel.created_at.asc(), BookmarkModel.uid.asc())


def _row_values(bookmark: Bookmark) -> dict:
    return {
        "uid": bookmark.uid,
        "user_uuid": bookmark.user_uuid,
        "url": bookmark.url,
        "title": bookmark.title,
        "description": bookmark.description,
        "private": bookmark.private,
        "tags": bookmark.tags,
        "fulltextsearch_tsv": to_tsvector(
            bookmark_search_text(bookmark.title, bookmark.description, bookmark.tags),
        ),
        "created_at": bookmark.created_at,
        "updated_at": bookmark.updated_at,
    }


def _visibility_clause(visibility: Visibility) -> ColumnElement[bool]:
    if visibility == Visibility.PRIVATE:
        return BookmarkModel.private.is_(True)
    if visibility == Visibility.PUBLIC:
        return BookmarkModel.private.is_(False)
    return true()


def _owned(user_uuid: UUID, visibility: Visibility = Visibility.ALL) -> tuple:
    return (BookmarkModel.user_uuid == user_uuid, _visibility_clause(visibility))


class PostgresBookmarkStore(PostgresStore):
    """BookmarkStore backed by the `bookmarks` table."""

    async def _select_one(self, context: str, identifier: str, *criteria: ColumnElement) -> Bookmark:
        result = await self._execute(select(*_COLUMNS).where(*criteria), context)
        row = result.one_or_none()
        if row is None:
            raise BookmarkNotFoundError(identifier)
        return Bookmark.model_validate(row, from_attributes=True)

    async def _select_many(self, statement, context: str) -> list[Bookmark]:
        result = await self._execute(statement, context)
        return [Bookmark.model_validate(row, from_attributes=True) for row in result]

    # --- Writes ---

    async def add(self, bookmark: Bookmark) -> None:
        try:
            async with self._savepoint("adding bookmark"):
                await self._execute(
                    pg_insert(BookmarkModel).values(**_row_values(bookmark)),
                    "adding bookmark",
                )
        except IntegrityError as e:
            if violates(e, URL_CONSTRAINT):
                raise URLAlreadyRegisteredError(bookmark.url) from e
            raise

    async def add_many_if_absent(self, bookmarks: list[Bookmark]) -> int:
        inserted = 0
        async with self._savepoint("adding bookmarks"):
            for batch in chunked(bookmarks):
                statement = (
                    pg_insert(BookmarkModel)
                    .values([_row_values(b) for b in batch])
                    .on_conflict_do_nothing(constraint=URL_CONSTRAINT)
                    .returning(BookmarkModel.uid)
                )
                result = await self._execute(statement, "adding bookmarks")
                inserted += len(result.all())
        return inserted

    async def upsert_many(self, bookmarks: list[Bookmark]) -> int:
        written = 0
        async with self._savepoint("upserting bookmarks"):
            for batch in chunked(bookmarks):
                statement = pg_insert(BookmarkModel).values([_row_values(b) for b in batch])
                statement = statement.on_conflict_do_update(
                    constraint=URL_CONSTRAINT,
                    set_={
                        "title": statement.excluded.title,
                        "description": statement.excluded.description,
                        "private": statement.excluded.private,
                        "tags": statement.excluded.tags,
                        "fulltextsearch_tsv": statement.excluded.fulltextsearch_tsv,
                        "created_at": statement.excluded.created_at,
                        "updated_at": statement.excluded.updated_at,
                    },
                ).returning(BookmarkModel.uid)
                result = await self._execute(statement, "upserting bookmarks")
                written += len(result.all())
        return written

    async def update(self, bookmark: Bookmark) -> None:
        values = _row_values(bookmark)
        for key in ("uid", "user_uuid", "created_at"):
            del values[key]
        statement = (
            update(BookmarkModel)
            .where(BookmarkModel.user_uuid == bookmark.user_uuid, BookmarkModel.uid == bookmark.uid)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            async with self._savepoint("updating bookmark"):
                result = await self._execute(statement, "updating bookmark")
        except IntegrityError as e:
            if violates(e, URL_CONSTRAINT):
                raise URLAlreadyRegisteredError(bookmark.url) from e
            raise
        if result.rowcount == 0:
            raise BookmarkNotFoundError(bookmark.uid)

    async def delete(self, user_uuid: UUID, uid: str) -> bool:
        result = await self._execute(
            delete(BookmarkModel)
            .where(BookmarkModel.user_uuid == user_uuid, BookmarkModel.uid == uid)
            .execution_options(synchronize_session=False),
            "deleting bookmark",
        )
        return result.rowcount > 0

    # --- Lookups ---

    async def get_by_uid(self, user_uuid: UUID, uid: str) -> Bookmark:
        return await self._select_one(
            "getting bookmark", uid, *_owned(user_uuid), BookmarkModel.uid == uid,
        )

    async def get_by_url(self, user_uuid: UUID, url: str) -> Bookmark:
        return await self._select_one(
            "getting bookmark", url, *_owned(user_uuid), BookmarkModel.url == url,
        )

    async def get_public_by_uid(self, user_uuid: UUID, uid: str) -> Bookmark:
        return await self._select_one(
            "getting public bookmark",
            uid,
            *_owned(user_uuid, Visibility.PUBLIC),
            BookmarkModel.uid == uid,
        )

    async def get_by_tag(self, user_uuid: UUID, tag: str) -> list[Bookmark]:
        statement = (
            select(*_COLUMNS)
            .where(*_owned(user_uuid), BookmarkModel.tags.any(tag))
            .order_by(*_NEWEST_FIRST)
        )
        return await self._select_many(statement, "getting bookmarks by tag")

    async def get_all(self, user_uuid: UUID, visibility: Visibility) -> list[Bookmark]:
        statement = select(*_COLUMNS).where(*_owned(user_uuid, visibility)).order_by(*_OLDEST_FIRST)
        return await self._select_many(statement, "getting all bookmarks")

    async def is_url_registered(
        self, user_uuid: UUID, url: str, exclude_uid: str | None = None,
    ) -> bool:
        criteria = [BookmarkModel.user_uuid == user_uuid, BookmarkModel.url == url]
        if exclude_uid is not None:
            criteria.append(BookmarkModel.uid != exclude_uid)
        result = await self._execute(
            select(select(BookmarkModel.uid).where(*criteria).exists()),
            "checking bookmark URL",
        )
        return bool(result.scalar())

    # --- Paginated queries ---

    async def _count(self, context: str, *criteria: ColumnElement) -> int:
        result = await self._execute(
            select(func.count()).select_from(BookmarkModel).where(*criteria), context,
        )
        return result.scalar_one()

    async def count(self, user_uuid: UUID, visibility: Visibility) -> int:
        return await self._count("counting bookmarks", *_owned(user_uuid, visibility))

    async def get_n(
        self, user_uuid: UUID, visibility: Visibility, limit: int, offset: int,
    ) -> list[Bookmark]:
        statement = (
            select(*_COLUMNS)
            .where(*_owned(user_uuid, visibility))
            .order_by(*_NEWEST_FIRST)
            .limit(limit)
            .offset(offset)
        )
        return await self._select_many(statement, "getting bookmarks")

    async def search_count(
        self, user_uuid: UUID, visibility: Visibility, search_terms: str,
    ) -> int:
        return await self._count(
            "counting bookmarks by search",
            *_owned(user_uuid, visibility),
            BookmarkModel.fulltextsearch_tsv.op("@@")(websearch_query(search_terms)),
        )

    async def search_n(
        self,
        user_uuid: UUID,
        visibility: Visibility,
        search_terms: str,
        limit: int,
        offset: int,
    ) -> list[Bookmark]:
        statement = (
            select(*_COLUMNS)
            .where(
                *_owned(user_uuid, visibility),
                BookmarkModel.fulltextsearch_tsv.op("@@")(websearch_query(search_terms)),
            )
            .order_by(*_NEWEST_FIRST)
            .limit(limit)
            .offset(offset)
        )
        return await self._select_many(statement, "searching bookmarks")

    # --- Tags ---

    def _tag_counts(self, user_uuid: UUID, visibility: Visibility, filter_term: str):
        tags = (
            select(func.unnest(BookmarkModel.tags).label("name"))
            .where(*_owned(user_uuid, visibility))
            .subquery()
        )
        statement = select(tags.c.name, func.count().label("tag_count")).group_by(tags.c.name)
        if filter_term:
            statement = statement.where(
                tags.c.name.ilike(f"%{escape_ilike(filter_term)}%", escape="\\"),
            )
        return statement

    async def _tags(self, statement, context: str) -> list[Tag]:
        result = await self._execute(statement, context)
        return [Tag(name=row.name, count=row.tag_count) for row in result]

    async def tag_get_all(self, user_uuid: UUID, visibility: Visibility) -> list[Tag]:
        counts = self._tag_counts(user_uuid, visibility, "").subquery()
        statement = select(counts.c.name, counts.c.tag_count).order_by(
            counts.c.tag_count.desc(), counts.c.name.collate("C").asc(),
        )
        return await self._tags(statement, "getting tags")

    async def tag_count(
        self, user_uuid: UUID, visibility: Visibility, filter_term: str = "",
    ) -> int:
        counts = self._tag_counts(user_uuid, visibility, filter_term).subquery()
        result = await self._execute(
            select(func.count()).select_from(counts), "counting tags",
        )
        return result.scalar_one()

    async def tag_get_n(
        self,
        user_uuid: UUID,
        visibility: Visibility,
        limit: int,
        offset: int,
        filter_term: str = "",
    ) -> list[Tag]:
        counts = self._tag_counts(user_uuid, visibility, filter_term).subquery()
        statement = (
            select(counts.c.name, counts.c.tag_count)
            .order_by(counts.c.tag_count.desc(), counts.c.name.collate("C").asc())
            .limit(limit)
            .offset(offset)
        )
        return await self._tags(statement, "getting tags")
