"""Helpers shared by the PostgreSQL stores."""
from collections.abc import AsyncIterator, Iterator, Sequence
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from sqlalchemy import func
from sqlalchemy.engine import Result
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from services.exceptions import StoreError
from stores.search import replace_search_characters

T = TypeVar("T")

# Regconfig used for every tsvector and tsquery
TEXT_SEARCH_CONFIG = "english"

# asyncpg accepts at most 32767 bind parameters per statement
INSERT_BATCH_SIZE = 1000


def chunked(items: Sequence[T], size: int = INSERT_BATCH_SIZE) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of at most size items."""
    for start in range(0, len(items), size):
        yield items[start:start + size]


def to_tsvector(text: str) -> ColumnElement:
    """SQL expression vectorizing already-prepared search text."""
    return func.to_tsvector(TEXT_SEARCH_CONFIG, text)


def websearch_query(search_terms: str) -> ColumnElement:
    """SQL expression turning user search terms into a tsquery."""
    return func.websearch_to_tsquery(
        TEXT_SEARCH_CONFIG, replace_search_characters(search_terms),
    )


def violates(error: IntegrityError, constraint_name: str) -> bool:
    """Return True if an IntegrityError was raised by the named constraint."""
    return constraint_name in str(error)


class PostgresStore:
    """
    Base class holding the request's session.

    Stores never commit: statements are flushed within the request's unit of
    work. Integrity errors propagate so that callers can map known constraints;
    any other database error is wrapped in StoreError with a context string.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def _execute(self, statement: Any, context: str) -> Result:
        try:
            return await self._db.execute(statement)
        except IntegrityError:
            raise
        except SQLAlchemyError as e:
            raise StoreError(context, e) from e

    @asynccontextmanager
    async def _savepoint(self, context: str) -> AsyncIterator[None]:
        """Run a block in a SAVEPOINT so that a failure undoes all of its statements."""
        try:
            async with self._db.begin_nested():
                yield
        except IntegrityError:
            raise
        except SQLAlchemyError as e:
            raise StoreError(context, e) from e
