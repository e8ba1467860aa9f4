"""
Fixtures running the store contract tests against both implementations.

The PostgreSQL variant starts a container through testcontainers and is
skipped when Docker is not available.
"""
from collections.abc import AsyncGenerator, Generator

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from testcontainers.postgres import PostgresContainer

from models.base import Base
from stores.base import Stores
from stores.memory import MemoryDatabase
from stores.postgres import postgres_stores


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer]:
    """Start a PostgreSQL container for the test session."""
    container = PostgresContainer("postgres:16", driver="asyncpg")
    try:
        container.start()
    except Exception as e:
        pytest.skip(f"PostgreSQL container unavailable: {e}")
    try:
        yield container
    finally:
        container.stop()


@pytest.fixture
async def async_engine(postgres_container: PostgresContainer) -> AsyncGenerator[AsyncEngine]:
    """Create an async engine with the schema in place."""
    engine = create_async_engine(postgres_container.get_connection_url(), echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_connection(async_engine: AsyncEngine) -> AsyncGenerator[AsyncConnection]:
    """Connection with a transaction rolled back after the test."""
    async with async_engine.connect() as connection:
        transaction = await connection.begin()
        try:
            yield connection
        finally:
            await transaction.rollback()


@pytest.fixture
async def db_session(db_connection: AsyncConnection) -> AsyncGenerator[AsyncSession]:
    """Session bound to the test transaction; commits become savepoints."""
    session_factory = async_sessionmaker(
        bind=db_connection,
        class_=AsyncSession,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )

    async with session_factory() as session:
        yield session


@pytest.fixture(params=["memory", "postgres"])
def stores(request: pytest.FixtureRequest, memory_db: MemoryDatabase) -> Stores:
    """Stores under test; overrides the memory-only fixture of the root conftest."""
    if request.param == "memory":
        return memory_db.stores()
    return postgres_stores(request.getfixturevalue("db_session"))
