"""Tests for remember-me sessions."""
from datetime import timedelta
from uuid import uuid4

import pytest

from services.exceptions import SessionNotFoundError
from services.session_service import SessionService
from stores.base import Stores
from stores.memory import MemoryDatabase
from tests.helpers import TEST_CSRF_KEY, FixedClock


@pytest.fixture
def service(stores: Stores, clock: FixedClock) -> SessionService:
    return SessionService(stores.sessions, TEST_CSRF_KEY, duration=timedelta(days=30), clock=clock)


async def test_create_stores_only_the_token_hash(
    service: SessionService, memory_db: MemoryDatabase, clock: FixedClock,
) -> None:
    """Test that the clear remember token is never stored."""
    user_uuid = uuid4()
    session = await service.create(user_uuid)

    assert session.remember_token
    assert session.remember_token_hash == service.hash_token(session.remember_token)
    assert session.expires_at == clock.now + timedelta(days=30)

    stored = memory_db.sessions[session.remember_token_hash]
    assert stored.user_uuid == user_uuid
    assert stored.remember_token == ""


async def test_by_remember_token_finds_live_session(service: SessionService) -> None:
    user_uuid = uuid4()
    session = await service.create(user_uuid)
    found = await service.by_remember_token(session.remember_token)
    assert found.user_uuid == user_uuid


async def test_by_remember_token_rejects_expired_session(
    service: SessionService, clock: FixedClock,
) -> None:
    session = await service.create(uuid4())
    clock.advance(days=30)
    with pytest.raises(SessionNotFoundError):
        await service.by_remember_token(session.remember_token)


@pytest.mark.parametrize("token", ["", "unknown-token"])
async def test_by_remember_token_rejects_unknown_tokens(
    service: SessionService, token: str,
) -> None:
    with pytest.raises(SessionNotFoundError):
        await service.by_remember_token(token)


async def test_hash_token_depends_on_the_key(stores: Stores) -> None:
    first = SessionService(stores.sessions, "first-key-0123456789")
    second = SessionService(stores.sessions, "second-key-0123456789")
    assert first.hash_token("token") != second.hash_token("token")
    assert first.hash_token("token") == first.hash_token("token")


async def test_rotate_invalidates_current_token(service: SessionService) -> None:
    """Test that rotating replaces the current token."""
    user_uuid = uuid4()
    session = await service.create(user_uuid)

    rotated = await service.rotate(user_uuid, session.remember_token)

    assert rotated.remember_token != session.remember_token
    assert rotated.expires_at is None
    with pytest.raises(SessionNotFoundError):
        await service.by_remember_token(session.remember_token)
    assert (await service.by_remember_token(rotated.remember_token)).user_uuid == user_uuid


def test_init_requires_a_key(stores: Stores) -> None:
    with pytest.raises(ValueError):
        SessionService(stores.sessions, "")
