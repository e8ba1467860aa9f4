"""PostgreSQL UserStore and SessionStore."""
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.sql.elements import ColumnElement

from models.user import Session as SessionModel
from models.user import User as UserModel
from schemas.user import Owner, Session, User
from services.exceptions import (
    EmailAlreadyRegisteredError,
    NickNameAlreadyRegisteredError,
    OwnerNotFoundError,
    SessionNotFoundError,
    UserNotFoundError,
)
from stores.postgres_helpers import PostgresStore, violates

EMAIL_CONSTRAINT = "users_email_key"
NICK_NAME_CONSTRAINT = "users_nick_name_key"

_COLUMNS = (
    UserModel.uuid,
    UserModel.email,
    UserModel.nick_name,
    UserModel.display_name,
    UserModel.password_hash,
    UserModel.is_admin,
    UserModel.created_at,
    UserModel.updated_at,
)


def _raise_conflict(error: IntegrityError, user: User) -> None:
    if violates(error, EMAIL_CONSTRAINT):
        raise EmailAlreadyRegisteredError(user.email) from error
    if violates(error, NICK_NAME_CONSTRAINT):
        raise NickNameAlreadyRegisteredError(user.nick_name) from error
    raise error


class PostgresUserStore(PostgresStore):
    """UserStore backed by the `users` table."""

    async def _select_one(self, *criteria: ColumnElement) -> User | None:
        result = await self._execute(select(*_COLUMNS).where(*criteria), "getting user")
        row = result.one_or_none()
        return User.model_validate(row, from_attributes=True) if row is not None else None

    async def add(self, user: User) -> None:
        statement = pg_insert(UserModel).values(
            uuid=user.uuid,
            email=user.email,
            nick_name=user.nick_name,
            display_name=user.display_name,
            password_hash=user.password_hash,
            is_admin=user.is_admin,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )
        try:
            async with self._savepoint("adding user"):
                await self._execute(statement, "adding user")
        except IntegrityError as e:
            _raise_conflict(e, user)

    async def update(self, user: User) -> None:
        statement = (
            update(UserModel)
            .where(UserModel.uuid == user.uuid)
            .values(
                email=user.email,
                nick_name=user.nick_name,
                display_name=user.display_name,
                password_hash=user.password_hash,
                is_admin=user.is_admin,
                updated_at=user.updated_at,
            )
            .execution_options(synchronize_session=False)
        )
        try:
            async with self._savepoint("updating user"):
                result = await self._execute(statement, "updating user")
        except IntegrityError as e:
            _raise_conflict(e, user)
        if result.rowcount == 0:
            raise UserNotFoundError(str(user.uuid))

    async def delete(self, user_uuid: UUID) -> bool:
        # Owned rows go with the user through ON DELETE CASCADE
        result = await self._execute(
            delete(UserModel)
            .where(UserModel.uuid == user_uuid)
            .execution_options(synchronize_session=False),
            "deleting user",
        )
        return result.rowcount > 0

    async def get_all(self) -> list[User]:
        result = await self._execute(
            select(*_COLUMNS).order_by(func.lower(UserModel.nick_name).collate("C")),
            "getting users",
        )
        return [User.model_validate(row, from_attributes=True) for row in result]

    async def get_by_uuid(self, user_uuid: UUID) -> User:
        user = await self._select_one(UserModel.uuid == user_uuid)
        if user is None:
            raise UserNotFoundError(str(user_uuid))
        return user

    async def get_by_email(self, email: str) -> User:
        user = await self._select_one(UserModel.email == email)
        if user is None:
            raise UserNotFoundError(email)
        return user

    async def get_by_nick_name(self, nick_name: str) -> User:
        user = await self._select_one(UserModel.nick_name == nick_name)
        if user is None:
            raise UserNotFoundError(nick_name)
        return user

    async def _exists(self, *criteria: ColumnElement) -> bool:
        result = await self._execute(
            select(select(UserModel.uuid).where(*criteria).exists()), "checking user",
        )
        return bool(result.scalar())

    async def is_email_registered(self, email: str, exclude_uuid: UUID | None = None) -> bool:
        criteria = [UserModel.email == email]
        if exclude_uuid is not None:
            criteria.append(UserModel.uuid != exclude_uuid)
        return await self._exists(*criteria)

    async def is_nick_name_registered(
        self, nick_name: str, exclude_uuid: UUID | None = None,
    ) -> bool:
        criteria = [UserModel.nick_name == nick_name]
        if exclude_uuid is not None:
            criteria.append(UserModel.uuid != exclude_uuid)
        return await self._exists(*criteria)

    async def _owner(self, identifier: str, criterion: ColumnElement) -> Owner:
        result = await self._execute(
            select(UserModel.uuid, UserModel.nick_name, UserModel.display_name).where(criterion),
            "getting owner",
        )
        row = result.one_or_none()
        if row is None:
            raise OwnerNotFoundError(identifier)
        return Owner.model_validate(row, from_attributes=True)

    async def owner_by_uuid(self, user_uuid: UUID) -> Owner:
        return await self._owner(str(user_uuid), UserModel.uuid == user_uuid)

    async def owner_by_nick_name(self, nick_name: str) -> Owner:
        return await self._owner(nick_name, UserModel.nick_name == nick_name)


class PostgresSessionStore(PostgresStore):
    """SessionStore backed by the `sessions` table."""

    async def add(self, session: Session) -> None:
        await self._execute(
            pg_insert(SessionModel).values(
                remember_token_hash=session.remember_token_hash,
                user_uuid=session.user_uuid,
                remember_token_expires_at=session.expires_at,
            ),
            "adding session",
        )

    async def get_by_remember_token_hash(self, token_hash: str) -> Session:
        result = await self._execute(
            select(
                SessionModel.user_uuid,
                SessionModel.remember_token_hash,
                SessionModel.remember_token_expires_at.label("expires_at"),
            ).where(SessionModel.remember_token_hash == token_hash),
            "getting session",
        )
        row = result.one_or_none()
        if row is None:
            raise SessionNotFoundError()
        return Session.model_validate(row, from_attributes=True)

    async def delete_by_remember_token_hash(self, token_hash: str) -> bool:
        result = await self._execute(
            delete(SessionModel)
            .where(SessionModel.remember_token_hash == token_hash)
            .execution_options(synchronize_session=False),
            "deleting session",
        )
        return result.rowcount > 0
