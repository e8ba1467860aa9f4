"""Service layer for user accounts and password authentication."""
import logging
from collections.abc import Callable
from datetime import datetime
from uuid import UUID, uuid4

from passlib.context import CryptContext

from schemas.user import User
from schemas.validators import is_valid_nick_name, normalize_text
from services.exceptions import (
    DisplayNameRequiredError,
    EmailAlreadyRegisteredError,
    EmailRequiredError,
    InvalidCredentialsError,
    NickNameAlreadyRegisteredError,
    NickNameInvalidError,
    NickNameRequiredError,
    PasswordConfirmationMismatchError,
    PasswordRequiredError,
    UserNotFoundError,
)
from services.utils import utc_now
from stores.base import UserStore

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a clear-text password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Check a clear-text password against a stored hash."""
    if not password_hash:
        return False
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        # Malformed hash
        return False


def normalize_user(user: User) -> User:
    """Trim every field and lowercase the email."""
    return user.model_copy(update={
        "email": normalize_text(user.email).lower(),
        "nick_name": normalize_text(user.nick_name),
        "display_name": normalize_text(user.display_name),
    })


def validate_user_info(user: User) -> None:
    """
    Check the fields shared by account creation and update.

    Raises:
        EmailRequiredError, NickNameRequiredError, NickNameInvalidError,
        DisplayNameRequiredError
    """
    if not user.email:
        raise EmailRequiredError()
    if not user.nick_name:
        raise NickNameRequiredError()
    if not is_valid_nick_name(user.nick_name):
        raise NickNameInvalidError(user.nick_name)
    if not user.display_name:
        raise DisplayNameRequiredError()


class UserService:
    """Create, update and authenticate user accounts."""

    def __init__(
        self,
        store: UserStore,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._clock = clock

    async def _ensure_available(self, user: User, exclude_uuid: UUID | None = None) -> None:
        if await self._store.is_email_registered(user.email, exclude_uuid):
            raise EmailAlreadyRegisteredError(user.email)
        if await self._store.is_nick_name_registered(user.nick_name, exclude_uuid):
            raise NickNameAlreadyRegisteredError(user.nick_name)

    async def add(self, user: User) -> User:
        """
        Register a new account.

        Returns:
            The stored user, with its UUID set.

        Raises:
            ValidationError: If a field is missing or invalid.
            EmailAlreadyRegisteredError, NickNameAlreadyRegisteredError
        """
        user = normalize_user(user)
        validate_user_info(user)
        if not user.password:
            raise PasswordRequiredError()
        await self._ensure_available(user)

        now = self._clock()
        user = user.model_copy(update={
            "uuid": uuid4(),
            "password_hash": hash_password(user.password),
            "password": "",
            "created_at": now,
            "updated_at": now,
        })
        await self._store.add(user)
        logger.info("Registered user %s", user.nick_name)
        return user

    async def all(self) -> list[User]:
        """Return every account, by nickname."""
        return await self._store.get_all()

    async def authenticate(self, email: str, password: str) -> User:
        """
        Return the account matching an email and password.

        Raises:
            InvalidCredentialsError: If the email is unknown or the password is wrong.
        """
        email = normalize_text(email).lower()
        if not email or not password:
            raise InvalidCredentialsError()
        try:
            user = await self._store.get_by_email(email)
        except UserNotFoundError as e:
            raise InvalidCredentialsError() from e
        if not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()
        return user

    async def by_uuid(self, user_uuid: UUID) -> User:
        """Raises UserNotFoundError."""
        return await self._store.get_by_uuid(user_uuid)

    async def by_email(self, email: str) -> User:
        """Raises UserNotFoundError."""
        return await self._store.get_by_email(normalize_text(email).lower())

    async def by_nick_name(self, nick_name: str) -> User:
        """Raises UserNotFoundError."""
        return await self._store.get_by_nick_name(normalize_text(nick_name))

    async def delete(self, user_uuid: UUID) -> None:
        """
        Delete an account and everything it owns.

        Raises:
            UserNotFoundError: If the account does not exist.
        """
        if not await self._store.delete(user_uuid):
            raise UserNotFoundError(str(user_uuid))

    async def update(self, user: User) -> User:
        """
        Update account information, and the password when one is given.

        Raises:
            UserNotFoundError: If the account does not exist.
            ValidationError: If a field is missing or invalid.
            EmailAlreadyRegisteredError, NickNameAlreadyRegisteredError
        """
        current = await self._store.get_by_uuid(user.uuid)
        user = normalize_user(user)
        validate_user_info(user)
        await self._ensure_available(user, exclude_uuid=user.uuid)

        password_hash = hash_password(user.password) if user.password else current.password_hash
        user = current.model_copy(update={
            "email": user.email,
            "nick_name": user.nick_name,
            "display_name": user.display_name,
            "is_admin": user.is_admin,
            "password_hash": password_hash,
            "updated_at": self._clock(),
        })
        await self._store.update(user)
        return user

    async def update_password(
        self,
        user_uuid: UUID,
        current_password: str,
        new_password: str,
        new_password_confirmation: str,
    ) -> None:
        """
        Change a password after checking the current one.

        Raises:
            PasswordRequiredError: If a password is empty.
            InvalidCredentialsError: If the current password is wrong.
            PasswordConfirmationMismatchError: If the confirmation differs.
        """
        if not current_password or not new_password:
            raise PasswordRequiredError()
        user = await self._store.get_by_uuid(user_uuid)
        if not verify_password(current_password, user.password_hash):
            raise InvalidCredentialsError()
        if new_password != new_password_confirmation:
            raise PasswordConfirmationMismatchError()

        await self._store.update(user.model_copy(update={
            "password_hash": hash_password(new_password),
            "updated_at": self._clock(),
        }))
