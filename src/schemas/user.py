"""User, owner and session domain types."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    """A registered account."""

    model_config = ConfigDict(from_attributes=True)

    uuid: UUID | None = None
    email: str = ""
    nick_name: str = ""
    display_name: str = ""
    # Clear-text password, only set on input
    password: str = Field(default="", exclude=True, repr=False)
    password_hash: str = Field(default="", exclude=True, repr=False)
    is_admin: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Owner(BaseModel):
    """Public view of a user."""

    model_config = ConfigDict(from_attributes=True)

    uuid: UUID
    nick_name: str
    display_name: str


class Session(BaseModel):
    """A remember-me session binding a token to a user."""

    model_config = ConfigDict(from_attributes=True)

    user_uuid: UUID
    # Clear-text token; only the hash is persisted
    remember_token: str = Field(default="", repr=False)
    remember_token_hash: str = Field(default="", repr=False)
    expires_at: datetime | None = None


class LoginForm(BaseModel):
    """Schema for the login form."""

    email: str = ""
    password: str = ""


class UserInfo(BaseModel):
    """Schema for listing accounts in the administration area."""

    model_config = ConfigDict(from_attributes=True)

    uuid: UUID
    email: str
    nick_name: str
    display_name: str
    is_admin: bool
    created_at: datetime | None = None
