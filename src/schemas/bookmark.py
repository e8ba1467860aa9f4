"""Bookmark domain types and request schemas."""
import base64
import binascii
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field

from core.paginate import Page
from schemas.user import Owner


class Visibility(StrEnum):
    """Visibility filter applied to bookmark queries."""

    ALL = "all"
    PRIVATE = "private"
    PUBLIC = "public"


class Bookmark(BaseModel):
    """A URL saved by a user."""

    model_config = ConfigDict(from_attributes=True)

    uid: str = ""
    user_uuid: UUID | None = None
    url: str = ""
    title: str = ""
    description: str = ""
    private: bool = False
    tags: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Tag(BaseModel):
    """A tag name and the number of bookmarks carrying it."""

    name: str
    count: int

    @computed_field
    @property
    def encoded_name(self) -> str:
        """Tag name encoded for use in a URL path segment."""
        return encode_tag_name(self.name)


class BookmarkPage(BaseModel):
    """A page of bookmarks for a given owner."""

    page: Page
    owner: Owner
    bookmarks: list[Bookmark]


class TagPage(BaseModel):
    """A page of tags."""

    page: Page
    filter: str = ""
    tags: list[Tag]


def encode_tag_name(name: str) -> str:
    """Encode a tag name as URL-safe base64."""
    return base64.urlsafe_b64encode(name.encode("utf-8")).decode("ascii")


def decode_tag_name(encoded: str) -> str:
    """
    Decode a URL-safe base64 tag name.

    Raises:
        ValueError: If the value is not valid base64 or UTF-8.
    """
    try:
        padded = encoded + "=" * (-len(encoded) % 4)
        return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
    except (binascii.Error, UnicodeError) as e:
        raise ValueError(f"Invalid encoded tag name: {encoded!r}") from e


# =============================================================================
# Request bodies
# =============================================================================


class CsrfForm(BaseModel):
    """Base schema for forms protected by a CSRF token."""

    csrf_token: str = ""


class BookmarkForm(CsrfForm):
    """Schema for adding or editing a bookmark."""

    url: str = ""
    title: str = ""
    description: str = ""
    private: bool = False
    tags: str | list[str] = ""


class TagRenameForm(CsrfForm):
    """Schema for renaming a tag."""

    new_name: str = ""
