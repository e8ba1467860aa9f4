"""Bookmark model."""
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, UniqueConstraint, false
from sqlalchemy.dialects.postgresql import ARRAY, TSVECTOR
from sqlalchemy.orm import Mapped, mapped_column

from core.uid import UID_STRING_LENGTH
from models.base import Base, TimestampMixin


class Bookmark(Base, TimestampMixin):
    """Bookmark model - stores URLs with metadata, tags and a search vector."""

    __tablename__ = "bookmarks"
    __table_args__ = (
        UniqueConstraint("user_uuid", "url", name="uq_bookmarks_user_uuid_url"),
        Index("ix_bookmarks_user_uuid_created_at", "user_uuid", "created_at"),
        Index("ix_bookmarks_tags", "tags", postgresql_using="gin"),
        Index("ix_bookmarks_fulltextsearch_tsv", "fulltextsearch_tsv", postgresql_using="gin"),
    )

    uid: Mapped[str] = mapped_column(String(UID_STRING_LENGTH), primary_key=True)
    user_uuid: Mapped[UUID] = mapped_column(
        ForeignKey("users.uuid", ondelete="CASCADE"),
        nullable=False,
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    private: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=false())
    tags: Mapped[list[str]] = mapped_column(ARRAY(Text), nullable=False, server_default="{}")
    # Computed by the store from title, description and tags on every write
    fulltextsearch_tsv: Mapped[str | None] = mapped_column(TSVECTOR, nullable=True)
