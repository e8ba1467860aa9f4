"""
Initial schema: users, sessions, bookmarks and feeds.

Revision ID: 4f1c2a9e7b30
Revises:
Create Date: 2026-10-19 09:12:41.118204
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "4f1c2a9e7b30"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("clock_timestamp()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("clock_timestamp()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "users",
        sa.Column("uuid", sa.Uuid(), nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("nick_name", sa.Text(), nullable=False),
        sa.Column("display_name", sa.Text(), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("is_admin", sa.Boolean(), server_default=sa.false(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("uuid"),
        sa.UniqueConstraint("email"),
        sa.UniqueConstraint("nick_name"),
    )

    op.create_table(
        "sessions",
        sa.Column("remember_token_hash", sa.Text(), nullable=False),
        sa.Column("user_uuid", sa.Uuid(), nullable=False),
        sa.Column("remember_token_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_uuid"], ["users.uuid"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("remember_token_hash"),
    )
    op.create_index(op.f("ix_sessions_user_uuid"), "sessions", ["user_uuid"], unique=False)

    op.create_table(
        "bookmarks",
        sa.Column("uid", sa.String(length=27), nullable=False),
        sa.Column("user_uuid", sa.Uuid(), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), server_default="", nullable=False),
        sa.Column("private", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("tags", postgresql.ARRAY(sa.Text()), server_default="{}", nullable=False),
        sa.Column("fulltextsearch_tsv", postgresql.TSVECTOR(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_uuid"], ["users.uuid"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("uid"),
        sa.UniqueConstraint("user_uuid", "url", name="uq_bookmarks_user_uuid_url"),
    )
    op.create_index(
        "ix_bookmarks_user_uuid_created_at", "bookmarks", ["user_uuid", "created_at"],
    )
    op.create_index("ix_bookmarks_tags", "bookmarks", ["tags"], postgresql_using="gin")
    op.create_index(
        "ix_bookmarks_fulltextsearch_tsv",
        "bookmarks",
        ["fulltextsearch_tsv"],
        postgresql_using="gin",
    )

    op.create_table(
        "feed_categories",
        sa.Column("uuid", sa.Uuid(), nullable=False),
        sa.Column("user_uuid", sa.Uuid(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("slug", sa.Text(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_uuid"], ["users.uuid"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("uuid"),
        sa.UniqueConstraint("user_uuid", "name", name="uq_feed_categories_user_uuid_name"),
        sa.UniqueConstraint("user_uuid", "slug", name="uq_feed_categories_user_uuid_slug"),
    )

    op.create_table(
        "feeds",
        sa.Column("uuid", sa.Uuid(), nullable=False),
        sa.Column("feed_url", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), server_default="", nullable=False),
        sa.Column("slug", sa.Text(), nullable=False),
        sa.Column("fetched_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("uuid"),
        sa.UniqueConstraint("feed_url"),
    )

    op.create_table(
        "feed_subscriptions",
        sa.Column("uuid", sa.Uuid(), nullable=False),
        sa.Column("user_uuid", sa.Uuid(), nullable=False),
        sa.Column("category_uuid", sa.Uuid(), nullable=False),
        sa.Column("feed_uuid", sa.Uuid(), nullable=False),
        sa.Column("alias", sa.Text(), server_default="", nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_uuid"], ["users.uuid"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["category_uuid"], ["feed_categories.uuid"], ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(["feed_uuid"], ["feeds.uuid"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("uuid"),
        sa.UniqueConstraint(
            "user_uuid", "feed_uuid", name="uq_feed_subscriptions_user_uuid_feed_uuid",
        ),
    )
    op.create_index(
        op.f("ix_feed_subscriptions_category_uuid"), "feed_subscriptions", ["category_uuid"],
    )
    op.create_index(
        op.f("ix_feed_subscriptions_feed_uuid"), "feed_subscriptions", ["feed_uuid"],
    )

    op.create_table(
        "feed_entries",
        sa.Column("uid", sa.String(length=27), nullable=False),
        sa.Column("feed_uuid", sa.Uuid(), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("summary", sa.Text(), server_default="", nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("textsearchable_index_col", postgresql.TSVECTOR(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["feed_uuid"], ["feeds.uuid"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("uid"),
        sa.UniqueConstraint("feed_uuid", "url", name="uq_feed_entries_feed_uuid_url"),
    )
    op.create_index(
        "ix_feed_entries_feed_uuid_published_at", "feed_entries", ["feed_uuid", "published_at"],
    )
    op.create_index(
        "ix_feed_entries_textsearchable_index_col",
        "feed_entries",
        ["textsearchable_index_col"],
        postgresql_using="gin",
    )

    op.create_table(
        "feed_entry_metadata",
        sa.Column("user_uuid", sa.Uuid(), nullable=False),
        sa.Column("entry_uid", sa.String(length=27), nullable=False),
        sa.Column("read", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_uuid"], ["users.uuid"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["entry_uid"], ["feed_entries.uid"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_uuid", "entry_uid"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("feed_entry_metadata")
    op.drop_index("ix_feed_entries_textsearchable_index_col", table_name="feed_entries")
    op.drop_index("ix_feed_entries_feed_uuid_published_at", table_name="feed_entries")
    op.drop_table("feed_entries")
    op.drop_index(op.f("ix_feed_subscriptions_feed_uuid"), table_name="feed_subscriptions")
    op.drop_index(op.f("ix_feed_subscriptions_category_uuid"), table_name="feed_subscriptions")
    op.drop_table("feed_subscriptions")
    op.drop_table("feeds")
    op.drop_table("feed_categories")
    op.drop_index("ix_bookmarks_fulltextsearch_tsv", table_name="bookmarks")
    op.drop_index("ix_bookmarks_tags", table_name="bookmarks")
    op.drop_index("ix_bookmarks_user_uuid_created_at", table_name="bookmarks")
    op.drop_table("bookmarks")
    op.drop_index(op.f("ix_sessions_user_uuid"), table_name="sessions")
    op.drop_table("sessions")
    op.drop_table("users")
