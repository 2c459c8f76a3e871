"""SQLAlchemy table definitions for Quill.

The schema is fixed and applied with ``apply_schema``. Tables carry integer
surrogate keys; the domain only ever sees natural keys (email, username,
slug) and comment ids.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)
from sqlalchemy.types import TypeDecorator


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC timestamps on every backend.

    SQLite has no timezone support, so values are stored there as naive
    UTC and made aware again when read.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: datetime | None, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


# Metadata object for all tables
metadata = MetaData()

# ============================================================================
# USERS TABLE
# ============================================================================
users_table = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("bio", Text, nullable=False, server_default=""),
    Column("image", Text, nullable=False, server_default=""),
    sqlite_autoincrement=True,
)

# ============================================================================
# USER PASSWORDS TABLE (one row per user, keyed by the user's id)
# ============================================================================
user_passwords_table = Table(
    "user_passwords",
    metadata,
    Column(
        "id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    ),
    Column("hash", Text, nullable=False),
)

# ============================================================================
# FOLLOWED USERS TABLE (directed follower -> followed edges)
# ============================================================================
followed_users_table = Table(
    "followed_users",
    metadata,
    Column(
        "follower_id",
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "followed_id",
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)

Index("idx_followed_users_followed_id", followed_users_table.c.followed_id)

# ============================================================================
# ARTICLES TABLE
# ============================================================================
articles_table = Table(
    "articles",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("slug", String(350), nullable=False, unique=True),
    Column("title", String(300), nullable=False),
    Column("description", Text, nullable=False, server_default=""),
    Column("body", Text, nullable=False),
    Column(
        "author_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    ),
    Column("created_at", UTCDateTime, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
    sqlite_autoincrement=True,
)

Index("idx_articles_created_at_slug", articles_table.c.created_at, articles_table.c.slug)
Index("idx_articles_author_id", articles_table.c.author_id)

# ============================================================================
# ARTICLE TAGS TABLE
# ============================================================================
article_tags_table = Table(
    "article_tags",
    metadata,
    Column(
        "article_id",
        Integer,
        ForeignKey("articles.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("tag", String(255), primary_key=True),
)

Index("idx_article_tags_tag", article_tags_table.c.tag)

# ============================================================================
# FAVORITED ARTICLES TABLE
# ============================================================================
favorited_articles_table = Table(
    "favorited_articles",
    metadata,
    Column(
        "user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    ),
    Column(
        "article_id",
        Integer,
        ForeignKey("articles.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)

Index("idx_favorited_articles_article_id", favorited_articles_table.c.article_id)

# ============================================================================
# COMMENTS TABLE (ids are never reused, hence sqlite_autoincrement)
# ============================================================================
comments_table = Table(
    "comments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "article_id",
        Integer,
        ForeignKey("articles.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "author_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    ),
    Column("body", Text, nullable=False),
    Column("created_at", UTCDateTime, nullable=False),
    sqlite_autoincrement=True,
)

Index("idx_comments_article_id", comments_table.c.article_id)
