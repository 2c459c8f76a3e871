"""Query builders and lookups shared by the SQL repositories.

All joins are inner joins: a user without a password row, or an article
whose author row is missing, is never returned.
"""

from collections import defaultdict
from typing import Iterable, Optional

from sqlalchemy import ColumnElement, Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from quill.domain.error import NoAuthorError
from quill.domain.value import ArticleId, UserId
from quill.persistence.tables import (
    article_tags_table,
    articles_table,
    favorited_articles_table,
    user_passwords_table,
    users_table,
)

authors = users_table.alias("authors")
author_passwords = user_passwords_table.alias("author_passwords")


def select_users() -> Select:
    """Users joined with their password hash."""
    return select(
        users_table.c.id,
        users_table.c.email,
        users_table.c.username,
        users_table.c.bio,
        users_table.c.image,
        user_passwords_table.c.hash.label("password"),
    ).select_from(
        users_table.join(
            user_passwords_table, users_table.c.id == user_passwords_table.c.id
        )
    )


def select_articles() -> Select:
    """Articles joined with their author's email."""
    return select(
        articles_table,
        users_table.c.email.label("author_email"),
    ).select_from(
        articles_table.join(users_table, articles_table.c.author_id == users_table.c.id)
    )


def select_authored_articles() -> Select:
    """Articles joined with their author and favorite count."""
    favorite_counts = (
        select(
            favorited_articles_table.c.article_id,
            func.count().label("favorite_count"),
        )
        .group_by(favorited_articles_table.c.article_id)
        .subquery("favorite_counts")
    )
    return select(
        articles_table,
        authors.c.email.label("author_email"),
        authors.c.username.label("author_username"),
        authors.c.bio.label("author_bio"),
        authors.c.image.label("author_image"),
        author_passwords.c.hash.label("author_password"),
        func.coalesce(favorite_counts.c.favorite_count, 0).label("favorite_count"),
    ).select_from(
        articles_table.join(authors, articles_table.c.author_id == authors.c.id)
        .join(author_passwords, authors.c.id == author_passwords.c.id)
        .outerjoin(favorite_counts, articles_table.c.id == favorite_counts.c.article_id)
    )


def newest_first(stmt: Select) -> Select:
    """Order articles newest first, ties broken by slug."""
    return stmt.order_by(articles_table.c.created_at.desc(), articles_table.c.slug)


async def fetch_tags(
    session: AsyncSession, article_ids: Iterable[int]
) -> dict[int, list[str]]:
    """Fetch tags for multiple articles in a single query.

    Args:
        session: Database session
        article_ids: Article IDs

    Returns:
        Dict mapping article id -> sorted tags
    """
    article_ids = list(article_ids)
    if not article_ids:
        return {}

    stmt = (
        select(article_tags_table.c.article_id, article_tags_table.c.tag)
        .where(article_tags_table.c.article_id.in_(article_ids))
        .order_by(article_tags_table.c.tag)
    )
    result = await session.execute(stmt)

    tag_map: dict[int, list[str]] = defaultdict(list)
    for row in result:
        tag_map[row.article_id].append(row.tag)
    return tag_map


async def find_user_id(session: AsyncSession, email: str) -> Optional[UserId]:
    """Resolve a user's surrogate id from their email."""
    stmt = select_users().with_only_columns(users_table.c.id).where(
        users_table.c.email == email
    )
    result = await session.execute(stmt)
    user_id = result.scalar_one_or_none()
    return UserId(user_id) if user_id is not None else None


async def resolve_author_id(session: AsyncSession, email: str) -> UserId:
    """Resolve an author's surrogate id, failing if they don't exist.

    Raises:
        NoAuthorError: If no user has this email
    """
    author_id = await find_user_id(session, email)
    if author_id is None:
        raise NoAuthorError(email)
    return author_id


async def user_ids_by_emails(
    session: AsyncSession, emails: Iterable[str]
) -> list[UserId]:
    """Resolve emails to user ids, dropping unknown ones."""
    return await _ids_matching(session, users_table.c.id, users_table.c.email, emails)


async def article_ids_by_slugs(
    session: AsyncSession, slugs: Iterable[str]
) -> list[ArticleId]:
    """Resolve slugs to article ids, dropping unknown ones."""
    return await _ids_matching(
        session, articles_table.c.id, articles_table.c.slug, slugs
    )


async def _ids_matching(
    session: AsyncSession,
    id_column: ColumnElement,
    key_column: ColumnElement,
    keys: Iterable[str],
) -> list:
    keys = [k for k in keys if k]
    if not keys:
        return []
    # Stored emails and slugs are lowercase already; match them exactly
    stmt = select(id_column).where(key_column.in_(keys))
    result = await session.execute(stmt)
    return list(result.scalars())
