"""SQL implementation of the Article repository."""

from functools import partial
from typing import List, Optional

import logfire
from sqlalchemy import ColumnElement, delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from quill.domain.error import ArticleNotFoundError, DuplicateArticleError
from quill.domain.model import (
    Article,
    AuthoredArticle,
    Comment,
    CommentedArticle,
)
from quill.domain.repository import ArticleRepository, ListCriteria, Transform
from quill.domain.value import CommentId
from quill.persistence.database import transaction
from quill.persistence.errors import unique_violation_as
from quill.persistence.mappers import (
    article_to_dict,
    row_to_article,
    row_to_authored_article,
    row_to_comment,
    to_commented_article,
)
from quill.persistence.mutation import Loaded, read_transform_write
from quill.persistence.queries import (
    authors,
    fetch_tags,
    newest_first,
    resolve_author_id,
    select_articles,
    select_authored_articles,
)
from quill.persistence.tables import (
    article_tags_table,
    articles_table,
    comments_table,
    favorited_articles_table,
    users_table,
)
from quill.util.clock import advance, utcnow


class SqlArticleRepository(ArticleRepository):
    """SQL implementation of ArticleRepository (PostgreSQL or SQLite)."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize repository with a session factory.

        Args:
            session_factory: Factory for the sessions each operation opens
        """
        self.session_factory = session_factory

    def _begin(self):
        return transaction(self.session_factory)

    async def _find_authored(
        self, session: AsyncSession, where: ColumnElement[bool]
    ) -> List[AuthoredArticle]:
        result = await session.execute(select_authored_articles().where(where))
        rows = result.mappings().all()
        tag_map = await fetch_tags(session, [row["id"] for row in rows])
        return [row_to_authored_article(row, tag_map.get(row["id"], [])) for row in rows]

    async def _get_authored(self, session: AsyncSession, slug: str) -> AuthoredArticle:
        found = await self._find_authored(session, articles_table.c.slug == slug)
        if not found:
            logfire.warn("Article not found", slug=slug)
            raise ArticleNotFoundError(slug)
        return found[0]

    async def _load_article(
        self, session: AsyncSession, slug: str, for_update: bool = False
    ) -> Loaded[Article]:
        stmt = select_articles().where(articles_table.c.slug == slug)
        if for_update:
            stmt = stmt.with_for_update(of=articles_table)
        result = await session.execute(stmt)
        row = result.mappings().first()
        if row is None:
            logfire.warn("Article not found", slug=slug)
            raise ArticleNotFoundError(slug)

        tag_map = await fetch_tags(session, [row["id"]])
        return Loaded(id=row["id"], aggregate=row_to_article(row, tag_map.get(row["id"], [])))

    async def _load_commented(
        self, session: AsyncSession, slug: str, for_update: bool = False
    ) -> Loaded[CommentedArticle]:
        loaded = await self._load_article(session, slug, for_update=for_update)

        result = await session.execute(
            select(comments_table, users_table.c.email.label("author_email"))
            .select_from(
                comments_table.join(
                    users_table, comments_table.c.author_id == users_table.c.id
                )
            )
            .where(comments_table.c.article_id == loaded.id)
            .order_by(comments_table.c.id)
        )
        comments = [row_to_comment(row) for row in result.mappings()]
        return Loaded(
            id=loaded.id, aggregate=to_commented_article(loaded.aggregate, comments)
        )

    async def _write_tags(
        self, session: AsyncSession, article_id: int, tags: List[str]
    ) -> None:
        await session.execute(
            delete(article_tags_table).where(article_tags_table.c.article_id == article_id)
        )
        if tags:
            await session.execute(
                insert(article_tags_table),
                [{"article_id": article_id, "tag": tag} for tag in tags],
            )

    async def create_article(self, article: Article) -> AuthoredArticle:
        """Create a new article."""
        with logfire.span(
            "article_repository.create_article",
            slug=article.slug,
            author=article.author_email,
            tags=article.tag_list,
        ):
            async with self._begin() as session:
                author_id = await resolve_author_id(session, article.author_email)

                now = utcnow()
                with unique_violation_as(lambda: DuplicateArticleError(article.slug)):
                    result = await session.execute(
                        insert(articles_table).values(
                            **article_to_dict(article),
                            author_id=author_id,
                            created_at=now,
                            updated_at=now,
                        )
                    )
                await self._write_tags(
                    session, result.inserted_primary_key[0], article.tag_list
                )
                created = await self._get_authored(session, article.slug)

            logfire.info("Article created", slug=created.slug)
            return created

    async def latest_articles_by_criteria(
        self, criteria: ListCriteria
    ) -> List[AuthoredArticle]:
        """List articles newest first, filtered and paged by ``criteria``."""
        with logfire.span(
            "article_repository.latest_articles_by_criteria",
            tag=criteria.tag,
            author_emails=criteria.author_emails,
            favorited_by=criteria.favorited_by_email,
            limit=criteria.limit,
            offset=criteria.offset,
        ):
            if criteria.author_emails == [] or criteria.limit == 0:
                return []

            stmt = select_authored_articles()

            if criteria.tag is not None:
                stmt = stmt.where(
                    articles_table.c.id.in_(
                        select(article_tags_table.c.article_id).where(
                            article_tags_table.c.tag == criteria.tag
                        )
                    )
                )

            if criteria.author_emails is not None:
                stmt = stmt.where(authors.c.email.in_(criteria.author_emails))

            if criteria.favorited_by_email is not None:
                stmt = stmt.where(
                    articles_table.c.id.in_(
                        select(favorited_articles_table.c.article_id)
                        .select_from(
                            favorited_articles_table.join(
                                users_table,
                                users_table.c.id == favorited_articles_table.c.user_id,
                            )
                        )
                        .where(users_table.c.email == criteria.favorited_by_email)
                    )
                )

            stmt = newest_first(stmt).limit(criteria.limit).offset(criteria.offset)

            async with self._begin() as session:
                result = await session.execute(stmt)
                rows = result.mappings().all()
                tag_map = await fetch_tags(session, [row["id"] for row in rows])

            articles = [
                row_to_authored_article(row, tag_map.get(row["id"], [])) for row in rows
            ]
            logfire.info("Found articles", count=len(articles))
            return articles

    async def get_article_by_slug(self, slug: str) -> AuthoredArticle:
        """Get a single article with its author and favorite count."""
        with logfire.span("article_repository.get_article_by_slug", slug=slug):
            async with self._begin() as session:
                return await self._get_authored(session, slug)

    async def get_comments_by_slug(self, slug: str) -> CommentedArticle:
        """Get a single article with its comments, oldest first."""
        with logfire.span("article_repository.get_comments_by_slug", slug=slug):
            async with self._begin() as session:
                loaded = await self._load_commented(session, slug)
            return loaded.aggregate

    async def update_article_by_slug(
        self, slug: str, transform: Transform[Article]
    ) -> AuthoredArticle:
        """Apply ``transform`` to the article with ``slug`` and persist it."""

        async def persist(
            session: AsyncSession, loaded: Loaded[Article], article: Article
        ) -> AuthoredArticle:
            # model_copy skips validation; normalize the keys before writing
            article = Article.model_validate(article.model_dump())
            author_id = await resolve_author_id(session, article.author_email)

            with unique_violation_as(lambda: DuplicateArticleError(article.slug)):
                await session.execute(
                    update(articles_table)
                    .where(articles_table.c.slug == loaded.aggregate.slug)
                    .values(
                        **article_to_dict(article),
                        author_id=author_id,
                        updated_at=advance(loaded.aggregate.updated_at),
                    )
                )
            await self._write_tags(session, loaded.id, article.tag_list)
            return await self._get_authored(session, article.slug)

        with logfire.span("article_repository.update_article_by_slug", slug=slug):
            updated = await read_transform_write(
                self._begin,
                slug,
                load=partial(self._load_article, for_update=True),
                transform=transform,
                persist=persist,
            )
            logfire.info("Article updated", slug=slug, new_slug=updated.slug)
            return updated

    async def update_comments_by_slug(
        self, slug: str, transform: Transform[CommentedArticle]
    ) -> Optional[Comment]:
        """Insert new comments and delete dropped ones for an article."""

        async def persist(
            session: AsyncSession,
            loaded: Loaded[CommentedArticle],
            commented: CommentedArticle,
        ) -> Optional[Comment]:
            kept_ids = {c.id for c in commented.comments if not c.is_new}
            removed = [c for c in loaded.aggregate.comments if c.id not in kept_ids]
            if removed:
                await session.execute(
                    delete(comments_table)
                    .where(comments_table.c.article_id == loaded.id)
                    .where(comments_table.c.id.in_([c.id for c in removed]))
                )

            added: List[Comment] = []
            for comment in commented.comments:
                if not comment.is_new:
                    continue
                author_id = await resolve_author_id(session, comment.author_email)
                created_at = utcnow()
                result = await session.execute(
                    insert(comments_table).values(
                        article_id=loaded.id,
                        author_id=author_id,
                        body=comment.body,
                        created_at=created_at,
                    )
                )
                added.append(
                    comment.model_copy(
                        update={
                            "id": CommentId(result.inserted_primary_key[0]),
                            "created_at": created_at,
                        }
                    )
                )

            logfire.info(
                "Comments updated", slug=slug, added=len(added), removed=len(removed)
            )
            if added:
                return added[-1]
            return removed[-1] if removed else None

        with logfire.span("article_repository.update_comments_by_slug", slug=slug):
            return await read_transform_write(
                self._begin,
                slug,
                load=partial(self._load_commented, for_update=True),
                transform=transform,
                persist=persist,
            )

    async def delete_article(self, article: Optional[Article]) -> None:
        """Delete the article and everything hanging off it."""
        if article is None:
            return

        with logfire.span("article_repository.delete_article", slug=article.slug):
            article_ids = select(articles_table.c.id).where(
                articles_table.c.slug == article.slug
            )
            async with self._begin() as session:
                for table in (
                    favorited_articles_table,
                    article_tags_table,
                    comments_table,
                ):
                    await session.execute(
                        delete(table).where(table.c.article_id.in_(article_ids))
                    )
                result = await session.execute(
                    delete(articles_table).where(articles_table.c.slug == article.slug)
                )

            logfire.info("Article deleted", slug=article.slug, rows=result.rowcount)

    async def distinct_tags(self) -> set[str]:
        """Return every tag used by at least one article, once."""
        with logfire.span("article_repository.distinct_tags"):
            async with self._begin() as session:
                result = await session.execute(
                    select(article_tags_table.c.tag).distinct()
                )
                return set(result.scalars())
