"""In-memory article repository for testing."""

from typing import List, Optional

from quill.domain.error import (
    ArticleNotFoundError,
    DuplicateArticleError,
    NoAuthorError,
)
from quill.domain.model import (
    Article,
    AuthoredArticle,
    Comment,
    CommentedArticle,
)
from quill.domain.repository import ArticleRepository, ListCriteria, Transform
from quill.persistence.mutation import Loaded, read_transform_write
from quill.persistence.repository.inmemory.store import (
    ArticleRecord,
    CommentRecord,
    InMemoryStore,
)
from quill.util.clock import advance, utcnow


class InMemoryArticleRepository(ArticleRepository):
    """In-memory implementation of ArticleRepository for testing."""

    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    def _author_id(self, store: InMemoryStore, email: str) -> int:
        record = store.user_by_email(email)
        if record is None:
            raise NoAuthorError(email)
        return record.id

    def _check_unique(self, slug: str, own_id: Optional[int] = None) -> None:
        other = self.store.article_by_slug(slug)
        if other is not None and other.id != own_id:
            raise DuplicateArticleError(slug)

    def _record(self, store: InMemoryStore, slug: str) -> ArticleRecord:
        record = store.article_by_slug(slug)
        if record is None:
            raise ArticleNotFoundError(slug)
        return record

    async def _load_article(self, store: InMemoryStore, slug: str) -> Loaded[Article]:
        record = self._record(store, slug)
        return Loaded(id=record.id, aggregate=store.to_article(record))

    async def _load_commented(
        self, store: InMemoryStore, slug: str
    ) -> Loaded[CommentedArticle]:
        record = self._record(store, slug)
        commented = CommentedArticle(
            **store.to_article(record).model_dump(),
            comments=[store.to_comment(c) for c in store.comments_of(record.id)],
        )
        return Loaded(id=record.id, aggregate=commented)

    async def create_article(self, article: Article) -> AuthoredArticle:
        """Create a new article."""
        async with self.store.transaction() as store:
            author_id = self._author_id(store, article.author_email)
            self._check_unique(article.slug)

            now = utcnow()
            record = ArticleRecord(
                id=store.next_id("articles"),
                slug=article.slug,
                title=article.title,
                description=article.description,
                body=article.body,
                author_id=author_id,
                created_at=now,
                updated_at=now,
                tags=list(article.tag_list),
            )
            store.articles[record.id] = record
            return store.to_authored_article(record)

    async def latest_articles_by_criteria(
        self, criteria: ListCriteria
    ) -> List[AuthoredArticle]:
        """List articles newest first, filtered and paged by ``criteria``."""
        async with self.store.transaction() as store:
            records = list(store.articles.values())

            if criteria.tag is not None:
                records = [r for r in records if criteria.tag in r.tags]

            if criteria.author_emails is not None:
                emails = set(criteria.author_emails)
                records = [r for r in records if store.users[r.author_id].email in emails]

            if criteria.favorited_by_email is not None:
                fan = store.user_by_email(criteria.favorited_by_email)
                favorited = {a for u, a in store.favorites if fan and u == fan.id}
                records = [r for r in records if r.id in favorited]

            # Newest first, ties broken by slug
            records.sort(key=lambda r: r.slug)
            records.sort(key=lambda r: r.created_at, reverse=True)

            page = records[criteria.offset : criteria.offset + criteria.limit]
            return [store.to_authored_article(r) for r in page]

    async def get_article_by_slug(self, slug: str) -> AuthoredArticle:
        """Get a single article with its author and favorite count."""
        async with self.store.transaction() as store:
            return store.to_authored_article(self._record(store, slug))

    async def get_comments_by_slug(self, slug: str) -> CommentedArticle:
        """Get a single article with its comments, oldest first."""
        async with self.store.transaction() as store:
            return (await self._load_commented(store, slug)).aggregate

    async def update_article_by_slug(
        self, slug: str, transform: Transform[Article]
    ) -> AuthoredArticle:
        """Apply ``transform`` to the article with ``slug`` and persist it."""

        async def persist(
            store: InMemoryStore, loaded: Loaded[Article], article: Article
        ) -> AuthoredArticle:
            article = Article.model_validate(article.model_dump())
            author_id = self._author_id(store, article.author_email)
            self._check_unique(article.slug, own_id=loaded.id)

            record = store.articles[loaded.id]
            record.slug = article.slug
            record.title = article.title
            record.description = article.description
            record.body = article.body
            record.author_id = author_id
            record.tags = list(article.tag_list)
            record.updated_at = advance(record.updated_at)
            return store.to_authored_article(record)

        return await read_transform_write(
            self.store.transaction,
            slug,
            load=self._load_article,
            transform=transform,
            persist=persist,
        )

    async def update_comments_by_slug(
        self, slug: str, transform: Transform[CommentedArticle]
    ) -> Optional[Comment]:
        """Insert new comments and delete dropped ones for an article."""

        async def persist(
            store: InMemoryStore,
            loaded: Loaded[CommentedArticle],
            commented: CommentedArticle,
        ) -> Optional[Comment]:
            kept_ids = {c.id for c in commented.comments if not c.is_new}
            removed = [c for c in loaded.aggregate.comments if c.id not in kept_ids]
            for comment in removed:
                store.comments.pop(comment.id, None)

            added: List[Comment] = []
            for comment in commented.comments:
                if not comment.is_new:
                    continue
                record = CommentRecord(
                    id=store.next_id("comments"),
                    article_id=loaded.id,
                    author_id=self._author_id(store, comment.author_email),
                    body=comment.body,
                    created_at=utcnow(),
                )
                store.comments[record.id] = record
                added.append(store.to_comment(record))

            if added:
                return added[-1]
            return removed[-1] if removed else None

        return await read_transform_write(
            self.store.transaction,
            slug,
            load=self._load_commented,
            transform=transform,
            persist=persist,
        )

    async def delete_article(self, article: Optional[Article]) -> None:
        """Delete the article and everything hanging off it."""
        if article is None:
            return

        async with self.store.transaction() as store:
            record = store.article_by_slug(article.slug)
            if record is None:
                return
            del store.articles[record.id]
            store.favorites = {(u, a) for u, a in store.favorites if a != record.id}
            store.comments = {
                i: c for i, c in store.comments.items() if c.article_id != record.id
            }

    async def distinct_tags(self) -> set[str]:
        """Return every tag used by at least one article, once."""
        async with self.store.transaction() as store:
            return {tag for record in store.articles.values() for tag in record.tags}
