"""Shared in-memory dataset backing the in-memory repositories.

Mirrors the relational schema: records carry surrogate ids and the join
tables are sets of id pairs. A transaction holds the store lock for its
whole duration and restores a snapshot if the block raises, so operations
are atomic and serialized.
"""

import asyncio
import copy
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Iterable, Optional

import logfire

from quill.domain.model import Article, AuthoredArticle, Comment, User
from quill.domain.value import CommentId


@dataclass
class UserRecord:
    id: int
    email: str
    username: str
    bio: str
    image: str
    password: str


@dataclass
class ArticleRecord:
    id: int
    slug: str
    title: str
    description: str
    body: str
    author_id: int
    created_at: datetime
    updated_at: datetime
    tags: list[str] = field(default_factory=list)


@dataclass
class CommentRecord:
    id: int
    article_id: int
    author_id: int
    body: str
    created_at: datetime


class InMemoryStore:
    """In-memory tables for users, articles, comments and their edges."""

    def __init__(self) -> None:
        self.users: dict[int, UserRecord] = {}
        self.articles: dict[int, ArticleRecord] = {}
        self.comments: dict[int, CommentRecord] = {}
        self.follows: set[tuple[int, int]] = set()  # (follower_id, followed_id)
        self.favorites: set[tuple[int, int]] = set()  # (user_id, article_id)
        # Sequences survive rollbacks so ids are never reused
        self._sequences: dict[str, int] = {}
        self._lock = asyncio.Lock()

    def next_id(self, sequence: str) -> int:
        self._sequences[sequence] = self._sequences.get(sequence, 0) + 1
        return self._sequences[sequence]

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["InMemoryStore"]:
        """Run the block atomically; any exception restores prior state."""
        async with self._lock:
            snapshot = copy.deepcopy(
                (self.users, self.articles, self.comments, self.follows, self.favorites)
            )
            try:
                yield self
            except BaseException as e:
                (
                    self.users,
                    self.articles,
                    self.comments,
                    self.follows,
                    self.favorites,
                ) = snapshot
                logfire.warn("Transaction rolled back", error=repr(e))
                raise

    # -- lookups ------------------------------------------------------------

    def user_by_email(self, email: str) -> Optional[UserRecord]:
        return next((u for u in self.users.values() if u.email == email), None)

    def user_by_username(self, username: str) -> Optional[UserRecord]:
        return next((u for u in self.users.values() if u.username == username), None)

    def users_by_emails(self, emails: Iterable[str]) -> list[UserRecord]:
        """Match emails exactly, dropping unknown ones."""
        keys = set(emails)
        return [u for u in self.users.values() if u.email in keys]

    def article_by_slug(self, slug: str) -> Optional[ArticleRecord]:
        return next((a for a in self.articles.values() if a.slug == slug), None)

    def articles_by_slugs(self, slugs: Iterable[str]) -> list[ArticleRecord]:
        """Match slugs exactly, dropping unknown ones."""
        keys = set(slugs)
        return [a for a in self.articles.values() if a.slug in keys]

    def comments_of(self, article_id: int) -> list[CommentRecord]:
        return sorted(
            (c for c in self.comments.values() if c.article_id == article_id),
            key=lambda c: c.id,
        )

    def favorite_count(self, article_id: int) -> int:
        return sum(1 for _, a in self.favorites if a == article_id)

    # -- record -> domain ---------------------------------------------------

    def to_user(self, record: UserRecord) -> User:
        return User(
            email=record.email,
            username=record.username,
            bio=record.bio,
            image=record.image,
            password=record.password,
        )

    def to_article(self, record: ArticleRecord) -> Article:
        return Article(
            slug=record.slug,
            title=record.title,
            description=record.description,
            body=record.body,
            tag_list=sorted(record.tags),
            author_email=self.users[record.author_id].email,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    def to_authored_article(self, record: ArticleRecord) -> AuthoredArticle:
        return AuthoredArticle(
            **self.to_article(record).model_dump(),
            author=self.to_user(self.users[record.author_id]),
            favorite_count=self.favorite_count(record.id),
        )

    def to_comment(self, record: CommentRecord) -> Comment:
        return Comment(
            id=CommentId(record.id),
            body=record.body,
            author_email=self.users[record.author_id].email,
            created_at=record.created_at,
        )
