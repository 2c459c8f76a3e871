"""Article repository interface."""

from abc import ABC, abstractmethod
from typing import List, Optional

from pydantic import BaseModel, Field

from quill.domain.model import (
    Article,
    AuthoredArticle,
    Comment,
    CommentedArticle,
)
from quill.domain.repository.transform import Transform


class ListCriteria(BaseModel):
    """Optional filters and paging for article listings.

    ``author_emails`` of None means any author; an empty list matches no
    article at all (e.g. the feed of a user who follows nobody).
    """

    tag: Optional[str] = None
    author_emails: Optional[List[str]] = None
    favorited_by_email: Optional[str] = None
    limit: int = Field(default=20, ge=0)
    offset: int = Field(default=0, ge=0)


class ArticleRepository(ABC):
    """Repository for the Article aggregate and its comments.

    Every operation runs in its own transaction. Update operations load the
    current state, hand it to a caller-supplied transform and persist what
    the transform returns; any exception rolls the whole operation back.
    """

    @abstractmethod
    async def create_article(self, article: Article) -> AuthoredArticle:
        """Create a new article.

        Args:
            article: The article to create

        Returns:
            The stored article joined with its author

        Raises:
            NoAuthorError: If the author email doesn't match a user
            DuplicateArticleError: If another article has the same slug
        """
        pass

    @abstractmethod
    async def latest_articles_by_criteria(
        self, criteria: ListCriteria
    ) -> List[AuthoredArticle]:
        """List articles newest first, filtered and paged by ``criteria``.

        Articles created at the same instant are ordered by slug so that
        paging is stable.

        Args:
            criteria: Filters and paging

        Returns:
            Matching articles
        """
        pass

    @abstractmethod
    async def get_article_by_slug(self, slug: str) -> AuthoredArticle:
        """Get a single article with its author and favorite count.

        Raises:
            ArticleNotFoundError: If no article has this slug
        """
        pass

    @abstractmethod
    async def get_comments_by_slug(self, slug: str) -> CommentedArticle:
        """Get a single article with its comments, oldest first.

        Raises:
            ArticleNotFoundError: If no article has this slug
        """
        pass

    @abstractmethod
    async def update_article_by_slug(
        self, slug: str, transform: Transform[Article]
    ) -> AuthoredArticle:
        """Apply ``transform`` to the article with ``slug`` and persist it.

        The transform may change the title and with it the slug. The
        creation time is kept and the update time advances.

        Args:
            slug: Current slug of the article
            transform: Mutation to apply

        Returns:
            The stored article joined with its author

        Raises:
            ArticleNotFoundError: If no article has this slug
            DuplicateArticleError: If the new slug belongs to another article
            NoAuthorError: If the author email was changed to an unknown user
        """
        pass

    @abstractmethod
    async def update_comments_by_slug(
        self, slug: str, transform: Transform[CommentedArticle]
    ) -> Optional[Comment]:
        """Apply ``transform`` to the comments of an article and persist them.

        New comments (without an id) are inserted and get an id and creation
        time from storage. Comments missing from the returned aggregate are
        deleted.

        Args:
            slug: Slug of the article
            transform: Mutation to apply

        Returns:
            The last comment added, else the last comment removed, else None

        Raises:
            ArticleNotFoundError: If no article has this slug
            NoAuthorError: If a new comment's author doesn't match a user
        """
        pass

    @abstractmethod
    async def delete_article(self, article: Optional[Article]) -> None:
        """Delete the article if it exists.

        Passing None, or an article that is already gone, is a no-op.
        """
        pass

    @abstractmethod
    async def distinct_tags(self) -> set[str]:
        """Return every tag used by at least one article, once."""
        pass
