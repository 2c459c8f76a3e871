"""Mappers for converting between database rows and domain models.

Since we're using Pydantic domain models (immutable), we use manual mapping
instead of SQLAlchemy's classical imperative mapping.
"""

from typing import Any, Dict, Iterable, Mapping

from quill.domain.model import (
    Article,
    AuthoredArticle,
    Comment,
    CommentedArticle,
    Fanboy,
    User,
)
from quill.domain.value import CommentId, KeySet


def row_to_user(row: Mapping[str, Any]) -> User:
    """Convert a joined users/user_passwords row to a User.

    Args:
        row: Database row with email, username, bio, image and password

    Returns:
        User domain model
    """
    return User(
        email=row["email"],
        username=row["username"],
        bio=row["bio"] or "",
        image=row["image"] or "",
        password=row["password"],
    )


def user_to_dict(user: User) -> Dict[str, Any]:
    """Convert a User to the values of its ``users`` row.

    The password lives in ``user_passwords`` and is left out.
    """
    return user.model_dump(include={"email", "username", "bio", "image"})


def to_fanboy(user: User, following: Iterable[str], favorites: Iterable[str]) -> Fanboy:
    """Combine a user with the keys of their follow and favorite edges."""
    return Fanboy(
        **user.model_dump(),
        following=KeySet(frozenset(following)),
        favorites=KeySet(frozenset(favorites)),
    )


def row_to_article(row: Mapping[str, Any], tag_list: list[str]) -> Article:
    """Convert an articles row joined with its author's email to an Article.

    Args:
        row: Database row including ``author_email``
        tag_list: Tags of the article

    Returns:
        Article domain model
    """
    return Article(
        slug=row["slug"],
        title=row["title"],
        description=row["description"] or "",
        body=row["body"],
        tag_list=tag_list,
        author_email=row["author_email"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def article_to_dict(article: Article) -> Dict[str, Any]:
    """Convert an Article to the writable values of its ``articles`` row."""
    return article.model_dump(include={"slug", "title", "description", "body"})


def row_to_authored_article(
    row: Mapping[str, Any], tag_list: list[str]
) -> AuthoredArticle:
    """Convert an article row joined with its author and favorite count.

    Author columns are expected with an ``author_`` prefix.
    """
    author = User(
        email=row["author_email"],
        username=row["author_username"],
        bio=row["author_bio"] or "",
        image=row["author_image"] or "",
        password=row["author_password"],
    )
    return AuthoredArticle(
        **row_to_article(row, tag_list).model_dump(),
        author=author,
        favorite_count=row["favorite_count"] or 0,
    )


def row_to_comment(row: Mapping[str, Any]) -> Comment:
    """Convert a comments row joined with its author's email to a Comment."""
    return Comment(
        id=CommentId(row["id"]),
        body=row["body"],
        author_email=row["author_email"],
        created_at=row["created_at"],
    )


def to_commented_article(
    article: Article, comments: Iterable[Comment]
) -> CommentedArticle:
    """Combine an article with its comments."""
    return CommentedArticle(**article.model_dump(), comments=list(comments))
