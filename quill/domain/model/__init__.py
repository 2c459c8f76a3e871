"""Domain model entities for Quill."""

from quill.domain.model.article import Article, AuthoredArticle
from quill.domain.model.comment import Comment, CommentedArticle
from quill.domain.model.user import Author, Fanboy, User

__all__ = [
    "User",
    "Fanboy",
    "Author",
    "Article",
    "AuthoredArticle",
    "Comment",
    "CommentedArticle",
]
