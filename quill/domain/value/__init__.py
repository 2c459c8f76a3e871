"""Domain value objects for Quill."""

from quill.domain.value.identifiers import ArticleId, CommentId, UserId
from quill.domain.value.types import KeySet, slugify

__all__ = [
    # Identifiers
    "UserId",
    "ArticleId",
    "CommentId",
    # Types
    "KeySet",
    "slugify",
]
