"""Comment entity and the commented article aggregate.

Comments belong to an article and are kept in insertion order. Storage
assigns their id and creation time when the aggregate is persisted.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from quill.domain.error import ValidationError
from quill.domain.model.article import Article
from quill.domain.model.common import DomainModel
from quill.domain.value import CommentId


class Comment(DomainModel):
    """Comment entity.

    ``id`` and ``created_at`` are None until the comment is persisted.
    """

    id: Optional[CommentId] = None
    body: str = Field(min_length=1)
    author_email: str = Field(min_length=1)
    created_at: Optional[datetime] = None

    @field_validator("author_email", mode="before")
    @classmethod
    def lowercase_author(cls, v):
        return v.lower() if isinstance(v, str) else v

    @property
    def is_new(self) -> bool:
        return self.id is None


class CommentedArticle(Article):
    """An article together with its comments, oldest first."""

    comments: list[Comment] = Field(default_factory=list)

    def add_comment(self, body: str, author_email: str) -> "CommentedArticle":
        """Append a new comment.

        Raises:
            ValidationError: If the body or the author is empty
        """
        if not body.strip():
            raise ValidationError("comment body is required")
        if not author_email.strip():
            raise ValidationError("comment author is required")

        comment = Comment(body=body, author_email=author_email)
        return self.model_copy(update={"comments": [*self.comments, comment]})

    def remove_comment(self, comment_id: CommentId) -> "CommentedArticle":
        """Remove the comment with ``comment_id``.

        Removing a comment that isn't there is a no-op.
        """
        kept = [c for c in self.comments if c.id != comment_id]
        return self.model_copy(update={"comments": kept})

    def find_comment(self, comment_id: CommentId) -> Optional[Comment]:
        return next((c for c in self.comments if c.id == comment_id), None)
