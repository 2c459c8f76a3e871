"""Article aggregate root.

Articles are identified by a slug derived from their title. The slug is
unique across the application and changes whenever the title does.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from quill.domain.error import ValidationError
from quill.domain.model.common import DomainModel
from quill.domain.model.user import User
from quill.domain.value import slugify


class Article(DomainModel):
    """Article aggregate root.

    Timestamps are UTC and assigned by the repository: both are set to the
    same instant on creation and ``updated_at`` advances on every update.
    """

    slug: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str = ""
    body: str = ""
    tag_list: list[str] = Field(default_factory=list)
    author_email: str = Field(min_length=1)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("slug", "author_email", mode="before")
    @classmethod
    def lowercase_keys(cls, v):
        return v.lower() if isinstance(v, str) else v

    @field_validator("tag_list")
    @classmethod
    def dedupe_tags(cls, v: list[str]) -> list[str]:
        """Drop blank and repeated tags, keeping first occurrences."""
        return list(dict.fromkeys(t for t in v if t))

    @classmethod
    def create(
        cls,
        title: str,
        description: str,
        body: str,
        author_email: str,
        *tags: str,
    ) -> "Article":
        """Create a new, not yet persisted article.

        Raises:
            ValidationError: If the title, body or author is missing
        """
        if not title.strip():
            raise ValidationError("title is required")
        if not body.strip():
            raise ValidationError("body is required")
        if not author_email.strip():
            raise ValidationError("author is required")

        return cls(
            slug=slugify(title),
            title=title,
            description=description,
            body=body,
            tag_list=list(tags),
            author_email=author_email,
        )

    def set_title(self, title: str) -> "Article":
        """Return a copy with a new title and the slug derived from it."""
        if not title.strip():
            raise ValidationError("title is required")
        return self.model_copy(update={"title": title, "slug": slugify(title)})

    def has_tag(self, tag: str) -> bool:
        return tag in self.tag_list


class AuthoredArticle(Article):
    """Article joined with its author and favorite count.

    This is the read projection returned by the repository; it is never
    stored as such.
    """

    author: User
    favorite_count: int = Field(default=0, ge=0)
