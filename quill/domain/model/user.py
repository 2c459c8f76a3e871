"""User aggregate root.

A user is identified by email (primary) and username (secondary). Both are
unique across the application.
"""

from typing import Protocol, runtime_checkable

from pydantic import Field, field_validator

from quill.domain.model.common import DomainModel
from quill.domain.value import KeySet


@runtime_checkable
class Author(Protocol):
    """Read-only attribution of an article or comment."""

    @property
    def email(self) -> str: ...

    @property
    def bio(self) -> str: ...

    @property
    def image(self) -> str: ...


class User(DomainModel):
    """User aggregate root.

    The password is carried as an already hashed value; choosing the
    hashing scheme is up to the caller.
    """

    email: str = Field(min_length=1, max_length=255)
    username: str = Field(min_length=1, max_length=255)
    bio: str = ""
    image: str = ""
    password: str = ""

    @field_validator("email", mode="before")
    @classmethod
    def lowercase_email(cls, v):
        """Emails are stored lowercase so follow keys resolve to one user."""
        return v.lower() if isinstance(v, str) else v


class Fanboy(User):
    """A user together with who they follow and what they favorited.

    ``following`` holds lowercase emails and ``favorites`` lowercase slugs.
    Both are views over the follow/favorite join tables; persisting a
    Fanboy replaces the stored edges with exactly these sets.
    """

    following: KeySet = Field(default_factory=KeySet)
    favorites: KeySet = Field(default_factory=KeySet)

    def is_following(self, email: str) -> bool:
        """Check if the user with ``email`` is followed."""
        return email in self.following

    def start_following(self, email: str) -> "Fanboy":
        """Follow the user with ``email``. Idempotent."""
        return self.model_copy(update={"following": self.following.add(email)})

    def stop_following(self, email: str) -> "Fanboy":
        """Unfollow the user with ``email``. Idempotent."""
        return self.model_copy(update={"following": self.following.remove(email)})

    def is_favorite(self, slug: str) -> bool:
        """Check if the article with ``slug`` is favorited."""
        return slug in self.favorites

    def favorite(self, slug: str) -> "Fanboy":
        """Favorite the article with ``slug``. Idempotent."""
        return self.model_copy(update={"favorites": self.favorites.add(slug)})

    def unfavorite(self, slug: str) -> "Fanboy":
        """Unfavorite the article with ``slug``. Idempotent."""
        return self.model_copy(update={"favorites": self.favorites.remove(slug)})
