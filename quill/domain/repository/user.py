"""User repository interface."""

from abc import ABC, abstractmethod
from typing import Optional

from quill.domain.model import Author, Fanboy, User
from quill.domain.repository.transform import Transform


class UserRepository(ABC):
    """Repository for the User aggregate and its social graph.

    Every operation runs in its own transaction. Update operations load the
    current state, hand it to a caller-supplied transform and persist what
    the transform returns; any exception rolls the whole operation back.
    """

    @abstractmethod
    async def create_user(self, user: User) -> User:
        """Create a new user along with their password hash.

        Args:
            user: The user to create

        Returns:
            The user as stored

        Raises:
            DuplicateUserError: If the email or username is taken
        """
        pass

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Fanboy:
        """Find a user by email, with who they follow and what they favorited.

        Args:
            email: The user's email address

        Returns:
            The user and their social graph

        Raises:
            UserNotFoundError: If no user has this email
        """
        pass

    @abstractmethod
    async def get_author_by_email(self, email: str) -> Optional[Author]:
        """Find the author with the given email.

        Args:
            email: The author's email address

        Returns:
            The author if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_user_by_username(self, username: str) -> User:
        """Find a user by username.

        Args:
            username: The user's username

        Returns:
            The user

        Raises:
            UserNotFoundError: If no user has this username
        """
        pass

    @abstractmethod
    async def update_user_by_email(
        self, email: str, transform: Transform[User]
    ) -> User:
        """Apply ``transform`` to the user with ``email`` and persist it.

        The transform may change any field, including the email itself.

        Args:
            email: Current email of the user
            transform: Mutation to apply

        Returns:
            The user as stored after the update

        Raises:
            UserNotFoundError: If no user has this email
            DuplicateUserError: If the new email or username is taken
        """
        pass

    @abstractmethod
    async def update_fanboy_by_email(
        self, email: str, transform: Transform[Fanboy]
    ) -> None:
        """Apply ``transform`` to the user's social graph and persist it.

        The stored follow and favorite edges are replaced by exactly the
        sets on the returned Fanboy. Keys that don't resolve to an existing
        user or article are dropped. The user row itself is not rewritten.

        Args:
            email: Email of the user
            transform: Mutation to apply

        Raises:
            UserNotFoundError: If no user has this email
        """
        pass
