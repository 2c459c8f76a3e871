"""In-memory user repository for testing."""

from typing import Optional

from quill.domain.error import DuplicateUserError, UserNotFoundError
from quill.domain.model import Author, Fanboy, User
from quill.domain.repository import Transform, UserRepository
from quill.domain.value import KeySet
from quill.persistence.mutation import Loaded, read_transform_write
from quill.persistence.repository.inmemory.store import InMemoryStore, UserRecord


class InMemoryUserRepository(UserRepository):
    """In-memory implementation of UserRepository for testing."""

    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    def _check_unique(self, user: User, own_id: Optional[int] = None) -> None:
        for other in self.store.users.values():
            if other.id == own_id:
                continue
            if other.email == user.email or other.username == user.username:
                raise DuplicateUserError(user.email, user.username)

    async def _load_user(self, store: InMemoryStore, email: str) -> Loaded[User]:
        record = store.user_by_email(email)
        if record is None:
            raise UserNotFoundError(email)
        return Loaded(id=record.id, aggregate=store.to_user(record))

    async def _load_fanboy(self, store: InMemoryStore, email: str) -> Loaded[Fanboy]:
        loaded = await self._load_user(store, email)
        following = [
            store.users[followed].email
            for follower, followed in store.follows
            if follower == loaded.id
        ]
        favorites = [
            store.articles[article].slug
            for user, article in store.favorites
            if user == loaded.id
        ]
        fanboy = Fanboy(
            **loaded.aggregate.model_dump(),
            following=KeySet(frozenset(following)),
            favorites=KeySet(frozenset(favorites)),
        )
        return Loaded(id=loaded.id, aggregate=fanboy)

    async def create_user(self, user: User) -> User:
        """Create a new user."""
        async with self.store.transaction() as store:
            self._check_unique(user)
            record = UserRecord(
                id=store.next_id("users"),
                email=user.email,
                username=user.username,
                bio=user.bio,
                image=user.image,
                password=user.password,
            )
            store.users[record.id] = record
            return store.to_user(record)

    async def get_user_by_email(self, email: str) -> Fanboy:
        """Find a user by email, with their social graph."""
        async with self.store.transaction() as store:
            return (await self._load_fanboy(store, email)).aggregate

    async def get_author_by_email(self, email: str) -> Optional[Author]:
        """Find the author with the given email, or None."""
        async with self.store.transaction() as store:
            record = store.user_by_email(email)
            return store.to_user(record) if record else None

    async def get_user_by_username(self, username: str) -> User:
        """Find a user by username."""
        async with self.store.transaction() as store:
            record = store.user_by_username(username)
            if record is None:
                raise UserNotFoundError(username)
            return store.to_user(record)

    async def update_user_by_email(
        self, email: str, transform: Transform[User]
    ) -> User:
        """Apply ``transform`` to the user with ``email`` and persist it."""

        async def persist(
            store: InMemoryStore, loaded: Loaded[User], user: User
        ) -> User:
            user = User.model_validate(user.model_dump())
            self._check_unique(user, own_id=loaded.id)
            record = store.users[loaded.id]
            record.email = user.email
            record.username = user.username
            record.bio = user.bio
            record.image = user.image
            record.password = user.password
            return store.to_user(record)

        return await read_transform_write(
            self.store.transaction,
            email,
            load=self._load_user,
            transform=transform,
            persist=persist,
        )

    async def update_fanboy_by_email(
        self, email: str, transform: Transform[Fanboy]
    ) -> None:
        """Replace the user's follow and favorite edges with the transformed sets."""

        async def persist(
            store: InMemoryStore, loaded: Loaded[Fanboy], fanboy: Fanboy
        ) -> None:
            store.follows = {
                (follower, followed)
                for follower, followed in store.follows
                if follower != loaded.id
            }
            store.favorites = {
                (user, article) for user, article in store.favorites if user != loaded.id
            }
            store.follows |= {
                (loaded.id, u.id) for u in store.users_by_emails(fanboy.following)
            }
            store.favorites |= {
                (loaded.id, a.id) for a in store.articles_by_slugs(fanboy.favorites)
            }

        await read_transform_write(
            self.store.transaction,
            email,
            load=self._load_fanboy,
            transform=transform,
            persist=persist,
        )
