"""SQL implementation of the User repository."""

from functools import partial
from typing import Optional

import logfire
from sqlalchemy import ColumnElement, delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from quill.domain.error import DuplicateUserError, UserNotFoundError
from quill.domain.model import Author, Fanboy, User
from quill.domain.repository import Transform, UserRepository
from quill.persistence.database import transaction
from quill.persistence.errors import unique_violation_as
from quill.persistence.mappers import row_to_user, to_fanboy, user_to_dict
from quill.persistence.mutation import Loaded, read_transform_write
from quill.persistence.queries import (
    article_ids_by_slugs,
    select_users,
    user_ids_by_emails,
)
from quill.persistence.tables import (
    articles_table,
    favorited_articles_table,
    followed_users_table,
    user_passwords_table,
    users_table,
)


class SqlUserRepository(UserRepository):
    """SQL implementation of UserRepository (PostgreSQL or SQLite)."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize repository with a session factory.

        Args:
            session_factory: Factory for the sessions each operation opens
        """
        self.session_factory = session_factory

    def _begin(self):
        return transaction(self.session_factory)

    async def _find_user(
        self,
        session: AsyncSession,
        where: ColumnElement[bool],
        for_update: bool = False,
    ) -> Optional[Loaded[User]]:
        stmt = select_users().where(where)
        if for_update:
            # Concurrent updates of one user queue up behind this row lock
            stmt = stmt.with_for_update(of=users_table)
        result = await session.execute(stmt)
        row = result.mappings().first()
        return Loaded(id=row["id"], aggregate=row_to_user(row)) if row else None

    async def _load_user(
        self, session: AsyncSession, email: str, for_update: bool = False
    ) -> Loaded[User]:
        loaded = await self._find_user(
            session, users_table.c.email == email, for_update=for_update
        )
        if loaded is None:
            logfire.warn("User not found", email=email)
            raise UserNotFoundError(email)
        return loaded

    async def _load_fanboy(
        self, session: AsyncSession, email: str, for_update: bool = False
    ) -> Loaded[Fanboy]:
        loaded = await self._load_user(session, email, for_update=for_update)

        following = await session.execute(
            select(users_table.c.email)
            .select_from(
                followed_users_table.join(
                    users_table, users_table.c.id == followed_users_table.c.followed_id
                )
            )
            .where(followed_users_table.c.follower_id == loaded.id)
        )
        favorites = await session.execute(
            select(articles_table.c.slug)
            .select_from(
                favorited_articles_table.join(
                    articles_table,
                    articles_table.c.id == favorited_articles_table.c.article_id,
                )
            )
            .where(favorited_articles_table.c.user_id == loaded.id)
        )

        fanboy = to_fanboy(loaded.aggregate, following.scalars(), favorites.scalars())
        return Loaded(id=loaded.id, aggregate=fanboy)

    async def create_user(self, user: User) -> User:
        """Create a new user along with their password hash."""
        with logfire.span(
            "user_repository.create_user", email=user.email, username=user.username
        ):
            async with self._begin() as session:
                with unique_violation_as(
                    lambda: DuplicateUserError(user.email, user.username)
                ):
                    result = await session.execute(
                        insert(users_table).values(**user_to_dict(user))
                    )
                user_id = result.inserted_primary_key[0]

                await session.execute(
                    insert(user_passwords_table).values(id=user_id, hash=user.password)
                )
                created = await self._load_user(session, user.email)

            logfire.info("User created", email=user.email)
            return created.aggregate

    async def get_user_by_email(self, email: str) -> Fanboy:
        """Find a user by email, with who they follow and what they favorited."""
        with logfire.span("user_repository.get_user_by_email", email=email):
            async with self._begin() as session:
                loaded = await self._load_fanboy(session, email)
            return loaded.aggregate

    async def get_author_by_email(self, email: str) -> Optional[Author]:
        """Find the author with the given email."""
        with logfire.span("user_repository.get_author_by_email", email=email):
            async with self._begin() as session:
                loaded = await self._find_user(session, users_table.c.email == email)
            return loaded.aggregate if loaded else None

    async def get_user_by_username(self, username: str) -> User:
        """Find a user by username."""
        with logfire.span("user_repository.get_user_by_username", username=username):
            async with self._begin() as session:
                loaded = await self._find_user(
                    session, users_table.c.username == username
                )
            if loaded is None:
                logfire.warn("User not found", username=username)
                raise UserNotFoundError(username)
            return loaded.aggregate

    async def update_user_by_email(
        self, email: str, transform: Transform[User]
    ) -> User:
        """Apply ``transform`` to the user with ``email`` and persist it."""

        async def persist(
            session: AsyncSession, loaded: Loaded[User], user: User
        ) -> User:
            # model_copy skips validation; normalize the email before writing
            user = User.model_validate(user.model_dump())
            with unique_violation_as(
                lambda: DuplicateUserError(user.email, user.username)
            ):
                await session.execute(
                    update(users_table)
                    .where(users_table.c.email == loaded.aggregate.email)
                    .values(**user_to_dict(user))
                )
            # Credentials are keyed by the surrogate id, not the email
            await session.execute(
                update(user_passwords_table)
                .where(user_passwords_table.c.id == loaded.id)
                .values(hash=user.password)
            )
            return (await self._load_user(session, user.email)).aggregate

        with logfire.span("user_repository.update_user_by_email", email=email):
            updated = await read_transform_write(
                self._begin,
                email,
                load=partial(self._load_user, for_update=True),
                transform=transform,
                persist=persist,
            )
            logfire.info("User updated", email=email, new_email=updated.email)
            return updated

    async def update_fanboy_by_email(
        self, email: str, transform: Transform[Fanboy]
    ) -> None:
        """Replace the user's follow and favorite edges with the transformed sets."""

        async def persist(
            session: AsyncSession, loaded: Loaded[Fanboy], fanboy: Fanboy
        ) -> None:
            await session.execute(
                delete(followed_users_table).where(
                    followed_users_table.c.follower_id == loaded.id
                )
            )
            await session.execute(
                delete(favorited_articles_table).where(
                    favorited_articles_table.c.user_id == loaded.id
                )
            )

            followed_ids = await user_ids_by_emails(session, fanboy.following)
            if followed_ids:
                await session.execute(
                    insert(followed_users_table),
                    [
                        {"follower_id": loaded.id, "followed_id": followed_id}
                        for followed_id in followed_ids
                    ],
                )

            article_ids = await article_ids_by_slugs(session, fanboy.favorites)
            if article_ids:
                await session.execute(
                    insert(favorited_articles_table),
                    [
                        {"user_id": loaded.id, "article_id": article_id}
                        for article_id in article_ids
                    ],
                )

            logfire.info(
                "Social graph replaced",
                email=email,
                following=len(followed_ids),
                favorites=len(article_ids),
            )

        with logfire.span("user_repository.update_fanboy_by_email", email=email):
            await read_transform_write(
                self._begin,
                email,
                load=partial(self._load_fanboy, for_update=True),
                transform=transform,
                persist=persist,
            )
