"""Unit tests for engine creation, transactions and schema application."""

import asyncio

import pytest
from sqlalchemy import inspect, insert, select

from quill.config import DatabaseSettings, Settings
from quill.persistence.database import (
    apply_schema,
    create_engine,
    create_session_factory,
    transaction,
)
from quill.persistence.tables import metadata, users_table
from quill.util.error import ConfigurationError

EXPECTED_TABLES = {
    "users",
    "user_passwords",
    "followed_users",
    "articles",
    "article_tags",
    "favorited_articles",
    "comments",
}


def sqlite_settings() -> Settings:
    return Settings(database=DatabaseSettings(url="sqlite+aiosqlite://"))


class TestCreateEngine:
    """Tests for create_engine."""

    def test_rejects_unsupported_backend(self):
        settings = Settings(
            database=DatabaseSettings(url="mysql+aiomysql://u:p@localhost/quill")
        )

        with pytest.raises(ConfigurationError, match="mysql"):
            create_engine(settings)

    @pytest.mark.asyncio
    async def test_sqlite_enforces_foreign_keys(self):
        engine = create_engine(sqlite_settings())
        try:
            async with engine.connect() as conn:
                result = await conn.exec_driver_sql("PRAGMA foreign_keys")
                assert result.scalar() == 1
        finally:
            await engine.dispose()


class TestApplySchema:
    """Tests for apply_schema."""

    @pytest.mark.asyncio
    async def test_creates_every_table(self):
        engine = create_engine(sqlite_settings())
        try:
            await apply_schema(engine)

            async with engine.connect() as conn:
                tables = await conn.run_sync(
                    lambda sync_conn: set(inspect(sync_conn).get_table_names())
                )
            assert EXPECTED_TABLES <= tables
            assert set(metadata.tables) == EXPECTED_TABLES
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_reapplying_is_a_noop(self):
        """Applying the schema twice keeps the data and raises nothing."""
        engine = create_engine(sqlite_settings())
        try:
            await apply_schema(engine)
            async with engine.begin() as conn:
                await conn.execute(
                    insert(users_table).values(email="a@b.com", username="a")
                )

            await apply_schema(engine)

            async with engine.connect() as conn:
                result = await conn.execute(select(users_table.c.email))
                assert result.scalars().all() == ["a@b.com"]
        finally:
            await engine.dispose()


class TestTransaction:
    """Tests for the transaction helper."""

    @pytest.mark.asyncio
    async def test_commits_on_success_and_rolls_back_on_error(self):
        engine = create_engine(sqlite_settings())
        try:
            await apply_schema(engine)
            session_factory = create_session_factory(engine)

            async with transaction(session_factory) as session:
                await session.execute(
                    insert(users_table).values(email="kept@b.com", username="kept")
                )

            with pytest.raises(RuntimeError):
                async with transaction(session_factory) as session:
                    await session.execute(
                        insert(users_table).values(email="lost@b.com", username="lost")
                    )
                    raise RuntimeError("abort")

            async with transaction(session_factory) as session:
                result = await session.execute(select(users_table.c.email))
                assert result.scalars().all() == ["kept@b.com"]
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_rollback_leaves_a_concurrent_transaction_intact(self):
        """On a shared in-memory connection one rollback must not eat another's writes."""
        engine = create_engine(sqlite_settings())
        try:
            await apply_schema(engine)
            session_factory = create_session_factory(engine)

            async def succeed():
                async with transaction(session_factory) as session:
                    await session.execute(
                        insert(users_table).values(email="first@b.com", username="first")
                    )
                    await asyncio.sleep(0.01)
                    await session.execute(
                        insert(users_table).values(email="second@b.com", username="second")
                    )

            async def fail():
                async with transaction(session_factory) as session:
                    await session.execute(
                        insert(users_table).values(email="lost@b.com", username="lost")
                    )
                    raise RuntimeError("abort")

            # Act
            results = await asyncio.gather(succeed(), fail(), return_exceptions=True)

            # Assert
            assert results[0] is None
            assert isinstance(results[1], RuntimeError)
            async with transaction(session_factory) as session:
                result = await session.execute(
                    select(users_table.c.email).order_by(users_table.c.email)
                )
                assert result.scalars().all() == ["first@b.com", "second@b.com"]
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_transactions_on_a_pooled_engine_are_not_serialized(self, tmp_path):
        settings = Settings(
            database=DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'q.db'}")
        )
        engine = create_engine(settings)
        try:
            await apply_schema(engine)
            session_factory = create_session_factory(engine)
            entered = asyncio.Event()
            released = asyncio.Event()

            async def reader():
                async with transaction(session_factory) as session:
                    await session.execute(select(users_table.c.email))
                    entered.set()
                    # Only finishes once the second transaction has run
                    await released.wait()

            async def second_reader():
                await entered.wait()
                async with transaction(session_factory) as session:
                    result = await session.execute(select(users_table.c.email))
                    emails = result.scalars().all()
                released.set()
                return emails

            # Act
            _, emails = await asyncio.wait_for(
                asyncio.gather(reader(), second_reader()), timeout=5
            )

            # Assert
            assert emails == []
        finally:
            await engine.dispose()
