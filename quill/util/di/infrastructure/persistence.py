"""Persistence infrastructure providers."""

from collections.abc import AsyncIterator

from dishka import Scope, provide
import logfire
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from quill.config import Settings
from quill.domain.repository import ArticleRepository, UserRepository
from quill.persistence.database import (
    apply_schema,
    create_engine,
    create_session_factory,
)
from quill.persistence.repository import SqlArticleRepository, SqlUserRepository
from quill.util.di.base import ProviderBase
from quill.util.observability import instrument_sqlalchemy


class PersistenceProvider(ProviderBase):
    """Persistence component base."""

    __mock_component__ = "persistence"


class ProdPersistenceProvider(PersistenceProvider):
    """Production persistence provider backed by a SQL database."""

    __is_mock__ = False

    scope = Scope.APP

    @provide(scope=Scope.APP)
    async def get_engine(self, settings: Settings) -> AsyncIterator[AsyncEngine]:
        """Provide database engine, disposed when the container closes."""
        engine = create_engine(settings)
        if settings.observability.instrument_sql:
            # Instrument SQLAlchemy for observability
            instrument_sqlalchemy(engine)
        if settings.database.apply_schema:
            await apply_schema(engine)

        yield engine

        await engine.dispose()
        logfire.info("Database engine disposed")

    @provide(scope=Scope.APP)
    def get_session_factory(
        self, engine: AsyncEngine
    ) -> async_sessionmaker[AsyncSession]:
        """Provide session factory."""
        return create_session_factory(engine)

    @provide(scope=Scope.REQUEST)
    def get_user_repository(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> UserRepository:
        """Provide User repository.

        Each repository operation opens and commits its own transaction.
        """
        return SqlUserRepository(session_factory)

    @provide(scope=Scope.REQUEST)
    def get_article_repository(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> ArticleRepository:
        """Provide Article repository."""
        return SqlArticleRepository(session_factory)
