"""Database connection, transaction and schema management.

PostgreSQL via asyncpg is the production backend. SQLite via aiosqlite is
supported for tests and local development.
"""

import asyncio
from contextlib import asynccontextmanager, nullcontext
from typing import Any, AsyncContextManager, AsyncGenerator, Optional
from weakref import WeakKeyDictionary

import logfire
from sqlalchemy import event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from quill.config import Settings
from quill.persistence.tables import metadata
from quill.util.error import ConfigurationError

SUPPORTED_BACKENDS = ("postgresql", "sqlite")

# Engines whose sessions all share one DBAPI connection
_connection_locks: "WeakKeyDictionary[Engine, asyncio.Lock]" = WeakKeyDictionary()


def create_engine(settings: Settings) -> AsyncEngine:
    """Create async database engine.

    Args:
        settings: Application settings with database URL

    Returns:
        Configured async engine

    Raises:
        ConfigurationError: If the URL names an unsupported backend
    """
    url = make_url(settings.database_url)
    backend = url.get_backend_name()
    if backend not in SUPPORTED_BACKENDS:
        raise ConfigurationError(f"Unsupported database backend: {backend}")

    options: dict[str, Any] = {"echo": settings.debug}  # Log SQL in debug mode
    if backend == "sqlite":
        options["connect_args"] = {"check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            # In-memory databases live and die with their connection, so every
            # session shares it and transactions must not interleave
            options["poolclass"] = StaticPool
    else:
        options.update(
            pool_pre_ping=True,  # Verify connections before using
            pool_size=settings.database.pool_size,
            max_overflow=settings.database.max_overflow,
        )

    engine = create_async_engine(url, **options)
    if backend == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create async session factory.

    Args:
        engine: Database engine

    Returns:
        Session factory for creating database sessions
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Don't expire objects after commit
        autoflush=False,  # Manual flushing for better control
    )


def _connection_lock(bind: Optional[AsyncEngine]) -> AsyncContextManager:
    """Lock held for a whole transaction on single-connection engines.

    With ``StaticPool`` one transaction's ROLLBACK would also discard the
    uncommitted statements of any other transaction in flight.
    """
    if bind is None or not isinstance(bind.sync_engine.pool, StaticPool):
        return nullcontext()
    return _connection_locks.setdefault(bind.sync_engine, asyncio.Lock())


@asynccontextmanager
async def transaction(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Open a session and run the block in a single transaction.

    Commits when the block exits cleanly. Rolls back on any exception,
    including task cancellation, and re-raises it. On engines where every
    session shares one connection, transactions run one at a time.

    Args:
        session_factory: Factory for creating sessions

    Yields:
        Database session with an open transaction
    """
    async with _connection_lock(session_factory.kw.get("bind")):
        async with session_factory() as session:
            try:
                async with session.begin():
                    yield session
            except BaseException as e:
                logfire.warn("Transaction rolled back", error=repr(e))
                raise


async def apply_schema(engine: AsyncEngine) -> None:
    """Create all tables and indexes that don't exist yet.

    Running it against an up-to-date database is a no-op.

    Args:
        engine: Database engine
    """
    with logfire.span("database.apply_schema"):
        async with engine.begin() as conn:
            await conn.run_sync(metadata.create_all, checkfirst=True)
        logfire.info("Schema applied", tables=sorted(metadata.tables))
