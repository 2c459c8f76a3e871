"""Fixtures running the repository contract against every backend.

The ``env`` fixture is parametrized over the in-memory repositories and
the SQL repositories on a private in-memory SQLite database. Set
``QUILL_TEST_POSTGRES_URL`` to an account allowed to create databases and
the suite also runs against a throwaway PostgreSQL database, created once
per session and emptied before each test.
"""

import asyncio
import os
from typing import Iterator, Optional
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from quill.persistence.tables import metadata
from tests.di import make_test_settings
from tests.harness import open_environment

POSTGRES_URL = os.environ.get("QUILL_TEST_POSTGRES_URL")

BACKENDS = [
    pytest.param("inmemory", id="inmemory"),
    pytest.param("sqlite", id="sqlite"),
    pytest.param(
        "postgres",
        id="postgres",
        marks=pytest.mark.skipif(
            not POSTGRES_URL, reason="QUILL_TEST_POSTGRES_URL is not set"
        ),
    ),
]


async def _execute_autocommit(url: str, statement: str) -> None:
    engine = create_async_engine(url, isolation_level="AUTOCOMMIT")
    try:
        async with engine.connect() as conn:
            await conn.execute(text(statement))
    finally:
        await engine.dispose()


@pytest.fixture(scope="session")
def postgres_database() -> Iterator[Optional[str]]:
    """URL of a throwaway PostgreSQL database, or None if not configured."""
    if not POSTGRES_URL:
        yield None
        return

    name = f"quill_test_{uuid4().hex[:12]}"
    asyncio.run(_execute_autocommit(POSTGRES_URL, f'CREATE DATABASE "{name}"'))
    try:
        yield make_url(POSTGRES_URL).set(database=name).render_as_string(
            hide_password=False
        )
    finally:
        asyncio.run(
            _execute_autocommit(POSTGRES_URL, f'DROP DATABASE IF EXISTS "{name}"')
        )


async def _empty_tables(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        for table in reversed(metadata.sorted_tables):
            await conn.execute(table.delete())


@pytest_asyncio.fixture(params=BACKENDS)
async def env(request, postgres_database):
    """Request-scoped container whose repositories use the chosen backend."""
    backend = request.param

    if backend == "inmemory":
        async with open_environment() as request_container:
            yield request_container

    elif backend == "sqlite":
        async with open_environment(unmock={"persistence"}) as request_container:
            yield request_container

    else:
        settings = make_test_settings(postgres_database)
        async with open_environment(
            unmock={"persistence"}, settings=settings
        ) as request_container:
            await _empty_tables(await request_container.get(AsyncEngine))
            yield request_container
