"""Unit tests for provider selection and container wiring."""

import pytest

from quill.config import Settings
from quill.domain.repository import ArticleRepository, UserRepository
from quill.persistence.repository import SqlArticleRepository, SqlUserRepository
from quill.persistence.repository.inmemory import (
    InMemoryArticleRepository,
    InMemoryUserRepository,
)
from quill.util.di import (
    ConfigProvider,
    PersistenceProvider,
    ProdConfigProvider,
    ProdPersistenceProvider,
    get_provider,
)
from quill.util.di.container import create_container
from tests.di import MockConfigProvider, MockPersistenceProvider, build_test_container
from tests.harness import open_environment


class TestGetProvider:
    """Tests for get_provider."""

    def test_selects_production_implementation(self):
        assert get_provider(PersistenceProvider) is ProdPersistenceProvider
        assert get_provider(ConfigProvider) is ProdConfigProvider

    def test_selects_mock_implementation(self):
        assert get_provider(PersistenceProvider, use_mock=True) is MockPersistenceProvider
        assert get_provider(ConfigProvider, use_mock=True) is MockConfigProvider

    def test_unknown_component_is_rejected(self):
        with pytest.raises(ValueError, match="Unknown components"):
            build_test_container(unmock={"cache"})


class TestContainer:
    """Tests for the wired containers."""

    @pytest.mark.asyncio
    async def test_mocked_persistence_is_in_memory(self):
        async with open_environment() as env:
            users = await env.get(UserRepository)
            articles = await env.get(ArticleRepository)

            assert isinstance(users, InMemoryUserRepository)
            assert isinstance(articles, InMemoryArticleRepository)
            assert users.store is articles.store

    @pytest.mark.asyncio
    async def test_unmocked_persistence_is_sql(self):
        async with open_environment(unmock={"persistence"}) as env:
            users = await env.get(UserRepository)
            articles = await env.get(ArticleRepository)
            settings = await env.get(Settings)

            assert isinstance(users, SqlUserRepository)
            assert isinstance(articles, SqlArticleRepository)
            assert settings.environment == "test"
            assert settings.database.url.startswith("sqlite+aiosqlite")

    @pytest.mark.asyncio
    async def test_production_container_reads_environment(self, monkeypatch):
        """create_container wires the SQL repositories from env settings."""
        monkeypatch.setenv("DATABASE__URL", "sqlite+aiosqlite://")
        monkeypatch.setenv("OBSERVABILITY__INSTRUMENT_SQL", "false")

        container = create_container()
        try:
            async with container() as env:
                users = await env.get(UserRepository)
                assert isinstance(users, SqlUserRepository)
                assert await users.get_author_by_email("nobody@example.com") is None
        finally:
            await container.close()
