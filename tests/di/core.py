"""Mock config provider for testing."""

from dishka import Scope, provide

from quill.config import DatabaseSettings, ObservabilitySettings, Settings
from quill.util.di.core import ConfigProvider

IN_MEMORY_SQLITE = "sqlite+aiosqlite://"


def make_test_settings(database_url: str = IN_MEMORY_SQLITE) -> Settings:
    """Settings for a throwaway database with telemetry kept local."""
    return Settings(
        environment="test",
        database=DatabaseSettings(url=database_url, apply_schema=True),
        observability=ObservabilitySettings(
            send_to_logfire=False,
            instrument_sql=False,
        ),
    )


class MockConfigProvider(ConfigProvider):
    """Config provider with fixed test settings.

    Defaults to a private in-memory SQLite database, so every container
    gets an empty store.
    """

    __is_mock__ = True

    def __init__(self, settings: Settings | None = None) -> None:
        super().__init__()
        self._settings = settings or make_test_settings()

    @provide(scope=Scope.APP)
    def provide_settings(self) -> Settings:
        """Provide test settings."""
        return self._settings
