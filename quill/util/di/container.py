"""Dependency injection container."""

from dishka import AsyncContainer, make_async_container

from quill.util.di import PROVIDERS, get_provider


def create_container() -> AsyncContainer:
    """Build production container (all prod implementations).

    Settings are loaded from environment variables automatically. Close the
    container to dispose of the database engine.

    Returns:
        Configured DI container with production providers

    Example:
        container = create_container()
        async with container() as request:
            users = await request.get(UserRepository)
            ...
        await container.close()
    """
    # Get provider instances - all are instantiated without arguments
    provider_instances = [get_provider(base, use_mock=False)() for base in PROVIDERS]
    return make_async_container(*provider_instances)
