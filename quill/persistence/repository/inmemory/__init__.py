"""In-memory repository implementations for testing."""

from .article import InMemoryArticleRepository
from .store import InMemoryStore
from .user import InMemoryUserRepository

__all__ = [
    "InMemoryArticleRepository",
    "InMemoryStore",
    "InMemoryUserRepository",
]
