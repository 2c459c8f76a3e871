"""SQL repository implementations."""

from quill.persistence.repository.article import SqlArticleRepository
from quill.persistence.repository.user import SqlUserRepository

__all__ = [
    "SqlUserRepository",
    "SqlArticleRepository",
]
