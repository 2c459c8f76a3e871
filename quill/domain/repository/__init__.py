"""Repository interfaces for the Quill domain.

Repository interfaces are defined in the domain layer (dependency inversion).
Implementations live in the persistence layer.
"""

from quill.domain.repository.article import ArticleRepository, ListCriteria
from quill.domain.repository.transform import Transform, apply_transform
from quill.domain.repository.user import UserRepository

__all__ = [
    "UserRepository",
    "ArticleRepository",
    "ListCriteria",
    "Transform",
    "apply_transform",
]
