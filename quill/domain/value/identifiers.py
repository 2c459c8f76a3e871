"""Strongly typed surrogate identifiers.

Surrogate ids are assigned by storage and never leave the persistence
layer, except for comment ids which callers use to remove comments.
"""

from typing import NewType

UserId = NewType("UserId", int)
ArticleId = NewType("ArticleId", int)
CommentId = NewType("CommentId", int)
