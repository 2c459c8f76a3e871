"""Domain value objects for Quill.

Value objects are immutable and defined by their values, not identity.
They encapsulate validation rules and business logic.
"""

import re
from typing import Iterable, Iterator

from pydantic import field_validator

from quill.domain.value.common import RootValueObject

_WHITESPACE = re.compile(r"\s+")


def slugify(title: str) -> str:
    """Derive an article slug from its title.

    Lowercases the title, trims it and replaces every run of whitespace
    with a single hyphen: ``"Hospitable Title"`` -> ``"hospitable-title"``.
    """
    return _WHITESPACE.sub("-", title.strip().lower())


class KeySet(RootValueObject[frozenset[str]]):
    """Immutable set of lowercase keys.

    Used for the social graph views of a user: the emails they follow and
    the slugs they favorited. Keys are case-folded on the way in and empty
    keys are dropped.
    """

    root: frozenset[str] = frozenset()

    @field_validator("root", mode="before")
    @classmethod
    def normalize_keys(cls, v: object) -> frozenset[str]:
        """Lowercase keys and discard blanks."""
        if v is None:
            return frozenset()
        if isinstance(v, str):
            v = [v]
        return frozenset(k.strip().lower() for k in v if k and k.strip())

    def __iter__(self) -> Iterator[str]:  # type: ignore[override]
        return iter(sorted(self.root))

    def __len__(self) -> int:
        return len(self.root)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.strip().lower() in self.root

    def add(self, key: str) -> "KeySet":
        """Return a copy with ``key`` added."""
        return KeySet(self.root | {key})

    def remove(self, key: str) -> "KeySet":
        """Return a copy without ``key``. Missing keys are ignored."""
        return KeySet(self.root - {key.strip().lower()})

    def replace(self, keys: Iterable[str]) -> "KeySet":
        """Return a new set holding exactly ``keys``."""
        return KeySet(frozenset(keys))
