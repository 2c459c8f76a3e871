"""Read-transform-write protocol shared by the repository implementations.

Every update operation follows the same steps:

1. begin a transaction
2. load the aggregate by its natural key (raising the not-found kind)
3. apply the caller's transform
4. persist the result, keyed by what was loaded, and read it back
5. commit, or roll back if any step raised

There is no version check between load and write. The SQL adapters lock the
loaded root row, so concurrent updates of the same aggregate run one after
the other and the last writer wins.
"""

from dataclasses import dataclass
from typing import AsyncContextManager, Awaitable, Callable, Generic, TypeVar

import logfire

from quill.domain.repository.transform import Transform, apply_transform

A = TypeVar("A")
R = TypeVar("R")
Tx = TypeVar("Tx")


@dataclass(frozen=True)
class Loaded(Generic[A]):
    """An aggregate as loaded, with the surrogate id of its root row."""

    id: int
    aggregate: A


async def read_transform_write(
    begin: Callable[[], AsyncContextManager[Tx]],
    key: str,
    *,
    load: Callable[[Tx, str], Awaitable[Loaded[A]]],
    transform: Transform[A],
    persist: Callable[[Tx, Loaded[A], A], Awaitable[R]],
) -> R:
    """Load, transform and persist one aggregate atomically.

    Args:
        begin: Opens a transaction; commits on clean exit, rolls back on error
        key: Natural key of the aggregate (email, username or slug)
        load: Resolves the aggregate within the transaction
        transform: Caller-supplied mutation
        persist: Writes the transformed aggregate and returns the result

    Returns:
        Whatever ``persist`` returns
    """
    with logfire.span("mutation.read_transform_write", key=key):
        async with begin() as tx:
            loaded = await load(tx, key)
            updated = await apply_transform(transform, loaded.aggregate)
            result = await persist(tx, loaded, updated)

        logfire.debug("Mutation committed", key=key)
        return result
