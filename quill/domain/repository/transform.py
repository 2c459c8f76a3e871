"""Caller-supplied aggregate transforms."""

import inspect
from typing import Awaitable, Callable, TypeVar, Union

A = TypeVar("A")

# A transform receives the loaded aggregate and returns its replacement,
# either directly or as an awaitable.
Transform = Callable[[A], Union[A, Awaitable[A]]]


async def apply_transform(transform: Transform[A], aggregate: A) -> A:
    """Run ``transform`` on ``aggregate``, awaiting it if needed.

    Exceptions raised by the transform propagate unchanged.
    """
    result = transform(aggregate)
    if inspect.isawaitable(result):
        result = await result
    if result is None:
        raise TypeError(
            f"transform {transform!r} returned None instead of an aggregate"
        )
    return result
