"""Translation of storage constraint failures into domain errors."""

from contextlib import contextmanager
from typing import Callable, Iterator

import logfire
from sqlalchemy.exc import IntegrityError

from quill.domain.error import DomainError

# SQLSTATE for unique_violation in PostgreSQL
UNIQUE_VIOLATION = "23505"


def is_unique_violation(error: IntegrityError) -> bool:
    """Check whether an IntegrityError was caused by a unique constraint.

    PostgreSQL drivers expose the SQLSTATE code; SQLite only reports it in
    the message.
    """
    orig = error.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return code == UNIQUE_VIOLATION
    return "UNIQUE constraint failed" in str(orig)


@contextmanager
def unique_violation_as(make_error: Callable[[], DomainError]) -> Iterator[None]:
    """Raise ``make_error()`` when the block hits a unique constraint.

    Other integrity errors propagate unchanged.
    """
    try:
        yield
    except IntegrityError as e:
        if not is_unique_violation(e):
            raise
        error = make_error()
        logfire.info("Unique constraint violated", error=str(error))
        raise error from e
