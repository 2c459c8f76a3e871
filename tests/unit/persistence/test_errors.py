"""Unit tests for integrity error translation."""

import pytest
from sqlalchemy.exc import IntegrityError

from quill.domain.error import DuplicateArticleError
from quill.persistence.errors import is_unique_violation, unique_violation_as


class PostgresError(Exception):
    def __init__(self, message: str, sqlstate: str) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate


def integrity_error(orig: Exception) -> IntegrityError:
    return IntegrityError("INSERT INTO articles ...", {}, orig)


class TestIsUniqueViolation:
    """Tests for is_unique_violation."""

    def test_postgres_unique_violation(self):
        error = integrity_error(PostgresError("duplicate key", "23505"))

        assert is_unique_violation(error)

    def test_postgres_foreign_key_violation(self):
        error = integrity_error(PostgresError("foreign key", "23503"))

        assert not is_unique_violation(error)

    def test_sqlite_unique_violation(self):
        error = integrity_error(Exception("UNIQUE constraint failed: articles.slug"))

        assert is_unique_violation(error)

    def test_sqlite_other_violation(self):
        error = integrity_error(Exception("FOREIGN KEY constraint failed"))

        assert not is_unique_violation(error)


class TestUniqueViolationAs:
    """Tests for unique_violation_as."""

    def test_translates_unique_violation(self):
        cause = integrity_error(PostgresError("duplicate key", "23505"))

        with pytest.raises(DuplicateArticleError) as excinfo:
            with unique_violation_as(lambda: DuplicateArticleError("a-title")):
                raise cause

        assert excinfo.value.slug == "a-title"
        assert excinfo.value.__cause__ is cause

    def test_other_integrity_errors_propagate(self):
        cause = integrity_error(PostgresError("not null", "23502"))

        with pytest.raises(IntegrityError) as excinfo:
            with unique_violation_as(lambda: DuplicateArticleError("a-title")):
                raise cause

        assert excinfo.value is cause

    def test_clean_block_passes_through(self):
        with unique_violation_as(lambda: DuplicateArticleError("a-title")):
            value = 1

        assert value == 1
