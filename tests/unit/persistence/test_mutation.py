"""Unit tests for the read-transform-write protocol."""

from contextlib import asynccontextmanager

import pytest

from quill.domain.error import NotFoundError
from quill.persistence.mutation import Loaded, read_transform_write


class FakeTransactions:
    """Records how each transaction ended."""

    def __init__(self) -> None:
        self.outcomes: list[str] = []

    @asynccontextmanager
    async def begin(self):
        try:
            yield self
        except BaseException:
            self.outcomes.append("rollback")
            raise
        else:
            self.outcomes.append("commit")


async def load(tx, key: str) -> Loaded[str]:
    if key == "missing":
        raise NotFoundError("word", key)
    return Loaded(id=7, aggregate=key)


async def persist(tx, loaded: Loaded[str], word: str) -> tuple[int, str, str]:
    return loaded.id, loaded.aggregate, word


class TestReadTransformWrite:
    """Tests for read_transform_write."""

    @pytest.mark.asyncio
    async def test_persists_transformed_aggregate(self):
        """persist sees what was loaded and what the transform returned."""
        txs = FakeTransactions()

        result = await read_transform_write(
            txs.begin, "hello", load=load, transform=str.upper, persist=persist
        )

        assert result == (7, "hello", "HELLO")
        assert txs.outcomes == ["commit"]

    @pytest.mark.asyncio
    async def test_awaits_async_transform(self):
        txs = FakeTransactions()

        async def shout(word: str) -> str:
            return word + "!"

        result = await read_transform_write(
            txs.begin, "hello", load=load, transform=shout, persist=persist
        )

        assert result == (7, "hello", "hello!")

    @pytest.mark.asyncio
    async def test_not_found_skips_transform(self):
        txs = FakeTransactions()
        calls = []

        with pytest.raises(NotFoundError):
            await read_transform_write(
                txs.begin,
                "missing",
                load=load,
                transform=calls.append,
                persist=persist,
            )

        assert calls == []
        assert txs.outcomes == ["rollback"]

    @pytest.mark.asyncio
    async def test_transform_error_is_not_wrapped(self):
        txs = FakeTransactions()
        error = LookupError("nope")

        def fail(word: str) -> str:
            raise error

        with pytest.raises(LookupError) as excinfo:
            await read_transform_write(
                txs.begin, "hello", load=load, transform=fail, persist=persist
            )

        assert excinfo.value is error
        assert txs.outcomes == ["rollback"]

    @pytest.mark.asyncio
    async def test_persist_error_rolls_back(self):
        txs = FakeTransactions()

        async def broken(tx, loaded, word):
            raise RuntimeError("disk full")

        with pytest.raises(RuntimeError, match="disk full"):
            await read_transform_write(
                txs.begin, "hello", load=load, transform=str.upper, persist=broken
            )

        assert txs.outcomes == ["rollback"]

    @pytest.mark.asyncio
    async def test_transform_returning_none_fails(self):
        txs = FakeTransactions()

        with pytest.raises(TypeError, match="returned None"):
            await read_transform_write(
                txs.begin, "hello", load=load, transform=lambda w: None, persist=persist
            )

        assert txs.outcomes == ["rollback"]
