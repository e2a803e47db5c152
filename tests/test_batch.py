import pytest
import sqlite3

from pagestate.batch import (
    Executor,
    Query,
    ResultBatch,
    ResultStream,
    execution,
    make_row,
    offset_token,
    token_offset,
)
from pagestate.error import ExecutionError
from pagestate.memory import MemoryExecutor


def _rows(count):
    return [{"id": n, "name": f"user{n}"} for n in range(count)]


def test_query_immutable():
    query = Query("SELECT 1", params=[1, 2], batch_size=10)
    assert query.params == (1, 2)
    with pytest.raises(AttributeError):
        query.batch_size = 20


def test_query_resume():
    query = Query("SELECT 1", batch_size=10)
    resumed = query.resume(b"token")
    assert resumed.token == b"token"
    assert query.token is None
    assert resumed.statement == query.statement
    assert resumed.batch_size == query.batch_size


def test_query_invalid_batch_size():
    with pytest.raises(ValueError):
        Query("SELECT 1", batch_size=0)


def test_row_immutable():
    row = make_row({"id": 1})
    assert row["id"] == 1
    with pytest.raises(TypeError):
        row["id"] = 2


def test_batch_properties():
    batch = ResultBatch(rows=(make_row({"id": 1}),), token=b"next")
    assert batch.available_without_fetching == 1
    assert not batch.exhausted
    assert ResultBatch().exhausted
    assert ResultBatch().available_without_fetching == 0


def test_offset_token():
    query = Query("SELECT id FROM users", batch_size=10)
    token = offset_token(query, 30)
    assert token_offset(query.resume(token)) == 30
    assert token_offset(query) == 0


def test_offset_token_other_query():
    token = offset_token(Query("SELECT id FROM users"), 30)
    with pytest.raises(ExecutionError):
        token_offset(Query("SELECT id FROM groups", token=token))
    with pytest.raises(ExecutionError):
        token_offset(Query("SELECT id FROM users", params=(1,), token=token))


def test_offset_token_garbage():
    with pytest.raises(ExecutionError):
        token_offset(Query("SELECT id FROM users", token=b"garbage"))


async def test_execution_wraps_errors():
    class Failing(Executor):
        @execution
        async def execute(self, query):
            raise sqlite3.OperationalError("no such table: users")

    with pytest.raises(ExecutionError) as info:
        await Failing().execute(Query("SELECT id FROM users"))
    assert "no such table" in str(info.value)
    assert isinstance(info.value.__cause__, sqlite3.OperationalError)


async def test_execution_passes_execution_error():
    class Failing(Executor):
        @execution
        async def execute(self, query):
            raise ExecutionError("connection reset")

    with pytest.raises(ExecutionError) as info:
        await Failing().execute(Query("SELECT id FROM users"))
    assert info.value.__cause__ is None


async def test_stream_fetches_next_batch():
    executor = MemoryExecutor(_rows(25))
    query = Query("SELECT * FROM users", batch_size=10)
    stream = ResultStream(executor, query, await executor.execute(query))
    rows = [row async for row in stream]
    assert [row["id"] for row in rows] == list(range(25))
    assert executor.executions == 3
    assert stream.exhausted


async def test_stream_available_without_fetching():
    executor = MemoryExecutor(_rows(25))
    query = Query("SELECT * FROM users", batch_size=10)
    stream = ResultStream(executor, query, await executor.execute(query))
    assert stream.available_without_fetching == 10
    await stream.take(4)
    assert stream.available_without_fetching == 6
    assert not stream.exhausted


async def test_stream_take_across_batches():
    executor = MemoryExecutor(_rows(25))
    query = Query("SELECT * FROM users", batch_size=10)
    stream = ResultStream(executor, query, await executor.execute(query))
    await stream.take(8)
    rows = await stream.take(5)
    assert [row["id"] for row in rows] == [8, 9, 10, 11, 12]
    assert executor.executions == 2


async def test_stream_take_past_end():
    executor = MemoryExecutor(_rows(3))
    query = Query("SELECT * FROM users", batch_size=10)
    stream = ResultStream(executor, query, await executor.execute(query))
    assert len(await stream.take(5)) == 3
    assert await stream.take(5) == []
    assert stream.exhausted


async def test_stream_empty_final_batch():
    executor = MemoryExecutor(_rows(20))
    query = Query("SELECT * FROM users", batch_size=10)
    stream = ResultStream(executor, query, await executor.execute(query))
    rows = [row async for row in stream]
    assert len(rows) == 20
    assert executor.executions == 3  # third batch is empty
