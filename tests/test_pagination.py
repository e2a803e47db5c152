import asyncio
import pytest

from pagestate.batch import Query
from pagestate.error import ExecutionError, InvalidPageNumber
from pagestate.memory import MemoryExecutor
from pagestate.pagination import (
    ForwardPager,
    ForwardRequest,
    RandomAccessPager,
    RandomRequest,
    paginate,
    parse_page,
)
from pagestate.token import decode_token, encode_token


def _executor(count):
    return MemoryExecutor({"id": n, "name": f"user{n}"} for n in range(count))


def _ids(rows):
    return [row["id"] for row in rows]


def _query(batch_size):
    return Query("SELECT id, name FROM users", batch_size=batch_size)


# ----- random access -----


async def test_random_page_within_first_batch():
    executor = _executor(100)
    pager = RandomAccessPager(executor, 10)
    page = await pager.fetch(_query(60), 3)
    assert _ids(page.items) == list(range(20, 30))
    assert page.number == 3
    assert page.has_next
    assert executor.executions == 1  # no batch skipped


async def test_random_page_skips_batch():
    executor = _executor(100)
    pager = RandomAccessPager(executor, 10)
    page = await pager.fetch(_query(60), 9)
    assert _ids(page.items) == list(range(80, 90))
    assert executor.executions == 2


async def test_random_skip_to_positions_stream():
    executor = _executor(100)
    pager = RandomAccessPager(executor, 10)
    stream = await pager.skip_to(_query(60), 9)
    assert stream.available_without_fetching == 20  # row-scanned 20 of 40 rows in batch
    assert (await stream.__anext__())["id"] == 80


async def test_random_batch_reaching_target_is_not_skipped():
    executor = _executor(100)
    pager = RandomAccessPager(executor, 10)
    page = await pager.fetch(_query(60), 7)  # target row 60 is first row of second batch
    assert _ids(page.items) == list(range(60, 70))
    assert executor.executions == 2


async def test_random_page_straddles_batches():
    executor = _executor(100)
    pager = RandomAccessPager(executor, 7)
    page = await pager.fetch(_query(60), 9)  # rows 56 to 62
    assert _ids(page.items) == list(range(56, 63))


async def test_random_last_partial_page():
    executor = _executor(95)
    pager = RandomAccessPager(executor, 10)
    page = await pager.fetch(_query(60), 10)
    assert _ids(page.items) == list(range(90, 95))
    assert not page.has_next


async def test_random_last_full_page():
    executor = _executor(100)
    pager = RandomAccessPager(executor, 10)
    page = await pager.fetch(_query(60), 10)
    assert _ids(page.items) == list(range(90, 100))
    assert not page.has_next


async def test_random_past_end():
    pager = RandomAccessPager(_executor(100), 10)
    for number in (11, 12, 1000):
        page = await pager.fetch(_query(60), number)
        assert page.items == []
        assert not page.has_next


async def test_random_past_end_exact_multiple():
    pager = RandomAccessPager(_executor(120), 10)
    page = await pager.fetch(_query(60), 13)
    assert page.items == []


async def test_random_empty():
    pager = RandomAccessPager(_executor(0), 10)
    page = await pager.fetch(_query(60), 1)
    assert page.items == []
    assert not page.has_next


@pytest.mark.parametrize("page_size", [1, 3, 10, 25])
@pytest.mark.parametrize("batch_size", [1, 7, 10, 60, 500])
async def test_random_every_page(page_size, batch_size):
    count = 100
    pager = RandomAccessPager(_executor(count), page_size)
    for number in range(1, count // page_size + 1):
        page = await pager.fetch(_query(batch_size), number)
        start = (number - 1) * page_size
        assert _ids(page.items) == list(range(start, start + page_size))


async def test_random_idempotent():
    pager = RandomAccessPager(_executor(100), 10)
    first = await pager.fetch(_query(60), 5)
    second = await pager.fetch(_query(60), 5)
    assert _ids(first.items) == _ids(second.items)


async def test_random_ignores_query_token():
    executor = _executor(100)
    pager = RandomAccessPager(executor, 10)
    batch = await executor.execute(_query(60))
    page = await pager.fetch(_query(60).resume(batch.token), 1)
    assert _ids(page.items) == list(range(0, 10))


async def test_random_concurrent():
    pager = RandomAccessPager(_executor(100), 10)
    pages = await asyncio.gather(*(pager.fetch(_query(7), n) for n in range(1, 11)))
    for number, page in enumerate(pages, 1):
        start = (number - 1) * 10
        assert _ids(page.items) == list(range(start, start + 10))


async def test_random_invalid_page():
    pager = RandomAccessPager(_executor(100), 10)
    for number in (0, -1):
        with pytest.raises(InvalidPageNumber):
            await pager.fetch(_query(60), number)


def test_random_invalid_page_size():
    with pytest.raises(ValueError):
        RandomAccessPager(_executor(100), 0)


async def test_random_execution_error_propagates():
    class Flaky(MemoryExecutor):
        async def execute(self, query):
            if query.token is not None:
                raise ExecutionError("connection reset")
            return await super().execute(query)

    pager = RandomAccessPager(Flaky({"id": n} for n in range(100)), 10)
    assert _ids((await pager.fetch(_query(60), 1)).items) == list(range(10))
    with pytest.raises(ExecutionError):
        await pager.fetch(_query(60), 9)


# ----- forward -----


async def test_forward_first_batch():
    pager = ForwardPager(_executor(25))
    batch = await pager.fetch(_query(10))
    assert _ids(batch.rows) == list(range(10))
    assert not batch.exhausted


async def test_forward_across_transport():
    executor = _executor(25)
    pager = ForwardPager(executor)
    first = await pager.fetch(_query(10))
    second = await pager.fetch_encoded(_query(10), encode_token(first.token))
    assert second.rows[0]["id"] == first.rows[-1]["id"] + 1
    assert executor.executions == 2


async def test_forward_all_batches():
    pager = ForwardPager(_executor(25))
    ids = []
    token = None
    while True:
        batch = await pager.fetch_encoded(_query(10), token)
        ids.extend(_ids(batch.rows))
        if batch.exhausted:
            break
        token = encode_token(batch.token)
    assert ids == list(range(25))


async def test_forward_malformed_token_starts_over():
    pager = ForwardPager(_executor(25))
    batch = await pager.fetch_encoded(_query(10), "not a token!")
    assert _ids(batch.rows) == list(range(10))


async def test_forward_empty_string_starts_over():
    pager = ForwardPager(_executor(25))
    batch = await pager.fetch_encoded(_query(10), "")
    assert _ids(batch.rows) == list(range(10))


async def test_forward_exact_multiple():
    pager = ForwardPager(_executor(20))
    first = await pager.fetch(_query(10))
    second = await pager.fetch(_query(10), decode_token(encode_token(first.token)))
    assert not second.exhausted
    last = await pager.fetch(_query(10), second.token)
    assert last.available_without_fetching == 0
    assert last.exhausted


async def test_forward_page():
    pager = ForwardPager(_executor(15))
    page = await pager.page(_query(10))
    assert _ids(page.items) == list(range(10))
    assert page.has_next
    page = await pager.page(_query(10), page.cursor)
    assert _ids(page.items) == list(range(10, 15))
    assert not page.has_next
    assert page.cursor is None


async def test_forward_foreign_token():
    executor = _executor(25)
    pager = ForwardPager(executor)
    batch = await pager.fetch(Query("SELECT id FROM groups", batch_size=10))
    with pytest.raises(ExecutionError):
        await pager.fetch(_query(10), batch.token)


# ----- paginate -----


async def test_paginate():
    rows = [row async for row in paginate(_executor(95), _query(10))]
    assert _ids(rows) == list(range(95))


async def test_paginate_from_token():
    executor = _executor(95)
    batch = await executor.execute(_query(10))
    rows = [row async for row in paginate(executor, _query(10).resume(batch.token))]
    assert _ids(rows) == list(range(10, 95))


# ----- requests -----


def test_parse_page():
    assert parse_page("3") == 3
    assert parse_page(" 12 ") == 12


@pytest.mark.parametrize(
    "value", [None, "", "0", "-2", "+3", "abc", "1.5", "3_0", "\u0661\u0662", "1e3"]
)
def test_parse_page_invalid(value):
    with pytest.raises(InvalidPageNumber):
        parse_page(value)


def test_page_requests():
    assert ForwardRequest().token is None
    assert RandomRequest().page == 1
    with pytest.raises(InvalidPageNumber):
        RandomRequest(0)
