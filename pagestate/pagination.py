"""
Module to paginate the results of a forward-only, batch-oriented query executor.

Two ways of navigating pages are supported:

  • forward: each page is exactly one batch. The caller passes no token to get the first
    page, then the token of each page to get the next one. All continuation state travels
    with the caller in the token; nothing is kept between requests.

  • random access: each request names a page number. The query is executed again from the
    first row; batches that end strictly before the first row of the requested page are
    skipped without reading their rows, then rows of the batch that contains the target are
    consumed one at a time until the stream is positioned on the target row.

Random access costs O(T) row touches and O(T / batch size) round trips for a target row
index T, and every request pays it again. Page numbers past the end of the results yield
an empty page.

Pagers keep no per-request state on the instance; a single pager can serve many concurrent
requests.
"""

import logging

from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass
from pagestate.batch import Executor, Query, ResultBatch, ResultStream, Row
from pagestate.error import InvalidPageNumber, MalformedTokenError
from pagestate.token import decode_token
from typing import Generic, TypeVar


_logger = logging.getLogger(__name__)


Item = TypeVar("Item")


@dataclass
class Page(Generic[Item]):
    """
    A page of items.

    Attributes:
    • items: items in the page
    • number: 1-indexed page number, or None for a forward page
    • cursor: continuation token to request the next forward page, or None
    • has_next: True if a subsequent page may contain items
    """

    items: Iterable[Item]
    number: int | None = None
    cursor: bytes | None = None
    has_next: bool = False


@dataclass
class ForwardRequest:
    """Request for the page that follows a token; a None token requests the first page."""

    token: bytes | None = None


@dataclass
class RandomRequest:
    """Request for a page by its 1-indexed number."""

    page: int = 1

    def __post_init__(self):
        validate_page(self.page)


PageRequest = ForwardRequest | RandomRequest


def validate_page(page: int) -> int:
    """Return page number if it is a positive integer; otherwise raise InvalidPageNumber."""
    if not isinstance(page, int) or isinstance(page, bool) or page < 1:
        raise InvalidPageNumber(f"invalid page number: {page!r}")
    return page


def parse_page(value: str | None) -> int:
    """
    Parse a page number from a string.

    Only ASCII decimal digits are accepted, optionally surrounded by whitespace. Raises
    InvalidPageNumber if the value is absent, not such a number or not positive.
    """
    if value is None:
        raise InvalidPageNumber("no page number")
    digits = value.strip()
    if not (digits.isascii() and digits.isdigit()):
        raise InvalidPageNumber(f"invalid page number: {value!r}")
    return validate_page(int(digits))


class ForwardPager:
    """
    Pager that returns one batch per page, following continuation tokens.

    Parameters:
    • executor: executor to run queries with
    """

    __slots__ = {"executor"}

    def __init__(self, executor: Executor):
        self.executor = executor

    async def fetch(self, query: Query, token: bytes | None = None) -> ResultBatch:
        """
        Execute the query exactly once, resuming from the specified token, and return the
        resulting batch.

        Parameters:
        • query: query to execute
        • token: continuation token from a previous batch, or None for the first batch
        """
        return await self.executor.execute(query.resume(token))

    async def fetch_encoded(self, query: Query, value: str | None = None) -> ResultBatch:
        """
        Execute the query once, resuming from a token in its string representation. A missing
        or malformed value requests the first batch.
        """
        token = None
        if value:
            try:
                token = decode_token(value)
            except MalformedTokenError as mte:
                _logger.warning("malformed token; starting from first batch: %s", mte)
        return await self.fetch(query, token)

    async def page(self, query: Query, token: bytes | None = None) -> Page[Row]:
        """Return the batch that follows the token as a page."""
        batch = await self.fetch(query, token)
        return Page(items=list(batch.rows), cursor=batch.token, has_next=not batch.exhausted)


class RandomAccessPager:
    """
    Pager that emulates access to any page number by scanning from the first row.

    Parameters:
    • executor: executor to run queries with
    • page_size: number of rows to display in each page
    """

    __slots__ = {"executor", "page_size"}

    def __init__(self, executor: Executor, page_size: int):
        if page_size < 1:
            raise ValueError("page size must be at least 1")
        self.executor = executor
        self.page_size = page_size

    async def skip_to(self, query: Query, page: int) -> ResultStream:
        """
        Return a stream of the query's rows, positioned at the first row of the specified
        page. If the page is past the end of the results, the stream is exhausted.

        Parameters:
        • query: query to execute; any continuation token it carries is ignored
        • page: 1-indexed page number
        """
        validate_page(page)
        target = (page - 1) * self.page_size
        query = query.resume(None)
        batch = await self.executor.execute(query)
        current = 0  # absolute index of the next row in the stream
        # a batch that reaches or straddles the target must be scanned, not skipped
        while (
            batch.available_without_fetching > 0
            and not batch.exhausted
            and current + batch.available_without_fetching < target
        ):
            current += batch.available_without_fetching
            _logger.debug("skipped batch; current row %d, target row %d", current, target)
            batch = await self.executor.execute(query.resume(batch.token))
        stream = ResultStream(self.executor, query, batch)
        while current < target:
            try:
                await stream.__anext__()
            except StopAsyncIteration:
                _logger.debug("page %d is past the end at row %d", page, current)
                break
            current += 1
        return stream

    async def fetch(self, query: Query, page: int) -> Page[Row]:
        """
        Return the rows of the specified page. A page past the end of the results is empty.

        Parameters:
        • query: query to execute
        • page: 1-indexed page number
        """
        stream = await self.skip_to(query, page)
        items = await stream.take(self.page_size)
        return Page(items=items, number=page, has_next=bool(items) and not stream.exhausted)


async def paginate(executor: Executor, query: Query, /) -> AsyncIterator[Row]:
    """
    Asynchronous generator that iterates through all rows of a query, batch by batch.

    Parameters:
    • executor: executor to run the query with
    • query: query to execute; if it carries a token, iteration begins there
    """
    stream = ResultStream(executor, query, await executor.execute(query))
    async for row in stream:
        yield row
