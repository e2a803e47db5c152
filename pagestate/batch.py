"""
Module to describe queries and the batches of rows they produce.

A query executor runs a query in a forward-only, batch-oriented fashion. Each execution
returns one batch of at most `batch_size` rows, along with an opaque continuation token if
there may be more rows to fetch. Executing the same query again with that token returns the
next batch, starting immediately after the last row of the previous one.

Executors:
  • must implement the `execute` coroutine, returning a ResultBatch
  • raise ExecutionError in the event of a fault; the `execution` decorator converts any
    other exception raised by the wrapped coroutine
  • own the format of continuation tokens; a token is only valid for the query it was
    issued against
"""

import dataclasses
import hashlib
import logging
import struct
import wrapt

from collections.abc import AsyncIterator, Iterable, Mapping
from dataclasses import dataclass
from pagestate.error import ExecutionError
from types import MappingProxyType
from typing import Any


_logger = logging.getLogger(__name__)


Row = Mapping[str, Any]


def make_row(items: Mapping[str, Any] | Iterable[tuple[str, Any]]) -> Row:
    """Return an immutable row from a mapping or iterable of (column, value) pairs."""
    return MappingProxyType(dict(items))


@dataclass(frozen=True)
class Query:
    """
    Immutable description of a statement to execute.

    Attributes:
    • statement: statement text
    • params: values bound to the statement parameters
    • batch_size: maximum number of rows to fetch in each round trip
    • token: continuation token to resume from, or None to start from the first row
    """

    statement: str
    params: tuple[Any, ...] = ()
    batch_size: int = 5000
    token: bytes | None = None

    def __post_init__(self):
        if self.batch_size < 1:
            raise ValueError("batch size must be at least 1")
        object.__setattr__(self, "params", tuple(self.params))

    def resume(self, token: bytes | None) -> "Query":
        """Return a copy of the query that resumes from the specified token."""
        return dataclasses.replace(self, token=token)


@dataclass(frozen=True)
class ResultBatch:
    """
    Rows produced by one execution round trip.

    Attributes:
    • rows: rows in the batch, in the order the executor emitted them
    • token: continuation token to fetch the next batch, or None if there are no more
    """

    rows: tuple[Row, ...] = ()
    token: bytes | None = None

    @property
    def available_without_fetching(self) -> int:
        """Number of rows that can be read without another round trip."""
        return len(self.rows)

    @property
    def exhausted(self) -> bool:
        """True if no further batch can be fetched."""
        return self.token is None


class Executor:
    """Base class for query executors."""

    async def execute(self, query: Query) -> ResultBatch:
        """
        Execute a query, returning the next batch of rows.

        Parameters:
        • query: query to execute; if it carries a token, execution resumes from it

        Raises ExecutionError if the query could not be executed.
        """
        raise NotImplementedError


@wrapt.decorator
async def execution(wrapped, instance, args, kwargs):
    """
    Decorate an executor's `execute` coroutine. Executions are logged, and any exception
    that is not an ExecutionError is raised as one.
    """
    query = args[0] if args else kwargs["query"]
    if _logger.isEnabledFor(logging.DEBUG):
        _logger.debug(
            "execute: %s %r (batch_size=%d, resume=%s)",
            query.statement,
            query.params,
            query.batch_size,
            query.token is not None,
        )
    try:
        batch = await wrapped(*args, **kwargs)
    except ExecutionError:
        raise
    except Exception as e:
        raise ExecutionError(str(e) or e.__class__.__name__) from e
    _logger.debug("fetched %d rows (more=%s)", len(batch.rows), not batch.exhausted)
    return batch


# ----- paging state -----


_offset = struct.Struct(">Q")
_DIGEST_SIZE = 16


def _digest(query: Query) -> bytes:
    return hashlib.sha256(repr((query.statement, query.params)).encode()).digest()[
        :_DIGEST_SIZE
    ]


def offset_token(query: Query, offset: int) -> bytes:
    """
    Return a continuation token for an offset-based executor. The token binds the offset of
    the next row to the statement and parameters of the query.
    """
    return _offset.pack(offset) + _digest(query)


def token_offset(query: Query) -> int:
    """
    Return the offset of the next row encoded in the query's continuation token, or 0 if the
    query has no token.

    Raises ExecutionError if the token was not issued for this query.
    """
    if query.token is None:
        return 0
    token = bytes(query.token)
    if len(token) != _offset.size + _DIGEST_SIZE or token[_offset.size :] != _digest(query):
        raise ExecutionError("paging state mismatch")
    return _offset.unpack(token[: _offset.size])[0]


# ----- streaming -----


class ResultStream(AsyncIterator[Row]):
    """
    Forward-only cursor over the rows of a query, positioned within a current batch.

    When the rows of the current batch are consumed, iterating the stream executes the query
    with the batch's continuation token to fetch the next batch. A stream is created for one
    request and discarded with it.

    Parameters:
    • executor: executor to fetch subsequent batches from
    • query: query that produced the batch
    • batch: current batch
    """

    __slots__ = {"executor", "query", "batch", "_index"}

    def __init__(self, executor: Executor, query: Query, batch: ResultBatch):
        self.executor = executor
        self.query = query
        self.batch = batch
        self._index = 0

    def __repr__(self):
        return (
            f"ResultStream(query={self.query!r}, "
            f"available={self.available_without_fetching}, exhausted={self.exhausted})"
        )

    @property
    def available_without_fetching(self) -> int:
        """Number of unconsumed rows in the current batch."""
        return len(self.batch.rows) - self._index

    @property
    def exhausted(self) -> bool:
        """True if no rows remain in the current batch and no further batch can be fetched."""
        return self.available_without_fetching == 0 and self.batch.exhausted

    async def fetch_more(self) -> None:
        """Replace the current batch with the next one. Unconsumed rows are discarded."""
        if self.batch.exhausted:
            return
        self.batch = await self.executor.execute(self.query.resume(self.batch.token))
        self._index = 0

    def __aiter__(self):
        return self

    async def __anext__(self) -> Row:
        while self._index >= len(self.batch.rows):
            if self.batch.exhausted:
                raise StopAsyncIteration
            await self.fetch_more()
        row = self.batch.rows[self._index]
        self._index += 1
        return row

    async def take(self, count: int) -> list[Row]:
        """Consume and return up to `count` rows."""
        rows = []
        while len(rows) < count:
            try:
                rows.append(await self.__anext__())
            except StopAsyncIteration:
                break
        return rows
