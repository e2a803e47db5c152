"""Module to execute queries over rows held in memory."""

from collections.abc import Iterable, Mapping
from pagestate.batch import (
    Executor,
    Query,
    ResultBatch,
    execution,
    make_row,
    offset_token,
    token_offset,
)
from typing import Any


class MemoryExecutor(Executor):
    """
    Executor that serves a fixed sequence of rows, regardless of query statement.

    Parameters:
    • rows: rows to serve, in order

    A continuation token is issued whenever a batch is full. If the number of rows is an exact
    multiple of the batch size, the final batch is therefore empty.

    Attributes:
    • executions: number of times a query was executed
    """

    __slots__ = {"rows", "executions"}

    def __init__(self, rows: Iterable[Mapping[str, Any]] = ()):
        self.rows = tuple(make_row(row) for row in rows)
        self.executions = 0

    @execution
    async def execute(self, query: Query) -> ResultBatch:
        offset = token_offset(query)
        stop = offset + query.batch_size
        rows = self.rows[offset:stop]
        self.executions += 1
        token = offset_token(query, stop) if len(rows) == query.batch_size else None
        return ResultBatch(rows=rows, token=token)
