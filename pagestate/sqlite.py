"""Module to execute queries in batches against a SQLite database."""

import aiosqlite
import asyncio
import contextvars
import logging
import sqlite3
import uuid

from collections.abc import Iterable, Mapping
from contextlib import asynccontextmanager
from pagestate.batch import (
    Executor,
    Query,
    ResultBatch,
    execution,
    make_row,
    offset_token,
    token_offset,
)
from pagestate.codec import Codec, StringCodec
from typing import Any


_logger = logging.getLogger(__name__)


class Database:
    """
    Manages access to a SQLite database.

    Parameter:
    • path: path to SQLite database file

    A connection is established on demand, and is shared by all statements executed in the
    same task within a `connection` context.
    """

    __slots__ = {"path", "_conn", "_txn", "_task"}

    def __init__(self, path: str):
        self.path = path
        self._conn = contextvars.ContextVar("pagestate_sqlite_conn", default=None)
        self._txn = contextvars.ContextVar("pagestate_sqlite_txn", default=None)
        self._task = contextvars.ContextVar("pagestate_sqlite_task", default=None)

    def __repr__(self):
        return f"Database({self.path!r})"

    @asynccontextmanager
    async def connection(self):
        """Return an asynchronous context manager that scopes a database connection."""
        task = asyncio.current_task()
        if self._conn.get() and self._task.get() is task:
            yield self._conn.get()  # connection already established
            return
        _logger.debug("open connection")
        task_token = self._task.set(task)
        connection = await aiosqlite.connect(self.path)
        connection.row_factory = sqlite3.Row
        conn_token = self._conn.set(connection)
        try:
            yield connection
        finally:
            _logger.debug("close connection")
            self._conn.reset(conn_token)
            self._task.reset(task_token)
            try:
                await connection.close()
            except Exception:
                _logger.exception("error closing connection")

    @asynccontextmanager
    async def transaction(self):
        """
        Return an asynchronous context manager that scopes a transaction. Upon exit of the
        context, if an exception was raised, changes are rolled back; otherwise changes are
        committed.
        """
        txid = f"_{uuid.uuid4().hex}"
        _logger.debug("transaction begin %s", txid)
        outermost = self._txn.get() is None
        token = self._txn.set(txid)
        async with self.connection() as connection:
            await connection.execute(f"SAVEPOINT {txid};")
            try:
                yield connection
            except Exception:
                _logger.debug("transaction rollback %s", txid)
                await connection.execute(f"ROLLBACK TO SAVEPOINT {txid};")
                await connection.execute(f"RELEASE SAVEPOINT {txid};")
                raise
            else:
                _logger.debug("transaction commit %s", txid)
                await connection.execute(f"RELEASE SAVEPOINT {txid};")
                if outermost:
                    await connection.commit()
            finally:
                self._txn.reset(token)

    async def execute(self, statement: str, params: Iterable[Any] = ()) -> None:
        """Execute a statement that produces no results. Must be called in a transaction."""
        if not self._txn.get():
            raise RuntimeError("transaction context required to execute statement")
        await self._conn.get().execute(statement, tuple(params))

    async def executemany(self, statement: str, params: Iterable[Iterable[Any]]) -> None:
        """Execute a statement for each set of parameters. Must be called in a transaction."""
        if not self._txn.get():
            raise RuntimeError("transaction context required to execute statement")
        await self._conn.get().executemany(statement, [tuple(p) for p in params])


class SQLiteExecutor(Executor):
    """
    Executor that runs queries against a SQLite database, fetching one batch per execution.

    Parameters:
    • database: database to query
    • column_types: Python types of columns stored as TEXT that should be decoded

    The query statement must be a SELECT statement without a trailing semicolon; it is
    executed as a subquery limited to the batch size, starting at the offset carried by the
    continuation token. A token is issued whenever a batch is full.
    """

    __slots__ = {"database", "codecs"}

    def __init__(self, database: Database, column_types: Mapping[str, Any] | None = None):
        self.database = database
        self.codecs: dict[str, Codec] = {
            name: StringCodec.get(python_type)
            for name, python_type in (column_types or {}).items()
        }

    def _decode(self, row: sqlite3.Row):
        for name in row.keys():
            value = row[name]
            codec = self.codecs.get(name)
            if codec is not None and isinstance(value, str):
                value = codec.decode(value)
            yield name, value

    @execution
    async def execute(self, query: Query) -> ResultBatch:
        offset = token_offset(query)
        text = f"SELECT * FROM ({query.statement.strip().rstrip(';')}) LIMIT ? OFFSET ?;"
        async with self.database.connection() as connection:
            async with connection.execute(
                text, (*query.params, query.batch_size, offset)
            ) as cursor:
                rows = tuple(make_row(self._decode(row)) for row in await cursor.fetchall())
        token = (
            offset_token(query, offset + len(rows)) if len(rows) == query.batch_size else None
        )
        return ResultBatch(rows=rows, token=token)
