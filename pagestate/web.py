"""
Module to browse the rows of a query through a web page.

A single route serves two navigation modes, selected by query string parameter:

  • token: forward mode; the value is an encoded continuation token, or empty for the first
    page. A malformed token also yields the first page. Each page is one batch.

  • page: random-access mode; the value is a 1-indexed page number. This is the default
    mode; an absent, malformed or non-positive page number yields page 1.
"""

import logging

from pagestate.batch import Executor, Query
from pagestate.error import InvalidPageNumber, MalformedTokenError
from pagestate.http import Query as QueryString
from pagestate.http import Request, Response
from pagestate.pagination import (
    ForwardPager,
    ForwardRequest,
    PageRequest,
    RandomAccessPager,
    RandomRequest,
    parse_page,
)
from pagestate.render import link, page
from pagestate.stream import TextStream
from pagestate.token import decode_token, encode_token


_logger = logging.getLogger(__name__)


def page_request(query: QueryString) -> PageRequest:
    """Return the page request expressed by query string parameters."""
    if "token" in query:
        value = query["token"]
        if not value:
            return ForwardRequest()
        try:
            return ForwardRequest(decode_token(value))
        except MalformedTokenError as mte:
            _logger.warning("malformed token; starting from first page: %s", mte)
            return ForwardRequest()
    try:
        return RandomRequest(parse_page(query.get("page")))
    except InvalidPageNumber as ipn:
        _logger.debug("%s; defaulting to page 1", ipn)
        return RandomRequest(1)


class PageHandler:
    """
    HTTP request handler that renders a page of query results as an HTML fragment.

    Parameters:
    • executor: executor to run the query with
    • statement: statement of the query to browse
    • path: path of the route, used in links
    • items_per_page: rows displayed in each page; also the batch size in forward mode
    • fetch_size: batch size in random-access mode
    • columns: names of the columns to display  [all columns]

    The handler holds no per-request state; it can serve concurrent requests.
    """

    __slots__ = {"statement", "path", "fetch_size", "columns", "forward", "random"}

    def __init__(
        self,
        executor: Executor,
        statement: str,
        *,
        path: str = "/users",
        items_per_page: int = 10,
        fetch_size: int = 60,
        columns: list[str] | None = None,
    ):
        self.statement = statement
        self.path = path
        self.fetch_size = fetch_size
        self.columns = columns
        self.forward = ForwardPager(executor)
        self.random = RandomAccessPager(executor, items_per_page)

    async def __call__(self, request: Request) -> Response:
        match page_request(request.query):
            case ForwardRequest(token=token):
                fragments = await self._forward(token)
            case RandomRequest(page=number):
                fragments = await self._random(number)
        response = Response()
        response.set_body(TextStream(fragments))
        return response

    async def _forward(self, token: bytes | None) -> list[str]:
        query = Query(self.statement, batch_size=self.random.page_size)
        batch = await self.forward.fetch(query, token)
        next = None
        if not batch.exhausted:
            next = link(self.path, "Next", token=encode_token(batch.token))
        # an empty batch is either an empty result or the end of an exact multiple of pages
        rows = list(batch.rows)
        return list(page(rows, next=next, columns=self.columns))

    async def _random(self, number: int) -> list[str]:
        query = Query(self.statement, batch_size=self.fetch_size)
        result = await self.random.fetch(query, number)
        previous = link(self.path, "Previous", page=number - 1) if number > 1 else None
        next = link(self.path, "Next", page=number + 1) if result.has_next else None
        return list(page(result.items, previous=previous, next=next, columns=self.columns))
