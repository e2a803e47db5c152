"""Module to expose an HTTP request handler through ASGI."""

import logging
import urllib.parse

from collections.abc import Awaitable, Callable, Mapping
from pagestate.http import Handler, Query, Request
from pagestate.stream import Stream


_logger = logging.getLogger(__name__)


def _int(s: str | bytes | None) -> int | None:
    if s is None:
        return None
    try:
        return int(s)
    except ValueError:
        return None


class ReceiveStream(Stream):
    """Stream that encapsulates the ASGI receive interface."""

    def __init__(self, scope: Mapping, receive: Callable[[], Awaitable[dict]]):
        content_type = "application/octet-stream"
        content_length = None
        for key, value in scope.get("headers") or ():
            if key == b"content-type":
                content_type = value.decode()
            elif key == b"content-length":
                content_length = _int(value)
        super().__init__(content_type, content_length)
        self._receive = receive
        self._more = True

    async def __anext__(self) -> bytes:
        if not self._more:
            raise StopAsyncIteration
        event = await self._receive()
        event_type = event["type"]
        if event_type == "http.disconnect":
            self._more = False
            raise StopAsyncIteration
        if event_type != "http.request":
            raise RuntimeError(f"expecting http.request event type; received {event_type}")
        self._more = event.get("more_body", False)
        return event.get("body", b"")

    async def close(self):
        self._more = False


def asgi_app(
    handler: Handler,
    startup: Callable[[], Awaitable[None]] | None = None,
    shutdown: Callable[[], Awaitable[None]] | None = None,
) -> Callable:
    """
    Expose an HTTP request handler as an ASGI application.

    Parameters:
    • handler: HTTP handler coroutine function
    • startup: lifespan startup coroutine function
    • shutdown: lifespan shutdown coroutine function

    The startup and shutdown coroutine functions are called in response to ASGI lifespan
    protocol events. This allows the application to initialize and shut down in the context of
    a running event loop.
    """

    async def lifespan(scope, receive, send):
        while True:
            message = await receive()
            lifespan_type = message["type"]
            try:
                if lifespan_type == "lifespan.startup":
                    if startup is not None:
                        await startup()
                elif lifespan_type == "lifespan.shutdown":
                    if shutdown is not None:
                        await shutdown()
                else:
                    raise RuntimeError(f"unknown ASGI lifespan type: {lifespan_type}")
            except Exception as e:
                _logger.exception("ASGI %s failed", lifespan_type)
                await send({"type": f"{lifespan_type}.failed", "message": str(e)})
                raise
            await send({"type": f"{lifespan_type}.complete"})
            if lifespan_type == "lifespan.shutdown":
                return

    async def http(scope, receive, send):
        request = Request(
            method=scope["method"],
            path=scope["path"],
            version=scope.get("http_version", "1.1"),
            query=Query(
                urllib.parse.parse_qsl(
                    (scope.get("query_string") or b"").decode(), keep_blank_values=True
                )
            ),
        )
        for key, value in scope.get("headers") or ():
            request.headers.add(key.decode(), value.decode())
        request.body = ReceiveStream(scope, receive)
        response = await handler(request)
        headers = [(k.lower().encode(), v.encode()) for k, v in response.headers.items()]
        await send(
            {
                "type": "http.response.start",
                "status": response.status,
                "headers": headers,
            }
        )
        if response.body is not None:
            async for chunk in response.body:
                await send({"type": "http.response.body", "body": chunk, "more_body": True})
        await send({"type": "http.response.body", "more_body": False})

    async def app(scope, receive, send):
        """Coroutine that implements ASGI interface."""
        scope_type = scope["type"]
        if scope_type == "http":
            return await http(scope, receive, send)
        elif scope_type == "lifespan":
            return await lifespan(scope, receive, send)
        else:
            raise RuntimeError(f"unknown ASGI scope type: {scope_type}")

    return app
