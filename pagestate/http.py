"""Module to handle HTTP requests."""

import html
import http
import logging
import multidict

from collections.abc import Awaitable, Callable, Iterable, Mapping
from pagestate.error import Error, InternalServerError, MethodNotAllowedError, NotFoundError
from pagestate.stream import BytesStream, Stream


_logger = logging.getLogger(__name__)


Headers = multidict.CIMultiDict
Query = multidict.MultiDict

Handler = Callable[["Request"], Awaitable["Response"]]


class Message:
    """
    Base class for HTTP request and response.

    Parameters and attributes:
    • headers: multi-value dictionary to store headers
    • body: stream message body, or None if no body
    """

    def __init__(self, *, headers: Headers | None = None, body: Stream | None = None):
        super().__init__()
        self.headers = headers or Headers()
        self.body = body

    def __repr__(self):
        return f"Message(headers={self.headers}, body={self.body})"


class Request(Message):
    """
    HTTP request.

    Parameters and attributes:
    • headers: multi-value dictionary to store headers
    • body: stream for request body, or None
    • method: the HTTP method name, in upper case
    • path: HTTP request target excluding query string
    • version: version of the incoming HTTP request
    • query: multi-value dictionary to store query string parameters
    """

    def __init__(
        self,
        *,
        headers: Headers | None = None,
        body: Stream | None = None,
        method: str = "GET",
        path: str = "/",
        version: str = "1.1",
        query: Query | None = None,
    ):
        super().__init__(headers=headers, body=body)
        self.method = method
        self.path = path
        self.version = version
        self.query = query or Query()

    def __repr__(self):
        return (
            f"Request(headers={self.headers}, body={self.body}, method={self.method}, "
            f"path={self.path}, version={self.version}, query={self.query})"
        )


class Response(Message):
    """
    HTTP response.

    Parameters and attributes:
    • headers: multi-value dictionary to store headers
    • body: stream for response body, or None
    • status: HTTP status code
    """

    def __init__(
        self,
        *,
        headers: Headers | None = None,
        body: Stream | None = None,
        status: int = http.HTTPStatus.OK.value,
    ):
        super().__init__(headers=headers, body=body)
        self.status = status

    def __repr__(self):
        return f"Response(headers={self.headers}, body={self.body}, status={self.status})"

    def set_body(self, body: Stream) -> None:
        """Set the response body, along with its content type and length headers."""
        self.body = body
        self.headers["Content-Type"] = body.content_type
        if body.content_length is not None:
            self.headers["Content-Length"] = str(body.content_length)


class Chain:
    """
    A request handler wrapped in zero or more filters. A chain is itself a request handler.

    A filter is an asynchronous generator function that is called with the request and yields
    once before the request is handled:
    • yield no value to pass the request down the chain
    • yield a response to answer the request; downstream filters and the handler are skipped

    Filters that passed the request are resumed in reverse order. The response of the handler
    is sent into each at its yield expression, or the exception it raised is thrown there. A
    resumed filter can yield a response to replace the outcome, raise to replace it with an
    exception, or return to leave it unchanged.

    Parameters and attributes:
    • handler: handler that the chain terminates in
    • filters: filters to wrap the handler in, outermost first
    """

    def __init__(self, handler: Handler, filters: Iterable[Callable] = ()):
        self.handler = handler
        self.filters = list(filters)

    async def __call__(self, request: Request) -> Response:
        passed = []
        response = None
        exception = None
        try:
            for filter in self.filters:
                gen = filter(request)
                response = await anext(gen, None)
                if response is not None:
                    await gen.aclose()
                    break
                passed.append(gen)
            else:
                response = await self.handler(request)
        except Exception as e:
            exception = e
        for gen in reversed(passed):
            try:
                if exception is not None:
                    replacement = await gen.athrow(exception)
                else:
                    replacement = await gen.asend(response)
            except StopAsyncIteration:
                continue
            except Exception as e:
                response, exception = None, e
                continue
            finally:
                await gen.aclose()
            if replacement is not None:
                response, exception = replacement, None
        if exception is not None:
            raise exception
        return response


def _error_response(status: int, text: str, content_type: str) -> Response:
    response = Response(status=status)
    response.set_body(BytesStream(text.encode(), content_type))
    return response


async def error_filter(request: Request):
    """
    Generates an error response if an exception is raised.

    HTTP errors produce a plain text response with their status. Any other exception is
    logged and produces an internal server error response whose body includes the exception
    message. Exposing the message is suitable for demonstration only.
    """
    try:
        yield
    except Error as err:
        yield _error_response(
            err.status, str(err) or err.phrase, "text/plain; charset=UTF-8"
        )
    except Exception as e:
        _logger.exception("unhandled exception")
        yield _error_response(
            InternalServerError.status,
            f"Server error: {html.escape(str(e) or e.__class__.__name__)}",
            "text/html; charset=UTF-8",
        )


class Application:
    """
    An HTTP application, which handles incoming HTTP requests by:
    • passing request through zero or more HTTP filters, and
    • dispatching it to the handler routed by request path.

    Parameters and attributes:
    • routes: mapping of request paths to handlers
    • filters: filters to apply during HTTP request processing
    • methods: HTTP methods that handlers accept

    An HTTP application is a request handler; it's a coroutine callable that handles an HTTP
    request and returns an HTTP response. For a description of filters, see: Chain.
    """

    def __init__(
        self,
        routes: Mapping[str, Handler],
        *,
        filters: Iterable[Callable] = (error_filter,),
        methods: Iterable[str] = ("GET", "HEAD"),
    ):
        self.routes = {path.rstrip("/") or "/": handler for path, handler in routes.items()}
        self.filters = list(filters or [])
        self.methods = {m.upper() for m in methods}

    async def __call__(self, request: Request) -> Response:
        return await Chain(self._handle, self.filters)(request)

    async def _handle(self, request: Request) -> Response:
        handler = self.routes.get(request.path.rstrip("/") or "/")
        if handler is None:
            raise NotFoundError(request.path)
        if request.method.upper() not in self.methods:
            raise MethodNotAllowedError(request.method)
        response = await handler(request)
        if request.method.upper() == "HEAD":
            response.body = None
        return response
