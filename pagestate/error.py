"""
Error module.

Two families of errors are defined here:

  • pagination errors, raised by the token codec, the pagers and query executors
  • HTTP errors, raised while handling a request and rendered as a response status

Pagination errors are request-scoped. A malformed token or an invalid page number is
recovered locally by the caller; an execution error is not recovered by the pagination core
and propagates to the HTTP boundary.
"""

import http


# ----- pagination -----


class PagingError(Exception):
    """Base class for pagination errors."""


class MalformedTokenError(PagingError, ValueError):
    """
    Error raised if a continuation token string cannot be decoded. Callers treat this as
    "start of stream", never as fatal.
    """


class InvalidPageNumber(PagingError, ValueError):
    """Error raised if a page number is not a positive integer."""


class ExecutionError(PagingError):
    """
    Error raised by a query executor in the event of a network, protocol or storage fault.
    This error is not handled by pagers.
    """


# ----- http -----


class Error(Exception):
    """
    Base class for HTTP errors.

    All error classes must include the following attributes:
    • status: HTTP status code (int)
    • phrase: HTTP reason phrase
    """


class ClientError(Error):
    """Base class for client errors."""


class ServerError(Error):
    """Base class for server errors."""


def _error(status: http.HTTPStatus, base: type[Error]) -> type[Error]:
    name = "".join(w.title() for w in status.name.split("_"))
    if not name.endswith("Error"):
        name += "Error"
    return type(
        name,
        (base,),
        {
            "status": status.value,
            "phrase": status.phrase,
            "__doc__": f"{status.description}.",
            "__module__": __name__,
        },
    )


BadRequestError = _error(http.HTTPStatus.BAD_REQUEST, ClientError)
NotFoundError = _error(http.HTTPStatus.NOT_FOUND, ClientError)
MethodNotAllowedError = _error(http.HTTPStatus.METHOD_NOT_ALLOWED, ClientError)
InternalServerError = _error(http.HTTPStatus.INTERNAL_SERVER_ERROR, ServerError)


# errors raised while routing and handling requests, by status code
errors: dict[int, type[Error]] = {
    e.status: e
    for e in (BadRequestError, NotFoundError, MethodNotAllowedError, InternalServerError)
}
