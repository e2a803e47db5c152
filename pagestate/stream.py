"""Module for binary content streaming."""

from collections.abc import AsyncIterator, Iterable


class Stream(AsyncIterator[bytes]):
    """
    Base class to provide binary content through an asynchronous stream of byte chunks.

    Attributes:
    • content_type: the media (MIME) type of the stream
    • content_length: the length of the content, or None if unknown
    """

    def __init__(self, content_type: str, content_length: int | None = None):
        self.content_type = content_type
        self.content_length = content_length

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()

    def __aiter__(self):
        return self

    async def __anext__(self) -> bytes:
        raise NotImplementedError

    async def close(self) -> None:
        """Close the stream. It is not an error to close a stream more than once."""
        raise NotImplementedError


class BytesStream(Stream):
    """
    Represents a bytes object as an asynchronous byte stream. All content is returned in a
    single iteration.

    Parameters:
    • content: the data to be streamed
    • content_type: the MIME type of the data to be streamed
    """

    def __init__(self, content: bytes, content_type: str = "application/octet-stream"):
        super().__init__(content_type=content_type, content_length=len(content))
        self.content = content

    async def __anext__(self) -> bytes:
        if self.content is None:
            raise StopAsyncIteration
        result = self.content
        self.content = None
        return result

    async def close(self):
        self.content = None


class TextStream(Stream):
    """
    Streams text fragments, each encoded as UTF-8 as it is iterated. The content length is
    computed up front.

    Parameters:
    • fragments: text fragments to be streamed
    • content_type: the MIME type of the text
    """

    def __init__(self, fragments: Iterable[str], content_type: str = "text/html; charset=UTF-8"):
        self._chunks = [f.encode() for f in fragments if f]
        super().__init__(content_type, sum(len(c) for c in self._chunks))

    async def __anext__(self) -> bytes:
        if not self._chunks:
            raise StopAsyncIteration
        return self._chunks.pop(0)

    async def close(self):
        self._chunks = []


async def stream_bytes(stream: Stream | None) -> bytes:
    """Read and return all content of a stream; None is read as no content."""
    if stream is None:
        return b""
    return b"".join([chunk async for chunk in stream])
