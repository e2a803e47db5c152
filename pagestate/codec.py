"""
Module to support encoding and decoding of values to and from strings.

String codecs are used wherever a Python value crosses a textual boundary: query string
parameters, environment variables, rendered table cells and SQLite TEXT columns.
"""

import base64
import iso8601
import logging
import types
import typing

from collections.abc import Mapping
from contextlib import contextmanager, suppress
from datetime import date, datetime, timezone
from pagestate.types import is_optional, is_subclass, strip_annotations
from types import NoneType
from typing import Any, Generic, TypeVar


_logger = logging.getLogger(__name__)


StringType = str


# ----- utilities -----


@contextmanager
def _wrap(exception):
    try:
        yield
    except Exception as e:
        if isinstance(e, exception):
            raise
        raise exception from e


# ----- errors -----


class CodecError(ValueError):
    """
    Error raised in the event that a value cannot be encoded or decoded.

    Attributes:
    • message: description of the error, or None
    • path: location of the offending value, as a list of names or indexes, or None
    """

    __slots__ = {"message", "path"}

    def __init__(self, message: str | None = None, path: list[str | int] | None = None):
        self.message = message
        self.path = path

    def __repr__(self):
        return f"{self.__class__.__name__}({self.message!r}, {self.path!r})"

    def __str__(self):
        return " ".join(str(s) for s in (self.message, self.path) if s is not None)

    @staticmethod
    @contextmanager
    def path_on_error(path: list[str | int] | str | int):
        """Context manager to add to error path in the event that a CodecError is raised."""
        try:
            yield
        except CodecError as ce:
            if ce.path is None:
                ce.path = []
            match path:
                case str() | int():
                    ce.path.insert(0, path)
                case list():
                    ce.path = path + ce.path
            raise


class EncodeError(CodecError):
    """Error raised if a value cannot be encoded."""


class DecodeError(CodecError):
    """Error raised if a value cannot be decoded."""


# ----- base -----


PT = TypeVar("PT")  # Python type hint
TT = TypeVar("TT")  # target type hint


class Codec(Generic[PT, TT]):
    """Base class for all things encode and decode."""

    def __init__(self, python_type: Any):
        self.python_type = python_type

    @staticmethod
    def handles(python_type: Any) -> bool:
        """Return True if the codec handles the specified Python type."""
        raise NotImplementedError

    @classmethod
    def get(cls, python_type: Any) -> "Codec[PT, TT]":
        """
        Return a codec that handles the specified Python type.

        Codecs are searched for in the direct subclasses of the class this method is called
        on. If the class contains a `_cache` mapping, the resulting codec is cached in it.
        """
        if cls is Codec:
            raise NotImplementedError
        with suppress(AttributeError, KeyError, TypeError):
            return cls._cache[python_type]
        for codec_class in cls.__subclasses__():
            if codec_class.handles(python_type):
                codec = codec_class(python_type)
                cache = getattr(cls, "_cache", None)
                if isinstance(cache, Mapping):
                    with suppress(TypeError):  # unhashable type hint
                        cache[python_type] = codec
                return codec
        raise TypeError(f"no codec for {python_type}")

    def encode(self, value: PT) -> TT:
        """Encode value from Python type to target type."""
        raise NotImplementedError

    def decode(self, value: TT) -> PT:
        """Decode value from target type to Python type."""
        raise NotImplementedError


class StringCodec(Codec[PT, StringType]):
    """Encodes Python types to/from Unicode string representations."""

    _cache = {}


# ----- str -----


class StrStringCodec(StringCodec[str]):
    """String codec for Unicode character strings."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        return is_subclass(python_type, str)

    def encode(self, value: str) -> StringType:
        if not isinstance(value, str):
            raise EncodeError
        return value

    def decode(self, value: StringType) -> str:
        if not isinstance(value, str):
            raise DecodeError
        return value


# ----- bytes/bytearray -----


class BytesStringCodec(StringCodec[bytes | bytearray]):
    """
    String codec for byte sequences. A byte sequence is represented in string values as a
    base64-encoded string. Example: "SGVsbG8gcGFnZXN0YXRl".
    """

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        return is_subclass(python_type, bytes | bytearray)

    def encode(self, value: bytes | bytearray) -> StringType:
        if not isinstance(value, bytes | bytearray):
            raise EncodeError
        return base64.b64encode(value).decode()

    def decode(self, value: StringType) -> bytes | bytearray:
        if not isinstance(value, str):
            raise DecodeError
        with _wrap(DecodeError):
            return base64.b64decode(value, validate=True)


# ----- int -----


class IntStringCodec(StringCodec[int]):
    """String codec for integers."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        return is_subclass(python_type, int) and not is_subclass(python_type, bool)

    def encode(self, value: int) -> StringType:
        if not isinstance(value, int) or isinstance(value, bool):
            raise EncodeError
        return str(value)

    def decode(self, value: StringType) -> int:
        if not isinstance(value, str):
            raise DecodeError
        with _wrap(DecodeError):
            return int(value)


# ----- float -----


class FloatStringCodec(StringCodec[float]):
    """String codec for floating point numbers."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        return is_subclass(python_type, float)

    def encode(self, value: float) -> StringType:
        if not isinstance(value, float):
            raise EncodeError
        return str(value)

    def decode(self, value: StringType) -> float:
        if not isinstance(value, str):
            raise DecodeError
        with _wrap(DecodeError):
            return float(value)


# ----- bool -----


class BoolStringCodec(StringCodec[bool]):
    """String codec for boolean values."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        return is_subclass(python_type, bool)

    def encode(self, value: bool) -> StringType:
        if not isinstance(value, bool):
            raise EncodeError
        return "true" if value else "false"

    def decode(self, value: StringType) -> bool:
        if not isinstance(value, str):
            raise DecodeError
        try:
            return {"true": True, "false": False}[value.lower()]
        except KeyError:
            raise DecodeError


# ----- NoneType -----


class NoneTypeStringCodec(StringCodec[NoneType]):
    """String codec for None value."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        return python_type is NoneType

    def encode(self, value: NoneType) -> StringType:
        if value is not None:
            raise EncodeError
        return ""

    def decode(self, value: StringType) -> NoneType:
        if value != "":
            raise DecodeError
        return None


# ----- date -----


class DateStringCodec(StringCodec[date]):
    """
    String codec for dates. A date is represented in a string in RFC 3339 format.
    Example: "2018-06-16".
    """

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        return is_subclass(python_type, date) and not is_subclass(python_type, datetime)

    def encode(self, value: date) -> StringType:
        if not isinstance(value, date):
            raise EncodeError
        return value.isoformat()

    def decode(self, value: StringType) -> date:
        if not isinstance(value, str):
            raise DecodeError
        with _wrap(DecodeError):
            return date.fromisoformat(value)


# ----- datetime -----


def _to_utc(value):
    if value.tzinfo is None:  # naive value interpreted as UTC
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class DatetimeStringCodec(StringCodec[datetime]):
    """
    String codec for datetime.

    It will decode a datetime represented in an ISO 8601 formatted string. It will encode a
    datetime to an RFC 3339 formatted string. Datetimes always encode and decode to UTC.

    Example: "2020-04-07T12:34:56.789012Z".
    """

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        return is_subclass(python_type, datetime)

    def encode(self, value: datetime) -> StringType:
        if not isinstance(value, datetime):
            raise EncodeError
        result = _to_utc(value).isoformat()
        if result.endswith("+00:00"):
            result = f"{result[0:-6]}Z"
        return result

    def decode(self, value: StringType) -> datetime:
        if not isinstance(value, str):
            raise DecodeError
        with _wrap(DecodeError):
            return _to_utc(iso8601.parse_date(value))


# ----- union -----


class UnionStringCodec(StringCodec[PT]):
    """
    String codec for optional values. An empty string decodes to None; None encodes to an
    empty string. Other values use the codec of the non-None type.
    """

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        if typing.get_origin(python_type) not in {typing.Union, types.UnionType}:
            return False
        args = [a for a in typing.get_args(python_type) if a is not NoneType]
        return is_optional(python_type) and len(args) == 1

    def __init__(self, python_type: Any):
        super().__init__(python_type)
        args = typing.get_args(strip_annotations(python_type))
        self.codec = StringCodec.get(next(a for a in args if a is not NoneType))

    def encode(self, value: PT) -> StringType:
        if value is None:
            return ""
        return self.codec.encode(value)

    def decode(self, value: StringType) -> PT:
        if value == "":
            return None
        return self.codec.decode(value)


def get_codec(python_type: Any) -> StringCodec:
    """Return a string codec compatible with the specified Python type."""
    return StringCodec.get(python_type)


def encode_value(value: Any) -> str:
    """Encode an arbitrary value to a string, using the codec for the value's own type."""
    try:
        return get_codec(type(value)).encode(value)
    except TypeError:
        _logger.debug("no string codec for %s; using str()", type(value))
        return str(value)
