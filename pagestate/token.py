"""
Module to transport continuation tokens.

A continuation token is an opaque byte string issued by a query executor after each batch.
The pagination layer never interprets its contents; it only needs to hand the token to a
client and accept it back in a later request. To embed a token as a single query string
parameter value, it is represented as URL-safe base64 with padding removed. The resulting
string contains only the characters A-Z, a-z, 0-9, "-" and "_", none of which require
escaping in a query string.
"""

import base64
import binascii
import re

from pagestate.codec import DecodeError, EncodeError, StringCodec
from pagestate.error import MalformedTokenError
from typing import Any


_alphabet = re.compile(r"[A-Za-z0-9_-]+")


class TokenStringCodec(StringCodec[bytes]):
    """
    String codec for continuation tokens. Example: b"\\x00\\x01" is encoded as "AAE".

    This codec is not selected through StringCodec.get; general byte values use standard
    base64 through BytesStringCodec.
    """

    @staticmethod
    def handles(python_type: Any) -> bool:
        return False

    def encode(self, value: bytes | bytearray) -> str:
        if not isinstance(value, bytes | bytearray) or not value:
            raise EncodeError("token must be a non-empty byte string")
        return base64.urlsafe_b64encode(value).decode().rstrip("=")

    def decode(self, value: str) -> bytes:
        if not isinstance(value, str) or not _alphabet.fullmatch(value):
            raise DecodeError("token contains invalid characters")
        if len(value) % 4 == 1:
            raise DecodeError("token has invalid length")
        try:
            token = base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))
        except binascii.Error as e:
            raise DecodeError("token is not valid base64") from e
        if self.encode(token) != value:  # unused trailing bits must be zero
            raise DecodeError("token is not canonical")
        return token


_codec = TokenStringCodec(bytes)


def encode_token(token: bytes) -> str:
    """
    Encode a continuation token as a string that is safe to use as a query string parameter
    value.
    """
    return _codec.encode(token)


def decode_token(value: str) -> bytes:
    """
    Decode a continuation token from its string representation.

    Raises MalformedTokenError if the value is not a valid token string. Callers should treat
    this as the start of the stream.
    """
    try:
        return _codec.decode(value)
    except DecodeError as de:
        raise MalformedTokenError(str(de)) from de
