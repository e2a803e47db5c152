"""
Module to configure the pagestate web application.

Settings are read from environment variables named with the PAGESTATE_ prefix followed by
the upper-cased setting name (for example: PAGESTATE_FETCH_SIZE). Each value is decoded with
the string codec for the setting's type.
"""

import dataclasses
import logging
import os
import typing

from collections.abc import Mapping
from dataclasses import dataclass
from pagestate.codec import DecodeError, get_codec


_logger = logging.getLogger(__name__)


PREFIX = "PAGESTATE_"


@dataclass(frozen=True)
class Settings:
    """
    Settings of the web application.

    Attributes:
    • host: interface to bind the HTTP server to
    • port: port to bind the HTTP server to
    • database: path to the SQLite database file
    • items_per_page: number of rows displayed in each random-access page
    • fetch_size: number of rows fetched from the database in each round trip
    • populate: number of rows to seed an empty demonstration table with
    • log_level: name of the logging level
    """

    host: str = "127.0.0.1"
    port: int = 8080
    database: str = "pagestate.db"
    items_per_page: int = 10
    fetch_size: int = 60
    populate: int = 100
    log_level: str = "INFO"

    def __post_init__(self):
        for name in ("port", "items_per_page", "fetch_size"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be a positive integer")
        if self.populate < 0:
            raise ValueError("populate must not be negative")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides) -> "Settings":
        """
        Return settings read from environment variables.

        Parameters:
        • environ: environment variables  [os.environ]
        • overrides: setting values that take precedence; None values are ignored

        Raises DecodeError if an environment variable value cannot be decoded.
        """
        environ = os.environ if environ is None else environ
        hints = typing.get_type_hints(cls)
        values = {}
        for field in dataclasses.fields(cls):
            name = f"{PREFIX}{field.name.upper()}"
            if name in environ:
                with DecodeError.path_on_error(name):
                    values[field.name] = get_codec(hints[field.name]).decode(environ[name])
        values |= {k: v for k, v in overrides.items() if v is not None}
        settings = cls(**values)
        _logger.debug("settings: %s", settings)
        return settings
