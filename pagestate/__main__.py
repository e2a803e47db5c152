"""Run the demonstration web application."""

import argparse
import logging
import uvicorn

from pagestate import __version__
from pagestate.codec import DecodeError
from pagestate.config import Settings
from pagestate.demo import create_app


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="pagestate", description="Browse a SQLite users table page by page."
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--host", help="interface to bind to")
    parser.add_argument("--port", type=int, help="port to bind to")
    parser.add_argument("--database", help="path to SQLite database file")
    parser.add_argument("--items-per-page", type=int, help="rows displayed in each page")
    parser.add_argument("--fetch-size", type=int, help="rows fetched in each round trip")
    parser.add_argument("--populate", type=int, help="number of users to seed the table with")
    parser.add_argument("--log-level", help="logging level name")
    args = parser.parse_args(argv)
    try:
        settings = Settings.from_env(**vars(args))
    except (DecodeError, ValueError) as e:
        parser.error(f"invalid settings: {e}")
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
