"""Module to assemble the demonstration web application over a SQLite users table."""

import logging

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pagestate.asgi import asgi_app
from pagestate.config import Settings
from pagestate.http import Application
from pagestate.sqlite import Database, SQLiteExecutor
from pagestate.web import PageHandler


_logger = logging.getLogger(__name__)


SELECT_USERS = "SELECT id, name, created FROM users ORDER BY id"

_epoch = datetime(2020, 1, 1, tzinfo=timezone.utc)


async def create_schema(database: Database) -> None:
    """Create the users table if it does not exist."""
    async with database.transaction():
        await database.execute(
            "CREATE TABLE IF NOT EXISTS users "
            "(id INTEGER PRIMARY KEY, name TEXT NOT NULL, created TEXT NOT NULL);"
        )


async def populate(database: Database, count: int) -> None:
    """Insert `count` users into the users table, replacing any with the same identifier."""
    async with database.transaction():
        await database.executemany(
            "INSERT OR REPLACE INTO users (id, name, created) VALUES (?, ?, ?);",
            (
                (i, f"user{i}", (_epoch + timedelta(hours=i)).isoformat())
                for i in range(count)
            ),
        )
    _logger.info("populated %d users", count)


def users_application(database: Database, settings: Settings) -> Application:
    """Return an HTTP application that serves the users table at /users."""
    executor = SQLiteExecutor(database, column_types={"created": datetime})
    handler = PageHandler(
        executor,
        SELECT_USERS,
        path="/users",
        items_per_page=settings.items_per_page,
        fetch_size=settings.fetch_size,
    )
    return Application({"/users": handler})


def create_app(settings: Settings | None = None) -> Callable:
    """
    Return an ASGI application serving the users table. On startup, the table is created,
    and seeded with users if the populate setting is not zero.
    """
    settings = settings or Settings.from_env()
    database = Database(settings.database)

    async def startup():
        await create_schema(database)
        if settings.populate:
            await populate(database, settings.populate)
        _logger.info("serving %s on http://%s:%d/users", database, settings.host, settings.port)

    return asgi_app(users_application(database, settings), startup=startup)
