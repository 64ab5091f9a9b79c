"""Pick the database driver for an engine config."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from resourceforge.core.config import DATABASE_URL_ENV, EngineConfig
from resourceforge.core.errors import InvalidConfiguration

if TYPE_CHECKING:
    from resourceforge.persistence.adapter import Database

DEFAULT_DATABASE_URL = "sqlite:///resourceforge.db"

POSTGRESQL_SCHEMES = ("postgresql", "postgresql+psycopg", "postgres")


def resolve_database_url(config: EngineConfig | None = None) -> str:
    """DATABASE_URL, then the `database` setting of resourceforge.yaml."""
    configured = config.database_url if config else None
    return os.environ.get(DATABASE_URL_ENV) or configured or DEFAULT_DATABASE_URL


def sqlite_path(url: str) -> str:
    """sqlite:///app.db is relative, sqlite:////srv/app.db absolute, sqlite:// in memory."""
    _, _, rest = url.partition("://")
    path = rest[1:] if rest.startswith("/") else rest
    return path or ":memory:"


def create_database(url: str) -> Database:
    """A driver for the URL's scheme, not yet connected.

    Raises:
        InvalidConfiguration: No driver for the scheme
    """
    scheme = url.partition("://")[0].lower()

    if scheme == "sqlite":
        from resourceforge.persistence.sqlite import SQLiteDatabase

        return SQLiteDatabase(sqlite_path(url))

    if scheme in POSTGRESQL_SCHEMES:
        from resourceforge.persistence.postgresql import PostgreSQLDatabase

        return PostgreSQLDatabase(url)

    raise InvalidConfiguration(f"Unsupported database URL scheme: {url}")
