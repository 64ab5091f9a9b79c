"""PostgreSQL database driver.

Uses psycopg v3 (psycopg[binary]>=3.1.0) for database access.
Mirrors SQLiteDatabase with PostgreSQL-specific SQL:
  - %s placeholders instead of ?
  - ``#>>`` JSON path extraction instead of json_extract()
  - INSERT ... RETURNING for generated primary keys
  - dict_row cursor factory for dict-based row access

Identifier quoting strategy
----------------------------
PostgreSQL folds unquoted identifiers to lowercase. Resource schemas often
use camelCase field names (e.g. ``createdAt``), so the dialect
double-quotes every table, column and alias to preserve the original
casing and avoid conflicts with reserved words such as ``user``,
``order`` and ``group``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import psycopg
from psycopg.rows import dict_row

from resourceforge.core.errors import AlreadyExists, UnexpectedException
from resourceforge.persistence.base import SQLDatabase
from resourceforge.persistence.dialect import PostgreSQLDialect

logger = logging.getLogger(__name__)


class PostgreSQLDatabase(SQLDatabase):
    """PostgreSQL driver using psycopg v3."""

    dialect = PostgreSQLDialect()

    def __init__(self, url: str):
        super().__init__()
        # psycopg.connect() wants a plain libpq DSN or postgres:// URL,
        # so strip the +psycopg driver suffix when present.
        self.url = url.replace("postgresql+psycopg://", "postgresql://")

    def connect(self) -> None:
        """Establish database connection."""
        self.conn = psycopg.connect(self.url, row_factory=dict_row)
        self.conn.autocommit = False

    def _execute(self, sql: str, params: Sequence[Any]) -> Any:
        self._require_connection()
        logger.debug("SQL: %s (%d params)", sql, len(params))
        try:
            cursor = self.conn.execute(sql, list(params))
            self.conn.commit()
        except psycopg.errors.UniqueViolation as e:
            self.conn.rollback()
            raise AlreadyExists(f"Unable to write resource: {e}") from e
        except psycopg.Error as e:
            self.conn.rollback()
            raise UnexpectedException(f"Database error: {e}") from e
        return cursor

    def _insert(self, sql: str, params: list[Any], returning: str | None) -> int:
        if returning:
            sql += f" RETURNING {self.dialect.quote(returning)}"
        cursor = self._execute(sql, params)
        if returning:
            row = cursor.fetchone()
            self._last_insert_id = row[returning] if row else None
        else:
            self._last_insert_id = None
        return cursor.rowcount
