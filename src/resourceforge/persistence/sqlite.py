"""SQLite database driver."""

import logging
import sqlite3
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from resourceforge.core.errors import AlreadyExists, UnexpectedException
from resourceforge.persistence.base import SQLDatabase
from resourceforge.persistence.dialect import SQLiteDialect

logger = logging.getLogger(__name__)


class SQLiteDatabase(SQLDatabase):
    """SQLite driver built on the standard library sqlite3 module."""

    dialect = SQLiteDialect()

    def __init__(self, db_path: Path | str = ":memory:"):
        super().__init__()
        self.db_path = str(db_path)

    def connect(self) -> None:
        """Establish database connection."""
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row

    def _execute(self, sql: str, params: Sequence[Any]) -> sqlite3.Cursor:
        self._require_connection()
        logger.debug("SQL: %s (%d params)", sql, len(params))
        try:
            cursor = self.conn.execute(sql, list(params))
            self.conn.commit()
        except sqlite3.IntegrityError as e:
            self.conn.rollback()
            if "UNIQUE" in str(e).upper():
                raise AlreadyExists(f"Unable to write resource: {e}") from e
            raise UnexpectedException(f"Integrity error: {e}") from e
        except sqlite3.Error as e:
            self.conn.rollback()
            raise UnexpectedException(f"Database error: {e}") from e
        return cursor

    def _insert(self, sql: str, params: list[Any], returning: str | None) -> int:
        cursor = self._execute(sql, params)
        self._last_insert_id = cursor.lastrowid
        return cursor.rowcount
