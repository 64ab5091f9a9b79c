"""Statement building shared by the SQLite and PostgreSQL drivers.

Subclasses supply the connection, the dialect and ``_execute``; this class
turns table/field mappings into parameterised INSERT, UPDATE, DELETE and
existence statements.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from resourceforge.persistence.dialect import Dialect
from resourceforge.persistence.query import QueryBuilder

logger = logging.getLogger(__name__)


class SQLDatabase:
    """Base class for database drivers."""

    dialect: Dialect
    conn: Any

    def __init__(self) -> None:
        self.conn = None
        self._last_insert_id: Any = None

    def connect(self) -> None:
        raise NotImplementedError

    def close(self) -> None:
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def _require_connection(self) -> None:
        if not self.conn:
            raise RuntimeError("Database not connected")

    def _execute(self, sql: str, params: Sequence[Any]) -> Any:
        """Run one statement and return the driver cursor."""
        raise NotImplementedError

    def _fetch_rows(self, cursor: Any) -> list[dict[str, Any]]:
        return [dict(row) for row in cursor.fetchall()]

    # ------------------------------------------------------------------
    # Raw execution
    # ------------------------------------------------------------------

    def new_query(self) -> QueryBuilder:
        return QueryBuilder(self)

    def query(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run a write statement, returning the affected row count."""
        cursor = self._execute(sql, params)
        return cursor.rowcount

    def select(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        cursor = self._execute(sql, params)
        return self._fetch_rows(cursor)

    def row(self, sql: str, params: Sequence[Any] = ()) -> dict[str, Any] | None:
        rows = self.select(sql, params)
        return rows[0] if rows else None

    def single(self, sql: str, params: Sequence[Any] = ()) -> Any:
        """First column of the first row, or None."""
        row = self.row(sql, params)
        if not row:
            return None
        return next(iter(row.values()))

    def last_insert_id(self) -> Any:
        return self._last_insert_id

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def _where_equals(self, where_equals: dict[str, Any]) -> tuple[str, list[Any]]:
        if not where_equals:
            return "", []
        parts = []
        params: list[Any] = []
        for column, value in where_equals.items():
            if value is None:
                parts.append(f"{self.dialect.quote(column)} IS NULL")
            else:
                parts.append(f"{self.dialect.quote(column)} = {self.dialect.placeholder}")
                params.append(value)
        return " WHERE " + " AND ".join(parts), params

    def insert_sql(
        self,
        table: str,
        fields: dict[str, Any],
        fail_on_duplicate: bool = True,
        conflict_fields: Sequence[str] = (),
    ) -> tuple[str, list[Any]]:
        columns = list(fields)
        quoted = ", ".join(self.dialect.quote(c) for c in columns)
        placeholders = ", ".join(self.dialect.placeholder for _ in columns)
        sql = f"INSERT INTO {self.dialect.quote(table)} ({quoted}) VALUES ({placeholders})"
        if not fail_on_duplicate:
            conflict = list(conflict_fields)
            if not conflict:
                raise ValueError("Overwriting insert requires conflict fields")
            updates = [c for c in columns if c not in conflict]
            sql += self.dialect.upsert_clause(conflict, updates)
        return sql, [fields[c] for c in columns]

    def insert(
        self,
        table: str,
        fields: dict[str, Any],
        fail_on_duplicate: bool = True,
        conflict_fields: Sequence[str] = (),
        returning: str | None = None,
    ) -> int:
        """Insert a row.

        Args:
            table: Table name
            fields: Column values
            fail_on_duplicate: False overwrites the row on a conflict_fields clash
            conflict_fields: Columns defining a conflict when overwriting
            returning: Column whose generated value last_insert_id() reports

        Returns:
            Number of rows written
        """
        if not fields:
            raise ValueError("Cannot insert an empty row")
        sql, params = self.insert_sql(table, fields, fail_on_duplicate, conflict_fields)
        return self._insert(sql, params, returning)

    def _insert(self, sql: str, params: list[Any], returning: str | None) -> int:
        raise NotImplementedError

    def update(
        self, table: str, fields: dict[str, Any], where_equals: dict[str, Any]
    ) -> int:
        if not fields:
            return 0
        assignments = ", ".join(
            f"{self.dialect.quote(c)} = {self.dialect.placeholder}" for c in fields
        )
        where, where_params = self._where_equals(where_equals)
        sql = f"UPDATE {self.dialect.quote(table)} SET {assignments}{where}"
        return self.query(sql, [*fields.values(), *where_params])

    def delete(self, table: str, where_equals: dict[str, Any]) -> int:
        if not where_equals:
            raise ValueError("Refusing to delete without a condition")
        where, params = self._where_equals(where_equals)
        return self.query(f"DELETE FROM {self.dialect.quote(table)}{where}", params)

    def exists(self, table: str, where_equals: dict[str, Any]) -> bool:
        where, params = self._where_equals(where_equals)
        sql = f"SELECT 1 FROM {self.dialect.quote(table)}{where} LIMIT 1"
        return self.row(sql, params) is not None

    def count(self, table: str, where_equals: dict[str, Any] | None = None) -> int:
        where, params = self._where_equals(where_equals or {})
        return int(self.single(f"SELECT COUNT(*) FROM {self.dialect.quote(table)}{where}", params) or 0)
