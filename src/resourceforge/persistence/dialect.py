"""SQL dialect differences between SQLite and PostgreSQL.

Both dialects double-quote identifiers so mixed-case column names such as
``createdAt`` survive PostgreSQL's lowercase folding. Identifiers are
checked against a strict pattern before quoting; anything else is a
programming error, since the compiler only passes schema-declared names.
"""

import re
from collections.abc import Sequence

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Output column aliases: "field", "author.name", "meta->color", "author.meta->a->b"
_ALIAS = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*((\.[A-Za-z_][A-Za-z0-9_]*)|(->[A-Za-z0-9_-]+))*$")

JSON_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class Dialect:
    """Base dialect. Subclasses set name and placeholder."""

    name = "generic"
    placeholder = "?"

    def quote(self, identifier: str) -> str:
        if not isinstance(identifier, str) or not _IDENTIFIER.match(identifier):
            raise ValueError(f"Invalid SQL identifier: {identifier!r}")
        return f'"{identifier}"'

    def quote_alias(self, alias: str) -> str:
        if not isinstance(alias, str) or not _ALIAS.match(alias):
            raise ValueError(f"Invalid column alias: {alias!r}")
        return f'"{alias}"'

    def qualify(self, column: str, table: str | None = None) -> str:
        if table is None:
            return self.quote(column)
        return f"{self.quote(table)}.{self.quote(column)}"

    def json_extract(self, expr: str, path: Sequence[str]) -> str:
        raise NotImplementedError

    def _check_json_path(self, path: Sequence[str]) -> None:
        if not path:
            raise ValueError("Empty JSON path")
        for key in path:
            if not JSON_KEY_PATTERN.match(key):
                raise ValueError(f"Invalid JSON path key: {key!r}")

    def upsert_clause(self, conflict_fields: Sequence[str], update_fields: Sequence[str]) -> str:
        """ON CONFLICT clause overwriting update_fields (shared by both dialects)."""
        target = ", ".join(self.quote(f) for f in conflict_fields)
        if not update_fields:
            return f" ON CONFLICT ({target}) DO NOTHING"
        assignments = ", ".join(
            f"{self.quote(f)} = excluded.{self.quote(f)}" for f in update_fields
        )
        return f" ON CONFLICT ({target}) DO UPDATE SET {assignments}"


class SQLiteDialect(Dialect):
    name = "sqlite"
    placeholder = "?"

    def json_extract(self, expr: str, path: Sequence[str]) -> str:
        self._check_json_path(path)
        json_path = "$." + ".".join(f'"{key}"' for key in path)
        return f"json_extract({expr}, '{json_path}')"


class PostgreSQLDialect(Dialect):
    name = "postgresql"
    placeholder = "%s"

    def json_extract(self, expr: str, path: Sequence[str]) -> str:
        self._check_json_path(path)
        return f"(({expr})::jsonb #>> '{{{','.join(path)}}}')"
