"""Database Protocol: the shared interface for all database drivers."""

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from resourceforge.persistence.dialect import Dialect


@runtime_checkable
class Database(Protocol):
    """Interface all database drivers must implement.

    Matches the public API of SQLiteDatabase. Every write commits on its
    own; the engine never spans a transaction across calls.
    """

    # Raw connection handle. Type varies by driver (sqlite3.Connection,
    # psycopg.Connection).
    conn: Any
    dialect: Dialect

    def connect(self) -> None: ...

    def close(self) -> None: ...

    def new_query(self) -> Any: ...

    def insert(
        self,
        table: str,
        fields: dict[str, Any],
        fail_on_duplicate: bool = True,
        conflict_fields: Sequence[str] = (),
        returning: str | None = None,
    ) -> int: ...

    def update(
        self, table: str, fields: dict[str, Any], where_equals: dict[str, Any]
    ) -> int: ...

    def delete(self, table: str, where_equals: dict[str, Any]) -> int: ...

    def exists(self, table: str, where_equals: dict[str, Any]) -> bool: ...

    def count(self, table: str, where_equals: dict[str, Any] | None = None) -> int: ...

    def query(self, sql: str, params: Sequence[Any] = ()) -> int: ...

    def select(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]: ...

    def row(self, sql: str, params: Sequence[Any] = ()) -> dict[str, Any] | None: ...

    def single(self, sql: str, params: Sequence[Any] = ()) -> Any: ...

    def last_insert_id(self) -> Any: ...
