"""Parameterised SELECT builder.

The builder is the low-level primitive layer the query compiler drives:
table, select, left_join, where/or_where, start_group/end_group, order_by,
group_by, limit, offset. Identifiers are quoted by the dialect; values are
always bound parameters.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from resourceforge.core.types import build_condition, get_aggregate
from resourceforge.persistence.dialect import Dialect

if TYPE_CHECKING:
    from resourceforge.persistence.adapter import Database

logger = logging.getLogger(__name__)

AND = "AND"
OR = "OR"


@dataclass(frozen=True)
class Column:
    """A column reference, optionally table-qualified and JSON-pathed."""

    name: str
    table: str | None = None
    path: tuple[str, ...] = ()

    @classmethod
    def parse(cls, value: Column | str) -> Column:
        """Accept a Column or a "table.column" string."""
        if isinstance(value, Column):
            return value
        if "." in value:
            table, name = value.split(".", 1)
            return cls(name=name, table=table)
        return cls(name=value)

    def render(self, dialect: Dialect) -> str:
        expr = dialect.qualify(self.name, self.table)
        if self.path:
            return dialect.json_extract(expr, self.path)
        return expr


@dataclass
class _Predicate:
    connector: str
    sql: str
    params: list[Any]


@dataclass
class _Group:
    connector: str
    children: list[_Predicate | _Group] = field(default_factory=list)


def _check_connector(connector: str) -> str:
    connector = connector.upper()
    if connector not in (AND, OR):
        raise ValueError(f"Invalid condition connector: {connector}")
    return connector


class QueryBuilder:
    """Build and run a single SELECT statement."""

    def __init__(self, db: Database):
        self.db = db
        self.dialect: Dialect = db.dialect
        self._table: str | None = None
        self._columns: list[str] = []
        self._joins: list[str] = []
        self._root = _Group(AND)
        self._stack: list[_Group] = [self._root]
        self._order: list[str] = []
        self._group: list[str] = []
        self._limit: int | None = None
        self._offset: int | None = None

    # ------------------------------------------------------------------
    # Clauses
    # ------------------------------------------------------------------

    def table(self, name: str) -> QueryBuilder:
        self._table = self.dialect.quote(name)
        return self

    def select(self, column: Column | str, alias: str | None = None) -> QueryBuilder:
        expr = Column.parse(column).render(self.dialect)
        if alias is not None:
            expr = f"{expr} AS {self.dialect.quote_alias(alias)}"
        self._columns.append(expr)
        return self

    def left_join(
        self,
        table: str,
        left: Column | str,
        right: Column | str,
        alias: str | None = None,
    ) -> QueryBuilder:
        """LEFT JOIN table [AS alias] ON left = right."""
        target = self.dialect.quote(table)
        if alias is not None and alias != table:
            target = f"{target} AS {self.dialect.quote(alias)}"
        on_left = Column.parse(left).render(self.dialect)
        on_right = Column.parse(right).render(self.dialect)
        self._joins.append(f"LEFT JOIN {target} ON {on_left} = {on_right}")
        return self

    def where(self, column: Column | str, operator: str, value: Any = None) -> QueryBuilder:
        return self._add_predicate(AND, column, operator, value)

    def or_where(self, column: Column | str, operator: str, value: Any = None) -> QueryBuilder:
        return self._add_predicate(OR, column, operator, value)

    def _add_predicate(
        self, connector: str, column: Column | str, operator: str, value: Any
    ) -> QueryBuilder:
        expr = Column.parse(column).render(self.dialect)
        sql, params = build_condition(expr, operator, value, self.dialect.placeholder)
        self._stack[-1].children.append(_Predicate(connector, sql, params))
        return self

    def start_group(self, connector: str = AND) -> QueryBuilder:
        """Open a parenthesised scope joined to its predecessor by connector."""
        group = _Group(_check_connector(connector))
        self._stack[-1].children.append(group)
        self._stack.append(group)
        return self

    def end_group(self) -> QueryBuilder:
        if len(self._stack) == 1:
            raise ValueError("end_group() called without a matching start_group()")
        self._stack.pop()
        return self

    def order_by(self, fields: list[str]) -> QueryBuilder:
        """Order by fields; a leading '-' sorts descending, '+' ascending."""
        for token in fields:
            direction = "DESC" if token.startswith("-") else "ASC"
            column = Column.parse(token.lstrip("+-"))
            self._order.append(f"{column.render(self.dialect)} {direction}")
        return self

    def group_by(self, fields: list[Column | str]) -> QueryBuilder:
        for name in fields:
            self._group.append(Column.parse(name).render(self.dialect))
        return self

    def limit(self, value: int | None) -> QueryBuilder:
        self._limit = None if value is None else int(value)
        return self

    def offset(self, value: int | None) -> QueryBuilder:
        self._offset = None if value is None else int(value)
        return self

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _render_node(self, node: _Predicate | _Group) -> tuple[str, list[Any]]:
        if isinstance(node, _Predicate):
            return node.sql, node.params
        parts: list[str] = []
        params: list[Any] = []
        for child in node.children:
            sql, child_params = self._render_node(child)
            if not sql:
                continue
            if parts:
                parts.append(child.connector)
            parts.append(sql)
            params.extend(child_params)
        if not parts:
            return "", []
        inner = " ".join(parts)
        if node is self._root:
            return inner, params
        return f"({inner})", params

    def _from_clause(self) -> tuple[str, list[Any]]:
        if self._table is None:
            raise ValueError("No table selected")
        if len(self._stack) != 1:
            raise ValueError("Unclosed condition group")
        sql = f" FROM {self._table}"
        if self._joins:
            sql += " " + " ".join(self._joins)
        where, params = self._render_node(self._root)
        if where:
            sql += f" WHERE {where}"
        return sql, params

    def to_sql(self) -> tuple[str, list[Any]]:
        """Render the full SELECT and its parameters."""
        columns = ", ".join(self._columns) if self._columns else "*"
        from_sql, params = self._from_clause()
        sql = f"SELECT {columns}{from_sql}"
        if self._group:
            sql += f" GROUP BY {', '.join(self._group)}"
        if self._order:
            sql += f" ORDER BY {', '.join(self._order)}"
        if self._limit is not None:
            sql += f" LIMIT {self._limit}"
        if self._offset:
            if self._limit is None and self.dialect.name == "sqlite":
                sql += " LIMIT -1"
            sql += f" OFFSET {self._offset}"
        return sql, params

    def aggregate_sql(self, function: str = "COUNT", column: Column | str | None = None) -> tuple[str, list[Any]]:
        """Render an aggregate over the filtered rows, ignoring order and paging.

        Counting rows of a grouped query counts the groups.
        """
        fn = get_aggregate(function)
        from_sql, params = self._from_clause()
        if column is None:
            if self._group:
                inner = f"SELECT 1 AS {self.dialect.quote('grouped_row')}{from_sql} GROUP BY {', '.join(self._group)}"
                return f'SELECT COUNT(*) AS "aggregate" FROM ({inner}) AS "grouped"', params
            return f'SELECT COUNT(*) AS "aggregate"{from_sql}', params
        expr = Column.parse(column).render(self.dialect)
        return f'SELECT {fn.render(expr)} AS "aggregate"{from_sql}', params

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def get(self) -> list[dict[str, Any]]:
        sql, params = self.to_sql()
        return self.db.select(sql, params)

    def aggregate(self, function: str = "COUNT", column: Column | str | None = None) -> Any:
        sql, params = self.aggregate_sql(function, column)
        return self.db.single(sql, params)

    def count(self) -> int:
        return int(self.aggregate("COUNT") or 0)

    def delete(self) -> int:
        """DELETE the rows matching the WHERE tree; joins are not allowed.

        Raises:
            ValueError: No conditions, or joins present
        """
        if self._joins:
            raise ValueError("Cannot delete from a joined query")
        from_sql, params = self._from_clause()
        if " WHERE " not in from_sql:
            raise ValueError("Refusing to delete without a condition")
        return self.db.query(f"DELETE{from_sql}", params)
