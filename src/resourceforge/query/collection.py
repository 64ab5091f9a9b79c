"""Result collections returned by ResourceModel.list()."""

from __future__ import annotations

import math
import time
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING, Any

from resourceforge.core.errors import DoesNotExist, InvalidRequest
from resourceforge.core.types import get_aggregate
from resourceforge.query.compiler import QueryPlan, encode_cursor
from resourceforge.query.parser import PAGINATION_CURSOR, PAGINATION_PAGE, QuerySpec

if TYPE_CHECKING:
    from resourceforge.resources.model import ResourceModel


class ResultCollection:
    """A fetched, reshaped row set plus lazily computed metadata.

    Pagination totals and aggregates are only queried when asked for, and
    re-run the compiled plan without its limit, offset and ordering.
    """

    def __init__(
        self,
        model: ResourceModel,
        plan: QueryPlan,
        spec: QuerySpec,
        rows: list[dict[str, Any]],
        cursors: list[Any],
        query_time: float = 0.0,
    ):
        self.model = model
        self.plan = plan
        self.spec = spec
        self._rows = rows
        # Cursor values captured before the cursor field is stripped
        self._cursors = cursors
        # The fetch that produced the rows counts as the first query
        self.query_count = 1
        self.query_time = query_time

    @property
    def primary_key(self) -> str:
        return self.plan.schema.primary_key

    @property
    def cursor_field(self) -> str:
        return self.plan.cursor_field

    @property
    def limit(self) -> int | None:
        return self.plan.limit

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def count(self) -> int:
        """Rows fetched (not the total matching)."""
        return len(self._rows)

    def list(self) -> list[dict[str, Any]]:
        return list(self._rows)

    def read(self, primary_key: Any) -> dict[str, Any]:
        """Find a fetched row by primary key.

        Raises:
            DoesNotExist: No fetched row has that key
        """
        for row in self._rows:
            if self.primary_key in row and row[self.primary_key] == primary_key:
                return row
        raise DoesNotExist("Unable to read resource from collection: Resource does not exist")

    def _timed(self, run: Callable[[], Any]) -> Any:
        started = time.perf_counter()
        try:
            return run()
        finally:
            self.query_count += 1
            self.query_time += time.perf_counter() - started

    def _cursor_token(self, value: Any) -> str | None:
        return encode_cursor(value) if value is not None else None

    def total(self) -> int:
        """Total rows matching the query, ignoring limit and offset."""
        return self._timed(lambda: self.plan.build(self.model.db, paginate=False).count())

    def pagination(self) -> dict[str, Any]:
        """Pagination metadata for the requested token ("", page, cursor).

        Raises:
            InvalidRequest: Unknown pagination token
        """
        token = self.spec.pagination.lower()
        if token == "":
            return {}
        if token not in (PAGINATION_PAGE, PAGINATION_CURSOR):
            raise InvalidRequest(f"Unable to get pagination: Invalid pagination value ({token})")

        current = self.count()

        if token == PAGINATION_CURSOR:
            return {
                "results": {"current": current},
                "cursor": {
                    "first": self._cursor_token(self._cursors[0]) if self._cursors else None,
                    "last": self._cursor_token(self._cursors[-1]) if self._cursors else None,
                },
            }

        total = self.total()
        page = self.spec.page
        limit = self.limit

        if limit:
            page_total = math.ceil(total / limit)
        else:
            page_total = 1

        result: dict[str, Any] = {
            "results": {"current": current, "total": total, "from": None, "to": None},
            "page": {
                "size": limit if limit is not None else current,
                "current": page,
                "previous": None,
                "next": None,
                "total": page_total,
            },
        }

        if current > 0:
            to = limit * page if limit else total
            to = min(to, total)
            result["results"]["to"] = to
            result["results"]["from"] = to - current + 1
            if page > 1:
                result["page"]["previous"] = page - 1
            if page_total > page:
                result["page"]["next"] = page + 1
        elif page_total > 0 and page == 2:
            result["page"]["previous"] = 1

        return result

    def aggregate(self) -> dict[str, dict[str, Any]]:
        """Run each requested {function: column} aggregate.

        Returns:
            {column: {FUNCTION: value}}

        Raises:
            InvalidRequest: Malformed clause, unsupported function, or a
                column that is not readable
        """
        clauses = self.spec.aggregate
        if isinstance(clauses, dict):
            clauses = [clauses]

        schema = self.plan.schema
        result: dict[str, dict[str, Any]] = {}
        for clause in clauses:
            if not isinstance(clause, dict):
                raise InvalidRequest("Unable to get aggregate: Invalid aggregate clause")
            for function, column in clause.items():
                fn = get_aggregate(function)
                if not isinstance(column, str) or column not in schema.readable_fields:
                    raise InvalidRequest(f"Unable to get aggregate: Invalid aggregate field ({column})")
                builder = self.plan.build(self.model.db, paginate=False)
                value = self._timed(lambda: builder.aggregate(fn.name, f"{schema.table}.{column}"))
                result.setdefault(column, {})[fn.name] = value
        return result
