"""Turn raw request parameters into a validated QuerySpec.

Raw parameters typically arrive as a query string mapping, so every value
may be a string: field, sort and group lists are comma separated, filter
and aggregate are JSON documents.

    spec = parse_query({
        "fields": "id,title,author.name",
        "filter": '{"_and": [{"done": {"eq": false}}]}',
        "sort": "-id",
        "limit": "20",
        "after": "MTA=",
    })
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from resourceforge.core.errors import InvalidRequest

PAGINATION_PAGE = "page"
PAGINATION_CURSOR = "cursor"
PAGINATION_BEFORE = "before"
PAGINATION_AFTER = "after"


@dataclass(frozen=True)
class QuerySpec:
    """Parsed, validated list request."""

    fields: tuple[str, ...] = ()
    filter: Any = field(default_factory=list)
    search: str = ""
    sort: tuple[str, ...] = ()
    group: tuple[str, ...] = ()
    limit: int | None = None
    pagination_method: str = PAGINATION_PAGE
    page: int = 1
    before: str = ""
    after: str = ""
    aggregate: Any = field(default_factory=list)
    pagination: str = ""

    @property
    def cursor(self) -> str:
        """The active cursor for before/after pagination."""
        if self.pagination_method == PAGINATION_BEFORE:
            return self.before
        if self.pagination_method == PAGINATION_AFTER:
            return self.after
        return ""


def _explode(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        items = [value]
    return tuple(str(item).strip() for item in items if str(item).strip())


def _decode_json(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return value
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError:
            return []
        if isinstance(decoded, (dict, list)):
            return decoded
    return []


def _parse_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise InvalidRequest(f"Unable to parse request: Invalid {name} format")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise InvalidRequest(f"Unable to parse request: Invalid {name} format")


def parse_query(raw: Mapping[str, Any] | None) -> QuerySpec:
    """Parse raw request parameters.

    Raises:
        InvalidRequest: Search or pagination token is not a string, limit is
            below -1, page is below 1, or more than one of page/before/after
            was supplied
    """
    raw = raw or {}

    search = raw.get("search", "")
    if search is None:
        search = ""
    if not isinstance(search, str):
        raise InvalidRequest("Unable to parse request: Invalid search format")

    limit = None
    if raw.get("limit") is not None:
        limit = _parse_int(raw["limit"], "limit")
        if limit < -1:
            raise InvalidRequest("Unable to parse request: Invalid limit format")

    methods = [m for m in (PAGINATION_PAGE, PAGINATION_BEFORE, PAGINATION_AFTER) if m in raw]
    if len(methods) > 1:
        raise InvalidRequest("Unable to parse request: Only one pagination method is allowed")

    pagination_method = PAGINATION_PAGE
    page = 1
    before = after = ""
    if PAGINATION_PAGE in raw:
        page = _parse_int(raw[PAGINATION_PAGE], "page")
        if page < 1:
            raise InvalidRequest("Unable to parse request: Invalid page format")
    elif PAGINATION_BEFORE in raw:
        pagination_method = PAGINATION_BEFORE
        before = raw[PAGINATION_BEFORE]
    elif PAGINATION_AFTER in raw:
        pagination_method = PAGINATION_AFTER
        after = raw[PAGINATION_AFTER]
    if not isinstance(before, str) or not isinstance(after, str):
        raise InvalidRequest("Unable to parse request: Invalid cursor format")

    pagination = raw.get("pagination", "")
    if pagination is None:
        pagination = ""
    if not isinstance(pagination, str):
        raise InvalidRequest("Unable to parse request: Invalid pagination format")

    return QuerySpec(
        fields=_explode(raw.get("fields")),
        filter=_decode_json(raw.get("filter", [])),
        search=search,
        sort=_explode(raw.get("sort")),
        group=_explode(raw.get("group")),
        limit=limit,
        pagination_method=pagination_method,
        page=page,
        before=before,
        after=after,
        aggregate=_decode_json(raw.get("aggregate", [])),
        pagination=pagination,
    )

