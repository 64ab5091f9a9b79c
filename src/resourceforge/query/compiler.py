"""Compile a QuerySpec against a ResourceSchema into a QueryPlan.

The compiler resolves dotted related-field paths into LEFT JOINs, expands
wildcards, translates the filter tree into grouped predicates, and settles
search, sort, group, limit and pagination. All per-call state (join and
alias registry, related schema cache, soft-delete bookkeeping) lives in a
CompileContext created for one compile() call and discarded afterwards, so
a compiler instance can be shared freely.

Predicates are applied in a fixed order:
    1. related soft-delete exclusions (once per joined alias)
    2. the filter tree, in the order supplied
    3. the root trashed-mode predicate
    4. extra equality conditions (e.g. primary key on read)
    5. the search group
    6. the cursor predicate
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from resourceforge.core.config import EngineConfig
from resourceforge.core.errors import InvalidRequest
from resourceforge.core.types import FILTER_OPERATORS
from resourceforge.metadata.schema import JSON_SEPARATOR, ResourceSchema, base_field, json_path
from resourceforge.persistence.dialect import JSON_KEY_PATTERN
from resourceforge.persistence.query import AND, OR, Column, QueryBuilder
from resourceforge.query.parser import (
    PAGINATION_AFTER,
    PAGINATION_PAGE,
    QuerySpec,
)
from resourceforge.query.variables import expand_filter_values

if TYPE_CHECKING:
    from resourceforge.metadata.registry import ResourceRegistry
    from resourceforge.persistence.adapter import Database

logger = logging.getLogger(__name__)

_INTEGER = re.compile(r"^-?\d+$")


class TrashedMode(Enum):
    """Visibility of soft-deleted rows for the root resource."""

    EXCLUDE = "exclude"
    WITH = "with"
    ONLY = "only"


def encode_cursor(value: Any) -> str:
    """Opaque base64 cursor for a cursor-field value."""
    return base64.b64encode(str(value).encode("utf-8")).decode("ascii")


def decode_cursor(cursor: str) -> Any:
    """Decode a cursor produced by encode_cursor().

    Raises:
        InvalidRequest: Not valid base64, not UTF-8, or empty
    """
    try:
        text = base64.b64decode(cursor, validate=True).decode("utf-8")
    except (binascii.Error, ValueError):
        raise InvalidRequest("Unable to list resource: Invalid cursor") from None
    if text == "":
        raise InvalidRequest("Unable to list resource: Invalid cursor")
    if _INTEGER.match(text):
        return int(text)
    return text


@dataclass
class JoinSpec:
    """One LEFT JOIN registered during compilation."""

    path: tuple[str, ...]
    table: str
    alias: str
    owner: str
    column: str
    primary_key: str


@dataclass
class QueryPlan:
    """Everything needed to build, re-run and reshape one list query."""

    schema: ResourceSchema
    columns: list[tuple[Column, str]] = field(default_factory=list)
    joins: list[JoinSpec] = field(default_factory=list)
    conditions: list[tuple] = field(default_factory=list)
    order: list[str] = field(default_factory=list)
    group: list[str] = field(default_factory=list)
    limit: int | None = None
    offset: int | None = None
    keep_cursor: bool = False
    related: dict[tuple[str, ...], ResourceSchema] = field(default_factory=dict)

    @property
    def table(self) -> str:
        return self.schema.table

    @property
    def cursor_field(self) -> str:
        return self.schema.cursor_field

    def apply(self, builder: QueryBuilder, paginate: bool = True) -> QueryBuilder:
        """Replay the plan onto a builder.

        With paginate=False the plan selects nothing, orders nothing and
        applies no limit, for count and aggregate queries.
        """
        builder.table(self.schema.table)
        if paginate:
            for column, alias in self.columns:
                builder.select(column, alias)
        for join in self.joins:
            builder.left_join(
                join.table,
                Column(join.column, join.owner),
                Column(join.primary_key, join.alias),
                alias=join.alias,
            )
        for op, *args in self.conditions:
            if op == "start":
                builder.start_group(args[0])
            elif op == "end":
                builder.end_group()
            elif op == OR:
                builder.or_where(*args)
            else:
                builder.where(*args)
        if self.group:
            builder.group_by(self.group)
        if paginate:
            builder.order_by(self.order)
            builder.limit(self.limit)
            builder.offset(self.offset)
        return builder

    def build(self, db: Database, paginate: bool = True) -> QueryBuilder:
        return self.apply(db.new_query(), paginate=paginate)


@dataclass
class CompileContext:
    """Mutable state for a single compile() call."""

    root: ResourceSchema
    spec: QuerySpec
    trashed: TrashedMode
    max_related_depth: int
    plan: QueryPlan
    joins: dict[tuple[str, ...], JoinSpec] = field(default_factory=dict)
    alias_counts: dict[str, int] = field(default_factory=dict)
    schemas: dict[str, ResourceSchema] = field(default_factory=dict)
    soft_delete_filtered: set[str] = field(default_factory=set)
    soft_delete_conditions: list[tuple] = field(default_factory=list)
    selected: set[str] = field(default_factory=set)
    now: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class QueryCompiler:
    """Compiles list/read requests for resources in a registry."""

    def __init__(self, registry: ResourceRegistry, config: EngineConfig | None = None):
        self.registry = registry
        self.config = config or registry.config

    def compile(
        self,
        schema: ResourceSchema,
        spec: QuerySpec,
        trashed: TrashedMode = TrashedMode.EXCLUDE,
        list_all: bool = False,
        where_equals: Mapping[str, Any] | None = None,
    ) -> QueryPlan:
        """Build a QueryPlan.

        Args:
            schema: Root resource schema
            spec: Parsed request
            trashed: Root soft-delete visibility (ignored without soft deletes)
            list_all: Skip limit resolution and pagination entirely
            where_equals: Extra root equality conditions

        Raises:
            InvalidRequest: Unknown, unreadable or too deep fields, bad filter,
                sort or group fields, limit over max, or a bad cursor
        """
        default_limit, max_limit, max_depth = schema.resolve_limits(self.config)
        ctx = CompileContext(
            root=schema,
            spec=spec,
            trashed=trashed,
            max_related_depth=max_depth,
            plan=QueryPlan(schema=schema),
        )
        ctx.schemas[schema.name] = schema

        fields = list(spec.fields) or ["*"]
        self._select_fields(ctx, schema, fields, (), schema.table)
        self._select_cursor(ctx)
        ctx.plan.keep_cursor = schema.cursor_field in fields or any(
            f.startswith("*") for f in fields
        )

        ctx.plan.joins = list(ctx.joins.values())
        conditions = ctx.plan.conditions
        conditions.extend(ctx.soft_delete_conditions)
        self._apply_filter(ctx, spec.filter, AND, 0)
        self._apply_trashed(ctx)
        for name, value in (where_equals or {}).items():
            conditions.append((AND, Column(name, schema.table), "eq", value))
        self._apply_search(ctx, spec.search)

        ctx.plan.order = self._sort(ctx, spec.sort)
        ctx.plan.group = self._group(ctx, spec.group)

        if not list_all:
            ctx.plan.limit = self._resolve_limit(spec.limit, default_limit, max_limit)
            self._apply_pagination(ctx)

        logger.debug(
            "Compiled %s: %d column(s), %d join(s), %d condition(s), limit=%s",
            schema.name,
            len(ctx.plan.columns),
            len(ctx.plan.joins),
            len(conditions),
            ctx.plan.limit,
        )
        return ctx.plan

    # ------------------------------------------------------------------
    # Field selection
    # ------------------------------------------------------------------

    def _related_schema(self, ctx: CompileContext, name: str) -> ResourceSchema:
        if name not in ctx.schemas:
            ctx.schemas[name] = self.registry.schema(name)
        return ctx.schemas[name]

    def _join(
        self,
        ctx: CompileContext,
        path: tuple[str, ...],
        owner: str,
        column: str,
        related: ResourceSchema,
    ) -> str:
        """Register the join for path, reusing the alias if already joined."""
        existing = ctx.joins.get(path)
        if existing is not None:
            return existing.alias
        count = ctx.alias_counts.get(related.table, 0) + 1
        ctx.alias_counts[related.table] = count
        alias = f"{related.table}_{count}"
        ctx.joins[path] = JoinSpec(
            path=path,
            table=related.table,
            alias=alias,
            owner=owner,
            column=column,
            primary_key=related.primary_key,
        )
        ctx.plan.related[path] = related
        return alias

    def _exclude_soft_deleted(
        self, ctx: CompileContext, schema: ResourceSchema, alias: str
    ) -> None:
        if not schema.soft_deletes or alias in ctx.soft_delete_filtered:
            return
        ctx.soft_delete_filtered.add(alias)
        ctx.soft_delete_conditions.append(
            (AND, Column(schema.deleted_at_field, alias), "isNull", True)
        )

    def _add_column(
        self,
        ctx: CompileContext,
        schema: ResourceSchema,
        name: str,
        path: tuple[str, ...],
        table: str,
    ) -> None:
        alias = ".".join((*path, name))
        if alias in ctx.selected:
            return
        keys = json_path(name)
        for key in keys:
            if not JSON_KEY_PATTERN.match(key):
                raise InvalidRequest(f"Unable to list resource: Invalid field ({alias})")
        ctx.selected.add(alias)
        ctx.plan.columns.append((Column(base_field(name), table, keys), alias))
        if path:
            self._exclude_soft_deleted(ctx, schema, table)

    def _select_fields(
        self,
        ctx: CompileContext,
        schema: ResourceSchema,
        fields: list[str],
        path: tuple[str, ...],
        table: str,
    ) -> None:
        for name in fields:
            full = ".".join((*path, name))

            if "." in name:
                if len(full.split(".")) > ctx.max_related_depth:
                    raise InvalidRequest(
                        "Unable to list resource: Request exceeds maximum related "
                        f"field depth ({ctx.max_related_depth})"
                    )
                head, rest = name.split(".", 1)

                if head == "*":
                    for readable in schema.readable_fields:
                        if rest.startswith("*") and readable in schema.related_fields:
                            self._select_related(ctx, schema, readable, rest, path, table)
                        else:
                            self._add_column(ctx, schema, readable, path, table)
                elif head in schema.related_fields and head in schema.readable_fields:
                    self._select_related(ctx, schema, head, rest, path, table)
                else:
                    raise InvalidRequest(f"Unable to list resource: Invalid related field ({full})")

            elif name == "*":
                for readable in schema.readable_fields:
                    self._add_column(ctx, schema, readable, path, table)

            elif JSON_SEPARATOR in name:
                if base_field(name) not in schema.readable_fields:
                    prefix = ".".join((*path, base_field(name)))
                    raise InvalidRequest(f"Unable to list resource: Invalid field ({prefix})")
                self._add_column(ctx, schema, name, path, table)

            elif name in schema.readable_fields:
                self._add_column(ctx, schema, name, path, table)

            else:
                raise InvalidRequest(f"Unable to list resource: Invalid field ({full})")

    def _select_related(
        self,
        ctx: CompileContext,
        schema: ResourceSchema,
        column: str,
        rest: str,
        path: tuple[str, ...],
        table: str,
    ) -> None:
        related = self._related_schema(ctx, schema.related_fields[column])
        sub_path = (*path, column)
        alias = self._join(ctx, sub_path, table, column, related)
        self._select_fields(ctx, related, [rest], sub_path, alias)

    def _select_cursor(self, ctx: CompileContext) -> None:
        cursor = ctx.root.cursor_field
        if cursor not in ctx.selected:
            ctx.selected.add(cursor)
            ctx.plan.columns.append((Column(cursor, ctx.root.table), cursor))

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    def _root_column(self, ctx: CompileContext, name: str) -> Column:
        keys = json_path(name)
        for key in keys:
            if not JSON_KEY_PATTERN.match(key):
                raise InvalidRequest(f"Unable to list resource: Invalid filter field ({name})")
        return Column(base_field(name), ctx.root.table, keys)

    def _apply_filter(self, ctx: CompileContext, node: Any, connector: str, depth: int) -> None:
        if not node:
            return
        entries = node if isinstance(node, list) else [node]
        conditions = ctx.plan.conditions

        for entry in entries:
            if not isinstance(entry, dict):
                raise InvalidRequest("Unable to list resource: Invalid filter format")

            for key, value in entry.items():
                key = str(key)
                condition = key.lstrip("_").upper()

                if condition in (AND, OR):
                    limit = self.config.max_filter_depth
                    if limit is not None and depth + 1 > limit:
                        raise InvalidRequest(
                            f"Unable to list resource: Filter exceeds maximum depth ({limit})"
                        )
                    if not isinstance(value, (list, dict)):
                        raise InvalidRequest(
                            f"Unable to list resource: Invalid filter condition definition for field ({key})"
                        )
                    conditions.append(("start", connector))
                    self._apply_filter(ctx, value, condition, depth + 1)
                    conditions.append(("end",))
                    continue

                if not ctx.root.is_readable(key):
                    raise InvalidRequest(f"Unable to list resource: Invalid filter field ({key})")
                if not isinstance(value, dict) or not value:
                    raise InvalidRequest("Unable to list resource: Invalid filter value")

                column = self._root_column(ctx, key)
                for operator, operand in value.items():
                    if operator not in FILTER_OPERATORS:
                        raise InvalidRequest(
                            f"Unable to list resource: Invalid filter definition for field ({key})"
                        )
                    conditions.append(
                        (connector, column, operator, expand_filter_values(operand, ctx.now))
                    )

    def _apply_trashed(self, ctx: CompileContext) -> None:
        root = ctx.root
        if not root.soft_deletes or ctx.trashed == TrashedMode.WITH:
            return
        operator = "isNotNull" if ctx.trashed == TrashedMode.ONLY else "isNull"
        ctx.plan.conditions.append(
            (AND, Column(root.deleted_at_field, root.table), operator, True)
        )

    def _apply_search(self, ctx: CompileContext, search: str) -> None:
        if search == "":
            return
        conditions = ctx.plan.conditions
        conditions.append(("start", AND))
        for name in ctx.root.search_targets:
            conditions.append((OR, self._root_column(ctx, name), "icontains", search))
        conditions.append(("end",))

    # ------------------------------------------------------------------
    # Sort, group, limit, pagination
    # ------------------------------------------------------------------

    def _sort(self, ctx: CompileContext, tokens: tuple[str, ...]) -> list[str]:
        root = ctx.root
        if not tokens:
            return [f"{root.table}.{root.primary_key}"]
        order = []
        for token in tokens:
            name = token.lstrip("+-")
            if name not in root.readable_fields:
                raise InvalidRequest(f"Unable to list resource: Invalid sort field ({token})")
            sign = "-" if token.startswith("-") else ""
            order.append(f"{sign}{root.table}.{name}")
        return order

    def _group(self, ctx: CompileContext, names: tuple[str, ...]) -> list[str]:
        root = ctx.root
        group = []
        for name in names:
            if name not in root.readable_fields:
                raise InvalidRequest(f"Unable to list resource: Invalid group field ({name})")
            group.append(f"{root.table}.{name}")
        return group

    def _resolve_limit(self, requested: int | None, default_limit: int, max_limit: int) -> int | None:
        if requested is None:
            return None if default_limit == -1 else default_limit
        if requested == -1:
            return None if max_limit == -1 else max_limit
        if max_limit != -1 and requested > max_limit:
            raise InvalidRequest(
                f"Unable to list resource: Limit exceeds maximum ({max_limit})"
            )
        return requested

    def _apply_pagination(self, ctx: CompileContext) -> None:
        spec = ctx.spec
        plan = ctx.plan
        if spec.pagination_method == PAGINATION_PAGE:
            if plan.limit is not None and spec.page > 1:
                plan.offset = plan.limit * (spec.page - 1)
            return
        value = decode_cursor(spec.cursor)
        operator = "gt" if spec.pagination_method == PAGINATION_AFTER else "lt"
        plan.conditions.append((AND, Column(ctx.root.cursor_field, ctx.root.table), operator, value))
