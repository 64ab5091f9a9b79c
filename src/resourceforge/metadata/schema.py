"""Resource schema definitions.

A ResourceSchema is the static, per-resource configuration that drives
query compilation and the write lifecycle. It carries no behaviour beyond
validating its own invariants at construction time.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from resourceforge.core.config import EngineConfig
from resourceforge.core.errors import InvalidConfiguration
from resourceforge.hooks.types import HOOK_POINTS

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Separator between a JSON column and the path inside it, e.g. "meta->color"
JSON_SEPARATOR = "->"

FIELD_RULE_TYPES = (
    "any",
    "string",
    "text",
    "integer",
    "number",
    "boolean",
    "email",
    "url",
    "uuid",
    "date",
    "datetime",
    "json",
)

TransformSpec = str | Callable[[Any], Any]


def base_field(name: str) -> str:
    """Return the column part of a possibly JSON-pathed field name."""
    return name.split(JSON_SEPARATOR, 1)[0]


def json_path(name: str) -> tuple[str, ...]:
    """Return the path segments after the column in a JSON field name."""
    parts = name.split(JSON_SEPARATOR)
    return tuple(parts[1:])


@dataclass(frozen=True)
class FieldRules:
    """Write rules for a single writable field."""

    type: str = "any"
    nullable: bool = True
    min: float | None = None
    max: float | None = None
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None
    options: tuple[Any, ...] | None = None

    def __post_init__(self) -> None:
        if self.type not in FIELD_RULE_TYPES:
            raise InvalidConfiguration(
                f"Unknown field rule type '{self.type}'. "
                f"Valid types: {', '.join(FIELD_RULE_TYPES)}"
            )
        if self.options is not None and not isinstance(self.options, tuple):
            object.__setattr__(self, "options", tuple(self.options))
        if self.pattern is not None:
            try:
                re.compile(self.pattern)
            except re.error as e:
                raise InvalidConfiguration(f"Invalid field rule pattern '{self.pattern}': {e}") from e

    @classmethod
    def from_value(cls, value: Any) -> FieldRules:
        """Build rules from a FieldRules, a type name, a YAML dict, or None."""
        if isinstance(value, FieldRules):
            return value
        if value is None:
            return cls()
        if isinstance(value, str):
            return cls(type=value)
        if isinstance(value, Mapping):
            return cls(
                type=value.get("type", "any"),
                nullable=value.get("nullable", True),
                min=value.get("min"),
                max=value.get("max"),
                min_length=value.get("minLength", value.get("min_length")),
                max_length=value.get("maxLength", value.get("max_length")),
                pattern=value.get("pattern"),
                options=value.get("options"),
            )
        raise InvalidConfiguration(f"Invalid field rules: {value!r}")


def _freeze_mapping(value: Mapping | None) -> Mapping:
    return MappingProxyType(dict(value or {}))


def _as_tuple(value: Iterable[str] | str | None) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(value)


@dataclass(frozen=True, eq=False)
class ResourceSchema:
    """Static configuration for one resource type.

    Limits left as None fall back to the engine configuration.
    """

    name: str
    table: str
    readable_fields: tuple[str, ...]
    writable_fields: Mapping[str, FieldRules] = field(default_factory=dict)
    primary_key: str = "id"
    cursor_field: str | None = None
    required_fields: tuple[str, ...] = ()
    related_fields: Mapping[str, str] = field(default_factory=dict)
    unique_fields: tuple[str | tuple[str, ...], ...] = ()
    search_fields: tuple[str, ...] = ()
    max_related_depth: int | None = None
    default_limit: int | None = None
    max_limit: int | None = None
    mutators: Mapping[str, TransformSpec] = field(default_factory=dict)
    accessors: Mapping[str, TransformSpec] = field(default_factory=dict)
    default_values: Mapping[str, Any] = field(default_factory=dict)
    deleted_at_field: str | None = None
    prune_field: str | None = None
    upsert_conflict_fields: tuple[str, ...] = ()
    hooks: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    omitted_fields: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        setattr_ = object.__setattr__
        setattr_(self, "readable_fields", _as_tuple(self.readable_fields))
        setattr_(self, "required_fields", _as_tuple(self.required_fields))
        setattr_(self, "search_fields", _as_tuple(self.search_fields))
        setattr_(self, "omitted_fields", _as_tuple(self.omitted_fields))
        setattr_(
            self,
            "writable_fields",
            _freeze_mapping(
                {name: FieldRules.from_value(rules) for name, rules in self._writable_items()}
            ),
        )
        setattr_(
            self,
            "unique_fields",
            tuple(
                u if isinstance(u, str) else tuple(u)
                for u in _as_tuple(self.unique_fields) if u
            ),
        )
        setattr_(
            self,
            "hooks",
            _freeze_mapping({point: _as_tuple(names) for point, names in dict(self.hooks).items()}),
        )
        for attr in ("related_fields", "mutators", "accessors", "default_values"):
            setattr_(self, attr, _freeze_mapping(getattr(self, attr)))
        if self.cursor_field is None:
            setattr_(self, "cursor_field", self.primary_key)
        conflict = _as_tuple(self.upsert_conflict_fields) or (self.primary_key,)
        setattr_(self, "upsert_conflict_fields", conflict)

        self._validate()

    def _writable_items(self) -> Iterable[tuple[str, Any]]:
        writable = self.writable_fields
        if isinstance(writable, Mapping):
            return writable.items()
        # A plain list of names means "writable with no rules"
        return ((name, None) for name in writable)

    def _fail(self, message: str) -> None:
        raise InvalidConfiguration(f"Invalid resource '{self.name}': {message}")

    def _validate(self) -> None:
        identifiers = [
            self.table,
            self.primary_key,
            self.cursor_field,
            *self.readable_fields,
            *self.writable_fields,
            *self.related_fields,
            *self.upsert_conflict_fields,
        ]
        if self.deleted_at_field:
            identifiers.append(self.deleted_at_field)
        if self.prune_field:
            identifiers.append(self.prune_field)
        for unique in self.unique_fields:
            identifiers.extend([unique] if isinstance(unique, str) else unique)
        for ident in identifiers:
            if not isinstance(ident, str) or not IDENTIFIER_PATTERN.match(ident):
                self._fail(f"invalid identifier {ident!r}")

        if not self.readable_fields:
            self._fail("no readable fields")
        if self.primary_key not in self.readable_fields:
            self._fail(f"primary key '{self.primary_key}' is not readable")
        if self.cursor_field not in self.readable_fields:
            self._fail(f"cursor field '{self.cursor_field}' is not readable")
        for search in self.search_fields:
            if base_field(search) not in self.readable_fields:
                self._fail(f"search field '{search}' is not readable")

        for required in self.required_fields:
            if required not in self.writable_fields:
                self._fail(f"required field '{required}' is not writable")

        columns = set(self.readable_fields) | set(self.writable_fields)
        for column, resource in self.related_fields.items():
            if column not in columns:
                self._fail(f"related field '{column}' is neither readable nor writable")
            if not isinstance(resource, str) or not resource:
                self._fail(f"related field '{column}' must name a resource")
        for unique in self.unique_fields:
            for name in [unique] if isinstance(unique, str) else unique:
                if name not in columns:
                    self._fail(f"unique field '{name}' is neither readable nor writable")
        for name in self.mutators:
            if name not in self.writable_fields:
                self._fail(f"mutator declared for non-writable field '{name}'")
        for name in self.accessors:
            if name not in self.readable_fields:
                self._fail(f"accessor declared for non-readable field '{name}'")
        for point in self.hooks:
            if point not in HOOK_POINTS:
                self._fail(f"unknown hook point '{point}'")

        for attr in ("default_limit", "max_limit"):
            value = getattr(self, attr)
            if value is not None and (not isinstance(value, int) or value < -1):
                self._fail(f"{attr} must be an integer >= -1")
        if self.max_related_depth is not None and (
            not isinstance(self.max_related_depth, int) or self.max_related_depth < 1
        ):
            self._fail("max_related_depth must be an integer >= 1")

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def soft_deletes(self) -> bool:
        return self.deleted_at_field is not None

    @property
    def prunable(self) -> bool:
        return self.prune_field is not None

    @property
    def search_targets(self) -> tuple[str, ...]:
        return self.search_fields or self.readable_fields

    def is_readable(self, name: str) -> bool:
        return base_field(name) in self.readable_fields

    def is_writable(self, name: str) -> bool:
        return name in self.writable_fields

    def is_omitted_field(self, name: str) -> bool:
        return name in self.omitted_fields

    def hook_names(self, point: str) -> tuple[str, ...]:
        return tuple(self.hooks.get(point, ()))

    def resolve_limits(self, config: EngineConfig) -> tuple[int, int, int]:
        """Return (default_limit, max_limit, max_related_depth) after fallbacks."""
        return (
            config.default_limit if self.default_limit is None else self.default_limit,
            config.max_limit if self.max_limit is None else self.max_limit,
            config.max_related_depth if self.max_related_depth is None else self.max_related_depth,
        )

    def redact(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        """Copy of fields with omitted values masked, for log output."""
        return {k: ("********" if k in self.omitted_fields else v) for k, v in fields.items()}
