"""Helpers for JSON columns where a null value means "remove this key"."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from resourceforge.core.errors import InvalidField
from resourceforge.persistence.dialect import JSON_KEY_PATTERN


def flatten_keys(data: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested mappings into dot keys. Empty mappings stay as values."""
    flat: dict[str, Any] = {}
    for key, value in data.items():
        full = f"{prefix}{key}"
        if isinstance(value, Mapping) and value:
            flat.update(flatten_keys(value, f"{full}."))
        else:
            flat[full] = value
    return flat


def expand_keys(flat: Mapping[str, Any]) -> dict[str, Any]:
    """Inverse of flatten_keys()."""
    nested: dict[str, Any] = {}
    for key, value in flat.items():
        node = nested
        *parents, last = key.split(".")
        for part in parents:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[last] = value
    return nested


class HasNullableJsonField:
    """Mixin for models with a JSON column whose null values delete keys.

    Subclasses set nullable_json_field and call the helpers from their
    before_create/before_update overrides:

        class UserModel(HasNullableJsonField, ResourceModel):
            nullable_json_field = "meta"

            def before_update(self, existing, fields):
                if "meta" in fields:
                    fields["meta"] = json.dumps(
                        self.update_nullable_json(existing.primary_key, json.loads(fields["meta"]))
                    )
                return super().before_update(existing, fields)
    """

    nullable_json_field: str = ""

    def _check_keys(self, flat: Mapping[str, Any]) -> None:
        for key in flat:
            for part in key.split("."):
                if not JSON_KEY_PATTERN.match(part):
                    raise InvalidField(
                        f"Invalid {self.nullable_json_field} key: Keys can only contain "
                        "alphanumeric characters, underscores and dashes",
                        field=self.nullable_json_field,
                    )

    def define_nullable_json(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Drop null keys from a new JSON value."""
        flat = {k: v for k, v in flatten_keys(data).items() if v is not None}
        self._check_keys(flat)
        return expand_keys(flat)

    def update_nullable_json(self, primary_key: Any, data: Mapping[str, Any]) -> dict[str, Any]:
        """Merge data into the stored JSON value, removing keys set to null."""
        schema = self.schema
        column = self.nullable_json_field
        rows = (
            self.db.new_query()
            .table(schema.table)
            .select(f"{schema.table}.{column}", column)
            .where(f"{schema.table}.{schema.primary_key}", "eq", primary_key)
            .limit(1)
            .get()
        )
        stored = rows[0][column] if rows else None
        if isinstance(stored, str):
            try:
                stored = json.loads(stored)
            except json.JSONDecodeError:
                stored = None
        current = flatten_keys(stored) if isinstance(stored, Mapping) else {}

        merged = {**current, **flatten_keys(data)}
        merged = {k: v for k, v in merged.items() if v is not None}
        self._check_keys(merged)
        return expand_keys(merged)
