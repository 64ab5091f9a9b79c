"""Turn flat result rows into nested resources."""

from collections.abc import Callable
from typing import Any

from resourceforge.metadata.schema import JSON_SEPARATOR
from resourceforge.query.compiler import QueryPlan
from resourceforge.transforms.registry import apply_transforms

AfterRead = Callable[[dict[str, Any]], dict[str, Any]]


def _assign(target: dict[str, Any], keys: list[str], value: Any) -> None:
    for key in keys[:-1]:
        child = target.get(key)
        if not isinstance(child, dict):
            child = {}
            target[key] = child
        target = child
    target[keys[-1]] = value


def unflatten(row: dict[str, Any]) -> dict[str, Any]:
    """Nest "a.b" related prefixes and "col->key" JSON paths.

    >>> unflatten({"id": 1, "author.name": "Ann", "meta->color": "red"})
    {'id': 1, 'author': {'name': 'Ann'}, 'meta': {'color': 'red'}}
    """
    nested: dict[str, Any] = {}
    # Plain columns first so a nested object replaces its raw key value
    ordered = sorted(row.items(), key=lambda item: "." in item[0] or JSON_SEPARATOR in item[0])
    for column, value in ordered:
        segments = column.split(".")
        keys = segments[:-1] + segments[-1].split(JSON_SEPARATOR)
        _assign(nested, keys, value)
    return nested


def _navigate(row: dict[str, Any], path: tuple[str, ...]) -> dict[str, Any] | None:
    node: Any = row
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node if isinstance(node, dict) else None


class ResultReshaper:
    """Reshape rows produced by one QueryPlan."""

    def __init__(self, plan: QueryPlan, after_read: AfterRead | None = None):
        self.plan = plan
        self.after_read = after_read

    def reshape(self, row: dict[str, Any]) -> dict[str, Any]:
        plan = self.plan
        flat = dict(row)
        if not plan.keep_cursor:
            flat.pop(plan.cursor_field, None)

        nested = unflatten(flat)

        for path in sorted(plan.related, key=len, reverse=True):
            related = plan.related[path]
            if not related.accessors:
                continue
            target = _navigate(nested, path)
            if target is not None:
                apply_transforms(target, related.accessors)

        apply_transforms(nested, plan.schema.accessors)

        if self.after_read is not None:
            nested = self.after_read(nested)
        return nested
