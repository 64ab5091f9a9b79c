"""Read-only snapshot of a single resource row."""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from resourceforge.resources.model import ResourceModel

_MISSING = object()


class Resource:
    """One row as it was read, detached from the database.

    Values are nested the way ResourceModel.read() returns them, so related
    and JSON values can be reached with dot keys:

        resource.get("author.name")
    """

    def __init__(self, model: ResourceModel, data: dict[str, Any]):
        self.model = model
        self._data = copy.deepcopy(data)

    @property
    def primary_key(self) -> Any:
        return self._data.get(self.model.schema.primary_key)

    def read(self) -> dict[str, Any]:
        """A deep copy of the row."""
        return copy.deepcopy(self._data)

    def as_dict(self) -> dict[str, Any]:
        return self.read()

    def get(self, key: str, default: Any = None) -> Any:
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict):
                return default
            node = node.get(part, _MISSING)
            if node is _MISSING:
                return default
        return copy.deepcopy(node)

    def __getitem__(self, key: str) -> Any:
        value = self.get(key, _MISSING)
        if value is _MISSING:
            raise KeyError(key)
        return value

    def __contains__(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __repr__(self) -> str:
        return f"<Resource {self.model.schema.name}:{self.primary_key}>"
