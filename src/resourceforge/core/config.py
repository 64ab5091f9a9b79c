"""Engine-wide settings: limit defaults for schemas and the database URL."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from resourceforge.core.errors import InvalidConfiguration

_ENV_PREFIX = "RESOURCEFORGE_"
DATABASE_URL_ENV = "DATABASE_URL"


def _to_int(name: str, value: Any) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise InvalidConfiguration(f"Invalid engine setting {name}: expected an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidConfiguration(
            f"Invalid engine setting {name}: expected an integer, got {value!r}"
        ) from None


@dataclass(frozen=True)
class EngineConfig:
    """Fallback limits for resource schemas, plus the database to query.

    Attributes:
        default_limit: Rows returned when a list request has no limit
        max_limit: Largest limit a caller may request (-1 = unbounded)
        max_related_depth: Longest related field path a caller may request
        max_filter_depth: Deepest filter group nesting (None = unbounded)
        database_url: sqlite:/// or postgresql:// URL from the `database` setting
    """

    default_limit: int = 100
    max_limit: int = -1
    max_related_depth: int = 3
    max_filter_depth: int | None = None
    database_url: str | None = None

    def __post_init__(self) -> None:
        if self.default_limit < -1 or self.max_limit < -1:
            raise InvalidConfiguration("Engine limits must be integers >= -1")
        if self.max_related_depth < 1:
            raise InvalidConfiguration("Engine max_related_depth must be >= 1")
        if self.max_filter_depth is not None and self.max_filter_depth < 1:
            raise InvalidConfiguration("Engine max_filter_depth must be >= 1")
        if self.database_url is not None and (
            not isinstance(self.database_url, str) or "://" not in self.database_url
        ):
            raise InvalidConfiguration(f"Invalid database URL: {self.database_url!r}")

    @classmethod
    def from_env(cls) -> EngineConfig:
        """Create config from RESOURCEFORGE_* environment variables and DATABASE_URL."""
        values: dict[str, Any] = {}
        for attr in ("default_limit", "max_limit", "max_related_depth", "max_filter_depth"):
            env_name = _ENV_PREFIX + attr.upper()
            parsed = _to_int(env_name, os.environ.get(env_name))
            if parsed is not None:
                values[attr] = parsed
        if os.environ.get(DATABASE_URL_ENV):
            values["database_url"] = os.environ[DATABASE_URL_ENV]
        return cls(**values)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> EngineConfig:
        """Create config from a resourceforge.yaml mapping (camelCase keys)."""
        if not data:
            return cls()
        keys = {
            "defaultLimit": "default_limit",
            "maxLimit": "max_limit",
            "maxRelatedDepth": "max_related_depth",
            "maxFilterDepth": "max_filter_depth",
        }
        values: dict[str, Any] = {}
        for key, attr in keys.items():
            parsed = _to_int(key, data.get(key))
            if parsed is not None:
                values[attr] = parsed
        if data.get("database") is not None:
            values["database_url"] = data["database"]
        return cls(**values)
