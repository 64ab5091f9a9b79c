"""Load resource schemas from YAML files.

Layout of a metadata directory:

    resourceforge.yaml        optional engine defaults (defaultLimit, database, ...)
    resources/*.yaml          one resource per file
"""

from pathlib import Path
from typing import Any

import yaml

from resourceforge.core.config import EngineConfig
from resourceforge.core.errors import InvalidConfiguration
from resourceforge.metadata.schema import ResourceSchema

CONFIG_FILE = "resourceforge.yaml"
RESOURCES_DIR = "resources"

# Column names used when a capability is switched on with a bare `true`
DEFAULT_DELETED_AT_FIELD = "deleted_at"
DEFAULT_PRUNE_FIELD = "created_at"


class MetadataLoader:
    """Loads resource definitions and engine config from YAML files."""

    def __init__(self, metadata_path: Path):
        self.metadata_path = Path(metadata_path)
        self.config = EngineConfig()
        self.resources: dict[str, ResourceSchema] = {}
        self.sources: dict[str, Path] = {}

    def load_all(self) -> None:
        """Load the engine config and every resource."""
        self._load_config()
        self._load_resources()

    def _read_yaml(self, path: Path) -> Any:
        try:
            with open(path) as f:
                return yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise InvalidConfiguration(f"Unable to parse {path}: {e}") from e

    def _load_config(self) -> None:
        config_path = self.metadata_path / CONFIG_FILE
        if not config_path.exists():
            return
        data = self._read_yaml(config_path)
        if data is not None and not isinstance(data, dict):
            raise InvalidConfiguration(f"{config_path} must contain a mapping")
        self.config = EngineConfig.from_dict(data)

    def _load_resources(self) -> None:
        resources_path = self.metadata_path / RESOURCES_DIR
        if not resources_path.exists():
            return

        for yaml_file in sorted(resources_path.glob("*.yaml")):
            data = self._read_yaml(yaml_file)
            if not data or "resource" not in data:
                continue
            schema = self._resolve_resource(data)
            if schema.name in self.resources:
                raise InvalidConfiguration(
                    f"Duplicate resource '{schema.name}' in {yaml_file} "
                    f"(already defined in {self.sources[schema.name]})"
                )
            self.resources[schema.name] = schema
            self.sources[schema.name] = yaml_file

    def _resolve_resource(self, data: dict) -> ResourceSchema:
        """Convert a YAML resource definition to a ResourceSchema."""
        primary_key = data.get("primaryKey", "id")
        return ResourceSchema(
            name=data["resource"],
            table=data.get("table", data["resource"]),
            readable_fields=data.get("readable", ()),
            writable_fields=data.get("writable") or {},
            primary_key=primary_key,
            cursor_field=data.get("cursorField"),
            required_fields=data.get("required", ()),
            related_fields=data.get("related") or {},
            unique_fields=self._resolve_unique(data.get("unique")),
            search_fields=data.get("search", ()),
            max_related_depth=data.get("maxRelatedDepth"),
            default_limit=data.get("defaultLimit"),
            max_limit=data.get("maxLimit"),
            mutators=data.get("mutators") or {},
            accessors=data.get("accessors") or {},
            default_values=data.get("defaults") or {},
            deleted_at_field=self._resolve_capability(
                data.get("softDeletes"), DEFAULT_DELETED_AT_FIELD
            ),
            prune_field=self._resolve_capability(data.get("prunable"), DEFAULT_PRUNE_FIELD),
            upsert_conflict_fields=data.get("upsertConflict", ()),
            hooks=data.get("hooks") or {},
            omitted_fields=data.get("omitted", ()),
        )

    def _resolve_unique(self, value: Any) -> tuple:
        """Unique entries are a field name or a list of names (composite)."""
        if not value:
            return ()
        return tuple(item if isinstance(item, str) else tuple(item) for item in value)

    def _resolve_capability(self, value: Any, default_field: str) -> str | None:
        """softDeletes / prunable accept true, a column name, or {field: column}."""
        if value is None or value is False:
            return None
        if value is True:
            return default_field
        if isinstance(value, str):
            return value
        if isinstance(value, dict) and "field" in value:
            return value["field"]
        raise InvalidConfiguration(f"Invalid capability definition: {value!r}")

    def get_resource(self, name: str) -> ResourceSchema | None:
        """Get a loaded resource schema by name."""
        return self.resources.get(name)

    def list_resources(self) -> list[str]:
        """List all resource names."""
        return list(self.resources.keys())
