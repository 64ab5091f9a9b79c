"""Registry of resource schemas and the model classes that serve them."""

from __future__ import annotations

import logging
from pathlib import Path

from resourceforge.core.config import EngineConfig
from resourceforge.core.errors import InvalidConfiguration, UnexpectedException
from resourceforge.hooks.registry import HookRegistry
from resourceforge.metadata.loader import MetadataLoader
from resourceforge.metadata.schema import ResourceSchema
from resourceforge.resources.model import ResourceModel
from resourceforge.resources.nullable_json import HasNullableJsonField
from resourceforge.resources.prunable import Prunable
from resourceforge.resources.soft_deletes import SoftDeletes
from resourceforge.transforms.builtins import register_builtin_transforms
from resourceforge.transforms.registry import resolve_transform

logger = logging.getLogger(__name__)


def _class_name(resource: str) -> str:
    return "".join(part.capitalize() for part in resource.replace("-", "_").split("_")) + "Model"


class ResourceRegistry:
    """Maps resource names to schemas and model classes.

    A resource registered without a model class gets ResourceModel, with the
    SoftDeletes and Prunable capabilities mixed in when its schema enables
    them.
    """

    def __init__(self, config: EngineConfig | None = None):
        self.config = config or EngineConfig()
        self._schemas: dict[str, ResourceSchema] = {}
        self._custom_models: dict[str, type[ResourceModel]] = {}
        self._model_classes: dict[str, type[ResourceModel]] = {}
        register_builtin_transforms()

    @classmethod
    def from_path(cls, metadata_path: Path, config: EngineConfig | None = None) -> ResourceRegistry:
        """Build a registry from a metadata directory.

        An explicit config wins over the directory's resourceforge.yaml.
        """
        loader = MetadataLoader(metadata_path)
        loader.load_all()
        registry = cls(config or loader.config)
        for schema in loader.resources.values():
            registry.register(schema)
        logger.debug("Loaded %d resource(s) from %s", len(loader.resources), metadata_path)
        return registry

    def register(
        self,
        schema: ResourceSchema,
        model_class: type[ResourceModel] | None = None,
    ) -> None:
        """Register a schema, optionally with its own ResourceModel subclass.

        Raises:
            InvalidConfiguration: Duplicate name, or a model class whose
                capabilities the schema does not configure
        """
        if schema.name in self._schemas:
            raise InvalidConfiguration(f"Resource '{schema.name}' is already registered")

        if model_class is not None:
            if not issubclass(model_class, ResourceModel):
                raise InvalidConfiguration(
                    f"Model for '{schema.name}' must subclass ResourceModel"
                )
            if issubclass(model_class, SoftDeletes) and not schema.soft_deletes:
                raise InvalidConfiguration(
                    f"Model for '{schema.name}' uses SoftDeletes but the schema has no deleted_at_field"
                )
            if issubclass(model_class, Prunable) and not schema.prunable:
                raise InvalidConfiguration(
                    f"Model for '{schema.name}' is Prunable but the schema has no prune_field"
                )
            if issubclass(model_class, HasNullableJsonField) and not schema.is_writable(
                model_class.nullable_json_field
            ):
                raise InvalidConfiguration(
                    f"Model for '{schema.name}' declares nullable JSON field "
                    f"'{model_class.nullable_json_field}' which is not writable"
                )
            self._custom_models[schema.name] = model_class

        self._schemas[schema.name] = schema

    def schema(self, name: str) -> ResourceSchema:
        """Get a registered schema.

        Raises:
            InvalidConfiguration: Unknown resource
        """
        if name not in self._schemas:
            raise InvalidConfiguration(f"Unknown resource '{name}'")
        return self._schemas[name]

    def has(self, name: str) -> bool:
        return name in self._schemas

    def names(self) -> list[str]:
        return sorted(self._schemas)

    def schemas(self) -> list[ResourceSchema]:
        return [self._schemas[name] for name in self.names()]

    def model_class(self, name: str) -> type[ResourceModel]:
        """The model class serving a resource."""
        schema = self.schema(name)
        if name in self._model_classes:
            return self._model_classes[name]

        base = self._custom_models.get(name, ResourceModel)
        mixins: list[type] = []
        if schema.soft_deletes and not issubclass(base, SoftDeletes):
            mixins.append(SoftDeletes)
        if schema.prunable and not issubclass(base, Prunable):
            mixins.append(Prunable)

        model_class = type(_class_name(name), (*mixins, base), {}) if mixins else base
        self._model_classes[name] = model_class
        return model_class

    def unregistered_hooks(self, name: str) -> list[str]:
        """Hook names a schema references that are missing from HookRegistry."""
        schema = self.schema(name)
        missing = []
        for names in schema.hooks.values():
            for hook_name in names:
                if not HookRegistry.is_registered(hook_name) and hook_name not in missing:
                    missing.append(hook_name)
        return missing

    def validate(self) -> None:
        """Check cross-resource references.

        Related fields must name registered resources, and every mutator and
        accessor must resolve. Unregistered hooks only log a warning since
        the hook service skips them.

        Raises:
            InvalidConfiguration: Listing every problem found
        """
        problems: list[str] = []
        for schema in self.schemas():
            for column, target in schema.related_fields.items():
                if target not in self._schemas:
                    problems.append(
                        f"'{schema.name}.{column}' relates to unknown resource '{target}'"
                    )
            for kind, transforms in (("mutator", schema.mutators), ("accessor", schema.accessors)):
                for field_name, spec in transforms.items():
                    try:
                        resolve_transform(spec)
                    except UnexpectedException as e:
                        problems.append(f"'{schema.name}.{field_name}' {kind}: {e.message}")
            for hook_name in self.unregistered_hooks(schema.name):
                logger.warning(
                    "Resource '%s' references unregistered hook '%s'", schema.name, hook_name
                )
        if problems:
            raise InvalidConfiguration("Invalid resources: " + "; ".join(problems))
