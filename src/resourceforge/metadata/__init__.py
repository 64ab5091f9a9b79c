"""Resource schema definitions and their YAML metadata.

The loader, validator and registry live in their own modules and are
imported from there; this package only re-exports the schema types, which
the query layer depends on.
"""

from resourceforge.metadata.schema import (
    FIELD_RULE_TYPES,
    JSON_SEPARATOR,
    FieldRules,
    ResourceSchema,
    base_field,
    json_path,
)

__all__ = [
    "FIELD_RULE_TYPES",
    "JSON_SEPARATOR",
    "FieldRules",
    "ResourceSchema",
    "base_field",
    "json_path",
]
