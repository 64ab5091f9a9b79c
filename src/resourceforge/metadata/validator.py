"""
metadata/validator.py: JSON Schema validation for resource YAML files.

Validates ``resources/*.yaml`` and ``resourceforge.yaml`` against the JSON
Schemas shipped in ``metadata/schemas``.

Usage:
    from resourceforge.metadata.validator import validate_metadata_dir

    issues = validate_metadata_dir(Path("metadata"))
    for issue in issues:
        print(issue)

Schema validation checks document shape only. Semantic checks (readable
primary key, related resources that exist, registered transforms) happen
when the documents are loaded into a ResourceRegistry; validate_metadata_dir
reports those too.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError
from referencing import Registry, Resource
from referencing.jsonschema import DRAFT202012

from resourceforge.core.errors import ResourceError
from resourceforge.metadata.loader import CONFIG_FILE, RESOURCES_DIR
from resourceforge.metadata.registry import ResourceRegistry

logger = logging.getLogger(__name__)

_SCHEMAS_DIR = Path(__file__).parent / "schemas"

RESOURCE_SCHEMA = "resource.schema.json"
CONFIG_SCHEMA = "config.schema.json"


@dataclass
class ValidationIssue:
    """A single validation finding for a metadata YAML file."""

    file: Path
    message: str
    path: str = ""          # Location within the document, e.g. "writable/title"
    severity: str = "error" # "error" | "warning"

    def __str__(self) -> str:
        loc = f" at {self.path}" if self.path else ""
        return f"[{self.severity.upper()}] {self.file}{loc}: {self.message}"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_schema(name: str) -> dict[str, Any]:
    schema_path = _SCHEMAS_DIR / name
    with schema_path.open() as fh:
        return json.load(fh)


def _load_registry() -> Registry:
    """Build a jsonschema Registry containing all resourceforge schemas."""
    schema_names = [
        "_defs.schema.json",
        RESOURCE_SCHEMA,
        CONFIG_SCHEMA,
    ]
    resources = []
    for name in schema_names:
        schema = _load_schema(name)
        resources.append(
            (schema["$id"], Resource(contents=schema, specification=DRAFT202012))
        )
    return Registry().with_resources(resources)


def _json_path(error: ValidationError) -> str:
    """Convert a jsonschema ValidationError path to a readable string."""
    parts = []
    for p in error.absolute_path:
        if isinstance(p, int):
            parts.append(f"[{p}]")
        else:
            parts.append(str(p))
    return "/".join(parts).replace("/[", "[")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_yaml_file(
    yaml_path: Path,
    schema_name: str = RESOURCE_SCHEMA,
    *,
    registry: Registry | None = None,
) -> list[ValidationIssue]:
    """
    Validate a single YAML file against the named schema.

    Args:
        yaml_path:   Path to the YAML file to validate.
        schema_name: Filename of the schema (e.g. ``"resource.schema.json"``).
        registry:    Pre-built schema registry.  Built automatically if omitted.

    Returns:
        A list of :class:`ValidationIssue` objects (empty on success).
    """
    try:
        with yaml_path.open() as fh:
            doc = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        return [ValidationIssue(file=yaml_path, message=f"YAML parse error: {exc}")]

    if doc is None:
        return [
            ValidationIssue(file=yaml_path, message="File is empty or contains only whitespace")
        ]

    if registry is None:
        registry = _load_registry()

    schema = _load_schema(schema_name)
    validator = Draft202012Validator(schema, registry=registry)

    return [
        ValidationIssue(file=yaml_path, message=error.message, path=_json_path(error))
        for error in sorted(validator.iter_errors(doc), key=lambda e: list(map(str, e.path)))
    ]


def _semantic_issues(metadata_dir: Path) -> list[ValidationIssue]:
    """Load the directory into a registry and report what it rejects."""
    try:
        registry = ResourceRegistry.from_path(metadata_dir)
        registry.validate()
    except ResourceError as exc:
        return [ValidationIssue(file=metadata_dir, message=exc.message)]

    issues = []
    for name in registry.names():
        for hook_name in registry.unregistered_hooks(name):
            issues.append(
                ValidationIssue(
                    file=metadata_dir / RESOURCES_DIR,
                    message=f"Resource '{name}' references unregistered hook '{hook_name}'",
                    severity="warning",
                )
            )
    return issues


def validate_metadata_dir(
    metadata_dir: Path,
    *,
    strict: bool = False,
) -> list[ValidationIssue]:
    """
    Validate all YAML files under *metadata_dir*.

    Checks ``resourceforge.yaml`` and every ``resources/*.yaml`` against
    their JSON Schemas, then, if the documents are well formed, loads them
    to run the semantic checks.

    Args:
        metadata_dir: Root metadata directory (contains ``resources/``).
        strict:       If ``True``, warnings are escalated to errors.

    Returns:
        A flat list of :class:`ValidationIssue` objects across all files.
        Empty list means all files are valid.
    """
    if not metadata_dir.is_dir():
        return [
            ValidationIssue(
                file=metadata_dir,
                message=f"Metadata directory does not exist: {metadata_dir}",
            )
        ]

    # Build registry once, shared across all file validations
    try:
        registry = _load_registry()
    except (FileNotFoundError, json.JSONDecodeError) as exc:
        return [
            ValidationIssue(
                file=_SCHEMAS_DIR,
                message=f"Failed to load JSON Schema files: {exc}",
            )
        ]

    all_issues: list[ValidationIssue] = []

    config_file = metadata_dir / CONFIG_FILE
    if config_file.exists():
        all_issues.extend(validate_yaml_file(config_file, CONFIG_SCHEMA, registry=registry))

    resources_dir = metadata_dir / RESOURCES_DIR
    if resources_dir.is_dir():
        for yaml_file in sorted(resources_dir.glob("*.yaml")):
            all_issues.extend(validate_yaml_file(yaml_file, RESOURCE_SCHEMA, registry=registry))

    if not any(issue.severity == "error" for issue in all_issues):
        all_issues.extend(_semantic_issues(metadata_dir))

    if strict:
        for issue in all_issues:
            if issue.severity == "warning":
                issue.severity = "error"

    logger.debug("Validated %s: %d issue(s)", metadata_dir, len(all_issues))
    return all_issues
