"""Schema CLI commands: validate and show."""

import json
from pathlib import Path

import click

from resourceforge.core.errors import ResourceError
from resourceforge.metadata.registry import ResourceRegistry
from resourceforge.metadata.loader import CONFIG_FILE
from resourceforge.metadata.schema import ResourceSchema
from resourceforge.metadata.validator import (
    CONFIG_SCHEMA,
    RESOURCE_SCHEMA,
    validate_metadata_dir,
    validate_yaml_file,
)


@click.group()
def schema():
    """Resource schema commands."""
    pass


@schema.command()
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Treat warnings as errors.",
)
@click.option(
    "--path",
    "target_path",
    default=None,
    type=click.Path(exists=True, path_type=Path),
    help="Validate a single YAML file instead of the whole metadata directory.",
)
@click.pass_context
def validate(ctx: click.Context, strict: bool, target_path: Path | None):
    """Validate resource YAML files."""
    metadata_path: Path = ctx.obj["metadata_path"]

    if target_path is not None:
        schema_name = CONFIG_SCHEMA if target_path.name == CONFIG_FILE else RESOURCE_SCHEMA
        issues = validate_yaml_file(target_path, schema_name)
    else:
        if not metadata_path.exists():
            click.echo(f"Error: Metadata directory not found at {metadata_path}", err=True)
            raise SystemExit(1)
        issues = validate_metadata_dir(metadata_path, strict=strict)

    errors = [i for i in issues if i.severity == "error"]
    warnings = [i for i in issues if i.severity == "warning"]

    for issue in issues:
        colour = "red" if issue.severity == "error" else "yellow"
        click.echo(click.style(str(issue), fg=colour))

    if errors:
        click.echo(
            click.style(
                f"\n{len(errors)} error(s) found"
                + (f", {len(warnings)} warning(s)" if warnings else ""),
                fg="red",
                bold=True,
            )
        )
        raise SystemExit(1)

    if warnings:
        click.echo(click.style(f"{len(warnings)} warning(s) found.", fg="yellow"))

    if target_path is None:
        registry = ResourceRegistry.from_path(metadata_path)
        click.echo(f"\nLoaded {len(registry.names())} resources:")
        for name in registry.names():
            resolved = registry.schema(name)
            capabilities = [
                label
                for label, enabled in (("soft deletes", resolved.soft_deletes), ("prunable", resolved.prunable))
                if enabled
            ]
            suffix = f", {', '.join(capabilities)}" if capabilities else ""
            click.echo(
                f"  ✓ {name} (table: {resolved.table}, "
                f"{len(resolved.readable_fields)} readable, "
                f"{len(resolved.writable_fields)} writable{suffix})"
            )

    click.echo(click.style("\nAll metadata is valid.", fg="green", bold=True))


def describe_schema(resolved: ResourceSchema, registry: ResourceRegistry) -> dict:
    """JSON-friendly view of a resolved schema, limits included."""
    default_limit, max_limit, max_depth = resolved.resolve_limits(registry.config)
    return {
        "resource": resolved.name,
        "table": resolved.table,
        "primaryKey": resolved.primary_key,
        "cursorField": resolved.cursor_field,
        "readable": list(resolved.readable_fields),
        "writable": {
            name: {
                "type": rules.type,
                "nullable": rules.nullable,
                **{
                    key: value
                    for key, value in (
                        ("min", rules.min),
                        ("max", rules.max),
                        ("minLength", rules.min_length),
                        ("maxLength", rules.max_length),
                        ("pattern", rules.pattern),
                        ("options", list(rules.options) if rules.options is not None else None),
                    )
                    if value is not None
                },
            }
            for name, rules in resolved.writable_fields.items()
        },
        "required": list(resolved.required_fields),
        "related": dict(resolved.related_fields),
        "unique": [u if isinstance(u, str) else list(u) for u in resolved.unique_fields],
        "search": list(resolved.search_targets),
        "defaultLimit": default_limit,
        "maxLimit": max_limit,
        "maxRelatedDepth": max_depth,
        "softDeletes": resolved.deleted_at_field,
        "prunable": resolved.prune_field,
        "upsertConflict": list(resolved.upsert_conflict_fields),
        "hooks": {point: list(names) for point, names in resolved.hooks.items()},
        "model": registry.model_class(resolved.name).__name__,
    }


@schema.command()
@click.argument("name")
@click.pass_context
def show(ctx: click.Context, name: str):
    """Print a resolved resource schema as JSON."""
    try:
        registry = ResourceRegistry.from_path(ctx.obj["metadata_path"])
        resolved = registry.schema(name)
    except ResourceError as e:
        click.echo(click.style(f"Error: {e.message}", fg="red"), err=True)
        raise SystemExit(1)

    click.echo(json.dumps(describe_schema(resolved, registry), indent=2))
