"""Glue between resource schemas and field validators."""

from typing import Any

from resourceforge.core.errors import InvalidField
from resourceforge.metadata.schema import ResourceSchema
from resourceforge.validation.field_constraints import FieldConstraintValidator
from resourceforge.validation.types import Operation, ValidationError


def collect_field_errors(
    schema: ResourceSchema, fields: dict[str, Any]
) -> list[ValidationError]:
    """Validate every write field, returning all failures.

    Unknown (non-writable) fields are reported with code UNKNOWN_FIELD.
    """
    errors: list[ValidationError] = []
    for name, value in fields.items():
        rules = schema.writable_fields.get(name)
        if rules is None:
            errors.append(ValidationError(
                message=f"Invalid field ({name})",
                code="UNKNOWN_FIELD",
                field=name,
            ))
            continue
        errors.extend(FieldConstraintValidator(name, rules).validate(value))
    return errors


def validate_write_fields(
    schema: ResourceSchema,
    fields: dict[str, Any],
    operation: Operation,
) -> None:
    """Raise InvalidField for the first write field that fails validation."""
    errors = collect_field_errors(schema, fields)
    if errors:
        first = errors[0]
        raise InvalidField(
            f"Unable to {operation.value} resource: {first.message}",
            field=first.field,
        )
