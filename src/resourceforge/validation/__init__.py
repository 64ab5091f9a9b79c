"""Write validation for resource fields."""

from resourceforge.validation.field_constraints import FieldConstraintValidator
from resourceforge.validation.integration import collect_field_errors, validate_write_fields
from resourceforge.validation.types import Operation, ValidationError

__all__ = [
    "FieldConstraintValidator",
    "Operation",
    "ValidationError",
    "collect_field_errors",
    "validate_write_fields",
]
