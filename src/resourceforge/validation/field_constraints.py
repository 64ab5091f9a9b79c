"""Field-level write rules.

Each writable field carries FieldRules from its schema:
- type: Format check (integer, email, url, uuid, date, ...)
- nullable: Whether None is accepted
- min/max: Numeric bounds
- minLength/maxLength: String length bounds
- pattern: Regex pattern matching
- options: Allowed values
"""

import re
from dataclasses import dataclass
from typing import Any

from resourceforge.metadata.schema import FieldRules
from resourceforge.validation.types import ValidationError


# =============================================================================
# Type-Specific Format Patterns
# =============================================================================

EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
)

URL_PATTERN = re.compile(
    r"^https?://[^\s/$.?#].[^\s]*$",
    re.IGNORECASE
)

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE
)

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

DATETIME_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}")


# =============================================================================
# Field Constraint Validator
# =============================================================================


@dataclass
class FieldConstraintValidator:
    """Validates a single field value against its FieldRules."""

    field: str
    rules: FieldRules

    def validate(self, value: Any) -> list[ValidationError]:
        """Validate value, returning every failed rule."""
        errors: list[ValidationError] = []

        if value is None:
            if not self.rules.nullable:
                errors.append(ValidationError(
                    message=f"{self.field} may not be null",
                    code="NOT_NULLABLE",
                    field=self.field,
                ))
            return errors

        type_error = self._validate_type_format(value)
        if type_error:
            errors.append(ValidationError(
                message=type_error,
                code=f"INVALID_{self.rules.type.upper()}",
                field=self.field,
            ))
            return errors  # Don't continue if type is invalid

        if self.rules.type in ("integer", "number"):
            errors.extend(self._validate_numeric_bounds(value))

        if isinstance(value, str):
            errors.extend(self._validate_string_length(value))

            if self.rules.pattern and not re.search(self.rules.pattern, value):
                errors.append(ValidationError(
                    message=f"{self.field} does not match the required format",
                    code="PATTERN",
                    field=self.field,
                ))

        if self.rules.options is not None and value not in self.rules.options:
            errors.append(ValidationError(
                message=f"{self.field} must be one of: {', '.join(map(str, self.rules.options))}",
                code="INVALID_OPTION",
                field=self.field,
            ))

        return errors

    def _validate_type_format(self, value: Any) -> str | None:
        """Validate value against type-specific format. Returns error message or None."""
        field_type = self.rules.type

        if field_type in ("string", "text"):
            if not isinstance(value, str):
                return f"{self.field} must be a string"

        elif field_type == "integer":
            if isinstance(value, bool) or not isinstance(value, int):
                return f"{self.field} must be an integer"

        elif field_type == "number":
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return f"{self.field} must be a number"

        elif field_type == "boolean":
            if not isinstance(value, bool) and value not in (0, 1):
                return f"{self.field} must be a boolean"

        elif field_type == "email":
            if not isinstance(value, str) or not EMAIL_PATTERN.match(value):
                return f"{self.field} must be a valid email address"

        elif field_type == "url":
            if not isinstance(value, str) or not URL_PATTERN.match(value):
                return f"{self.field} must be a valid URL"

        elif field_type == "uuid":
            if not isinstance(value, str) or not UUID_PATTERN.match(value):
                return f"{self.field} must be a valid UUID"

        elif field_type == "date":
            if not isinstance(value, str) or not DATE_PATTERN.match(value):
                return f"{self.field} must be a valid date (YYYY-MM-DD)"

        elif field_type == "datetime":
            if not isinstance(value, str) or not DATETIME_PATTERN.match(value):
                return f"{self.field} must be a valid datetime"

        elif field_type == "json":
            if not isinstance(value, (dict, list, str)):
                return f"{self.field} must be a JSON object, array or string"

        return None

    def _validate_numeric_bounds(self, value: Any) -> list[ValidationError]:
        errors = []
        if self.rules.min is not None and value < self.rules.min:
            errors.append(ValidationError(
                message=f"{self.field} must be at least {self.rules.min}",
                code="MIN_VALUE",
                field=self.field,
            ))
        if self.rules.max is not None and value > self.rules.max:
            errors.append(ValidationError(
                message=f"{self.field} must be at most {self.rules.max}",
                code="MAX_VALUE",
                field=self.field,
            ))
        return errors

    def _validate_string_length(self, value: str) -> list[ValidationError]:
        errors = []
        if self.rules.min_length is not None and len(value) < self.rules.min_length:
            errors.append(ValidationError(
                message=f"{self.field} must be at least {self.rules.min_length} characters",
                code="MIN_LENGTH",
                field=self.field,
            ))
        if self.rules.max_length is not None and len(value) > self.rules.max_length:
            errors.append(ValidationError(
                message=f"{self.field} must be at most {self.rules.max_length} characters",
                code="MAX_LENGTH",
                field=self.field,
            ))
        return errors
