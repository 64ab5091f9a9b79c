"""Core types for write validation."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Operation(Enum):
    """The type of write being validated."""

    CREATE = "create"
    UPDATE = "update"
    UPSERT = "upsert"


@dataclass(frozen=True)
class ValidationError:
    """A single field validation failure.

    Attributes:
        message: Human-readable message
        code: Machine-readable error code (e.g., "MAX_LENGTH")
        field: Field name this error relates to
    """

    message: str
    code: str
    field: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "field": self.field,
        }
