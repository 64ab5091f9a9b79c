"""Hook system types for resourceforge.

Defines the core data structures for the resource lifecycle hook system:
- HookContext: runtime state passed to hook functions
- HookResult: return value from hook functions
"""

from dataclasses import dataclass
from typing import Any

# Lifecycle points a schema may attach named hooks to, in firing order
HOOK_POINTS = (
    "begin",
    "beforeWrite",
    "beforeCreate",
    "beforeUpdate",
    "beforeDelete",
    "afterCreate",
    "afterUpdate",
    "afterWrite",
    "afterRead",
    "afterDelete",
    "afterTrash",
    "afterRestore",
    "complete",
)


@dataclass
class HookContext:
    """Runtime context passed to every hook function.

    Attributes:
        resource_name: Name of the resource being operated on
        hook_point: The lifecycle point being fired
        record: Current field values (write fields before persist, row after)
        original: Previous row state (update only)
        changes: Dict of changed fields (update only)
        model: The ResourceModel running the operation, for hooks needing DB access
    """

    resource_name: str
    hook_point: str
    record: dict[str, Any]
    original: dict[str, Any] | None = None
    changes: dict[str, Any] | None = None
    model: Any = None  # ResourceModel (avoids circular import)


@dataclass
class HookResult:
    """Return value from a hook.

    Attributes:
        update: Fields to merge into the record
        abort: Error message that rejects the write
    """

    update: dict[str, Any] | None = None
    abort: str | None = None


def compute_changes(
    record: dict[str, Any], original: dict[str, Any] | None
) -> dict[str, Any] | None:
    """Compute a diff of changed fields between record and original.

    Returns None if original is None (create operations).
    Returns a dict of {field: new_value} for fields that differ.
    """
    if original is None:
        return None

    changes: dict[str, Any] = {}
    for key, value in record.items():
        if key not in original or original[key] != value:
            changes[key] = value

    return changes
