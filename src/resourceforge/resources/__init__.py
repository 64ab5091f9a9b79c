"""Resource lifecycle: models, snapshots and capability mixins."""

from resourceforge.resources.lifecycle import LifecycleState, format_timestamp, tracked
from resourceforge.resources.model import ResourceModel
from resourceforge.resources.nullable_json import HasNullableJsonField
from resourceforge.resources.prunable import Prunable
from resourceforge.resources.resource import Resource
from resourceforge.resources.service import ResourceService
from resourceforge.resources.soft_deletes import SoftDeletes

__all__ = [
    "HasNullableJsonField",
    "LifecycleState",
    "Prunable",
    "Resource",
    "ResourceModel",
    "ResourceService",
    "SoftDeletes",
    "format_timestamp",
    "tracked",
]
