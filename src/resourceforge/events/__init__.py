from resourceforge.events.bus import (
    RESOURCE_CREATE,
    RESOURCE_DELETE,
    RESOURCE_RESTORE,
    RESOURCE_TRASH,
    RESOURCE_UPDATE,
    EventBus,
)

__all__ = [
    "EventBus",
    "RESOURCE_CREATE",
    "RESOURCE_DELETE",
    "RESOURCE_RESTORE",
    "RESOURCE_TRASH",
    "RESOURCE_UPDATE",
]
