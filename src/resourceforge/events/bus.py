"""Lifecycle notification bus.

Models publish named events (``resource.create``, ``resource.update``,
...) after a write succeeds. Listeners run synchronously in priority order;
a listener that raises stops the emit and the exception propagates.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from itertools import count
from typing import Any

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]

RESOURCE_CREATE = "resource.create"
RESOURCE_UPDATE = "resource.update"
RESOURCE_DELETE = "resource.delete"
RESOURCE_TRASH = "resource.trash"
RESOURCE_RESTORE = "resource.restore"


@dataclass(order=True)
class _Subscription:
    priority: int
    sequence: int
    listener: Listener = field(compare=False)


class EventBus:
    """In-process publish/subscribe for resource lifecycle events."""

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[_Subscription]] = {}
        self._sequence = count()

    def subscribe(self, event: str, listener: Listener, priority: int = 10) -> None:
        """Subscribe a listener. Lower priority values run first."""
        subs = self._subscriptions.setdefault(event, [])
        subs.append(_Subscription(priority, next(self._sequence), listener))
        subs.sort()

    def unsubscribe(self, event: str, listener: Listener) -> None:
        subs = self._subscriptions.get(event, [])
        self._subscriptions[event] = [s for s in subs if s.listener is not listener]

    def has_listeners(self, event: str) -> bool:
        return bool(self._subscriptions.get(event))

    def emit(self, event: str, *payload: Any) -> None:
        """Call every listener for event with the payload."""
        subs = list(self._subscriptions.get(event, []))
        logger.debug("Emitting %s to %d listener(s)", event, len(subs))
        for sub in subs:
            sub.listener(*payload)
