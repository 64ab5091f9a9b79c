"""Outer-call tracking for resource models.

A lifecycle operation (create, read, list, ...) may call other lifecycle
operations, directly or from inside a hook. Only the outermost call fires
the begin/complete hooks, and only it resets the per-call trashed mode.
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum
from typing import Any, TypeVar

from resourceforge.query.compiler import TrashedMode

F = TypeVar("F", bound=Callable[..., Any])

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class LifecycleState(Enum):
    IDLE = "idle"
    BEGUN = "begun"


def tracked(method: F) -> F:
    """Mark a model method as a lifecycle operation."""

    @functools.wraps(method)
    def wrapper(self, *args: Any, **kwargs: Any) -> Any:
        if self._state is LifecycleState.BEGUN:
            return method(self, *args, **kwargs)

        self._state = LifecycleState.BEGUN
        try:
            self.on_begin()
            result = method(self, *args, **kwargs)
            self.on_complete()
            return result
        finally:
            self._state = LifecycleState.IDLE
            self._trashed = TrashedMode.EXCLUDE
            self._upserting = False

    return wrapper  # type: ignore[return-value]


def format_timestamp(value: datetime | int | float | None = None) -> str:
    """Render a datetime or epoch seconds as a UTC "YYYY-MM-DD HH:MM:SS" string.

    Naive datetimes are taken to be UTC already. None means now.
    """
    if value is None:
        value = datetime.now(timezone.utc)
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        value = datetime.fromtimestamp(value, timezone.utc)
    elif not isinstance(value, datetime):
        raise TypeError(f"Expected datetime or epoch seconds, got {type(value).__name__}")
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(TIMESTAMP_FORMAT)
