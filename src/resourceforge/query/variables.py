"""Dynamic variables in filter values.

String filter values may reference the current time:

    $TIME                 epoch seconds
    $DATETIME             YYYY-MM-DD HH:MM:SS (UTC)
    $DATE                 YYYY-MM-DD (UTC)
    $DATE(-1 week)        relative offsets, any of second/minute/hour/day/week
    $TIME(+2 hours -30 minutes)

A value consisting of exactly one $TIME variable becomes an int.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Any

from resourceforge.core.errors import InvalidRequest

_VARIABLE = re.compile(r"\$(DATETIME|DATE|TIME)(?:\(([^)]*)\))?")
_OFFSET = re.compile(r"\s*([+-]?\d+)\s*(second|minute|hour|day|week)s?\s*", re.IGNORECASE)

_UNITS = {
    "second": "seconds",
    "minute": "minutes",
    "hour": "hours",
    "day": "days",
    "week": "weeks",
}


def _parse_offset(text: str) -> timedelta:
    text = text.strip()
    if text in ("", "now"):
        return timedelta()
    offset = timedelta()
    pos = 0
    while pos < len(text):
        match = _OFFSET.match(text, pos)
        if not match:
            raise InvalidRequest(f"Unable to list resource: Invalid time offset ({text})")
        amount, unit = int(match.group(1)), _UNITS[match.group(2).lower()]
        offset += timedelta(**{unit: amount})
        pos = match.end()
    return offset


def _render(kind: str, moment: datetime) -> Any:
    if kind == "TIME":
        return int(moment.timestamp())
    if kind == "DATETIME":
        return moment.strftime("%Y-%m-%d %H:%M:%S")
    return moment.strftime("%Y-%m-%d")


def expand_variables(value: Any, now: datetime | None = None) -> Any:
    """Replace time variables inside a string filter value."""
    if not isinstance(value, str) or "$" not in value:
        return value
    now = now or datetime.now(timezone.utc)

    whole = _VARIABLE.fullmatch(value)
    if whole:
        return _render(whole.group(1), now + _parse_offset(whole.group(2) or ""))

    def replace(match: re.Match) -> str:
        return str(_render(match.group(1), now + _parse_offset(match.group(2) or "")))

    return _VARIABLE.sub(replace, value)


def expand_filter_values(node: Any, now: datetime | None = None) -> Any:
    """Expand variables in every leaf value of a filter tree.

    One "now" is used for the whole tree so related bounds line up.
    """
    now = now or datetime.now(timezone.utc)
    if isinstance(node, dict):
        return {k: expand_filter_values(v, now) for k, v in node.items()}
    if isinstance(node, list):
        return [expand_filter_values(v, now) for v in node]
    return expand_variables(node, now)
