"""Built-in value transforms.

Registered under their names by register_builtin_transforms(), which the
resource registry calls once at startup.
"""

import html
import json
import re
import uuid
from datetime import date as date_type
from datetime import datetime as datetime_type
from datetime import timezone
from typing import Any

from resourceforge.transforms.registry import TransformRegistry

CENSORED = "********"

_SLUG_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_SLUG_INVALID = re.compile(r"[^a-z0-9]+")


def json_encode(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def json_decode(value: Any) -> Any:
    """Decode a JSON string, sorting object keys."""
    if isinstance(value, (dict, list)):
        decoded = value
    elif isinstance(value, (str, bytes)):
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError:
            return [value]
    elif value is None:
        return []
    else:
        return [value]
    if isinstance(decoded, dict):
        return dict(sorted(decoded.items()))
    return decoded


def escape_string(value: Any) -> str:
    if isinstance(value, str):
        return html.escape(value)
    return str(value)


def boolean(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def integer(value: Any) -> int:
    if value is None or value == "":
        return 0
    if isinstance(value, str):
        return int(float(value))
    return int(value)


def nullify(value: Any) -> Any:
    if isinstance(value, str) and value == "":
        return None
    return value


def slug(value: Any) -> str:
    """Lowercase kebab-case, suitable for URLs."""
    if not isinstance(value, str):
        return str(value)
    text = _SLUG_BOUNDARY.sub(r"\1-\2", value).lower()
    return _SLUG_INVALID.sub("-", text).strip("-")


def censor(value: Any) -> Any:
    if value is not None and value != "":
        return CENSORED
    return value


def date(value: Any) -> str:
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, int):
        return datetime_type.fromtimestamp(value, tz=timezone.utc).strftime("%Y-%m-%d")
    if isinstance(value, (date_type, datetime_type)):
        return value.strftime("%Y-%m-%d")
    return str(value)


def datetime(value: Any) -> str:
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, int):
        return datetime_type.fromtimestamp(value, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, datetime_type):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    return str(value)


def timestamp(value: Any) -> int:
    if isinstance(value, datetime_type):
        return int(value.timestamp())
    if isinstance(value, str):
        try:
            parsed = datetime_type.fromisoformat(value)
        except ValueError:
            return int(value)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return int(parsed.timestamp())
    return int(value)


def uuid_to_bin(value: Any) -> Any:
    if isinstance(value, str):
        return uuid.UUID(value).bytes
    return value


def bin_to_uuid(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)) and len(value) == 16:
        return str(uuid.UUID(bytes=bytes(value)))
    return value


def lowercase(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


def uppercase(value: Any) -> Any:
    return value.upper() if isinstance(value, str) else value


def trim(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


BUILTIN_TRANSFORMS = {
    "json_encode": json_encode,
    "json_decode": json_decode,
    "escape_string": escape_string,
    "boolean": boolean,
    "integer": integer,
    "nullify": nullify,
    "slug": slug,
    "censor": censor,
    "date": date,
    "datetime": datetime,
    "timestamp": timestamp,
    "uuid_to_bin": uuid_to_bin,
    "bin_to_uuid": bin_to_uuid,
    "lowercase": lowercase,
    "uppercase": uppercase,
    "trim": trim,
}


def register_builtin_transforms() -> None:
    """Register framework-provided transforms (safe to call repeatedly)."""
    for name, fn in BUILTIN_TRANSFORMS.items():
        if not TransformRegistry.is_registered(name):
            TransformRegistry.register(name, fn)
