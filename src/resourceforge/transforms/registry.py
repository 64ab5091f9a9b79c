"""Transform registry for resourceforge.

Mutators (applied on write) and accessors (applied on read) are plain
``value -> value`` functions registered under a name. Schemas refer to them
by that name, or pass a callable directly.
"""

from collections.abc import Callable
from typing import Any

from resourceforge.core.errors import InvalidField, UnexpectedException

TransformFn = Callable[[Any], Any]


class TransformRegistry:
    """Registry of named value transforms.

    Example:
        @transform("upper")
        def upper(value):
            return value.upper() if isinstance(value, str) else value
    """

    _transforms: dict[str, TransformFn] = {}

    @classmethod
    def register(cls, name: str, fn: TransformFn) -> None:
        """Register a transform by name. Re-registering replaces it."""
        cls._transforms[name] = fn

    @classmethod
    def get(cls, name: str) -> TransformFn:
        """Get a registered transform.

        Raises:
            UnexpectedException: If the name is not registered
        """
        if name not in cls._transforms:
            raise UnexpectedException(f"Transform '{name}' is not registered")
        return cls._transforms[name]

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name in cls._transforms

    @classmethod
    def list_registered(cls) -> list[str]:
        return sorted(cls._transforms.keys())

    @classmethod
    def clear(cls) -> None:
        """Clear all registrations. Primarily for testing."""
        cls._transforms.clear()


def transform(name: str) -> Callable[[TransformFn], TransformFn]:
    """Decorator to register a transform function."""

    def decorator(fn: TransformFn) -> TransformFn:
        TransformRegistry.register(name, fn)
        return fn

    return decorator


def resolve_transform(spec: Any) -> TransformFn:
    """Resolve a schema transform declaration to a callable.

    Raises:
        UnexpectedException: Declaration is neither callable nor a registered name
    """
    if isinstance(spec, str):
        return TransformRegistry.get(spec)
    if callable(spec):
        return spec
    raise UnexpectedException(f"Transform {spec!r} is not callable")


def apply_transforms(
    values: dict[str, Any], transforms: dict[str, Any] | Any
) -> dict[str, Any]:
    """Apply field transforms in place to the keys present in values.

    Raises:
        InvalidField: A transform rejected its value
    """
    for field_name, spec in transforms.items():
        if field_name not in values:
            continue
        fn = resolve_transform(spec)
        try:
            values[field_name] = fn(values[field_name])
        except (ValueError, TypeError) as e:
            raise InvalidField(
                f"Invalid value for field ({field_name}): {e}", field=field_name
            ) from e
    return values
