"""Hook registry for resourceforge.

Provides registration and lookup for hook implementations referenced by
name from resource schemas.
"""

from collections.abc import Callable

from resourceforge.hooks.types import HookContext, HookResult

# Hook function signature: (HookContext) -> HookResult | None
HookFn = Callable[[HookContext], HookResult | None]


class HookRegistry:
    """Registry for hook implementations.

    Hooks must be registered before a schema can reference them.
    Registration is typically done at import time via the @hook decorator.

    Example:
        @hook("stampOwner")
        def stamp_owner(ctx: HookContext) -> HookResult:
            return HookResult(update={"owner": "system"})
    """

    _hooks: dict[str, HookFn] = {}

    @classmethod
    def register(cls, name: str, hook_fn: HookFn) -> None:
        """Register a hook function by name.

        Idempotent: re-registering the same name is a no-op.
        """
        if name in cls._hooks:
            return
        cls._hooks[name] = hook_fn

    @classmethod
    def get(cls, name: str) -> HookFn:
        """Get a registered hook function by name.

        Raises:
            ValueError: If hook is not registered
        """
        if name not in cls._hooks:
            raise ValueError(
                f"Hook '{name}' is not registered. "
                "Hooks must be registered before schemas reference them."
            )
        return cls._hooks[name]

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name in cls._hooks

    @classmethod
    def list_registered(cls) -> list[str]:
        return sorted(cls._hooks.keys())

    @classmethod
    def clear(cls) -> None:
        """Clear all registrations. Primarily for testing."""
        cls._hooks.clear()


def hook(name: str) -> Callable[[HookFn], HookFn]:
    """Decorator to register a hook function."""

    def decorator(fn: HookFn) -> HookFn:
        HookRegistry.register(name, fn)
        return fn

    return decorator
