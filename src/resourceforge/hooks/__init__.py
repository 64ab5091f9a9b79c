"""resourceforge resource lifecycle hook system.

Provides extension points for logic that runs at specific points in the
resource lifecycle. Schemas reference hooks by registered name:

    hooks:
      beforeCreate: [stampOwner]

Usage:
    from resourceforge.hooks import hook, HookContext, HookResult

    @hook("stampOwner")
    def stamp_owner(ctx: HookContext) -> HookResult:
        return HookResult(update={"owner": "system"})
"""

from resourceforge.hooks.registry import HookRegistry, hook
from resourceforge.hooks.service import HookService
from resourceforge.hooks.types import (
    HOOK_POINTS,
    HookContext,
    HookResult,
    compute_changes,
)

__all__ = [
    "HOOK_POINTS",
    "HookContext",
    "HookRegistry",
    "HookResult",
    "HookService",
    "compute_changes",
    "hook",
]
