"""Hook execution service for resourceforge.

Runs the named hooks a schema attaches to a lifecycle point, in declared
order, merging each hook's updates before the next one runs.
"""

import logging
from collections.abc import Iterable
from typing import Any

from resourceforge.core.errors import InvalidField
from resourceforge.hooks.registry import HookRegistry
from resourceforge.hooks.types import HookContext, HookResult

logger = logging.getLogger(__name__)


class HookService:
    """Orchestrates hook execution for resource lifecycle points.

    Exceptions raised inside a hook propagate unchanged. An abort result
    rejects the operation with InvalidField.
    """

    def run_hooks(
        self,
        hook_point: str,
        names: Iterable[str],
        context: HookContext,
    ) -> HookResult | None:
        """Execute hooks for a given hook point.

        Args:
            hook_point: The lifecycle point (beforeCreate, afterUpdate, ...)
            names: Registered hook names from the schema (in declared order)
            context: The hook context with current record state

        Returns:
            Merged HookResult with all updates applied, or None if nothing
            was updated.

        Raises:
            InvalidField: A hook aborted the operation
        """
        merged_updates: dict[str, Any] = {}

        for name in names:
            try:
                hook_fn = HookRegistry.get(name)
            except ValueError:
                logger.warning("Hook '%s' is not registered, skipping", name)
                continue

            logger.debug("Running %s hook '%s' for %s", hook_point, name, context.resource_name)
            result = hook_fn(context)

            if result is None:
                continue

            if result.abort:
                raise InvalidField(
                    f"Unable to {hook_point} resource: {result.abort}"
                )

            # Merge updates into context record (compounding)
            if result.update:
                context.record.update(result.update)
                merged_updates.update(result.update)

        if merged_updates:
            return HookResult(update=merged_updates)

        return None
