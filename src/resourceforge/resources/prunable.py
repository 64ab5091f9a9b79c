"""Pruning of stale rows by a timestamp field."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from resourceforge.resources.lifecycle import format_timestamp, tracked

logger = logging.getLogger(__name__)


class Prunable:
    """Mixin for ResourceModel subclasses whose schema sets prune_field."""

    def _prunable_keys(self, before: datetime | int | float) -> list[Any]:
        schema = self.schema
        rows = (
            self.db.new_query()
            .table(schema.table)
            .select(f"{schema.table}.{schema.primary_key}", schema.primary_key)
            .where(f"{schema.table}.{schema.prune_field}", "lt", format_timestamp(before))
            .get()
        )
        return [row[schema.primary_key] for row in rows]

    @tracked
    def prune(self, before: datetime | int | float) -> int:
        """Delete every row whose prune field is older than before.

        Each row goes through delete(), so soft-deleting models trash rather
        than remove, and hooks and events fire per row.

        Returns:
            Number of rows deleted or trashed
        """
        pruned = sum(1 for key in self._prunable_keys(before) if self.delete(key))
        logger.info("Pruned %d %s row(s)", pruned, self.schema.name)
        return pruned

    def prune_quietly(self, before: datetime | int | float) -> int:
        """Bulk delete rows older than before. No hooks or events fire."""
        schema = self.schema
        pruned = (
            self.db.new_query()
            .table(schema.table)
            .where(schema.prune_field, "lt", format_timestamp(before))
            .delete()
        )
        logger.info("Quietly pruned %d %s row(s)", pruned, schema.name)
        return pruned
