"""Soft-delete capability for resource models.

A model with this mixin trashes rows by stamping the schema's
deleted_at_field instead of removing them. Trashed rows are hidden from
reads, lists, exists() and count() unless with_trashed() or only_trashed()
is called first; the mode lasts for the next outermost operation only.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from resourceforge.core.errors import DoesNotExist
from resourceforge.events.bus import RESOURCE_RESTORE, RESOURCE_TRASH
from resourceforge.query.compiler import TrashedMode
from resourceforge.resources.lifecycle import format_timestamp, tracked
from resourceforge.resources.resource import Resource

logger = logging.getLogger(__name__)


class SoftDeletes:
    """Mixin for ResourceModel subclasses whose schema sets deleted_at_field."""

    def _destroy(self, resource: Resource) -> bool:
        schema = self.schema
        trashed = self.db.update(
            schema.table,
            {schema.deleted_at_field: format_timestamp()},
            {schema.primary_key: resource.primary_key},
        )
        if not trashed:
            return False
        logger.info("Trashed %s %s", schema.name, resource.primary_key)
        self.after_trash(resource)
        self.events.emit(RESOURCE_TRASH, resource)
        return True

    @tracked
    def restore(self, primary_key: Any) -> Resource:
        """Clear the deleted-at marker of a row.

        Raises:
            DoesNotExist: No row has that key, trashed or not
        """
        schema = self.schema
        restored = self.db.update(
            schema.table,
            {schema.deleted_at_field: None},
            {schema.primary_key: primary_key},
        )
        if not restored:
            raise DoesNotExist("Unable to restore resource: Resource does not exist")
        resource = self._resource(primary_key, TrashedMode.WITH)
        self.after_restore(resource)
        self.events.emit(RESOURCE_RESTORE, resource)
        return resource

    @tracked
    def hard_delete(self, primary_key: Any) -> bool:
        """Physically delete a row whether or not it is trashed."""
        try:
            resource = self._resource(primary_key, TrashedMode.WITH)
        except DoesNotExist:
            return False
        self.before_delete(resource)
        return self._remove(resource)

    def _trashed_before(self, before: datetime | int | float) -> list[Any]:
        schema = self.schema
        rows = (
            self.db.new_query()
            .table(schema.table)
            .select(f"{schema.table}.{schema.primary_key}", schema.primary_key)
            .where(f"{schema.table}.{schema.deleted_at_field}", "lt", format_timestamp(before))
            .get()
        )
        return [row[schema.primary_key] for row in rows]

    @tracked
    def purge_trashed(self, before: datetime | int | float) -> int:
        """Hard delete, with hooks and events, rows trashed before a moment.

        Returns:
            Number of rows deleted
        """
        purged = sum(1 for key in self._trashed_before(before) if self.hard_delete(key))
        logger.info("Purged %d trashed %s row(s)", purged, self.schema.name)
        return purged

    def purge_trashed_quietly(self, before: datetime | int | float) -> int:
        """Bulk delete rows trashed before a moment. No hooks or events fire."""
        schema = self.schema
        purged = (
            self.db.new_query()
            .table(schema.table)
            .where(schema.deleted_at_field, "lt", format_timestamp(before))
            .delete()
        )
        logger.info("Quietly purged %d trashed %s row(s)", purged, schema.name)
        return purged
