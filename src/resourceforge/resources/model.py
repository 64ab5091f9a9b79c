"""Resource lifecycle orchestration.

ResourceModel composes the query compiler, the result reshaper and the
write rules of one ResourceSchema into create/read/list/update/delete
operations. Every public operation is tracked: hooks declared for the
begin and complete points fire once per outermost call, however many
nested operations hooks trigger.

Instances carry per-call state (lifecycle state, trashed mode, upsert
flag) and are meant to be created per logical request through
ResourceService.model().
"""

from __future__ import annotations

import copy
import logging
import time
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from resourceforge.core.errors import (
    AlreadyExists,
    DoesNotExist,
    MissingField,
    UnexpectedException,
)
from resourceforge.events.bus import RESOURCE_CREATE, RESOURCE_DELETE, RESOURCE_UPDATE
from resourceforge.hooks.service import HookService
from resourceforge.hooks.types import HookContext, compute_changes
from resourceforge.metadata.schema import ResourceSchema
from resourceforge.persistence.query import QueryBuilder
from resourceforge.query.collection import ResultCollection
from resourceforge.query.compiler import TrashedMode
from resourceforge.query.parser import QuerySpec, parse_query
from resourceforge.query.reshape import ResultReshaper
from resourceforge.resources.lifecycle import LifecycleState, tracked
from resourceforge.resources.resource import Resource
from resourceforge.resources.soft_deletes import SoftDeletes
from resourceforge.transforms.registry import apply_transforms
from resourceforge.validation.integration import validate_write_fields
from resourceforge.validation.types import Operation

if TYPE_CHECKING:
    from resourceforge.resources.service import ResourceService

logger = logging.getLogger(__name__)


class ResourceModel:
    """CRUD operations for one resource type.

    Subclasses customise behaviour by overriding the hook methods
    (before_create, after_update, ...). The default implementations run the
    named hooks the schema declares for that point.
    """

    def __init__(self, service: ResourceService, schema: ResourceSchema):
        self.service = service
        self.schema = schema
        self.db = service.db
        self.events = service.events
        self.compiler = service.compiler
        self.hook_service = HookService()
        self._state = LifecycleState.IDLE
        self._trashed = TrashedMode.EXCLUDE
        self._upserting = False

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.schema.name}>"

    # ------------------------------------------------------------------
    # Hook methods
    # ------------------------------------------------------------------

    def _run_named(
        self,
        point: str,
        record: dict[str, Any],
        original: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        names = self.schema.hook_names(point)
        if not names:
            return record
        context = HookContext(
            resource_name=self.schema.name,
            hook_point=point,
            record=record,
            original=original,
            changes=compute_changes(record, original),
            model=self,
        )
        self.hook_service.run_hooks(point, names, context)
        return context.record

    def on_begin(self) -> None:
        self._run_named("begin", {})

    def on_complete(self) -> None:
        self._run_named("complete", {})

    def before_write(self, fields: dict[str, Any]) -> dict[str, Any]:
        """Runs before create and update. Returns the fields to persist."""
        return self._run_named("beforeWrite", fields)

    def before_create(self, fields: dict[str, Any]) -> dict[str, Any]:
        return self._run_named("beforeCreate", fields)

    def before_update(self, existing: Resource, fields: dict[str, Any]) -> dict[str, Any]:
        return self._run_named("beforeUpdate", fields, existing.read())

    def after_create(self, resource: Resource) -> None:
        self._run_named("afterCreate", resource.read())

    def after_update(self, previous: Resource, resource: Resource, fields: dict[str, Any]) -> None:
        self._run_named("afterUpdate", resource.read(), previous.read())

    def after_write(self, resource: Resource) -> None:
        """Runs after create and update."""
        self._run_named("afterWrite", resource.read())

    def after_read(self, row: dict[str, Any]) -> dict[str, Any]:
        """Runs on every row returned by read() and list()."""
        return self._run_named("afterRead", row)

    def before_delete(self, resource: Resource) -> None:
        self._run_named("beforeDelete", resource.read())

    def after_delete(self, resource: Resource) -> None:
        self._run_named("afterDelete", resource.read())

    def after_trash(self, resource: Resource) -> None:
        self._run_named("afterTrash", resource.read())

    def after_restore(self, resource: Resource) -> None:
        self._run_named("afterRestore", resource.read())

    # ------------------------------------------------------------------
    # Soft-delete visibility
    # ------------------------------------------------------------------

    def _require_soft_deletes(self, action: str) -> None:
        if not isinstance(self, SoftDeletes):
            raise UnexpectedException(
                f"Unable to {action} resource: {self.schema.name} does not support soft deletes"
            )

    def with_trashed(self) -> ResourceModel:
        """Include trashed rows in the next operation."""
        self._require_soft_deletes("query")
        self._trashed = TrashedMode.WITH
        return self

    def only_trashed(self) -> ResourceModel:
        """Return only trashed rows from the next operation."""
        self._require_soft_deletes("query")
        self._trashed = TrashedMode.ONLY
        return self

    def _apply_visibility(self, query: QueryBuilder, trashed: TrashedMode | None = None) -> QueryBuilder:
        schema = self.schema
        trashed = self._trashed if trashed is None else trashed
        if schema.soft_deletes and trashed is not TrashedMode.WITH:
            operator = "isNotNull" if trashed is TrashedMode.ONLY else "isNull"
            query.where(f"{schema.table}.{schema.deleted_at_field}", operator, True)
        return query

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _fetch(
        self,
        primary_key: Any,
        fields: Sequence[str] | None,
        trashed: TrashedMode,
    ) -> dict[str, Any]:
        schema = self.schema
        spec = QuerySpec(fields=tuple(fields or ()))
        plan = self.compiler.compile(
            schema,
            spec,
            trashed=trashed,
            list_all=True,
            where_equals={schema.primary_key: primary_key},
        )
        rows = plan.build(self.db).get()
        if not rows:
            raise DoesNotExist("Unable to read resource: Resource does not exist")
        return ResultReshaper(plan, after_read=self.after_read).reshape(rows[0])

    def _resource(self, primary_key: Any, trashed: TrashedMode | None = None) -> Resource:
        trashed = self._trashed if trashed is None else trashed
        return Resource(self, self._fetch(primary_key, None, trashed))

    @tracked
    def read(self, primary_key: Any, fields: Sequence[str] | None = None) -> dict[str, Any]:
        """Read one resource as a nested dict.

        Args:
            primary_key: Primary key value
            fields: Fields to return (defaults to every readable field)

        Raises:
            InvalidRequest: A requested field is not readable
            DoesNotExist: No visible row has that key
        """
        return self._fetch(primary_key, fields, self._trashed)

    @tracked
    def find(self, primary_key: Any) -> Resource:
        """Read one resource with every readable field as a Resource."""
        return self._resource(primary_key)

    @tracked
    def list(
        self,
        query: Mapping[str, Any] | QuerySpec | None = None,
        list_all: bool = False,
    ) -> ResultCollection:
        """List resources matching a request.

        Args:
            query: Raw request parameters or an already parsed QuerySpec
            list_all: Ignore limits and pagination

        Raises:
            InvalidRequest: Malformed or out-of-policy request
        """
        spec = query if isinstance(query, QuerySpec) else parse_query(query)
        plan = self.compiler.compile(self.schema, spec, trashed=self._trashed, list_all=list_all)
        started = time.perf_counter()
        rows = plan.build(self.db).get()
        elapsed = time.perf_counter() - started
        cursors = [row.get(plan.cursor_field) for row in rows]
        reshaper = ResultReshaper(plan, after_read=self.after_read)
        return ResultCollection(self, plan, spec, [reshaper.reshape(row) for row in rows], cursors, elapsed)

    @tracked
    def exists(self, primary_key: Any) -> bool:
        schema = self.schema
        query = self.db.new_query().table(schema.table)
        query.where(f"{schema.table}.{schema.primary_key}", "eq", primary_key)
        return self._apply_visibility(query).count() > 0

    @tracked
    def count(self) -> int:
        """Number of visible rows."""
        query = self.db.new_query().table(self.schema.table)
        return self._apply_visibility(query).count()

    # ------------------------------------------------------------------
    # Write checks
    # ------------------------------------------------------------------

    def _check_related(self, fields: dict[str, Any], operation: Operation) -> None:
        """Every related value must point at an existing, untrashed row."""
        for name, resource_name in self.schema.related_fields.items():
            value = fields.get(name)
            if value is None:
                continue
            related = self.service.registry.schema(resource_name)
            query = self.db.new_query().table(related.table)
            query.where(f"{related.table}.{related.primary_key}", "eq", value)
            if related.soft_deletes:
                query.where(f"{related.table}.{related.deleted_at_field}", "isNull", True)
            if query.count() == 0:
                raise DoesNotExist(
                    f"Unable to {operation.value} resource: Related field ({name}) does not exist"
                )

    def _check_unique(
        self,
        fields: dict[str, Any],
        operation: Operation,
        exclude: Any = None,
        stored: dict[str, Any] | None = None,
    ) -> None:
        """Reject values that would duplicate a unique field or field set.

        On update, fields of a composite key that are not being changed are
        taken from the stored row.
        """
        schema = self.schema
        for unique in schema.unique_fields:
            names = (unique,) if isinstance(unique, str) else unique
            if not any(name in fields for name in names):
                continue
            values = {**(stored or {}), **fields}
            if any(values.get(name) is None for name in names):
                continue
            query = self.db.new_query().table(schema.table)
            for name in names:
                query.where(f"{schema.table}.{name}", "eq", values[name])
            if exclude is not None:
                query.where(f"{schema.table}.{schema.primary_key}", "neq", exclude)
            if query.count() > 0:
                raise AlreadyExists(
                    f"Unable to {operation.value} resource: Field ({', '.join(names)}) must be unique"
                )

    def _stored_row(self, primary_key: Any) -> dict[str, Any]:
        schema = self.schema
        rows = (
            self.db.new_query()
            .table(schema.table)
            .where(f"{schema.table}.{schema.primary_key}", "eq", primary_key)
            .limit(1)
            .get()
        )
        return rows[0] if rows else {}

    def _prepare(self, fields: Mapping[str, Any], operation: Operation) -> dict[str, Any]:
        fields = dict(fields)
        validate_write_fields(self.schema, fields, operation)
        return apply_transforms(fields, self.schema.mutators)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @tracked
    def create(self, fields: Mapping[str, Any]) -> Resource:
        """Create a resource.

        Raises:
            MissingField: A required field is absent
            InvalidField: Unknown field or failed field rule
            DoesNotExist: A related value does not exist
            AlreadyExists: A unique field value is taken
        """
        schema = self.schema
        operation = Operation.UPSERT if self._upserting else Operation.CREATE

        missing = [name for name in schema.required_fields if name not in fields]
        if missing:
            raise MissingField(
                f"Unable to {operation.value} resource: Missing required fields ({', '.join(missing)})",
                field=missing[0],
            )

        values = self._prepare(fields, operation)
        for name, default in schema.default_values.items():
            values.setdefault(name, copy.deepcopy(default))

        self._check_related(values, operation)
        if not self._upserting:
            self._check_unique(values, operation)

        values = self.before_write(values)
        values = self.before_create(values)

        logger.debug("Creating %s: %s", schema.name, schema.redact(values))
        if self._upserting:
            self.db.insert(
                schema.table,
                values,
                fail_on_duplicate=False,
                conflict_fields=schema.upsert_conflict_fields,
                returning=schema.primary_key,
            )
        else:
            self.db.insert(schema.table, values, returning=schema.primary_key)

        primary_key = self._written_key(values)
        resource = self._resource(primary_key, TrashedMode.WITH)

        self.after_create(resource)
        self.after_write(resource)
        logger.info("Created %s %s", schema.name, resource.primary_key)
        self.events.emit(RESOURCE_CREATE, resource)
        return resource

    def _written_key(self, values: dict[str, Any]) -> Any:
        schema = self.schema
        if values.get(schema.primary_key) is not None:
            return values[schema.primary_key]
        if self._upserting:
            conflict = schema.upsert_conflict_fields
            if all(name in values for name in conflict):
                query = self.db.new_query().table(schema.table)
                query.select(f"{schema.table}.{schema.primary_key}", schema.primary_key)
                for name in conflict:
                    query.where(f"{schema.table}.{name}", "eq", values[name])
                rows = query.limit(1).get()
                if rows:
                    return rows[0][schema.primary_key]
        primary_key = self.db.last_insert_id()
        if primary_key is None:
            raise UnexpectedException("Unable to create resource: Primary key was not returned")
        return primary_key

    @tracked
    def update(self, primary_key: Any, fields: Mapping[str, Any]) -> Resource:
        """Update a resource.

        Raises:
            DoesNotExist: No visible row has that key, or a related value does not exist
            InvalidField: Unknown field or failed field rule
            AlreadyExists: A unique field value is taken by another row
        """
        schema = self.schema
        existing = self._resource(primary_key)

        values = self._prepare(fields, Operation.UPDATE)
        self._check_related(values, Operation.UPDATE)
        self._check_unique(
            values,
            Operation.UPDATE,
            exclude=primary_key,
            stored=self._stored_row(primary_key),
        )

        values = self.before_write(values)
        values = self.before_update(existing, values)

        if values:
            logger.debug("Updating %s %s: %s", schema.name, primary_key, schema.redact(values))
            self.db.update(schema.table, values, {schema.primary_key: primary_key})

        new_key = values.get(schema.primary_key, primary_key)
        resource = self._resource(new_key, TrashedMode.WITH)

        self.after_update(existing, resource, values)
        self.after_write(resource)
        logger.info("Updated %s %s", schema.name, new_key)
        self.events.emit(RESOURCE_UPDATE, resource, existing, values)
        return resource

    @tracked
    def upsert(self, fields: Mapping[str, Any]) -> Resource:
        """Create a resource, overwriting the row that clashes on the conflict fields.

        Unique checks are skipped; the database settles conflicts.
        """
        self._upserting = True
        try:
            return self.create(fields)
        except AlreadyExists as e:
            raise UnexpectedException(f"Unable to upsert resource: {e.message}") from e

    @tracked
    def replicate(self, primary_key: Any, overrides: Mapping[str, Any] | None = None) -> Resource:
        """Create a copy of an existing resource with some fields replaced.

        Only writable fields are copied.
        """
        overrides = dict(overrides or {})
        validate_write_fields(self.schema, overrides, Operation.CREATE)
        existing = self.read(primary_key)
        copied = {k: v for k, v in existing.items() if k in self.schema.writable_fields}
        return self.create({**copied, **overrides})

    @tracked
    def delete(self, primary_key: Any) -> bool:
        """Delete (or trash) a resource.

        Returns:
            False if no visible row has that key
        """
        try:
            resource = self._resource(primary_key)
        except DoesNotExist:
            return False
        self.before_delete(resource)
        return self._destroy(resource)

    def _destroy(self, resource: Resource) -> bool:
        return self._remove(resource)

    def _remove(self, resource: Resource) -> bool:
        schema = self.schema
        deleted = self.db.delete(schema.table, {schema.primary_key: resource.primary_key})
        if not deleted:
            return False
        logger.info("Deleted %s %s", schema.name, resource.primary_key)
        self.after_delete(resource)
        self.events.emit(RESOURCE_DELETE, resource)
        return True
