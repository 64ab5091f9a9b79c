"""Tests for the resource lifecycle hook system."""

import logging

import pytest

from resourceforge.core.errors import InvalidField
from resourceforge.hooks import (
    HOOK_POINTS,
    HookContext,
    HookRegistry,
    HookResult,
    HookService,
    compute_changes,
    hook,
)
from resourceforge.resources.service import ResourceService


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def hook_service():
    return HookService()


@pytest.fixture
def base_context():
    return HookContext(
        resource_name="task",
        hook_point="beforeCreate",
        record={"title": "Write docs", "status": "open"},
    )


@pytest.fixture
def hooked_tasks(db, make_registry):
    """Build a task model whose schema attaches the given hooks."""

    def build(**hooks):
        registry = make_registry(hooks=hooks)
        return ResourceService(db, registry).model("task")

    return build


# =============================================================================
# compute_changes tests
# =============================================================================


class TestComputeChanges:
    def test_returns_none_for_create(self):
        assert compute_changes({"a": 1}, None) is None

    def test_detects_changed_fields(self):
        assert compute_changes({"a": 1, "b": 99}, {"a": 1, "b": 2}) == {"b": 99}

    def test_detects_new_fields(self):
        assert compute_changes({"a": 1, "b": 2}, {"a": 1}) == {"b": 2}

    def test_empty_when_no_changes(self):
        record = {"a": 1, "b": 2}
        assert compute_changes(record, record) == {}


# =============================================================================
# HookRegistry tests
# =============================================================================


class TestHookRegistry:
    def test_register_and_get(self):
        def my_hook(ctx):
            return None

        HookRegistry.register("myHook", my_hook)
        assert HookRegistry.get("myHook") is my_hook

    def test_register_idempotent(self):
        def hook_a(ctx):
            return None

        def hook_b(ctx):
            return None

        HookRegistry.register("sameName", hook_a)
        HookRegistry.register("sameName", hook_b)
        assert HookRegistry.get("sameName") is hook_a

    def test_get_unregistered_raises(self):
        with pytest.raises(ValueError, match="not registered"):
            HookRegistry.get("nonexistent")

    def test_decorator(self):
        @hook("decorated")
        def decorated(ctx):
            return None

        assert HookRegistry.is_registered("decorated")
        assert HookRegistry.list_registered() == ["decorated"]

    def test_hook_points_cover_begin_and_complete(self):
        assert HOOK_POINTS[0] == "begin"
        assert HOOK_POINTS[-1] == "complete"


# =============================================================================
# HookService tests
# =============================================================================


class TestHookService:
    def test_no_hooks(self, hook_service, base_context):
        assert hook_service.run_hooks("beforeCreate", [], base_context) is None

    def test_updates_compound(self, hook_service, base_context):
        @hook("first")
        def first(ctx):
            return HookResult(update={"slug": "write-docs"})

        @hook("second")
        def second(ctx):
            return HookResult(update={"title": ctx.record["slug"].upper()})

        result = hook_service.run_hooks("beforeCreate", ["first", "second"], base_context)
        assert result.update == {"slug": "write-docs", "title": "WRITE-DOCS"}
        assert base_context.record["title"] == "WRITE-DOCS"

    def test_abort_raises_invalid_field(self, hook_service, base_context):
        @hook("reject")
        def reject(ctx):
            return HookResult(abort="Title is reserved")

        with pytest.raises(InvalidField, match="Unable to beforeCreate resource: Title is reserved"):
            hook_service.run_hooks("beforeCreate", ["reject"], base_context)

    def test_abort_stops_later_hooks(self, hook_service, base_context):
        calls = []

        @hook("reject")
        def reject(ctx):
            return HookResult(abort="no")

        @hook("after")
        def after(ctx):
            calls.append(ctx)

        with pytest.raises(InvalidField):
            hook_service.run_hooks("beforeCreate", ["reject", "after"], base_context)
        assert calls == []

    def test_unregistered_hook_skipped_with_warning(self, hook_service, base_context, caplog):
        with caplog.at_level(logging.WARNING):
            assert hook_service.run_hooks("beforeCreate", ["ghost"], base_context) is None
        assert "ghost" in caplog.text

    def test_exceptions_propagate(self, hook_service, base_context):
        @hook("boom")
        def boom(ctx):
            raise RuntimeError("hook failed")

        with pytest.raises(RuntimeError, match="hook failed"):
            hook_service.run_hooks("beforeCreate", ["boom"], base_context)


# =============================================================================
# Hooks wired into the model lifecycle
# =============================================================================


class TestModelHooks:
    def test_before_create_updates_fields(self, hooked_tasks):
        @hook("stampSlug")
        def stamp_slug(ctx):
            return HookResult(update={"slug": ctx.record["title"].lower().replace(" ", "-")})

        tasks = hooked_tasks(beforeCreate=["stampSlug"])
        assert tasks.create({"title": "Write Docs"}).get("slug") == "write-docs"

    def test_before_write_runs_before_before_create(self, hooked_tasks):
        order = []

        @hook("onWrite")
        def on_write(ctx):
            order.append("beforeWrite")

        @hook("onCreate")
        def on_create(ctx):
            order.append("beforeCreate")

        tasks = hooked_tasks(beforeWrite=["onWrite"], beforeCreate=["onCreate"])
        tasks.create({"title": "Write docs"})
        assert order == ["beforeWrite", "beforeCreate"]

    def test_abort_prevents_write(self, hooked_tasks):
        @hook("reject")
        def reject(ctx):
            return HookResult(abort="Title is reserved")

        tasks = hooked_tasks(beforeCreate=["reject"])
        with pytest.raises(InvalidField, match="Title is reserved"):
            tasks.create({"title": "admin"})
        assert tasks.count() == 0

    def test_before_update_sees_original_and_changes(self, hooked_tasks):
        seen = []

        @hook("capture")
        def capture(ctx):
            seen.append(ctx)

        tasks = hooked_tasks(beforeUpdate=["capture"])
        tasks.create({"title": "Write docs", "points": 1})
        tasks.update(1, {"points": 2})

        ctx = seen[0]
        assert ctx.original["points"] == 1
        assert ctx.changes == {"points": 2}

    def test_after_update_receives_stored_rows(self, hooked_tasks):
        seen = []

        @hook("capture")
        def capture(ctx):
            seen.append((ctx.original["title"], ctx.record["title"]))

        tasks = hooked_tasks(afterUpdate=["capture"])
        tasks.create({"title": "Draft"})
        tasks.update(1, {"title": "Final"})
        assert seen == [("Draft", "Final")]

    def test_after_read_reshapes_rows(self, hooked_tasks):
        @hook("shout")
        def shout(ctx):
            return HookResult(update={"title": ctx.record["title"].upper()})

        tasks = hooked_tasks(afterRead=["shout"])
        tasks.create({"title": "quiet"})
        assert tasks.read(1)["title"] == "QUIET"
        assert [row["title"] for row in tasks.list()] == ["QUIET"]

    def test_delete_hooks(self, hooked_tasks):
        seen = []

        @hook("beforeDel")
        def before_del(ctx):
            seen.append(("before", ctx.record["title"]))

        @hook("afterDel")
        def after_del(ctx):
            seen.append(("after", ctx.record["title"]))

        tasks = hooked_tasks(beforeDelete=["beforeDel"], afterDelete=["afterDel"])
        tasks.create({"title": "Gone"})
        tasks.delete(1)
        assert seen == [("before", "Gone"), ("after", "Gone")]

    def test_unregistered_hook_does_not_block(self, hooked_tasks):
        tasks = hooked_tasks(beforeCreate=["ghost"])
        assert tasks.create({"title": "Write docs"}).primary_key == 1

    def test_hook_exception_propagates(self, hooked_tasks):
        @hook("boom")
        def boom(ctx):
            raise RuntimeError("hook failed")

        tasks = hooked_tasks(afterCreate=["boom"])
        with pytest.raises(RuntimeError):
            tasks.create({"title": "Write docs"})


class TestBeginComplete:
    @pytest.fixture
    def fired(self):
        fired = []

        @hook("onBegin")
        def on_begin(ctx):
            fired.append("begin")

        @hook("onComplete")
        def on_complete(ctx):
            fired.append("complete")

        return fired

    def test_fire_once_per_operation(self, hooked_tasks, fired):
        tasks = hooked_tasks(begin=["onBegin"], complete=["onComplete"])
        tasks.create({"title": "Write docs"})
        assert fired == ["begin", "complete"]

    def test_nested_operations_fire_once(self, hooked_tasks, fired):
        tasks = hooked_tasks(begin=["onBegin"], complete=["onComplete"])
        tasks.create({"title": "Write docs"})
        fired.clear()
        # replicate reads then creates
        tasks.replicate(1)
        assert fired == ["begin", "complete"]

    def test_operations_from_hooks_are_nested(self, hooked_tasks, fired):
        counts = []

        @hook("countRows")
        def count_rows(ctx):
            counts.append(ctx.model.count())

        tasks = hooked_tasks(begin=["onBegin"], complete=["onComplete"], afterCreate=["countRows"])
        tasks.create({"title": "Write docs"})
        assert counts == [1]
        assert fired == ["begin", "complete"]

    def test_complete_skipped_on_failure(self, hooked_tasks, fired):
        tasks = hooked_tasks(begin=["onBegin"], complete=["onComplete"])
        with pytest.raises(InvalidField):
            tasks.create({"title": None})
        assert fired == ["begin"]
        tasks.count()
        assert fired == ["begin", "begin", "complete"]
