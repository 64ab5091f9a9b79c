"""Tests for turning flat result rows into nested resources."""

from resourceforge.query.compiler import QueryCompiler
from resourceforge.query.parser import parse_query
from resourceforge.query.reshape import ResultReshaper, unflatten
from resourceforge.transforms.registry import TransformRegistry


class TestUnflatten:
    def test_plain_row_unchanged(self):
        assert unflatten({"id": 1, "title": "a"}) == {"id": 1, "title": "a"}

    def test_related_prefixes(self):
        row = {"id": 1, "author.name": "Ann", "author.team.name": "Core"}
        assert unflatten(row) == {"id": 1, "author": {"name": "Ann", "team": {"name": "Core"}}}

    def test_json_paths(self):
        assert unflatten({"meta->color->hex": "#f00"}) == {"meta": {"color": {"hex": "#f00"}}}

    def test_related_json_path(self):
        assert unflatten({"author.meta->a": 1}) == {"author": {"meta": {"a": 1}}}

    def test_nested_object_replaces_raw_value(self):
        row = {"author.name": "Ann", "author": 3}
        assert unflatten(row) == {"author": {"name": "Ann"}}


class TestResultReshaper:
    def test_strips_cursor_when_not_requested(self, registry):
        plan = QueryCompiler(registry).compile(registry.schema("task"), parse_query({"fields": "title"}))
        assert ResultReshaper(plan).reshape({"title": "a", "id": 1}) == {"title": "a"}

    def test_applies_root_accessors(self, registry):
        plan = QueryCompiler(registry).compile(registry.schema("task"), parse_query({"fields": "id,meta"}))
        row = ResultReshaper(plan).reshape({"id": 1, "meta": '{"b": 1, "a": 2}'})
        assert row == {"id": 1, "meta": {"a": 2, "b": 1}}

    def test_applies_related_accessors(self, make_registry):
        TransformRegistry.register("shout", lambda v: v.upper() if isinstance(v, str) else v)
        registry = make_registry(project_overrides={"accessors": {"name": "shout"}})
        plan = QueryCompiler(registry).compile(
            registry.schema("task"), parse_query({"fields": "id,project_id.name"})
        )
        row = ResultReshaper(plan).reshape({"id": 1, "project_id.name": "apollo"})
        assert row == {"id": 1, "project_id": {"name": "APOLLO"}}

    def test_after_read_callback(self, registry):
        plan = QueryCompiler(registry).compile(registry.schema("task"), parse_query({"fields": "id"}))
        reshaper = ResultReshaper(plan, after_read=lambda row: {**row, "seen": True})
        assert reshaper.reshape({"id": 1}) == {"id": 1, "seen": True}
