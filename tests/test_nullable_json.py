"""Tests for nullable JSON field helpers."""

import json

import pytest

from resourceforge.core.errors import InvalidConfiguration, InvalidField
from resourceforge.resources.model import ResourceModel
from resourceforge.resources.nullable_json import HasNullableJsonField, expand_keys, flatten_keys
from resourceforge.resources.service import ResourceService


class TaskMetaModel(HasNullableJsonField, ResourceModel):
    nullable_json_field = "meta"

    def before_create(self, fields):
        if "meta" in fields:
            fields["meta"] = json.dumps(self.define_nullable_json(json.loads(fields["meta"])))
        return super().before_create(fields)

    def before_update(self, existing, fields):
        if "meta" in fields:
            fields["meta"] = json.dumps(
                self.update_nullable_json(existing.primary_key, json.loads(fields["meta"]))
            )
        return super().before_update(existing, fields)


class BadMetaModel(HasNullableJsonField, ResourceModel):
    nullable_json_field = "missing"


@pytest.fixture
def tasks(db, make_registry):
    return ResourceService(db, make_registry(TaskMetaModel)).model("task")


class TestKeyFlattening:
    def test_flatten(self):
        flat = flatten_keys({"a": {"b": 1, "c": {}}, "d": 2})
        assert flat == {"a.b": 1, "a.c": {}, "d": 2}

    def test_expand(self):
        assert expand_keys({"a.b": 1, "a.c": 2, "d": 3}) == {"a": {"b": 1, "c": 2}, "d": 3}

    def test_expand_replaces_scalar_parent(self):
        assert expand_keys({"a": 1, "a.b": 2}) == {"a": {"b": 2}}


class TestDefineNullableJson:
    def test_drops_null_keys(self, tasks):
        result = tasks.define_nullable_json({"a": 1, "b": None, "c": {"d": None, "e": 2}})
        assert result == {"a": 1, "c": {"e": 2}}

    def test_rejects_invalid_keys(self, tasks):
        with pytest.raises(InvalidField, match="Invalid meta key"):
            tasks.define_nullable_json({"bad key": 1})

    def test_create_strips_nulls(self, tasks):
        task = tasks.create({"title": "Write docs", "meta": {"color": "red", "size": None}})
        assert task.get("meta") == {"color": "red"}


class TestUpdateNullableJson:
    def test_merges_and_removes(self, tasks):
        tasks.create({"title": "Write docs", "meta": {"color": "red", "size": {"w": 1, "h": 2}}})
        result = tasks.update_nullable_json(1, {"color": None, "size": {"h": 3}})
        assert result == {"size": {"w": 1, "h": 3}}

    def test_missing_row_starts_empty(self, tasks):
        assert tasks.update_nullable_json(99, {"a": 1, "b": None}) == {"a": 1}

    def test_update_through_model(self, tasks):
        tasks.create({"title": "Write docs", "meta": {"color": "red", "tags": {"x": 1}}})
        task = tasks.update(1, {"meta": {"tags": {"x": None, "y": 2}}})
        assert task.get("meta") == {"color": "red", "tags": {"y": 2}}


class TestRegistration:
    def test_field_must_be_writable(self, make_registry):
        with pytest.raises(InvalidConfiguration, match="not writable"):
            make_registry(BadMetaModel)
