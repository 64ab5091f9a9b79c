"""Tests for mutator and accessor transforms."""

from datetime import datetime

import pytest

from resourceforge.core.errors import InvalidField, UnexpectedException
from resourceforge.transforms import (
    TransformRegistry,
    apply_transforms,
    register_builtin_transforms,
    resolve_transform,
    transform,
)
from resourceforge.transforms import builtins


class TestRegistry:
    def test_builtins_registered(self):
        register_builtin_transforms()
        assert "json_encode" in TransformRegistry.list_registered()
        assert TransformRegistry.get("slug") is builtins.slug

    def test_register_builtins_twice_keeps_overrides(self):
        TransformRegistry.register("slug", str.upper)
        register_builtin_transforms()
        assert TransformRegistry.get("slug") is str.upper

    def test_decorator(self):
        @transform("double")
        def double(value):
            return value * 2

        assert resolve_transform("double")(3) == 6

    def test_resolve_callable(self):
        assert resolve_transform(len) is len

    def test_resolve_unknown(self):
        with pytest.raises(UnexpectedException, match="not registered"):
            resolve_transform("nope")

    def test_resolve_non_callable(self):
        with pytest.raises(UnexpectedException):
            resolve_transform(42)


class TestApplyTransforms:
    def test_only_present_keys(self):
        values = {"a": " x "}
        assert apply_transforms(values, {"a": builtins.trim, "b": builtins.trim}) == {"a": "x"}

    def test_value_errors_become_invalid_field(self):
        with pytest.raises(InvalidField) as exc_info:
            apply_transforms({"n": "abc"}, {"n": builtins.integer})
        assert exc_info.value.field == "n"


class TestBuiltins:
    def test_json_encode(self):
        assert builtins.json_encode({"a": [1, 2]}) == '{"a":[1,2]}'
        assert builtins.json_encode("raw") == "raw"

    def test_json_decode(self):
        assert builtins.json_decode('{"b": 1, "a": 2}') == {"a": 2, "b": 1}
        assert list(builtins.json_decode('{"b": 1, "a": 2}')) == ["a", "b"]
        assert builtins.json_decode(None) == []
        assert builtins.json_decode("not json") == ["not json"]
        assert builtins.json_decode(5) == [5]

    def test_escape_string(self):
        assert builtins.escape_string("<b>") == "&lt;b&gt;"

    def test_boolean(self):
        assert builtins.boolean("yes") is True
        assert builtins.boolean("off") is False
        assert builtins.boolean(0) is False

    def test_integer(self):
        assert builtins.integer("4.7") == 4
        assert builtins.integer("") == 0

    def test_nullify(self):
        assert builtins.nullify("") is None
        assert builtins.nullify("x") == "x"

    def test_slug(self):
        assert builtins.slug("Hello World") == "hello-world"
        assert builtins.slug("camelCaseName") == "camel-case-name"

    def test_censor(self):
        assert builtins.censor("secret") == "********"
        assert builtins.censor("") == ""

    def test_dates(self):
        moment = datetime(2024, 3, 10, 12, 30, 5)
        assert builtins.date(moment) == "2024-03-10"
        assert builtins.datetime(moment) == "2024-03-10 12:30:05"
        assert builtins.datetime(0) == "1970-01-01 00:00:00"

    def test_timestamp(self):
        assert builtins.timestamp("1970-01-02 00:00:00") == 86400
        assert builtins.timestamp("60") == 60

    def test_uuid_round_trip(self):
        value = "12345678-1234-5678-1234-567812345678"
        packed = builtins.uuid_to_bin(value)
        assert len(packed) == 16
        assert builtins.bin_to_uuid(packed) == value

    def test_case_and_trim(self):
        assert builtins.lowercase("AbC") == "abc"
        assert builtins.uppercase("AbC") == "ABC"
        assert builtins.trim("  x ") == "x"
        assert builtins.trim(3) == 3
