"""Tests for request parameter parsing."""

import pytest

from resourceforge.core.errors import InvalidRequest
from resourceforge.query.parser import QuerySpec, parse_query


class TestParseQuery:
    def test_empty(self):
        assert parse_query(None) == QuerySpec()
        assert parse_query({}) == QuerySpec()

    def test_comma_separated_lists(self):
        spec = parse_query({"fields": "id, title ,author.name", "sort": "-id,title", "group": "status"})
        assert spec.fields == ("id", "title", "author.name")
        assert spec.sort == ("-id", "title")
        assert spec.group == ("status",)

    def test_list_values_accepted(self):
        assert parse_query({"fields": ["id", "title"]}).fields == ("id", "title")

    def test_json_filter_decoded(self):
        spec = parse_query({"filter": '{"status": {"eq": "open"}}'})
        assert spec.filter == {"status": {"eq": "open"}}

    def test_invalid_json_filter_ignored(self):
        assert parse_query({"filter": "{not json"}).filter == []

    def test_scalar_json_ignored(self):
        assert parse_query({"aggregate": "42"}).aggregate == []

    def test_limit_parsed(self):
        assert parse_query({"limit": "20"}).limit == 20
        assert parse_query({"limit": -1}).limit == -1

    @pytest.mark.parametrize("limit", ["abc", -2, True, 1.5])
    def test_invalid_limit(self, limit):
        with pytest.raises(InvalidRequest):
            parse_query({"limit": limit})

    def test_page(self):
        spec = parse_query({"page": "3"})
        assert spec.pagination_method == "page"
        assert spec.page == 3

    def test_page_below_one(self):
        with pytest.raises(InvalidRequest, match="Invalid page format"):
            parse_query({"page": 0})

    def test_cursor_methods(self):
        before = parse_query({"before": "MTA="})
        assert before.pagination_method == "before"
        assert before.cursor == "MTA="
        after = parse_query({"after": "MTA="})
        assert after.pagination_method == "after"
        assert after.cursor == "MTA="

    def test_only_one_pagination_method(self):
        with pytest.raises(InvalidRequest, match="Only one pagination method"):
            parse_query({"page": 1, "after": "MTA="})

    def test_cursor_must_be_string(self):
        with pytest.raises(InvalidRequest, match="Invalid cursor format"):
            parse_query({"after": 10})

    def test_search_must_be_string(self):
        with pytest.raises(InvalidRequest, match="Invalid search format"):
            parse_query({"search": ["a"]})

    def test_pagination_token_kept(self):
        assert parse_query({"pagination": "cursor"}).pagination == "cursor"
