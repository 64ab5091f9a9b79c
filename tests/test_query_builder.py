"""Tests for the SELECT builder, dialects and driver statements."""

import pytest

from resourceforge.core.errors import AlreadyExists, InvalidRequest
from resourceforge.core.types import build_condition, get_aggregate
from resourceforge.persistence.dialect import PostgreSQLDialect, SQLiteDialect
from resourceforge.persistence.postgresql import PostgreSQLDatabase
from resourceforge.persistence.query import Column, QueryBuilder


@pytest.fixture
def pg():
    return PostgreSQLDatabase("postgresql+psycopg://localhost/test")


# =============================================================================
# Conditions
# =============================================================================


class TestBuildCondition:
    def test_eq(self):
        assert build_condition('"a"', "eq", 1) == ('"a" = ?', [1])

    def test_eq_none_is_null(self):
        assert build_condition('"a"', "eq", None) == ('"a" IS NULL', [])
        assert build_condition('"a"', "neq", None) == ('"a" IS NOT NULL', [])

    def test_in(self):
        assert build_condition('"a"', "in", [1, 2], "%s") == ('"a" IN (%s, %s)', [1, 2])

    def test_in_requires_list(self):
        with pytest.raises(InvalidRequest):
            build_condition('"a"', "in", [])

    def test_contains_escapes_wildcards(self):
        sql, params = build_condition('"a"', "contains", "50%_off")
        assert sql == "\"a\" LIKE ? ESCAPE '\\'"
        assert params == ["%50\\%\\_off%"]

    def test_starts_and_ends_with(self):
        assert build_condition('"a"', "startsWith", "x")[1] == ["x%"]
        assert build_condition('"a"', "notEndsWith", "x")[0].startswith('"a" NOT LIKE')

    def test_icontains_folds_case(self):
        sql, params = build_condition('"a"', "icontains", "Docs")
        assert sql.startswith('LOWER(CAST("a" AS TEXT)) LIKE')
        assert params == ["%docs%"]

    def test_null_checks(self):
        assert build_condition('"a"', "isNull", True) == ('"a" IS NULL', [])
        assert build_condition('"a"', "isNull", False) == ('"a" IS NOT NULL', [])
        assert build_condition('"a"', "isNotNull", "true") == ('"a" IS NOT NULL', [])

    def test_between(self):
        assert build_condition('"a"', "between", [1, 5]) == ('"a" BETWEEN ? AND ?', [1, 5])

    def test_unknown_operator(self):
        with pytest.raises(InvalidRequest, match="Invalid filter operator"):
            build_condition('"a"', "near", 1)

    def test_scalar_operators_reject_lists(self):
        with pytest.raises(InvalidRequest):
            build_condition('"a"', "gt", [1])


class TestAggregates:
    def test_case_insensitive_lookup(self):
        assert get_aggregate("sum").name == "SUM"

    def test_distinct(self):
        assert get_aggregate("count_distinct").render('"a"') == 'COUNT(DISTINCT "a")'

    def test_unsupported(self):
        with pytest.raises(InvalidRequest, match="Unsupported aggregate function"):
            get_aggregate("median")


# =============================================================================
# Dialects
# =============================================================================


class TestDialects:
    def test_quote(self):
        assert SQLiteDialect().quote("createdAt") == '"createdAt"'

    def test_quote_rejects_injection(self):
        with pytest.raises(ValueError):
            SQLiteDialect().quote('a"; DROP TABLE x; --')

    def test_alias_allows_paths(self):
        assert SQLiteDialect().quote_alias("author.meta->a-b") == '"author.meta->a-b"'

    def test_sqlite_json_extract(self):
        assert SQLiteDialect().json_extract('"t"."meta"', ["color", "hex"]) == (
            'json_extract("t"."meta", \'$."color"."hex"\')'
        )

    def test_postgresql_json_extract(self):
        assert PostgreSQLDialect().json_extract('"t"."meta"', ["color", "hex"]) == (
            '(("t"."meta")::jsonb #>> \'{color,hex}\')'
        )

    def test_json_path_keys_checked(self):
        with pytest.raises(ValueError):
            SQLiteDialect().json_extract('"meta"', ["bad'key"])

    def test_upsert_clause(self):
        clause = SQLiteDialect().upsert_clause(["slug"], ["title"])
        assert clause == ' ON CONFLICT ("slug") DO UPDATE SET "title" = excluded."title"'

    def test_upsert_clause_nothing_to_update(self):
        assert SQLiteDialect().upsert_clause(["id"], []) == ' ON CONFLICT ("id") DO NOTHING'


# =============================================================================
# QueryBuilder rendering
# =============================================================================


class TestQueryBuilder:
    def test_select_all(self, db):
        assert db.new_query().table("tasks").to_sql() == ('SELECT * FROM "tasks"', [])

    def test_full_statement(self, db):
        sql, params = (
            db.new_query()
            .table("tasks")
            .select("tasks.id", "id")
            .select(Column("name", "projects_1"), "project_id.name")
            .left_join("projects", "tasks.project_id", "projects_1.id", alias="projects_1")
            .where("tasks.status", "eq", "open")
            .order_by(["-tasks.points", "tasks.id"])
            .limit(10)
            .offset(20)
            .to_sql()
        )
        assert sql == (
            'SELECT "tasks"."id" AS "id", "projects_1"."name" AS "project_id.name" '
            'FROM "tasks" LEFT JOIN "projects" AS "projects_1" ON "tasks"."project_id" = "projects_1"."id" '
            'WHERE "tasks"."status" = ? '
            'ORDER BY "tasks"."points" DESC, "tasks"."id" ASC LIMIT 10 OFFSET 20'
        )
        assert params == ["open"]

    def test_groups(self, db):
        sql, params = (
            db.new_query()
            .table("tasks")
            .where("status", "eq", "open")
            .start_group("AND")
            .where("points", "gt", 4)
            .or_where("points", "lt", 2)
            .end_group()
            .to_sql()
        )
        assert sql == 'SELECT * FROM "tasks" WHERE "status" = ? AND ("points" > ? OR "points" < ?)'
        assert params == ["open", 4, 2]

    def test_first_predicate_in_group_ignores_connector(self, db):
        sql, _ = (
            db.new_query()
            .table("tasks")
            .start_group("OR")
            .or_where("a", "eq", 1)
            .end_group()
            .to_sql()
        )
        assert sql == 'SELECT * FROM "tasks" WHERE ("a" = ?)'

    def test_empty_group_dropped(self, db):
        sql, _ = db.new_query().table("tasks").start_group().end_group().to_sql()
        assert sql == 'SELECT * FROM "tasks"'

    def test_unclosed_group(self, db):
        with pytest.raises(ValueError, match="Unclosed"):
            db.new_query().table("tasks").start_group().to_sql()

    def test_unmatched_end_group(self, db):
        with pytest.raises(ValueError):
            db.new_query().table("tasks").end_group()

    def test_invalid_connector(self, db):
        with pytest.raises(ValueError):
            db.new_query().start_group("XOR")

    def test_offset_without_limit_on_sqlite(self, db):
        sql, _ = db.new_query().table("tasks").offset(5).to_sql()
        assert sql == 'SELECT * FROM "tasks" LIMIT -1 OFFSET 5'

    def test_json_column(self, db):
        sql, _ = db.new_query().table("tasks").select(Column("meta", "tasks", ("color",)), "meta->color").to_sql()
        assert sql == 'SELECT json_extract("tasks"."meta", \'$."color"\') AS "meta->color" FROM "tasks"'

    def test_count_grouped_counts_groups(self, db):
        sql, _ = db.new_query().table("tasks").group_by(["tasks.status"]).aggregate_sql()
        assert sql == (
            'SELECT COUNT(*) AS "aggregate" FROM (SELECT 1 AS "grouped_row" FROM "tasks" '
            'GROUP BY "tasks"."status") AS "grouped"'
        )

    def test_postgresql_placeholders(self, pg):
        sql, params = QueryBuilder(pg).table("tasks").where("tasks.id", "in", [1, 2]).to_sql()
        assert sql == 'SELECT * FROM "tasks" WHERE "tasks"."id" IN (%s, %s)'
        assert params == [1, 2]

    def test_postgresql_offset_without_limit(self, pg):
        sql, _ = QueryBuilder(pg).table("tasks").offset(5).to_sql()
        assert sql == 'SELECT * FROM "tasks" OFFSET 5'


# =============================================================================
# Execution against SQLite
# =============================================================================


class TestExecution:
    @pytest.fixture
    def rows(self, db):
        db.insert("tasks", {"title": "a", "points": 1})
        db.insert("tasks", {"title": "b", "points": 2, "status": "done"})
        db.insert("tasks", {"title": "c", "points": 3, "status": "done"})
        return db

    def test_get(self, rows):
        result = rows.new_query().table("tasks").select("tasks.title", "title").where("points", "gte", 2).get()
        assert result == [{"title": "b"}, {"title": "c"}]

    def test_count_and_aggregate(self, rows):
        assert rows.new_query().table("tasks").count() == 3
        assert rows.new_query().table("tasks").aggregate("SUM", "tasks.points") == 6
        assert rows.new_query().table("tasks").group_by(["status"]).count() == 2

    def test_delete(self, rows):
        assert rows.new_query().table("tasks").where("status", "eq", "done").delete() == 2
        assert rows.count("tasks") == 1

    def test_delete_requires_condition(self, rows):
        with pytest.raises(ValueError):
            rows.new_query().table("tasks").delete()

    def test_insert_tracks_last_id(self, rows):
        rows.insert("tasks", {"title": "d"}, returning="id")
        assert rows.last_insert_id() == 4

    def test_unique_violation_raises_already_exists(self, rows):
        rows.insert("tasks", {"title": "d", "slug": "d"})
        with pytest.raises(AlreadyExists):
            rows.insert("tasks", {"title": "e", "slug": "d"})

    def test_upsert_overwrites(self, rows):
        rows.insert("tasks", {"title": "d", "slug": "d"})
        rows.insert("tasks", {"title": "e", "slug": "d"}, fail_on_duplicate=False, conflict_fields=["slug"])
        assert rows.single("SELECT title FROM tasks WHERE slug = ?", ["d"]) == "e"

    def test_update_and_exists(self, rows):
        assert rows.update("tasks", {"points": 9}, {"title": "a"}) == 1
        assert rows.exists("tasks", {"points": 9}) is True
        assert rows.update("tasks", {}, {"title": "a"}) == 0

    def test_delete_statement_requires_condition(self, rows):
        with pytest.raises(ValueError):
            rows.delete("tasks", {})
