"""Tests for pruning rows by their prune field."""

from datetime import datetime, timedelta, timezone

import pytest

from resourceforge.events.bus import RESOURCE_DELETE, RESOURCE_TRASH
from resourceforge.metadata.registry import ResourceRegistry
from resourceforge.metadata.schema import ResourceSchema
from resourceforge.resources.lifecycle import format_timestamp
from resourceforge.resources.prunable import Prunable
from resourceforge.resources.service import ResourceService
from resourceforge.resources.soft_deletes import SoftDeletes


@pytest.fixture
def dated(tasks):
    tasks.create({"title": "Old", "created_at": "2020-01-01 00:00:00"})
    tasks.create({"title": "Recent", "created_at": "2999-01-01 00:00:00"})
    tasks.create({"title": "Undated"})
    return tasks


class TestPrune:
    def test_model_is_prunable(self, tasks):
        assert isinstance(tasks, Prunable)

    def test_prune(self, dated):
        assert dated.prune(datetime(2021, 1, 1)) == 1
        assert [row["title"] for row in dated.list()] == ["Recent", "Undated"]

    def test_prune_fires_delete_events(self, dated, events):
        received = []
        events.subscribe(RESOURCE_DELETE, received.append)
        dated.prune(datetime(2021, 1, 1))
        assert [r.get("title") for r in received] == ["Old"]

    def test_prune_nothing_old_enough(self, dated):
        assert dated.prune(datetime(2019, 1, 1)) == 0
        assert dated.count() == 3

    def test_prune_quietly(self, dated, events):
        received = []
        events.subscribe(RESOURCE_DELETE, received.append)
        assert dated.prune_quietly(datetime(2021, 1, 1)) == 1
        assert dated.count() == 2
        assert received == []


class TestPruneSoftDeleting:
    @pytest.fixture
    def notes(self, db, events):
        db.conn.executescript(
            "CREATE TABLE notes (id INTEGER PRIMARY KEY AUTOINCREMENT, body TEXT, "
            "created_at TEXT, deleted_at TEXT);"
        )
        registry = ResourceRegistry()
        registry.register(
            ResourceSchema(
                name="note",
                table="notes",
                readable_fields=("id", "body", "created_at"),
                writable_fields={"body": "string", "created_at": "datetime"},
                deleted_at_field="deleted_at",
                prune_field="created_at",
            )
        )
        notes = ResourceService(db, registry, events=events).model("note")
        notes.create({"body": "old", "created_at": "2020-01-01 00:00:00"})
        notes.create({"body": "new", "created_at": "2999-01-01 00:00:00"})
        return notes

    def test_model_has_both_capabilities(self, notes):
        assert isinstance(notes, Prunable)
        assert isinstance(notes, SoftDeletes)

    def test_prune_trashes(self, notes, db, events):
        received = []
        events.subscribe(RESOURCE_TRASH, received.append)
        assert notes.prune(datetime(2021, 1, 1)) == 1
        assert [r.get("body") for r in received] == ["old"]
        assert db.count("notes") == 2
        assert notes.only_trashed().count() == 1

    def test_prune_quietly_removes_rows(self, notes, db):
        assert notes.prune_quietly(datetime(2021, 1, 1)) == 1
        assert db.count("notes") == 1


class TestFormatTimestamp:
    def test_naive_datetime(self):
        assert format_timestamp(datetime(2024, 5, 6, 7, 8, 9)) == "2024-05-06 07:08:09"

    def test_aware_datetime_converted_to_utc(self):
        moment = datetime(2024, 5, 6, 9, 8, 9, tzinfo=timezone(timedelta(hours=2)))
        assert format_timestamp(moment) == "2024-05-06 07:08:09"

    def test_epoch_seconds(self):
        assert format_timestamp(0) == "1970-01-01 00:00:00"

    def test_rejects_strings(self):
        with pytest.raises(TypeError):
            format_timestamp("2024-05-06")
