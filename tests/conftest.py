"""Shared fixtures: an in-memory SQLite database with users, projects and tasks."""

import pytest

from resourceforge.events.bus import EventBus
from resourceforge.hooks.registry import HookRegistry
from resourceforge.metadata.registry import ResourceRegistry
from resourceforge.metadata.schema import ResourceSchema
from resourceforge.persistence.sqlite import SQLiteDatabase
from resourceforge.resources.service import ResourceService
from resourceforge.transforms.registry import TransformRegistry

TABLES = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT UNIQUE,
    deleted_at TEXT
);
CREATE TABLE projects (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    owner_id INTEGER,
    deleted_at TEXT
);
CREATE TABLE tasks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'open',
    points INTEGER,
    project_id INTEGER,
    meta TEXT,
    slug TEXT UNIQUE,
    created_at TEXT
);
"""


def user_schema(**overrides) -> ResourceSchema:
    values = dict(
        name="user",
        table="users",
        readable_fields=("id", "name", "email"),
        writable_fields={
            "name": {"type": "string", "nullable": False},
            "email": "email",
        },
        required_fields=("name",),
        unique_fields=("email",),
        deleted_at_field="deleted_at",
    )
    values.update(overrides)
    return ResourceSchema(**values)


def project_schema(**overrides) -> ResourceSchema:
    values = dict(
        name="project",
        table="projects",
        readable_fields=("id", "name", "owner_id"),
        writable_fields={"name": "string", "owner_id": "integer"},
        required_fields=("name",),
        related_fields={"owner_id": "user"},
        deleted_at_field="deleted_at",
    )
    values.update(overrides)
    return ResourceSchema(**values)


def task_schema(**overrides) -> ResourceSchema:
    values = dict(
        name="task",
        table="tasks",
        readable_fields=("id", "title", "status", "points", "project_id", "meta", "slug", "created_at"),
        writable_fields={
            "title": {"type": "string", "maxLength": 100, "nullable": False},
            "status": {"type": "string", "options": ["open", "done"]},
            "points": {"type": "integer", "min": 0},
            "project_id": "integer",
            "meta": "json",
            "slug": "string",
            "created_at": "datetime",
        },
        required_fields=("title",),
        related_fields={"project_id": "project"},
        unique_fields=("slug",),
        search_fields=("title",),
        mutators={"meta": "json_encode"},
        accessors={"meta": "json_decode"},
        default_values={"status": "open"},
        prune_field="created_at",
        upsert_conflict_fields=("slug",),
        default_limit=10,
        max_limit=50,
    )
    values.update(overrides)
    return ResourceSchema(**values)


@pytest.fixture(autouse=True)
def clear_registries():
    """Clear hook and transform registries before and after each test."""
    HookRegistry.clear()
    TransformRegistry.clear()
    yield
    HookRegistry.clear()
    TransformRegistry.clear()


@pytest.fixture
def db():
    database = SQLiteDatabase(":memory:")
    database.connect()
    database.conn.executescript(TABLES)
    yield database
    database.close()


def build_registry(task_model=None, project_overrides=None, **task_overrides) -> ResourceRegistry:
    """Registry with the three test resources; task and project settings may be overridden."""
    reg = ResourceRegistry()
    reg.register(user_schema())
    reg.register(project_schema(**(project_overrides or {})))
    reg.register(task_schema(**task_overrides), model_class=task_model)
    return reg


@pytest.fixture
def make_registry():
    return build_registry


@pytest.fixture
def registry():
    return build_registry()


@pytest.fixture
def events():
    return EventBus()


@pytest.fixture
def service(db, registry, events):
    return ResourceService(db, registry, events=events)


@pytest.fixture
def tasks(service):
    return service.model("task")


@pytest.fixture
def projects(service):
    return service.model("project")


@pytest.fixture
def users(service):
    return service.model("user")
