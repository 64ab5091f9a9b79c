"""resourceforge: declarative resource schemas, a safe query compiler and a
CRUD lifecycle with hooks, over SQLite or PostgreSQL.

    registry = ResourceRegistry.from_path(Path("metadata"))
    db = create_database(resolve_database_url(registry.config))
    db.connect()
    tasks = ResourceService(db, registry).model("task")
    page = tasks.list({"filter": {"status": {"eq": "open"}}, "limit": 20})

Import the pieces from their subpackages (resourceforge.metadata.registry,
resourceforge.resources, resourceforge.persistence, ...).
"""

__version__ = "0.1.0"
