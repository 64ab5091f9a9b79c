"""Entry point tying a database, a schema registry and an event bus together."""

from __future__ import annotations

from typing import TYPE_CHECKING

from resourceforge.core.config import EngineConfig
from resourceforge.events.bus import EventBus
from resourceforge.persistence.adapter import Database
from resourceforge.query.compiler import QueryCompiler

if TYPE_CHECKING:
    from resourceforge.metadata.registry import ResourceRegistry
    from resourceforge.resources.model import ResourceModel


class ResourceService:
    """Shared collaborators for resource models.

    Models hold per-call state, so ask for a fresh one per logical request:

        service = ResourceService(db, registry)
        tasks = service.model("task")
        tasks.create({"title": "Write docs"})
    """

    def __init__(
        self,
        db: Database,
        registry: ResourceRegistry,
        events: EventBus | None = None,
        config: EngineConfig | None = None,
    ):
        self.db = db
        self.registry = registry
        self.events = events or EventBus()
        self.config = config or registry.config
        self.compiler = QueryCompiler(registry, self.config)

    def model(self, name: str) -> ResourceModel:
        """A new model instance for a registered resource.

        Raises:
            InvalidConfiguration: Unknown resource
        """
        schema = self.registry.schema(name)
        model_class = self.registry.model_class(name)
        return model_class(self, schema)
