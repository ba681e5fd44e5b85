"""Dependency Injection Container.

The container is a simple immutable dataclass that holds protocol implementations.
It has no construction logic; that belongs in the factory.
"""

from dataclasses import dataclass, replace
from typing import Any

from contentscope.adapters.analytics.protocols import AnalyticsTrackerProtocol
from contentscope.core.protocols import TraceHook
from contentscope.domains.content_manager.protocols import ContentManagerServiceProtocol
from contentscope.domains.entities.protocols import EntityManagerProtocol
from contentscope.domains.permissions.checker import PermissionCheckerFactory
from contentscope.domains.queries.populate import PopulateDeriver
from contentscope.domains.schemas.protocols import SchemaRegistryProtocol


@dataclass(frozen=True)
class Container:
    """Immutable container holding all protocol implementations.

    Usage:
        # Production: built once by the factory
        container = create_container(settings, schemas, entity_manager)
        outcome = await container.content_manager.find(ctx, "api::article.article")

        # Testing: construct directly with fakes
        test_container = Container(analytics=FakeAnalyticsTracker(), ...)
    """

    # Content type schemas (read-only per request)
    schemas: SchemaRegistryProtocol

    # Storage-facing entity manager
    entity_manager: EntityManagerProtocol

    # Telemetry adapter
    analytics: AnalyticsTrackerProtocol

    # Populate traversal observability hook
    trace: TraceHook

    # Permission layer
    checker_factory: PermissionCheckerFactory
    populate_deriver: PopulateDeriver

    # Request orchestrator
    content_manager: ContentManagerServiceProtocol

    def replace(self, **changes: Any) -> "Container":
        """Create a new container with some dependencies replaced.

        Useful for partial overrides in tests:

            modified = container.replace(analytics=FakeAnalyticsTracker())

        Args:
            **changes: Dependency name -> new implementation

        Returns:
            New Container with specified dependencies replaced
        """
        return replace(self, **changes)
