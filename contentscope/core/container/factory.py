"""Container Factory.

All construction logic lives here. The factory reads settings and builds
the container with environment-appropriate implementations.
"""

from typing import Optional

from contentscope.adapters.analytics.posthog import PostHogTracker
from contentscope.adapters.analytics.protocols import AnalyticsTrackerProtocol
from contentscope.core.config import Settings
from contentscope.core.container.container import Container
from contentscope.core.logging import logger
from contentscope.core.protocols import TraceHook
from contentscope.core.tracing import LoggingTraceHook, NullTraceHook
from contentscope.domains.content_manager.service import ContentManagerService
from contentscope.domains.entities.protocols import EntityManagerProtocol
from contentscope.domains.permissions.checker import PermissionCheckerFactory
from contentscope.domains.queries.populate import PopulateDeriver
from contentscope.domains.schemas.protocols import SchemaRegistryProtocol


def create_container(
    settings: Settings,
    schemas: SchemaRegistryProtocol,
    entity_manager: EntityManagerProtocol,
    analytics: Optional[AnalyticsTrackerProtocol] = None,
) -> Container:
    """Build container with environment-appropriate implementations.

    Schemas and the entity manager are owned by the host application and
    passed in. Analytics defaults to the PostHog adapter.

    Args:
        settings: Application settings (from core/config)
        schemas: Registry of content type schemas
        entity_manager: Storage-facing entity manager
        analytics: Optional analytics tracker override

    Returns:
        Fully constructed Container ready for use
    """
    # -----------------------------------------------------------------
    # Telemetry
    # -----------------------------------------------------------------
    tracker = analytics or PostHogTracker(settings)

    # -----------------------------------------------------------------
    # Populate trace hook (off unless explicitly enabled)
    # -----------------------------------------------------------------
    trace = _create_trace_hook(settings)

    # -----------------------------------------------------------------
    # Permission layer + orchestrator
    # -----------------------------------------------------------------
    checker_factory = PermissionCheckerFactory(schemas)
    deriver = PopulateDeriver(schemas, trace=trace)
    content_manager = ContentManagerService(
        entity_manager=entity_manager,
        checker_factory=checker_factory,
        deriver=deriver,
        analytics=tracker,
        settings=settings,
    )

    return Container(
        schemas=schemas,
        entity_manager=entity_manager,
        analytics=tracker,
        trace=trace,
        checker_factory=checker_factory,
        populate_deriver=deriver,
        content_manager=content_manager,
    )


def _create_trace_hook(settings: Settings) -> TraceHook:
    if settings.POPULATE_TRACE_ENABLED:
        logger.debug("Populate tracing enabled")
        return LoggingTraceHook(logger.with_prefix("Populate: "))
    return NullTraceHook()
