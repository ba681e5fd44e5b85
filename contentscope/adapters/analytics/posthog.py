"""PostHog analytics tracker adapter."""

import logging
from typing import Any, Dict, Optional

import posthog

from contentscope.core.config import Environment, Settings

logger = logging.getLogger(__name__)


class PostHogTracker:
    """Wraps the PostHog SDK behind AnalyticsTrackerProtocol.

    Enriches every event with the deployment environment so dashboards can
    segment by it.
    """

    def __init__(self, settings: Settings) -> None:
        """Configure PostHog SDK from application settings."""
        self._enabled = (
            settings.ANALYTICS_ENABLED
            and settings.POSTHOG_API_KEY is not None
            and settings.ENVIRONMENT != Environment.LOCAL
        )
        self._environment = settings.ENVIRONMENT.value

        if self._enabled:
            posthog.api_key = settings.POSTHOG_API_KEY
            posthog.host = settings.POSTHOG_HOST
            logger.info("PostHog analytics tracker initialized (env=%s)", self._environment)
        else:
            logger.info("PostHog analytics tracker disabled (env=%s)", self._environment)

    @property
    def enabled(self) -> bool:
        return self._enabled

    def track(
        self,
        event_name: str,
        distinct_id: str,
        properties: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Send event to PostHog, enriched with the environment."""
        if not self._enabled:
            return

        try:
            merged = {"environment": self._environment, **(properties or {})}
            posthog.capture(distinct_id=distinct_id, event=event_name, properties=merged)
        except Exception as e:
            logger.error("Failed to track analytics event '%s': %s", event_name, e)
