"""Protocol for analytics tracking adapters."""

from typing import Any, Dict, Optional, Protocol


class AnalyticsTrackerProtocol(Protocol):
    """Fire-and-forget analytics tracking.

    Adapter boundary between the content access layer and the analytics
    provider (PostHog today).
    """

    def track(
        self,
        event_name: str,
        distinct_id: str,
        properties: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Track a single analytics event.

        Implementations must be safe to call in fire-and-forget style:
        errors are logged, never raised.
        """
        ...
