"""Request context for content operations.

Carries the caller identity, the caller's ability and a contextual logger.
The orchestrator and the permission checker type-hint against it; the
transport layer (outside this package) builds one per request.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import BaseModel

from contentscope.core.logging import ContextualLogger
from contentscope.domains.abilities.protocols import AbilityProtocol


class AdminUser(BaseModel):
    """Authenticated admin user performing the request."""

    id: Any
    email: Optional[str] = None


@dataclass
class RequestContext:
    """Context for a single content operation.

    ``user`` and ``ability`` are required. ``logger`` is keyword-only with a
    default of None; when omitted it is auto-derived from the request id and
    user identity in __post_init__.
    """

    user: AdminUser
    ability: AbilityProtocol = field(repr=False)

    request_id: str = field(default_factory=lambda: str(uuid4()))

    logger: ContextualLogger = field(default=None, kw_only=True, repr=False)

    def __post_init__(self):
        """Auto-derive logger from request identity if not provided."""
        if self.logger is None:
            from contentscope.core.logging import logger as base_logger

            dims: Dict[str, str] = {
                "request_id": self.request_id,
                "user_id": str(self.user.id),
            }
            self.logger = base_logger.with_context(**dims)

    @property
    def user_id(self) -> Any:
        """User ID stamped into createdBy/updatedBy."""
        return self.user.id

    @property
    def tracking_id(self) -> str:
        """Distinct id used for analytics events."""
        return str(self.user.id)

    def for_content_type(self, uid: str) -> ContextualLogger:
        """Logger carrying the content type dimension."""
        return self.logger.with_context(content_type=uid)
