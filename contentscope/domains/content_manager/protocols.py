"""Protocols for the content manager domain."""

from typing import Any, Mapping, Optional, Protocol

from contentscope.core.context import RequestContext
from contentscope.domains.content_manager.outcomes import Outcome
from contentscope.domains.entities.types import BulkDeleteResult, Entity, Page


class ContentManagerServiceProtocol(Protocol):
    """Permission-scoped operations on records of any content type.

    Every operation returns an Outcome. Storage failures and unknown content
    types propagate as exceptions.
    """

    async def find(
        self, ctx: RequestContext, uid: str, params: Optional[Mapping[str, Any]] = None
    ) -> Outcome[Page]:
        """Return one page of readable records with their readable fields."""
        ...

    async def find_one(
        self,
        ctx: RequestContext,
        uid: str,
        id: Any,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Outcome[Entity]:
        """Return one record if the caller may read it."""
        ...

    async def create(
        self, ctx: RequestContext, uid: str, body: Optional[Mapping[str, Any]]
    ) -> Outcome[Entity]:
        """Create a record from the permitted part of ``body``."""
        ...

    async def update(
        self, ctx: RequestContext, uid: str, id: Any, body: Optional[Mapping[str, Any]]
    ) -> Outcome[Entity]:
        """Update a record with the permitted part of ``body``."""
        ...

    async def delete(self, ctx: RequestContext, uid: str, id: Any) -> Outcome[Entity]:
        """Delete a record."""
        ...

    async def publish(self, ctx: RequestContext, uid: str, id: Any) -> Outcome[Entity]:
        """Publish a draft record."""
        ...

    async def unpublish(self, ctx: RequestContext, uid: str, id: Any) -> Outcome[Entity]:
        """Return a published record to draft."""
        ...

    async def bulk_delete(
        self,
        ctx: RequestContext,
        uid: str,
        body: Any,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Outcome[BulkDeleteResult]:
        """Delete the listed records that the caller's delete filter allows."""
        ...

    async def count_draft_relations(
        self, ctx: RequestContext, uid: str, id: Any
    ) -> Outcome[int]:
        """Count relations of a record that point at unpublished targets."""
        ...
