"""Protocols for the entities domain."""

from typing import Any, Mapping, Optional, Protocol

from contentscope.domains.entities.types import BulkDeleteResult, Entity, Page
from contentscope.domains.queries.types import PopulateSpec, Query


class EntityManagerProtocol(Protocol):
    """Storage-facing operations on records of any content type.

    Implementations raise ``StorageError`` on storage failures. ``delete_many``
    must delete the matched set with a single filtered delete.
    """

    async def find_page(self, query: Query, uid: str, *, with_counts: bool = False) -> Page:
        """Return one page of records matching ``query``.

        ``with_counts`` replaces to-many relations by counts, as in ``find_one``.
        """
        ...

    async def find_one(
        self,
        id: Any,
        uid: str,
        *,
        populate: Optional[PopulateSpec] = None,
        with_counts: bool = False,
    ) -> Optional[Entity]:
        """Return a record by id, or None.

        ``populate`` limits which relations are fetched and which of their
        fields are loaded; ``with_counts`` replaces to-many relations by counts.
        """
        ...

    async def count(self, uid: str) -> int:
        """Count all records of a content type."""
        ...

    async def create(self, data: Mapping[str, Any], uid: str) -> Entity:
        """Create a record. Always produces a new id."""
        ...

    async def update(self, existing: Entity, data: Mapping[str, Any], uid: str) -> Entity:
        """Update ``existing`` with ``data``."""
        ...

    async def delete(self, existing: Entity, uid: str) -> Entity:
        """Delete ``existing`` and return it."""
        ...

    async def delete_many(self, query: Query, uid: str) -> BulkDeleteResult:
        """Delete every record matching ``query.filters`` atomically."""
        ...

    async def publish(self, existing: Entity, stamp: Mapping[str, Any], uid: str) -> Entity:
        """Mark ``existing`` as published, applying the editor ``stamp``."""
        ...

    async def unpublish(self, existing: Entity, stamp: Mapping[str, Any], uid: str) -> Entity:
        """Return ``existing`` to draft, applying the editor ``stamp``."""
        ...

    async def count_draft_relations(self, id: Any, uid: str) -> int:
        """Count relations of a record that point at unpublished targets."""
        ...
