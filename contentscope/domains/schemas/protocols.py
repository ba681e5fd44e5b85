"""Protocols for the schemas domain."""

from typing import Protocol

from contentscope.domains.schemas.types import ContentTypeSchema


class SchemaRegistryProtocol(Protocol):
    """Read-only lookup of content-type schemas.

    Built once by its owner. All lookups are synchronous dict reads.
    """

    def get(self, uid: str) -> ContentTypeSchema:
        """Get a schema by uid. Raises SchemaNotFoundError if unknown."""
        ...

    def has(self, uid: str) -> bool:
        """Whether a schema with the given uid is registered."""
        ...

    def list_all(self) -> list[ContentTypeSchema]:
        """List all registered schemas."""
        ...
