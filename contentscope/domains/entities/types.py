"""Types exchanged with the entity manager."""

from typing import Any, Dict, List, Mapping

from pydantic import BaseModel, Field

# Records are flat attribute maps keyed by attribute name, including ``id``.
Entity = Dict[str, Any]

# To-many relations fetched with counts hold ``{"count": n}`` instead of records.
RELATION_COUNT_KEY = "count"


def is_relation_count(value: Any) -> bool:
    """Whether ``value`` is a relation count rather than related records."""
    return isinstance(value, Mapping) and set(value) == {RELATION_COUNT_KEY}


class Pagination(BaseModel):
    """Page metadata for a paged find."""

    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1, serialization_alias="pageSize")
    page_count: int = Field(..., ge=0, serialization_alias="pageCount")
    total: int = Field(..., ge=0)


class Page(BaseModel):
    """One page of records."""

    results: List[Entity] = Field(default_factory=list)
    pagination: Pagination


class BulkDeleteResult(BaseModel):
    """Outcome of a filtered bulk delete."""

    count: int = Field(..., ge=0)
