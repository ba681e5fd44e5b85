"""In-memory entity manager for testing."""

import copy
import math
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from contentscope.core.exceptions import StorageError
from contentscope.domains.entities.types import (
    RELATION_COUNT_KEY,
    BulkDeleteResult,
    Entity,
    Page,
    Pagination,
)
from contentscope.domains.queries.evaluate import matches, resolve_path
from contentscope.domains.queries.types import PopulateSpec, Query
from contentscope.domains.schemas.protocols import SchemaRegistryProtocol
from contentscope.domains.schemas.types import (
    PRIMARY_KEY,
    AttributeKind,
    ContentTypeSchema,
)


class InMemoryEntityManager:
    """In-memory implementation of EntityManagerProtocol.

    Relations are stored embedded in the record. Written relation ids are
    linked to the stored target record, or to a bare ``{"id": ...}`` when the
    target is not stored (admin users). Records returned by
    ``find_one`` with a ``populate`` spec only carry the relations named in it,
    projected to ``id`` plus the requested fields. Every call is recorded in
    ``calls`` for assertions.
    """

    def __init__(
        self,
        schemas: SchemaRegistryProtocol,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """Initialize with empty stores."""
        self._schemas = schemas
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._store: Dict[str, Dict[Any, Entity]] = {}
        self._next_id: Dict[str, int] = {}
        self.calls: List[Tuple[Any, ...]] = []

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    def seed(self, uid: str, record: Mapping[str, Any]) -> Entity:
        """Store a record as-is, assigning an id when it has none."""
        stored = copy.deepcopy(dict(record))
        if PRIMARY_KEY not in stored:
            stored[PRIMARY_KEY] = self._allocate_id(uid)
        else:
            self._next_id[uid] = max(self._next_id.get(uid, 0), int(stored[PRIMARY_KEY]))
        self._store.setdefault(uid, {})[stored[PRIMARY_KEY]] = stored
        return copy.deepcopy(stored)

    def stored(self, uid: str, id: Any) -> Optional[Entity]:
        """Return the raw stored record, bypassing call recording."""
        record = self._store.get(uid, {}).get(id)
        return copy.deepcopy(record) if record is not None else None

    def called(self, method: str) -> bool:
        """Whether ``method`` was called at least once."""
        return any(call[0] == method for call in self.calls)

    def calls_to(self, method: str) -> List[Tuple[Any, ...]]:
        """All recorded calls to ``method``."""
        return [call for call in self.calls if call[0] == method]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _allocate_id(self, uid: str) -> int:
        self._next_id[uid] = self._next_id.get(uid, 0) + 1
        return self._next_id[uid]

    def _records(self, uid: str) -> Dict[Any, Entity]:
        return self._store.setdefault(uid, {})

    def _require(self, uid: str, id: Any) -> Entity:
        record = self._records(uid).get(id)
        if record is None:
            raise StorageError(f"{uid} record {id} no longer exists")
        return record

    def _project(
        self, record: Mapping[str, Any], schema: ContentTypeSchema, populate: PopulateSpec
    ) -> Entity:
        projected: Entity = {}
        for key, value in record.items():
            attr = schema.attribute(key)
            if attr is None or attr.kind not in (AttributeKind.RELATION, AttributeKind.MEDIA):
                projected[key] = copy.deepcopy(value)
                continue
            node = populate.get(key)
            if node is None:
                continue
            target = self._schemas.get(attr.target) if attr.has_static_target else None

            def shrink(item: Any) -> Any:
                if not isinstance(item, Mapping):
                    return item
                keep = {PRIMARY_KEY, *node.fields}
                kept = {k: copy.deepcopy(v) for k, v in item.items() if k in keep}
                if target is None:
                    return kept
                nested = self._project(item, target, node.populate)
                return {**kept, **{k: v for k, v in nested.items() if k in node.populate}}

            if isinstance(value, list):
                projected[key] = [shrink(item) for item in value]
            else:
                projected[key] = shrink(value)
        return projected

    def _link(self, data: Mapping[str, Any], uid: str) -> Entity:
        """Replace relation ids in ``data`` by the records they point at."""
        schema = self._schemas.get(uid)
        linked = copy.deepcopy(dict(data))
        for key, value in linked.items():
            attr = schema.attribute(key)
            if attr is None or attr.kind not in (AttributeKind.RELATION, AttributeKind.MEDIA):
                continue
            if not attr.has_static_target:
                continue
            targets = self._records(attr.target)

            def resolve(item: Any) -> Any:
                if item is None or isinstance(item, Mapping):
                    return item
                return copy.deepcopy(targets.get(item, {PRIMARY_KEY: item}))

            if isinstance(value, list):
                linked[key] = [resolve(item) for item in value]
            else:
                linked[key] = resolve(value)
        return linked

    def _with_counts(self, record: Entity, schema: ContentTypeSchema) -> Entity:
        counted = dict(record)
        for key, value in record.items():
            attr = schema.attribute(key)
            if attr is not None and attr.kind is AttributeKind.RELATION and isinstance(value, list):
                counted[key] = {RELATION_COUNT_KEY: len(value)}
        return counted

    @staticmethod
    def _sort_value(record: Entity, path: str) -> Tuple[int, Any]:
        values = [v for v in resolve_path(record, path.split(".")) if v is not None]
        # Missing values sort first in ascending order
        return (0, None) if not values else (1, values[0])

    # ------------------------------------------------------------------
    # EntityManagerProtocol
    # ------------------------------------------------------------------

    async def find_page(self, query: Query, uid: str, *, with_counts: bool = False) -> Page:
        """Filter, sort and paginate stored records."""
        self.calls.append(("find_page", uid, query, with_counts))
        results = [r for r in self._records(uid).values() if matches(query.filters, r)]
        for key in reversed(query.sort):
            results.sort(
                key=lambda r, path=key.path: self._sort_value(r, path),
                reverse=key.direction == "desc",
            )

        total = len(results)
        start = (query.page - 1) * query.page_size
        page = results[start : start + query.page_size]
        if query.fields is not None:
            keep = {PRIMARY_KEY, *query.fields}
            page = [{k: v for k, v in r.items() if k in keep} for r in page]
        if with_counts:
            schema = self._schemas.get(uid)
            page = [self._with_counts(r, schema) for r in page]

        return Page(
            results=copy.deepcopy(page),
            pagination=Pagination(
                page=query.page,
                page_size=query.page_size,
                page_count=math.ceil(total / query.page_size),
                total=total,
            ),
        )

    async def find_one(
        self,
        id: Any,
        uid: str,
        *,
        populate: Optional[PopulateSpec] = None,
        with_counts: bool = False,
    ) -> Optional[Entity]:
        """Return the stored record, projected by ``populate`` when given."""
        self.calls.append(("find_one", uid, id, populate, with_counts))
        record = self._records(uid).get(id)
        if record is None:
            return None
        schema = self._schemas.get(uid)
        result = self._project(record, schema, populate) if populate is not None else record
        if with_counts:
            result = self._with_counts(result, schema)
        return copy.deepcopy(result)

    async def count(self, uid: str) -> int:
        """Number of stored records."""
        self.calls.append(("count", uid))
        return len(self._records(uid))

    async def create(self, data: Mapping[str, Any], uid: str) -> Entity:
        """Store a new record with a fresh id."""
        self.calls.append(("create", uid, dict(data)))
        record = self._link(data, uid)
        record[PRIMARY_KEY] = self._allocate_id(uid)
        if self._schemas.get(uid).draft_and_publish:
            record.setdefault("publishedAt", None)
        self._records(uid)[record[PRIMARY_KEY]] = record
        return copy.deepcopy(record)

    async def update(self, existing: Entity, data: Mapping[str, Any], uid: str) -> Entity:
        """Merge ``data`` into the stored record."""
        self.calls.append(("update", uid, existing[PRIMARY_KEY], dict(data)))
        record = self._require(uid, existing[PRIMARY_KEY])
        record.update(self._link(data, uid))
        return copy.deepcopy(record)

    async def delete(self, existing: Entity, uid: str) -> Entity:
        """Remove the stored record and return it."""
        self.calls.append(("delete", uid, existing[PRIMARY_KEY]))
        record = self._require(uid, existing[PRIMARY_KEY])
        del self._records(uid)[existing[PRIMARY_KEY]]
        return copy.deepcopy(record)

    async def delete_many(self, query: Query, uid: str) -> BulkDeleteResult:
        """Remove every record matching ``query.filters`` in one pass."""
        self.calls.append(("delete_many", uid, query))
        records = self._records(uid)
        doomed = [id for id, r in records.items() if matches(query.filters, r)]
        for id in doomed:
            del records[id]
        return BulkDeleteResult(count=len(doomed))

    async def publish(self, existing: Entity, stamp: Mapping[str, Any], uid: str) -> Entity:
        """Set ``publishedAt`` and apply the stamp."""
        self.calls.append(("publish", uid, existing[PRIMARY_KEY], dict(stamp)))
        record = self._require(uid, existing[PRIMARY_KEY])
        record.update({**self._link(stamp, uid), "publishedAt": self._clock()})
        return copy.deepcopy(record)

    async def unpublish(self, existing: Entity, stamp: Mapping[str, Any], uid: str) -> Entity:
        """Clear ``publishedAt`` and apply the stamp."""
        self.calls.append(("unpublish", uid, existing[PRIMARY_KEY], dict(stamp)))
        record = self._require(uid, existing[PRIMARY_KEY])
        record.update({**self._link(stamp, uid), "publishedAt": None})
        return copy.deepcopy(record)

    async def count_draft_relations(self, id: Any, uid: str) -> int:
        """Count related records of draft-and-publish targets that are unpublished."""
        self.calls.append(("count_draft_relations", uid, id))
        record = self._require(uid, id)
        schema = self._schemas.get(uid)
        drafts = 0
        for key, value in record.items():
            attr = schema.attribute(key)
            if attr is None or attr.kind is not AttributeKind.RELATION:
                continue
            if not attr.has_static_target:
                continue
            if not attr.writable or not self._schemas.get(attr.target).draft_and_publish:
                continue
            for item in value if isinstance(value, list) else [value]:
                if not isinstance(item, Mapping):
                    continue
                current = self._records(attr.target).get(item.get(PRIMARY_KEY), item)
                if current.get("publishedAt") is None:
                    drafts += 1
        return drafts
