"""Content manager service: the permission-scoped request orchestrator.

Every operation follows the same two-phase shape: a collection-level check
before anything touches storage, then a record-level check once the target
record is known. Failed checks end the operation before any mutation.
"""

from dataclasses import replace
from types import MappingProxyType
from typing import Any, Mapping, Optional

from contentscope.adapters.analytics.protocols import AnalyticsTrackerProtocol
from contentscope.core.config import Settings
from contentscope.core.context import RequestContext
from contentscope.core.exceptions import NotFoundException, PermissionException
from contentscope.domains.content_manager.outcomes import Outcome, as_outcome
from contentscope.domains.content_manager.protocols import ContentManagerServiceProtocol
from contentscope.domains.content_manager.validation import validate_bulk_delete_input
from contentscope.domains.entities.protocols import EntityManagerProtocol
from contentscope.domains.entities.types import BulkDeleteResult, Entity, Page
from contentscope.domains.permissions.checker import PermissionChecker, PermissionCheckerFactory
from contentscope.domains.permissions.pipeline import CREATED_BY, UPDATED_BY, AuditStamp
from contentscope.domains.permissions.types import Action
from contentscope.domains.queries.populate import (
    PopulateDeriver,
    merge_populate,
    populate_to_dict,
)
from contentscope.domains.queries.types import And, PopulateNode, PopulateSpec, Predicate, Query
from contentscope.domains.schemas.types import PRIMARY_KEY

# Creator relations are always fetched so ownership conditions can be evaluated.
CREATOR_POPULATE: PopulateSpec = MappingProxyType(
    {CREATED_BY: PopulateNode(), UPDATED_BY: PopulateNode()}
)


class ContentManagerService(ContentManagerServiceProtocol):
    """Orchestrates permission checks, sanitization and storage calls."""

    def __init__(
        self,
        entity_manager: EntityManagerProtocol,
        checker_factory: PermissionCheckerFactory,
        deriver: PopulateDeriver,
        analytics: AnalyticsTrackerProtocol,
        settings: Settings,
    ) -> None:
        """Initialize with injected dependencies."""
        self._entity_manager = entity_manager
        self._checker_factory = checker_factory
        self._deriver = deriver
        self._analytics = analytics
        self._settings = settings

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _checker(self, ctx: RequestContext, uid: str) -> PermissionChecker:
        return self._checker_factory.create(ctx.ability, uid, ctx.logger)

    @staticmethod
    def _require(
        checker: PermissionChecker, action: Action, record: Optional[Entity] = None
    ) -> None:
        """Raise PermissionException unless ``action`` is allowed."""
        if checker.cannot(action, record):
            scope = "this record" if record is not None else checker.uid
            raise PermissionException(f"Cannot {action.value} {scope}")

    async def _fetch(self, uid: str, id: Any, **options: Any) -> Entity:
        entity = await self._entity_manager.find_one(id, uid, **options)
        if entity is None:
            raise NotFoundException(f"No {uid} entry with id {id}")
        return entity

    def _track_first_entry(self, ctx: RequestContext, uid: str) -> None:
        try:
            self._analytics.track(
                self._settings.FIRST_ENTRY_EVENT, ctx.tracking_id, {"model": uid}
            )
        except Exception as e:
            ctx.logger.warning(f"Failed to track {self._settings.FIRST_ENTRY_EVENT}: {e}")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @as_outcome
    async def find(
        self, ctx: RequestContext, uid: str, params: Optional[Mapping[str, Any]] = None
    ) -> Outcome[Page]:
        """Precheck, sanitize the query, fetch a counted page, sanitize each result."""
        query = Query.from_params(params)
        checker = self._checker(ctx, uid)
        self._require(checker, Action.READ)

        permitted = checker.sanitize_query(Action.READ, query)
        page = await self._entity_manager.find_page(permitted, uid, with_counts=True)

        results = [checker.sanitize_output(record) for record in page.results]
        return Outcome.ok(Page(results=results, pagination=page.pagination))

    @as_outcome
    async def find_one(
        self,
        ctx: RequestContext,
        uid: str,
        id: Any,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Outcome[Entity]:
        """Fetch one record populated for the sanitized filter's needs.

        The creator relations are always populated. Other relations follow the
        sanitized query filter only, so a read grant whose condition references
        a relation the filter does not touch is evaluated without that relation.
        """
        query = Query.from_params(params)
        checker = self._checker(ctx, uid)
        self._require(checker, Action.READ)

        permitted = checker.sanitize_query(Action.READ, query)
        derivation = self._deriver.derive_with_report(permitted.filters, checker.schema)
        if derivation.inconclusive:
            ctx.logger.debug(
                f"Filter paths not populated for {uid}: {', '.join(derivation.inconclusive)}"
            )
        populate = merge_populate(derivation.populate, CREATOR_POPULATE)
        ctx.logger.debug(f"Populate for {uid}#{id}: {populate_to_dict(populate)}")

        entity = await self._fetch(uid, id, populate=populate)
        self._require(checker, Action.READ, entity)
        return Outcome.ok(checker.sanitize_output(entity))

    @as_outcome
    async def count_draft_relations(
        self, ctx: RequestContext, uid: str, id: Any
    ) -> Outcome[int]:
        """Number of relations of a readable record that target drafts."""
        checker = self._checker(ctx, uid)
        self._require(checker, Action.READ)

        entity = await self._fetch(uid, id, with_counts=True)
        self._require(checker, Action.READ, entity)

        return Outcome.ok(await self._entity_manager.count_draft_relations(id, uid))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @as_outcome
    async def create(
        self, ctx: RequestContext, uid: str, body: Optional[Mapping[str, Any]]
    ) -> Outcome[Entity]:
        """Create a record and signal the first entry of a content type."""
        checker = self._checker(ctx, uid)
        self._require(checker, Action.CREATE)

        data = checker.create_input_pipeline(ctx.user_id).run(body)

        # Counted before the create; concurrent first creates may both signal.
        total_entries = await self._entity_manager.count(uid)
        entity = await self._entity_manager.create(data, uid)
        ctx.logger.debug(f"Created {uid}#{entity.get(PRIMARY_KEY)}")

        if total_entries == 0:
            self._track_first_entry(ctx, uid)

        return Outcome.ok(checker.sanitize_output(entity))

    @as_outcome
    async def update(
        self, ctx: RequestContext, uid: str, id: Any, body: Optional[Mapping[str, Any]]
    ) -> Outcome[Entity]:
        """Update the permitted fields of a record the caller may update."""
        checker = self._checker(ctx, uid)
        self._require(checker, Action.UPDATE)

        existing = await self._fetch(uid, id)
        self._require(checker, Action.UPDATE, existing)

        data = checker.update_input_pipeline(existing, ctx.user_id).run(body)
        updated = await self._entity_manager.update(existing, data, uid)
        return Outcome.ok(checker.sanitize_output(updated))

    @as_outcome
    async def delete(self, ctx: RequestContext, uid: str, id: Any) -> Outcome[Entity]:
        """Delete a record the caller may delete."""
        checker = self._checker(ctx, uid)
        self._require(checker, Action.DELETE)

        existing = await self._fetch(uid, id)
        self._require(checker, Action.DELETE, existing)

        deleted = await self._entity_manager.delete(existing, uid)
        return Outcome.ok(checker.sanitize_output(deleted))

    @as_outcome
    async def publish(self, ctx: RequestContext, uid: str, id: Any) -> Outcome[Entity]:
        """Publish a record, stamping the editor."""
        checker = self._checker(ctx, uid)
        self._require(checker, Action.PUBLISH)

        existing = await self._fetch(uid, id)
        self._require(checker, Action.PUBLISH, existing)

        stamp = AuditStamp(ctx.user_id, is_edition=True).fields()
        published = await self._entity_manager.publish(existing, stamp, uid)
        return Outcome.ok(checker.sanitize_output(published))

    @as_outcome
    async def unpublish(self, ctx: RequestContext, uid: str, id: Any) -> Outcome[Entity]:
        """Return a record to draft, stamping the editor."""
        checker = self._checker(ctx, uid)
        self._require(checker, Action.UNPUBLISH)

        existing = await self._fetch(uid, id)
        self._require(checker, Action.UNPUBLISH, existing)

        stamp = AuditStamp(ctx.user_id, is_edition=True).fields()
        unpublished = await self._entity_manager.unpublish(existing, stamp, uid)
        return Outcome.ok(checker.sanitize_output(unpublished))

    @as_outcome
    async def bulk_delete(
        self,
        ctx: RequestContext,
        uid: str,
        body: Any,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Outcome[BulkDeleteResult]:
        """Delete the listed ids, restricted by the sanitized delete query.

        The input is validated before any permission or storage work. The
        deletion is a single filtered ``delete_many``; records are not
        re-fetched.
        """
        payload = validate_bulk_delete_input(body)
        query = Query.from_params(params)

        checker = self._checker(ctx, uid)
        self._require(checker, Action.DELETE)

        permitted = checker.sanitize_query(Action.DELETE, query)
        ids_clause = Predicate(PRIMARY_KEY, "$in", tuple(payload.ids))
        clauses = (ids_clause,) if permitted.filters is None else (ids_clause, permitted.filters)
        scoped = replace(permitted, filters=And(clauses))

        result = await self._entity_manager.delete_many(scoped, uid)
        ctx.logger.debug(f"Bulk deleted {result.count} {uid} entries")
        return Outcome.ok(BulkDeleteResult(count=result.count))
