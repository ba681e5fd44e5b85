"""Permission checker bound to one caller and one content type."""

from typing import Any, Callable, Dict, Mapping, Optional

from contentscope.core.logging import ContextualLogger
from contentscope.core.logging import logger as default_logger
from contentscope.domains.abilities.protocols import AbilityProtocol
from contentscope.domains.permissions.pipeline import AuditStamp, InputPipeline
from contentscope.domains.permissions.sanitizers import PermissionSanitizer
from contentscope.domains.permissions.types import Action
from contentscope.domains.queries.types import Query
from contentscope.domains.schemas.protocols import SchemaRegistryProtocol
from contentscope.domains.schemas.types import ContentTypeSchema


class PermissionChecker:
    """Capability checks and sanitizers for one request.

    Every method returns a boolean or a filtered value. Turning a failed check
    into a forbidden outcome is the caller's job.
    """

    def __init__(
        self,
        ability: AbilityProtocol,
        schema: ContentTypeSchema,
        schemas: SchemaRegistryProtocol,
        logger: Optional[ContextualLogger] = None,
    ) -> None:
        """Bind the caller's ability to ``schema``."""
        self.ability = ability
        self.schema = schema
        self._sanitizer = PermissionSanitizer(ability, schemas)
        self._logger = (logger or default_logger).with_context(content_type=schema.uid)

    @property
    def uid(self) -> str:
        return self.schema.uid

    def can(self, action: Action, record: Optional[Mapping[str, Any]] = None) -> bool:
        """Collection-level check without a record, record-level check with one."""
        if record is None:
            allowed = self.ability.can(action.ability_action, self.uid)
        else:
            allowed = self.ability.can_record(action.ability_action, self.uid, record)
        if not allowed:
            scope = "record" if record is not None else "collection"
            self._logger.debug(f"Denied {action.value} at {scope} level")
        return allowed

    def cannot(self, action: Action, record: Optional[Mapping[str, Any]] = None) -> bool:
        return not self.can(action, record)

    def sanitize_query(self, action: Action, query: Query) -> Query:
        """Strip query clauses on paths outside the action's allowed fields."""
        permissions = self._sanitizer.permissions_for(action, self.uid)
        return self._sanitizer.restrict_query(query, self.schema, permissions)

    def sanitize_output(self, record: Mapping[str, Any]) -> Dict[str, Any]:
        """Remove attributes the caller may not read."""
        permissions = self._sanitizer.permissions_for(Action.READ, self.uid)
        return self._sanitizer.restrict_record(record, self.schema, permissions)

    def sanitize_create_input(self, body: Mapping[str, Any]) -> Dict[str, Any]:
        """Remove attributes the caller may not set on creation."""
        permissions = self._sanitizer.permissions_for(Action.CREATE, self.uid)
        return self._sanitizer.restrict_input(body, self.schema, permissions)

    def sanitize_update_input(
        self, existing: Mapping[str, Any]
    ) -> Callable[[Mapping[str, Any]], Dict[str, Any]]:
        """Return a filter for update bodies, given the record being updated.

        Only grants whose conditions hold for ``existing`` contribute fields.
        """
        permissions = self._sanitizer.permissions_for(Action.UPDATE, self.uid, existing)

        def sanitize(body: Mapping[str, Any]) -> Dict[str, Any]:
            return self._sanitizer.restrict_input(body, self.schema, permissions)

        return sanitize

    def create_input_pipeline(self, user_id: Any) -> InputPipeline:
        """Writable filter, create permissions, creator stamp."""
        return InputPipeline.build(
            self.schema, self.sanitize_create_input, AuditStamp(user_id, is_edition=False)
        )

    def update_input_pipeline(self, existing: Mapping[str, Any], user_id: Any) -> InputPipeline:
        """Writable filter, update permissions for ``existing``, editor stamp."""
        return InputPipeline.build(
            self.schema, self.sanitize_update_input(existing), AuditStamp(user_id, is_edition=True)
        )


class PermissionCheckerFactory:
    """Builds a PermissionChecker per request."""

    def __init__(self, schemas: SchemaRegistryProtocol) -> None:
        """Initialize with the schema registry."""
        self._schemas = schemas

    def create(
        self,
        ability: AbilityProtocol,
        uid: str,
        logger: Optional[ContextualLogger] = None,
    ) -> PermissionChecker:
        """Bind ``ability`` to the content type ``uid``.

        Raises:
            SchemaNotFoundError: If ``uid`` is not a registered content type.
        """
        return PermissionChecker(ability, self._schemas.get(uid), self._schemas, logger)
