"""Field-level sanitization of queries, inputs and outputs.

All functions here only remove what the caller may not see or write; they
never add keys and never raise for a missing permission.
"""

from dataclasses import replace
from typing import Any, Callable, Dict, Mapping, Optional, assert_never

from contentscope.domains.abilities.protocols import AbilityProtocol
from contentscope.domains.entities.types import is_relation_count
from contentscope.domains.permissions.types import Action, FieldPermissions
from contentscope.domains.queries.types import And, FilterExpression, Not, Or, Predicate, Query
from contentscope.domains.schemas.builtins import MEDIA_FILE_UID
from contentscope.domains.schemas.exceptions import SchemaNotFoundError
from contentscope.domains.schemas.protocols import SchemaRegistryProtocol
from contentscope.domains.schemas.types import (
    COMPONENT_KEY,
    MORPH_TYPE_KEY,
    AttributeDescriptor,
    AttributeKind,
    ContentTypeSchema,
)

_OMIT = object()


def pick_writable_attributes(
    body: Mapping[str, Any], schema: ContentTypeSchema
) -> Dict[str, Any]:
    """Keep only attributes the schema allows callers to write."""
    writable = set(schema.writable_attributes())
    return {key: value for key, value in body.items() if key in writable}


class PermissionSanitizer:
    """Applies one caller's ability to records, inputs and queries.

    Nested relations are checked against the target type's own read
    permissions, derived once per target and cached for the sanitizer's life.
    """

    def __init__(self, ability: AbilityProtocol, schemas: SchemaRegistryProtocol) -> None:
        """Initialize with the caller's ability and the schema registry."""
        self._ability = ability
        self._schemas = schemas
        self._read_cache: Dict[str, Optional[FieldPermissions]] = {}

    # ------------------------------------------------------------------
    # Permission lookups
    # ------------------------------------------------------------------

    def permissions_for(
        self, action: Action, uid: str, record: Optional[Mapping[str, Any]] = None
    ) -> FieldPermissions:
        """Field permissions for ``action`` on ``uid`` (optionally for one record)."""
        return FieldPermissions(
            self._ability.permitted_fields(action.ability_action, uid, record)
        )

    def _nested_read_permissions(self, uid: str) -> Optional[FieldPermissions]:
        """Read permissions for a relation target, or None when it is not readable."""
        if uid not in self._read_cache:
            readable = self._ability.can(Action.READ.ability_action, uid)
            self._read_cache[uid] = self.permissions_for(Action.READ, uid) if readable else None
        return self._read_cache[uid]

    def _schema(self, uid: Optional[str]) -> Optional[ContentTypeSchema]:
        if uid is None:
            return None
        try:
            return self._schemas.get(uid)
        except SchemaNotFoundError:
            return None

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def restrict_record(
        self,
        record: Mapping[str, Any],
        schema: ContentTypeSchema,
        permissions: FieldPermissions,
        prefix: str = "",
    ) -> Dict[str, Any]:
        """Return the subset of ``record`` the caller may read.

        Unknown and private attributes are always removed. Components and
        dynamic zones are restricted in place, relations by their target's
        permissions.
        """
        output: Dict[str, Any] = {}
        for key, value in record.items():
            attr = schema.attribute(key)
            if attr is None or attr.private:
                continue
            path = f"{prefix}{key}"
            restricted = self._restrict_attribute(attr, value, path, permissions)
            if restricted is not _OMIT:
                output[key] = restricted
        return output

    def _restrict_attribute(
        self, attr: AttributeDescriptor, value: Any, path: str, permissions: FieldPermissions
    ) -> Any:
        match attr.kind:
            case AttributeKind.SCALAR:
                return value if permissions.allows(path) else _OMIT

            case AttributeKind.COMPONENT:
                component = self._schema(attr.target)
                if not permissions.visible(path) or component is None:
                    return _OMIT
                return self._map_entries(
                    value,
                    lambda item: self.restrict_record(item, component, permissions, f"{path}."),
                )

            case AttributeKind.DYNAMIC_ZONE:
                if not permissions.visible(path):
                    return _OMIT
                return self._map_entries(
                    value, lambda item: self._restrict_zone_entry(item, path, permissions)
                )

            case AttributeKind.RELATION | AttributeKind.MEDIA:
                if not permissions.allows(path):
                    return _OMIT
                if is_relation_count(value):
                    return dict(value) if self._counts_visible(attr) else _OMIT
                return self._map_entries(value, lambda item: self._restrict_related(attr, item))

            case _:
                assert_never(attr.kind)

    def _map_entries(self, value: Any, restrict: Callable[[Mapping[str, Any]], Any]) -> Any:
        """Apply ``restrict`` to a single dict or every dict of a list.

        Non-dict values (ids, None) are kept as they are. Omitted list entries
        are dropped; an omitted single value omits the attribute.
        """
        if isinstance(value, list):
            entries = [restrict(item) if isinstance(item, Mapping) else item for item in value]
            return [item for item in entries if item is not _OMIT]
        if isinstance(value, Mapping):
            return restrict(value)
        return value

    def _restrict_zone_entry(
        self, entry: Mapping[str, Any], path: str, permissions: FieldPermissions
    ) -> Any:
        component = self._schema(entry.get(COMPONENT_KEY))
        if component is None:
            return _OMIT
        restricted = self.restrict_record(entry, component, permissions, f"{path}.")
        return {COMPONENT_KEY: component.uid, **restricted}

    def _counts_visible(self, attr: AttributeDescriptor) -> bool:
        """Whether a relation count may be shown; counts expose no target fields."""
        if attr.kind is AttributeKind.MEDIA or attr.polymorphic:
            return True
        return self._schema(attr.target) is not None and (
            self._nested_read_permissions(attr.target) is not None
        )

    def _restrict_related(self, attr: AttributeDescriptor, item: Mapping[str, Any]) -> Any:
        if attr.kind is AttributeKind.MEDIA:
            media = self._schema(attr.target or MEDIA_FILE_UID)
            if media is None:
                return _OMIT
            return self.restrict_record(item, media, FieldPermissions.everything())

        target_uid = item.get(MORPH_TYPE_KEY) if attr.polymorphic else attr.target
        target = self._schema(target_uid)
        nested = self._nested_read_permissions(target_uid) if target is not None else None
        if target is None or nested is None:
            return _OMIT
        restricted = self.restrict_record(item, target, nested)
        if attr.polymorphic:
            return {MORPH_TYPE_KEY: target_uid, **restricted}
        return restricted

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def restrict_input(
        self,
        body: Mapping[str, Any],
        schema: ContentTypeSchema,
        permissions: FieldPermissions,
        prefix: str = "",
    ) -> Dict[str, Any]:
        """Return the subset of ``body`` the caller may write.

        Partially permitted components are restricted recursively; every other
        attribute is kept whole or dropped.
        """
        output: Dict[str, Any] = {}
        for key, value in body.items():
            attr = schema.attribute(key)
            if attr is None:
                continue
            path = f"{prefix}{key}"
            if permissions.allows(path):
                output[key] = value
            elif attr.kind is AttributeKind.COMPONENT and permissions.allows_below(path):
                component = self._schema(attr.target)
                if component is None:
                    continue
                output[key] = self._map_entries(
                    value,
                    lambda item: self.restrict_input(item, component, permissions, f"{path}."),
                )
        return output

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def is_path_permitted(
        self, path: str, schema: ContentTypeSchema, permissions: FieldPermissions
    ) -> bool:
        """Whether a dotted query path only touches readable attributes.

        Paths through dynamic zones and polymorphic relations cannot be
        checked against a static schema and are rejected.
        """
        segments = path.split(".")
        current, current_permissions, prefix = schema, permissions, ""

        for index, segment in enumerate(segments):
            is_last = index == len(segments) - 1
            attr = current.attribute(segment)
            if attr is None or attr.private:
                return False
            sub_path = f"{prefix}{segment}"

            match attr.kind:
                case AttributeKind.SCALAR | AttributeKind.DYNAMIC_ZONE:
                    return is_last and current_permissions.allows(sub_path)

                case AttributeKind.COMPONENT:
                    if is_last:
                        return current_permissions.allows(sub_path)
                    component = self._schema(attr.target)
                    if component is None or not current_permissions.visible(sub_path):
                        return False
                    current, prefix = component, f"{sub_path}."

                case AttributeKind.RELATION | AttributeKind.MEDIA:
                    if not current_permissions.allows(sub_path):
                        return False
                    if is_last:
                        return True
                    if attr.polymorphic:
                        return False
                    target = self._schema(attr.target)
                    if target is None:
                        return False
                    if attr.kind is AttributeKind.MEDIA:
                        nested = FieldPermissions.everything()
                    else:
                        nested = self._nested_read_permissions(target.uid)
                        if nested is None:
                            return False
                    current, current_permissions, prefix = target, nested, ""

        return False

    def restrict_filters(
        self,
        expr: Optional[FilterExpression],
        schema: ContentTypeSchema,
        permissions: FieldPermissions,
    ) -> Optional[FilterExpression]:
        """Drop predicates on forbidden paths; drop combinators left empty."""
        match expr:
            case None:
                return None
            case Predicate(path=path):
                return expr if self.is_path_permitted(path, schema, permissions) else None
            case And(children=children) | Or(children=children):
                kept = tuple(
                    child
                    for item in children
                    if (child := self.restrict_filters(item, schema, permissions)) is not None
                )
                if not kept:
                    return None
                return And(kept) if isinstance(expr, And) else Or(kept)
            case Not(child=child):
                restricted = self.restrict_filters(child, schema, permissions)
                return Not(restricted) if restricted is not None else None

    def restrict_query(
        self, query: Query, schema: ContentTypeSchema, permissions: FieldPermissions
    ) -> Query:
        """Strip filters, sort keys and field selections on forbidden paths."""
        fields = query.fields
        if fields is not None:
            fields = tuple(f for f in fields if self.is_path_permitted(f, schema, permissions))
        return replace(
            query,
            filters=self.restrict_filters(query.filters, schema, permissions),
            sort=tuple(
                key
                for key in query.sort
                if self.is_path_permitted(key.path, schema, permissions)
            ),
            fields=fields,
        )
