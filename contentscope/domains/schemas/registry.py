"""Content-type schema registry, built once at startup."""

from typing import Any, Dict, Mapping

from contentscope.core.logging import logger
from contentscope.domains.schemas.builtins import (
    ADMIN_USER_UID,
    BUILTIN_DEFINITIONS,
    MEDIA_FILE_UID,
)
from contentscope.domains.schemas.exceptions import SchemaNotFoundError
from contentscope.domains.schemas.protocols import SchemaRegistryProtocol
from contentscope.domains.schemas.types import (
    PRIMARY_KEY,
    AttributeDescriptor,
    AttributeKind,
    ContentTypeSchema,
)

registry_logger = logger.with_prefix("SchemaRegistry: ").with_context(component="schema_registry")

MORPH_RELATIONS = frozenset({"morphToOne", "morphToMany", "morphOne", "morphMany"})


def _parse_attribute(name: str, raw: Mapping[str, Any]) -> AttributeDescriptor:
    """Build a descriptor from a raw attribute definition."""
    raw_type = raw.get("type")
    common = {
        "name": name,
        "private": bool(raw.get("private", False)),
        "writable": bool(raw.get("writable", True)),
    }

    if raw_type == "relation":
        relation = raw.get("relation", "")
        return AttributeDescriptor(
            kind=AttributeKind.RELATION,
            relation=relation,
            polymorphic=relation in MORPH_RELATIONS,
            target=raw.get("target"),
            **common,
        )
    if raw_type == "media":
        return AttributeDescriptor(
            kind=AttributeKind.MEDIA,
            target=MEDIA_FILE_UID,
            repeatable=bool(raw.get("multiple", False)),
            **common,
        )
    if raw_type == "component":
        return AttributeDescriptor(
            kind=AttributeKind.COMPONENT,
            target=raw.get("component"),
            repeatable=bool(raw.get("repeatable", False)),
            **common,
        )
    if raw_type == "dynamiczone":
        return AttributeDescriptor(
            kind=AttributeKind.DYNAMIC_ZONE,
            components=tuple(raw.get("components", ())),
            **common,
        )
    return AttributeDescriptor(kind=AttributeKind.SCALAR, scalar_type=raw_type, **common)


def _system_attributes(
    definition: Mapping[str, Any], is_component: bool
) -> Dict[str, AttributeDescriptor]:
    attrs = {
        PRIMARY_KEY: AttributeDescriptor(
            name=PRIMARY_KEY, kind=AttributeKind.SCALAR, scalar_type="id", writable=False
        )
    }
    if is_component:
        return attrs

    for name in ("createdAt", "updatedAt"):
        attrs[name] = AttributeDescriptor(
            name=name, kind=AttributeKind.SCALAR, scalar_type="datetime", writable=False
        )
    if definition.get("draftAndPublish", False):
        attrs["publishedAt"] = AttributeDescriptor(
            name="publishedAt", kind=AttributeKind.SCALAR, scalar_type="datetime", writable=False
        )
    if definition.get("creatorFields", True):
        for name in ("createdBy", "updatedBy"):
            attrs[name] = AttributeDescriptor(
                name=name,
                kind=AttributeKind.RELATION,
                relation="oneToOne",
                target=ADMIN_USER_UID,
                writable=False,
            )
    return attrs


def parse_schema(uid: str, definition: Mapping[str, Any]) -> ContentTypeSchema:
    """Build a ContentTypeSchema from a raw definition.

    Args:
        uid: Content-type uid, e.g. ``api::article.article`` or ``shared.seo``.
        definition: Raw definition with ``attributes`` and optional
            ``displayName``, ``draftAndPublish``, ``modelType`` keys.

    Returns:
        The immutable schema, with system attributes first.
    """
    is_component = definition.get("modelType") == "component" or "::" not in uid
    attributes = _system_attributes(definition, is_component)
    for name, raw in definition.get("attributes", {}).items():
        if name in attributes:
            # System attributes cannot be redefined
            continue
        attributes[name] = _parse_attribute(name, raw)

    return ContentTypeSchema(
        uid=uid,
        display_name=definition.get("displayName", uid),
        is_component=is_component,
        draft_and_publish=bool(definition.get("draftAndPublish", False)) and not is_component,
        attributes=attributes,
    )


class SchemaRegistry(SchemaRegistryProtocol):
    """In-memory schema registry. Built-in schemas are always present."""

    def __init__(self) -> None:
        """Initialize the registry with the built-in schemas."""
        self._entries: dict[str, ContentTypeSchema] = {}
        for uid, definition in BUILTIN_DEFINITIONS.items():
            self.register(parse_schema(uid, definition))

    def register(self, schema: ContentTypeSchema) -> None:
        """Register (or replace) a single schema."""
        self._entries[schema.uid] = schema

    def build(self, definitions: Mapping[str, Mapping[str, Any]]) -> None:
        """Parse and register every definition.

        Relation and component targets are checked after all definitions are
        registered; dangling targets are logged, not rejected, since the
        external schema owner may register them later.
        """
        for uid, definition in definitions.items():
            self.register(parse_schema(uid, definition))

        for schema in self._entries.values():
            for attr in schema.attributes.values():
                if attr.has_static_target and attr.target not in self._entries:
                    registry_logger.warning(
                        f"Attribute '{schema.uid}.{attr.name}' targets unknown type '{attr.target}'"
                    )

        registry_logger.debug(f"Registered {len(self._entries)} schemas")

    def get(self, uid: str) -> ContentTypeSchema:
        """Get a schema by uid.

        Raises:
            SchemaNotFoundError: If no schema with the given uid is registered.
        """
        try:
            return self._entries[uid]
        except KeyError as exc:
            raise SchemaNotFoundError(uid) from exc

    def has(self, uid: str) -> bool:
        """Whether a schema with the given uid is registered."""
        return uid in self._entries

    def list_all(self) -> list[ContentTypeSchema]:
        """List all registered schemas."""
        return list(self._entries.values())
