"""Population derivation for nested filter predicates.

Given a filter tree and the schema it targets, compute the smallest set of
relations, components and media (and, per relation, the scalar fields) that
must be fetched alongside a record so the filter's nested predicates can be
evaluated against it.

The derivation is a pure fold: each leaf predicate yields a small spec for its
own path, and the specs are merged left to right in pre-order. Merging keeps
the first occurrence of every field, so an ancestor node always exists before
any descendant appends to it.

Dynamic zones and polymorphic relations are never expanded: their target
schema is only known per record. Predicates that continue past such an
attribute are reported as inconclusive.
"""

from dataclasses import dataclass
from enum import Enum
from functools import reduce
from types import MappingProxyType
from typing import Any, Dict, List, Optional, Tuple, assert_never

from contentscope.core.protocols import TraceHook
from contentscope.core.tracing import NullTraceHook
from contentscope.domains.queries.types import (
    EMPTY_POPULATE,
    FilterExpression,
    PopulateNode,
    PopulateSpec,
    Predicate,
    iter_predicates,
)
from contentscope.domains.schemas.exceptions import SchemaNotFoundError
from contentscope.domains.schemas.protocols import SchemaRegistryProtocol
from contentscope.domains.schemas.types import (
    AttributeDescriptor,
    AttributeKind,
    ContentTypeSchema,
)


class Traversal(Enum):
    """What the deriver does when a path segment resolves to an attribute."""

    TERMINAL = "terminal"
    DESCEND = "descend"
    STOP = "stop"


def traversal_for(attr: AttributeDescriptor) -> Traversal:
    """Map an attribute kind to the deriver's action."""
    match attr.kind:
        case AttributeKind.SCALAR:
            return Traversal.TERMINAL
        case AttributeKind.RELATION:
            return Traversal.STOP if attr.polymorphic else Traversal.DESCEND
        case AttributeKind.MEDIA | AttributeKind.COMPONENT:
            return Traversal.DESCEND
        case AttributeKind.DYNAMIC_ZONE:
            return Traversal.STOP
        case _:
            assert_never(attr.kind)


@dataclass(frozen=True)
class PopulateDerivation:
    """Result of a derivation with the paths that could not be resolved."""

    populate: PopulateSpec
    inconclusive: Tuple[str, ...] = ()


def _dedupe(fields: Tuple[str, ...]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(fields))


def _merge_nodes(left: PopulateNode, right: PopulateNode) -> PopulateNode:
    return PopulateNode(
        fields=_dedupe(left.fields + right.fields),
        populate=merge_populate(left.populate, right.populate),
    )


def merge_populate(left: PopulateSpec, right: PopulateSpec) -> PopulateSpec:
    """Merge two specs. Keys and fields of ``left`` keep their position."""
    merged: Dict[str, PopulateNode] = dict(left)
    for key, node in right.items():
        merged[key] = _merge_nodes(merged[key], node) if key in merged else node
    return MappingProxyType(merged)


def _chain_spec(chain: List[str], leaf_field: Optional[str]) -> PopulateSpec:
    """Build a single-path spec: nested nodes for ``chain``, the field on the deepest."""
    if not chain:
        return EMPTY_POPULATE
    node = PopulateNode(fields=(leaf_field,) if leaf_field else ())
    for segment in reversed(chain[1:]):
        node = PopulateNode(populate=MappingProxyType({segment: node}))
    return MappingProxyType({chain[0]: node})


def populate_to_dict(spec: PopulateSpec) -> Dict[str, Any]:
    """Plain-dict rendering, e.g. ``{"author": {"fields": ["name"], "populate": {}}}``."""
    return {
        key: {"fields": list(node.fields), "populate": populate_to_dict(node.populate)}
        for key, node in spec.items()
    }


class PopulateDeriver:
    """Derives the population needed to evaluate a filter tree."""

    def __init__(
        self, schemas: SchemaRegistryProtocol, trace: Optional[TraceHook] = None
    ) -> None:
        """Initialize with the schema registry used to follow relation targets."""
        self._schemas = schemas
        self._trace = trace or NullTraceHook()

    def derive(
        self, filters: Optional[FilterExpression], schema: ContentTypeSchema
    ) -> PopulateSpec:
        """Return the population spec for ``filters`` against ``schema``."""
        return self.derive_with_report(filters, schema).populate

    def derive_with_report(
        self, filters: Optional[FilterExpression], schema: ContentTypeSchema
    ) -> PopulateDerivation:
        """Return the population spec plus the paths that were inconclusive."""
        leaves = [self._leaf(predicate, schema) for predicate in iter_predicates(filters)]
        populate = reduce(merge_populate, (spec for spec, _ in leaves), EMPTY_POPULATE)
        inconclusive = tuple(dict.fromkeys(path for _, path in leaves if path is not None))
        return PopulateDerivation(populate=populate, inconclusive=inconclusive)

    def _leaf(
        self, predicate: Predicate, schema: ContentTypeSchema
    ) -> Tuple[PopulateSpec, Optional[str]]:
        """Resolve one predicate path. Returns its spec and the path if inconclusive."""
        segments = predicate.segments
        chain: List[str] = []
        current = schema

        for index, segment in enumerate(segments):
            is_last = index == len(segments) - 1
            path = ".".join(segments[: index + 1])
            attr = current.attribute(segment)
            if attr is None:
                self._trace.record("populate.skip", path=path, reason="unknown_attribute")
                return _chain_spec(chain, None), None

            match traversal_for(attr):
                case Traversal.TERMINAL:
                    if not is_last:
                        self._trace.record(
                            "populate.stop", path=path, reason="scalar_not_terminal"
                        )
                        return _chain_spec(chain, None), predicate.path
                    if chain:
                        self._trace.record("populate.field", path=path, field=segment)
                        return _chain_spec(chain, segment), None
                    return EMPTY_POPULATE, None

                case Traversal.DESCEND:
                    chain.append(segment)
                    try:
                        target = self._schemas.get(attr.target or "")
                    except SchemaNotFoundError:
                        self._trace.record("populate.stop", path=path, reason="unknown_target")
                        return _chain_spec(chain, None), None if is_last else predicate.path
                    self._trace.record("populate.descend", path=path, target=target.uid)
                    current = target

                case Traversal.STOP:
                    self._trace.record("populate.stop", path=path, reason=attr.kind.value)
                    return _chain_spec(chain, None), None if is_last else predicate.path

        return _chain_spec(chain, None), None
