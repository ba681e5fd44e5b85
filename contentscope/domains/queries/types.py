"""Query, filter and population types.

Filter expressions and population specs are immutable trees; functions that
transform them return new trees.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional, Tuple, Union

OPERATORS = frozenset(
    {
        "$eq",
        "$eqi",
        "$ne",
        "$lt",
        "$lte",
        "$gt",
        "$gte",
        "$in",
        "$notIn",
        "$contains",
        "$notContains",
        "$containsi",
        "$notContainsi",
        "$startsWith",
        "$endsWith",
        "$null",
        "$notNull",
        "$between",
    }
)


@dataclass(frozen=True)
class Predicate:
    """Leaf comparison on a dotted attribute path."""

    path: str
    operator: str
    value: Any = None

    @property
    def segments(self) -> Tuple[str, ...]:
        return tuple(self.path.split("."))


@dataclass(frozen=True)
class And:
    children: Tuple["FilterExpression", ...]


@dataclass(frozen=True)
class Or:
    children: Tuple["FilterExpression", ...]


@dataclass(frozen=True)
class Not:
    child: "FilterExpression"


FilterExpression = Union[And, Or, Not, Predicate]


def iter_predicates(expr: Optional[FilterExpression]) -> Iterator[Predicate]:
    """Yield the leaves of ``expr`` in pre-order."""
    match expr:
        case None:
            return
        case Predicate():
            yield expr
        case And(children=children) | Or(children=children):
            for child in children:
                yield from iter_predicates(child)
        case Not(child=child):
            yield from iter_predicates(child)


def conjoin(*exprs: Optional[FilterExpression]) -> Optional[FilterExpression]:
    """AND together the non-empty expressions."""
    present = tuple(e for e in exprs if e is not None)
    if not present:
        return None
    if len(present) == 1:
        return present[0]
    return And(present)


@dataclass(frozen=True)
class SortKey:
    path: str
    direction: str = "asc"


@dataclass(frozen=True)
class Query:
    """A paged query against one content type."""

    filters: Optional[FilterExpression] = None
    sort: Tuple[SortKey, ...] = ()
    fields: Optional[Tuple[str, ...]] = None
    page: int = 1
    page_size: int = 10

    @classmethod
    def from_params(cls, params: Optional[Mapping[str, Any]]) -> "Query":
        """Parse raw request query params. See ``parsing.parse_query``."""
        from contentscope.domains.queries.parsing import parse_query

        return parse_query(params)


EMPTY_POPULATE: Mapping[str, "PopulateNode"] = MappingProxyType({})


@dataclass(frozen=True)
class PopulateNode:
    """One relation/component/media to fetch.

    An empty ``fields`` tuple means the relation is fetched for traversal only.
    """

    fields: Tuple[str, ...] = ()
    populate: Mapping[str, "PopulateNode"] = field(default_factory=lambda: EMPTY_POPULATE)


PopulateSpec = Mapping[str, PopulateNode]
