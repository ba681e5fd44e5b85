"""Evaluation of filter expressions against in-memory records.

Used for grant conditions and by the in-memory entity manager. Paths that
cross a to-many value match when any element matches. Operators that are not
recognised never match.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from contentscope.domains.queries.types import And, FilterExpression, Not, Or, Predicate


def resolve_path(value: Any, segments: Sequence[str]) -> List[Any]:
    """Return every value reachable from ``value`` along ``segments``.

    Missing keys and empty to-many values resolve to ``None`` so that null
    checks behave as callers expect.
    """
    if not segments:
        if isinstance(value, list):
            return list(value) if value else [None]
        return [value]
    if isinstance(value, list):
        if not value:
            return [None]
        resolved: List[Any] = []
        for item in value:
            resolved.extend(resolve_path(item, segments))
        return resolved
    if isinstance(value, Mapping):
        return resolve_path(value.get(segments[0]), segments[1:])
    return [None]


def _compare(op: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def check(actual: Any, expected: Any) -> bool:
        if actual is None or expected is None:
            return False
        try:
            return op(actual, expected)
        except TypeError:
            return False

    return check


def _contains(actual: Any, expected: Any) -> bool:
    if isinstance(actual, str) and isinstance(expected, str):
        return expected in actual
    return False


def _contains_i(actual: Any, expected: Any) -> bool:
    if isinstance(actual, str) and isinstance(expected, str):
        return expected.lower() in actual.lower()
    return False


def _eq_i(actual: Any, expected: Any) -> bool:
    if isinstance(actual, str) and isinstance(expected, str):
        return actual.lower() == expected.lower()
    return actual == expected


def _in(actual: Any, expected: Any) -> bool:
    return isinstance(expected, (list, tuple, set, frozenset)) and actual in expected


def _between(actual: Any, expected: Any) -> bool:
    if not isinstance(expected, (list, tuple)) or len(expected) != 2:
        return False
    low, high = expected
    return _compare(lambda a, b: a >= b)(actual, low) and _compare(lambda a, b: a <= b)(
        actual, high
    )


_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "$eq": lambda a, e: a == e,
    "$eqi": _eq_i,
    "$ne": lambda a, e: a != e,
    "$lt": _compare(lambda a, e: a < e),
    "$lte": _compare(lambda a, e: a <= e),
    "$gt": _compare(lambda a, e: a > e),
    "$gte": _compare(lambda a, e: a >= e),
    "$in": _in,
    "$notIn": lambda a, e: not _in(a, e),
    "$contains": _contains,
    "$notContains": lambda a, e: not _contains(a, e),
    "$containsi": _contains_i,
    "$notContainsi": lambda a, e: not _contains_i(a, e),
    "$startsWith": lambda a, e: isinstance(a, str) and isinstance(e, str) and a.startswith(e),
    "$endsWith": lambda a, e: isinstance(a, str) and isinstance(e, str) and a.endswith(e),
    "$null": lambda a, e: (a is None) == bool(e),
    "$notNull": lambda a, e: (a is not None) == bool(e),
    "$between": _between,
}


def _match_predicate(predicate: Predicate, record: Mapping[str, Any]) -> bool:
    check = _OPERATORS.get(predicate.operator)
    if check is None:
        return False
    values = resolve_path(record, predicate.segments)
    return any(check(actual, predicate.value) for actual in values)


def matches(expr: Optional[FilterExpression], record: Mapping[str, Any]) -> bool:
    """Whether ``record`` satisfies ``expr``. An empty expression matches everything."""
    match expr:
        case None:
            return True
        case Predicate():
            return _match_predicate(expr, record)
        case And(children=children):
            return all(matches(child, record) for child in children)
        case Or(children=children):
            return any(matches(child, record) for child in children)
        case Not(child=child):
            return not matches(child, record)
