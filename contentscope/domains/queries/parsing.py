"""Parsing of raw request query params into ``Query`` objects.

Filters use the nested operator dialect callers send over the wire::

    {"$and": [{"author": {"name": {"$eq": "Ada"}}}, {"status": "draft"}]}

A bare value is shorthand for ``$eq`` (``$in`` for lists). Keys may also be
dotted paths (``"author.name"``).
"""

from typing import Any, List, Mapping, Optional, Tuple

from contentscope.core.config import settings
from contentscope.core.exceptions import ValidationException
from contentscope.domains.queries.types import (
    OPERATORS,
    And,
    FilterExpression,
    Not,
    Or,
    Predicate,
    Query,
    SortKey,
    conjoin,
)

_DIRECTIONS = ("asc", "desc")


def _join(prefix: str, key: str) -> str:
    return f"{prefix}.{key}" if prefix else key


def _parse_level(raw: Any, prefix: str, path: str) -> Optional[FilterExpression]:
    if not isinstance(raw, Mapping):
        raise ValidationException({path: "filters must be an object"})

    parts: List[FilterExpression] = []
    for key, value in raw.items():
        location = f"{path}.{key}"
        if key == "$and" or key == "$or":
            if not isinstance(value, list):
                raise ValidationException({location: f"{key} expects a list"})
            children = tuple(
                child
                for idx, item in enumerate(value)
                if (child := _parse_level(item, prefix, f"{location}[{idx}]")) is not None
            )
            if children:
                parts.append(And(children) if key == "$and" else Or(children))
        elif key == "$not":
            child = _parse_level(value, prefix, location)
            if child is not None:
                parts.append(Not(child))
        elif key.startswith("$"):
            if not prefix:
                raise ValidationException({location: f"operator {key} needs an attribute"})
            if key not in OPERATORS:
                raise ValidationException({location: f"unknown operator {key}"})
            parts.append(Predicate(prefix, key, value))
        elif isinstance(value, Mapping):
            nested = _parse_level(value, _join(prefix, key), location)
            if nested is not None:
                parts.append(nested)
        elif isinstance(value, list):
            parts.append(Predicate(_join(prefix, key), "$in", list(value)))
        else:
            parts.append(Predicate(_join(prefix, key), "$eq", value))

    return conjoin(*parts)


def parse_filters(raw: Any) -> Optional[FilterExpression]:
    """Parse a raw filter object into a FilterExpression.

    Args:
        raw: The raw ``filters`` value, an already-parsed expression, or None.

    Returns:
        The expression, or None when the filter is empty.

    Raises:
        ValidationException: If the filter is malformed.
    """
    if raw is None:
        return None
    if isinstance(raw, (And, Or, Not, Predicate)):
        return raw
    return _parse_level(raw, "", "filters")


def parse_sort(raw: Any) -> Tuple[SortKey, ...]:
    """Parse ``sort`` given as ``"a:asc"``, ``"a,b:desc"``, a list of those, or a dict."""
    if raw is None or raw == "":
        return ()
    if isinstance(raw, SortKey):
        return (raw,)
    if isinstance(raw, Mapping):
        items = [f"{path}:{direction}" for path, direction in raw.items()]
    elif isinstance(raw, str):
        items = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        items = []
        for entry in raw:
            items.extend(parse_sort(entry))
        return tuple(items)
    else:
        raise ValidationException({"sort": "sort must be a string, list or object"})

    keys = []
    for item in items:
        path, _, direction = item.strip().partition(":")
        direction = (direction or "asc").lower()
        if not path or direction not in _DIRECTIONS:
            raise ValidationException({"sort": f"invalid sort entry '{item}'"})
        keys.append(SortKey(path=path, direction=direction))
    return tuple(keys)


def parse_fields(raw: Any) -> Optional[Tuple[str, ...]]:
    """Parse ``fields`` given as a comma separated string or a list."""
    if raw is None:
        return None
    if isinstance(raw, str):
        return tuple(f.strip() for f in raw.split(",") if f.strip())
    if isinstance(raw, (list, tuple)):
        return tuple(str(f) for f in raw)
    raise ValidationException({"fields": "fields must be a string or list"})


def _parse_positive_int(raw: Any, name: str, default: int) -> int:
    if raw is None:
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise ValidationException({name: f"{name} must be an integer"}) from exc
    if value < 1:
        raise ValidationException({name: f"{name} must be at least 1"})
    return value


def parse_query(params: Optional[Mapping[str, Any]]) -> Query:
    """Parse raw request query params into a Query.

    Recognised keys: ``filters``, ``sort``, ``fields``, ``page``, ``pageSize``.
    Other keys are ignored. ``pageSize`` is clamped to ``MAX_PAGE_SIZE``.
    """
    params = params or {}
    page_size = _parse_positive_int(
        params.get("pageSize"), "pageSize", settings.DEFAULT_PAGE_SIZE
    )
    return Query(
        filters=parse_filters(params.get("filters")),
        sort=parse_sort(params.get("sort")),
        fields=parse_fields(params.get("fields")),
        page=_parse_positive_int(params.get("page"), "page", 1),
        page_size=min(page_size, settings.MAX_PAGE_SIZE),
    )
