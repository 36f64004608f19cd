"""
Metadata filter predicates for vector store queries.

Filters are a mapping of metadata key to a tagged condition:

    {"folder": Equals("inbox"), "labels": Contains("work"),
     "date_ms": Range(gte=1700000000000)}

coerce_filter() also accepts the loose dict shapes callers tend to write:
a scalar means equality, a list means "any of", and
{"$gte", "$lte", "$gt", "$lt", "$in", "$contains"} map to the matching
conditions. A key whose value is None imposes no constraint.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Union


@dataclass(frozen=True)
class Equals:
    value: Any


@dataclass(frozen=True)
class AnyOf:
    """Matches when the field equals one of the values (array-valued filter)."""

    values: tuple


@dataclass(frozen=True)
class In:
    """Matches when the field equals one of the values ({"$in": [...]})."""

    values: tuple


@dataclass(frozen=True)
class Range:
    """Inclusive/exclusive bounds; unset bounds are ignored."""

    gte: Any = None
    lte: Any = None
    gt: Any = None
    lt: Any = None


@dataclass(frozen=True)
class Contains:
    """Matches when an array-valued field contains the value."""

    value: Any


FilterCondition = Union[Equals, AnyOf, In, Range, Contains]
MetadataFilter = dict[str, Union[FilterCondition, None]]

_RANGE_OPERATORS = {"$gte": "gte", "$lte": "lte", "$gt": "gt", "$lt": "lt"}


def coerce_condition(raw: Any) -> FilterCondition | None:
    """
    Convert one loose predicate value into a tagged condition.

    Raises:
        ValueError: If a dict predicate uses an unknown operator
    """
    if raw is None:
        return None
    if isinstance(raw, (Equals, AnyOf, In, Range, Contains)):
        return raw
    if isinstance(raw, (list, tuple, set, frozenset)):
        return AnyOf(tuple(raw))
    if isinstance(raw, Mapping):
        unknown = set(raw) - set(_RANGE_OPERATORS) - {"$in", "$contains"}
        if unknown:
            raise ValueError(f"Unsupported filter operator(s): {sorted(unknown)}")
        if "$in" in raw:
            return In(tuple(raw["$in"]))
        if "$contains" in raw:
            return Contains(raw["$contains"])
        return Range(**{_RANGE_OPERATORS[op]: value for op, value in raw.items()})
    return Equals(raw)


def coerce_filter(raw: Mapping[str, Any] | None) -> MetadataFilter | None:
    """Convert a loose predicate map into a MetadataFilter (None stays None)."""
    if raw is None:
        return None
    return {key: coerce_condition(value) for key, value in raw.items()}


def _in_range(value: Any, condition: Range) -> bool:
    if value is None:
        return False
    try:
        if condition.gte is not None and not value >= condition.gte:
            return False
        if condition.lte is not None and not value <= condition.lte:
            return False
        if condition.gt is not None and not value > condition.gt:
            return False
        if condition.lt is not None and not value < condition.lt:
            return False
    except TypeError:
        # Incomparable types (e.g. str vs int) never satisfy a range
        return False
    return True


def matches_condition(value: Any, condition: FilterCondition | None) -> bool:
    """Evaluate a single metadata value against a condition."""
    if condition is None:
        return True
    if isinstance(condition, Equals):
        return value == condition.value
    if isinstance(condition, (AnyOf, In)):
        return value in condition.values
    if isinstance(condition, Range):
        return _in_range(value, condition)
    if isinstance(condition, Contains):
        return isinstance(value, (list, tuple, set, frozenset)) and condition.value in value
    raise TypeError(f"Unknown filter condition: {condition!r}")


def matches_filter(metadata: Mapping[str, Any], filter: Mapping[str, Any] | None) -> bool:
    """
    Check a metadata mapping against every condition in a filter.

    Args:
        metadata: Entry metadata
        filter: MetadataFilter or loose predicate map; None matches everything

    Returns:
        True if all conditions hold
    """
    if not filter:
        return True
    for key, raw in filter.items():
        condition = coerce_condition(raw)
        if condition is None:
            continue
        if not matches_condition(metadata.get(key), condition):
            return False
    return True
