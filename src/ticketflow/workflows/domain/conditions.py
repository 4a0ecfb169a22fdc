"""
Workflow Conditions
===================

Tagged condition descriptors evaluated against an entity snapshot.

Conditions are combined with AND. An absent or empty list always matches.
Unrecognised operators parse to ``ConditionOperator.UNKNOWN``, which never
matches, so a rule using an unimplemented operator cannot fire.
"""

import json
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Union

from ticketflow.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class ConditionOperator(str, Enum):
    """Supported comparison operators."""
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
    LESS_THAN_OR_EQUAL = "less_than_or_equal"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"
    IN = "in"
    NOT_IN = "not_in"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: Any) -> "ConditionOperator":
        if isinstance(raw, str):
            raw = _OPERATOR_ALIASES.get(raw, raw)
            if raw != cls.UNKNOWN.value:
                try:
                    return cls(raw)
                except ValueError:
                    pass
        return cls.UNKNOWN


_OPERATOR_ALIASES = {
    "==": "equals",
    "!=": "not_equals",
    ">": "greater_than",
    "<": "less_than",
    ">=": "greater_than_or_equal",
    "<=": "less_than_or_equal",
}

_MISSING = object()


def get_field_value(entity: Mapping[str, Any], path: Optional[str]) -> Any:
    """
    Look up ``path`` in ``entity``; dotted paths descend into nested mappings.

    Returns None when any segment is missing.
    """
    if not path:
        return None
    current: Any = entity
    for part in str(path).split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part, _MISSING)
        if current is _MISSING:
            return None
    return current


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return None if math.isnan(number) else number


def loose_equals(left: Any, right: Any) -> bool:
    """
    Equality with numeric coercion: ``"5"`` equals ``5``.

    Non-numeric values of different types are never equal.
    """
    if left == right:
        return True
    if left is None or right is None:
        return False
    if isinstance(left, (int, float)) or isinstance(right, (int, float)):
        a, b = _to_number(left), _to_number(right)
        return a is not None and b is not None and a == b
    return False


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or (isinstance(value, (list, tuple, dict)) and not value)


def _contains(actual: Any, expected: Any) -> bool:
    if actual is None:
        return False
    if isinstance(actual, (list, tuple)):
        return any(loose_equals(item, expected) for item in actual)
    if isinstance(actual, str):
        return expected is not None and str(expected) in actual
    return False


def _compare(actual: Any, expected: Any, op) -> bool:
    a, b = _to_number(actual), _to_number(expected)
    if a is None or b is None:
        return False
    return op(a, b)


@dataclass(frozen=True)
class Condition:
    """One ``{field, operator, value}`` check."""
    field: Optional[str]
    operator: ConditionOperator
    value: Any = None
    raw_operator: Any = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Condition":
        raw_operator = data.get("operator")
        return cls(
            field=data.get("field"),
            operator=ConditionOperator.parse(raw_operator),
            value=data.get("value"),
            raw_operator=raw_operator,
        )

    def evaluate(self, entity: Mapping[str, Any]) -> bool:
        actual = get_field_value(entity, self.field)
        expected = self.value
        op = self.operator

        if op is ConditionOperator.EQUALS:
            return loose_equals(actual, expected)
        if op is ConditionOperator.NOT_EQUALS:
            return not loose_equals(actual, expected)
        if op is ConditionOperator.CONTAINS:
            return _contains(actual, expected)
        if op is ConditionOperator.NOT_CONTAINS:
            return not _contains(actual, expected)
        if op is ConditionOperator.GREATER_THAN:
            return _compare(actual, expected, lambda a, b: a > b)
        if op is ConditionOperator.LESS_THAN:
            return _compare(actual, expected, lambda a, b: a < b)
        if op is ConditionOperator.GREATER_THAN_OR_EQUAL:
            return _compare(actual, expected, lambda a, b: a >= b)
        if op is ConditionOperator.LESS_THAN_OR_EQUAL:
            return _compare(actual, expected, lambda a, b: a <= b)
        if op is ConditionOperator.IS_EMPTY:
            return _is_empty(actual)
        if op is ConditionOperator.IS_NOT_EMPTY:
            return not _is_empty(actual)
        if op is ConditionOperator.IN:
            return isinstance(expected, (list, tuple)) and any(loose_equals(actual, v) for v in expected)
        if op is ConditionOperator.NOT_IN:
            return isinstance(expected, (list, tuple)) and not any(loose_equals(actual, v) for v in expected)

        logger.warning("Unknown condition operator", extra={"operator": self.raw_operator})
        return False


ConditionsInput = Union[None, str, Iterable[Union[Condition, Mapping[str, Any]]]]


def parse_conditions(conditions: ConditionsInput) -> list:
    """
    Normalise stored conditions into ``Condition`` objects.

    Accepts None, a JSON string, or a list of dicts / ``Condition``.
    Entries that are not mappings become unknown-operator conditions.
    """
    if conditions is None:
        return []
    if isinstance(conditions, str):
        conditions = json.loads(conditions) if conditions.strip() else []
        if conditions is None:
            return []
    parsed = []
    for item in conditions:
        if isinstance(item, Condition):
            parsed.append(item)
        elif isinstance(item, Mapping):
            parsed.append(Condition.from_dict(item))
        else:
            parsed.append(Condition(field=None, operator=ConditionOperator.UNKNOWN, raw_operator=item))
    return parsed


def check_conditions(conditions: ConditionsInput, entity: Mapping[str, Any]) -> bool:
    """True when every condition holds for ``entity`` (AND)."""
    return all(condition.evaluate(entity) for condition in parse_conditions(conditions))
