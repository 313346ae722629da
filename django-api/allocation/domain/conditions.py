"""Eligibility rules evaluated against registration form answers.

Form answers are loosely typed (whatever the client submitted), so every
operator checks the types it needs and answers False when they do not hold.
Unknown operators fail closed.
"""

from collections.abc import Callable, Iterable, Mapping
from typing import Any

from allocation.domain.models import AccessCondition, ConditionLogic, ConditionOperator


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _as_number(value: Any) -> float | None:
    if _is_number(value):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _greater_than(answer: Any, expected: Any) -> bool:
    threshold = _as_number(expected)
    return _is_number(answer) and threshold is not None and answer > threshold


def _less_than(answer: Any, expected: Any) -> bool:
    threshold = _as_number(expected)
    return _is_number(answer) and threshold is not None and answer < threshold


def _equals(answer: Any, expected: Any) -> bool:
    """Strict equality: ``True`` does not match ``1`` and ``"1"`` does not match ``1``."""
    if _is_number(answer) and _is_number(expected):
        return answer == expected
    return type(answer) is type(expected) and answer == expected


def _contains(answer: Any, expected: Any) -> bool:
    return isinstance(answer, str) and str(expected) in answer


def _is_in(answer: Any, expected: Any) -> bool:
    return isinstance(expected, list) and str(answer) in [str(v) for v in expected]


def _is_not_in(answer: Any, expected: Any) -> bool:
    return isinstance(expected, list) and str(answer) not in [str(v) for v in expected]


_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    ConditionOperator.EQUALS: _equals,
    ConditionOperator.NOT_EQUALS: lambda answer, expected: not _equals(answer, expected),
    ConditionOperator.CONTAINS: _contains,
    ConditionOperator.GREATER_THAN: _greater_than,
    ConditionOperator.LESS_THAN: _less_than,
    ConditionOperator.IN: _is_in,
    ConditionOperator.NOT_IN: _is_not_in,
}


def evaluate(operator: str, answer: Any, expected: Any) -> bool:
    """Apply one operator to a form answer and the rule's value."""
    check = _OPERATORS.get(operator)
    if check is None:
        return False
    return check(answer, expected)


def evaluate_condition(condition: AccessCondition, form_data: Mapping[str, Any]) -> bool:
    return evaluate(condition.operator, form_data.get(condition.field_id), condition.value)


def evaluate_conditions(
    conditions: Iterable[AccessCondition],
    logic: ConditionLogic,
    form_data: Mapping[str, Any],
) -> bool:
    """Combine rules with AND/OR. An empty rule list is always eligible."""
    results = [evaluate_condition(condition, form_data) for condition in conditions]
    if not results:
        return True
    if logic == ConditionLogic.OR:
        return any(results)
    return all(results)
