"""Condition evaluation for field show/skip logic.

A condition compares the raw response of a referenced field against a
literal. Responses go through :mod:`formlogic.coercion` before any
comparison, so the operators below only ever see normalized values.
"""

from typing import Any, Mapping

from formlogic.coercion import contains_value, is_empty, to_number, values_equal
from formlogic.core.logging import get_logger
from formlogic.schemas.field import Condition, ConditionGroup, ConditionOperator, LogicalOperator
from formlogic.schemas.results import ConditionGroupResult, ConditionResult

logger = get_logger(__name__)


def _compare_numbers(actual: Any, expected: Any, greater: bool) -> bool:
    left = to_number(actual)
    right = to_number(expected)
    if left is None or right is None:
        return False
    return left > right if greater else left < right


def evaluate_field_condition(condition: Condition | Mapping[str, Any], actual_value: Any) -> bool:
    """
    Evaluate one leaf condition against a response value.

    ``is_empty`` and ``is_not_empty`` ignore the condition's value. Every
    other operator is False when the response is empty.

    Args:
        condition: Condition model or its plain-dict form
        actual_value: Raw response of the referenced field

    Returns:
        Whether the condition holds
    """
    if not isinstance(condition, Condition):
        condition = Condition.model_validate(condition)

    operator = condition.operator
    expected = condition.value

    if operator is ConditionOperator.IS_EMPTY:
        return is_empty(actual_value)
    if operator is ConditionOperator.IS_NOT_EMPTY:
        return not is_empty(actual_value)

    if is_empty(actual_value):
        return False

    if operator is ConditionOperator.EQUALS:
        return values_equal(actual_value, expected)
    if operator is ConditionOperator.NOT_EQUALS:
        return not values_equal(actual_value, expected)
    if operator is ConditionOperator.CONTAINS:
        return contains_value(actual_value, expected)
    if operator is ConditionOperator.NOT_CONTAINS:
        return not contains_value(actual_value, expected)
    if operator is ConditionOperator.GREATER_THAN:
        return _compare_numbers(actual_value, expected, greater=True)
    if operator is ConditionOperator.LESS_THAN:
        return _compare_numbers(actual_value, expected, greater=False)

    raise ValueError(f"Unknown condition operator: {operator}")


def evaluate_condition_group(
    group: ConditionGroup | Mapping[str, Any],
    responses: Mapping[str, Any],
) -> ConditionGroupResult:
    """
    Evaluate a show or skip group against a response map.

    A disabled group is met and reports no leaf results. An enabled group
    combines its leaves with AND (all) or OR (any).

    Args:
        group: Condition group model or its plain-dict form
        responses: Field ID -> raw response value

    Returns:
        Group verdict with per-condition results
    """
    if not isinstance(group, ConditionGroup):
        group = ConditionGroup.model_validate(group)

    if not group.enabled:
        return ConditionGroupResult(enabled=False, operator=group.operator, met=True)

    results = [
        ConditionResult(
            field_id=condition.field_id,
            operator=condition.operator,
            result=evaluate_field_condition(condition, responses.get(condition.field_id)),
        )
        for condition in group.conditions
    ]

    if not results:
        met = True
    elif group.operator is LogicalOperator.OR:
        met = any(r.result for r in results)
    else:
        met = all(r.result for r in results)

    logger.debug(
        "Condition group evaluated",
        extra={"operator": group.operator.value, "conditions": len(results), "met": met},
    )
    return ConditionGroupResult(
        enabled=True,
        operator=group.operator,
        met=met,
        conditions=results,
    )
