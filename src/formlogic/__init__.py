"""
formlogic - Formula and conditional logic engine for form builders.

Evaluates calculated fields in dependency order, decides which fields a
respondent sees from show/skip rules, and validates formulas and
conditional logic before a form configuration is accepted.
"""

__version__ = "0.1.0"
__author__ = "formlogic Team"
__license__ = "MIT"

from typing import Any, Iterable, Mapping, Optional

from formlogic.logic.conditions import evaluate_condition_group, evaluate_field_condition
from formlogic.schemas import (
    CalculationPass,
    CalculationResult,
    ConditionEvaluation,
    FormField,
    FormulaValidationResult,
    ValidationResult,
)
from formlogic.services import get_calculation_service, get_conditional_logic_service


def evaluate_all(fields: Any, responses: Mapping[str, Any]) -> CalculationPass:
    """Evaluate every calculated field of a form in dependency order."""
    return get_calculation_service().evaluate_all(fields, responses)


def evaluate_field(field_id: str, fields: Any, responses: Mapping[str, Any]) -> CalculationResult:
    """Evaluate a single calculated field."""
    return get_calculation_service().evaluate_field(field_id, fields, responses)


def validate_formula(
    formula: str,
    dependencies: Optional[Iterable[str]],
    fields: Any,
    target_field_id: Optional[str] = None,
    test_values: Optional[Mapping[str, Any]] = None,
) -> FormulaValidationResult:
    """Validate a proposed formula before it is stored."""
    return get_calculation_service().validate_formula(
        formula, dependencies, fields, target_field_id=target_field_id, test_values=test_values
    )


def evaluate_conditions(form: Any, field_id: str, responses: Mapping[str, Any]) -> ConditionEvaluation:
    """Evaluate the show and skip groups of one field."""
    return get_conditional_logic_service().evaluate_conditions(form, field_id, responses)


def get_visible_fields(form: Any, responses: Mapping[str, Any]) -> list[FormField]:
    """Fields a respondent sees, in display order."""
    return get_conditional_logic_service().get_visible_fields(form, responses)


def validate_conditional_logic(
    logic: Any, fields: Any, owner_field_id: Optional[str] = None
) -> ValidationResult:
    """Validate the show and skip groups of one field."""
    return get_conditional_logic_service().validate_conditional_logic(
        logic, fields, owner_field_id=owner_field_id
    )


__all__ = [
    "__version__",
    "evaluate_all",
    "evaluate_conditions",
    "evaluate_condition_group",
    "evaluate_field",
    "evaluate_field_condition",
    "get_visible_fields",
    "validate_conditional_logic",
    "validate_formula",
]
