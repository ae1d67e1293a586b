"""Pydantic schemas for engine inputs and results."""

from formlogic.schemas.field import (
    Calculation,
    Condition,
    ConditionalLogic,
    ConditionGroup,
    ConditionOperator,
    DisplayType,
    FieldType,
    FieldValidation,
    Form,
    FormField,
    LogicalOperator,
    load_fields,
)
from formlogic.schemas.results import (
    CalculationPass,
    CalculationResult,
    ConditionEvaluation,
    ConditionGroupResult,
    ConditionResult,
    DependencyOrder,
    EvaluationDetails,
    ExpressionResult,
    FieldState,
    FormFlowSimulation,
    FormLogicState,
    FormulaValidationResult,
    ParsedFormula,
    SkipAction,
    ValidationResult,
)

__all__ = [
    "Calculation",
    "CalculationPass",
    "CalculationResult",
    "Condition",
    "ConditionEvaluation",
    "ConditionGroup",
    "ConditionGroupResult",
    "ConditionOperator",
    "ConditionResult",
    "ConditionalLogic",
    "DependencyOrder",
    "DisplayType",
    "EvaluationDetails",
    "ExpressionResult",
    "FieldState",
    "FieldType",
    "FieldValidation",
    "Form",
    "FormField",
    "FormFlowSimulation",
    "FormLogicState",
    "FormulaValidationResult",
    "LogicalOperator",
    "ParsedFormula",
    "SkipAction",
    "ValidationResult",
    "load_fields",
]
