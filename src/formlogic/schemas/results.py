"""Result schemas returned by the engine."""

from typing import Optional, Union

from pydantic import Field

from formlogic.schemas.field import ConditionOperator, EngineModel, LogicalOperator


class CalculationResult(EngineModel):
    """Outcome of evaluating one calculated field."""

    success: bool
    value: Optional[str] = None
    display_value: Optional[str] = None
    error: Optional[str] = None
    missing_fields: Optional[list[str]] = None
    dependencies: list[str] = Field(default_factory=list)


class CalculationPass(EngineModel):
    """Outcome of evaluating every calculated field of a form."""

    calculations: dict[str, CalculationResult] = Field(default_factory=dict)
    calculation_order: list[str] = Field(default_factory=list)
    dependency_graph: dict[str, list[str]] = Field(default_factory=dict)


class DependencyOrder(EngineModel):
    """Non-raising report of the calculation order."""

    success: bool
    order: list[str] = Field(default_factory=list)
    dependency_graph: dict[str, list[str]] = Field(default_factory=dict)
    error: Optional[str] = None


class ParsedFormula(EngineModel):
    """Formula text with values substituted for previews."""

    success: bool
    parsed_formula: Optional[str] = None
    dependencies: list[str] = Field(default_factory=list)
    error: Optional[str] = None
    missing_fields: Optional[list[str]] = None


class ExpressionResult(EngineModel):
    """Outcome of evaluating a reference-free expression."""

    success: bool
    result: Optional[Union[bool, float]] = None
    error: Optional[str] = None


class ValidationResult(EngineModel):
    """Outcome of validating a configuration."""

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class FormulaValidationResult(ValidationResult):
    """Outcome of validating a formula configuration."""

    dependencies: list[str] = Field(default_factory=list)
    test_result: Optional[CalculationResult] = None


class ConditionResult(EngineModel):
    """Result of one leaf condition."""

    field_id: str
    operator: ConditionOperator
    result: bool


class ConditionGroupResult(EngineModel):
    """Result of a show or skip group."""

    enabled: bool
    operator: LogicalOperator
    met: bool
    conditions: list[ConditionResult] = Field(default_factory=list)


class EvaluationDetails(EngineModel):
    show_conditions: ConditionGroupResult
    skip_conditions: ConditionGroupResult


class ConditionEvaluation(EngineModel):
    """Visibility verdict for one field."""

    should_show: bool
    should_skip: bool
    skip_target: Optional[str] = None
    evaluation_details: EvaluationDetails


class FieldState(EngineModel):
    visible: bool
    skip_to: Optional[str] = None
    reason: str


class FormLogicState(EngineModel):
    """Visibility and skip state of every field in a form."""

    visible_fields: list[str] = Field(default_factory=list)
    hidden_fields: list[str] = Field(default_factory=list)
    skip_targets: dict[str, str] = Field(default_factory=dict)
    field_states: dict[str, FieldState] = Field(default_factory=dict)


class SkipAction(EngineModel):
    from_field: str = Field(..., alias="from")
    to_field: str = Field(..., alias="to")
    reason: str


class FormFlowSimulation(EngineModel):
    """Path a respondent would take through the form."""

    flow_path: list[str] = Field(default_factory=list)
    visible_fields: list[str] = Field(default_factory=list)
    hidden_fields: list[str] = Field(default_factory=list)
    skip_actions: list[SkipAction] = Field(default_factory=list)
