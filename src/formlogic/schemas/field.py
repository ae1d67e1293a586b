"""Form and field schemas consumed by the engine.

Fields arrive as plain data already loaded by the caller. Wire names are
camelCase (``fieldId``, ``displayType``); attributes are snake_case.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class EngineModel(BaseModel):
    """Base model accepting both camelCase and snake_case keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class FieldType(str, Enum):
    """Supported form field types."""

    TEXT = "text"
    TEXTAREA = "textarea"
    EMAIL = "email"
    NUMBER = "number"
    PHONE = "phone"
    URL = "url"
    DATE = "date"
    DROPDOWN = "dropdown"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    RATING = "rating"
    SCALE = "scale"
    FILE = "file"
    CALCULATED = "calculated"


class ConditionOperator(str, Enum):
    """Leaf comparison operators."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"


class LogicalOperator(str, Enum):
    """Combinator for a condition group."""

    AND = "AND"
    OR = "OR"


class DisplayType(str, Enum):
    """How a calculated value is presented."""

    CURRENCY = "currency"
    PERCENTAGE = "percentage"
    NUMBER = "number"
    DECIMAL = "decimal"


class Condition(EngineModel):
    """Leaf predicate comparing a referenced field's value against a literal."""

    field_id: str = Field(..., description="Referenced field ID")
    operator: ConditionOperator = Field(..., description="Comparison operator")
    value: Any = Field(default=None, description="Literal compared against")


class ConditionGroup(EngineModel):
    """AND/OR group of conditions."""

    enabled: bool = Field(default=False, description="Whether the group is active")
    operator: LogicalOperator = Field(default=LogicalOperator.AND, description="Combinator")
    conditions: list[Condition] = Field(default_factory=list, description="Leaf conditions")
    target_field_id: Optional[str] = Field(
        default=None, description="Skip destination (skip groups only)"
    )


class ConditionalLogic(EngineModel):
    """Independent show and skip rule sets of a field."""

    show: ConditionGroup = Field(default_factory=ConditionGroup)
    skip: ConditionGroup = Field(default_factory=ConditionGroup)


class Calculation(EngineModel):
    """Formula configuration of a calculated field."""

    enabled: bool = Field(default=False, description="Whether the calculation is active")
    formula: Optional[str] = Field(default=None, description="Formula with {{fieldId}} references")
    dependencies: list[str] = Field(default_factory=list, description="Declared dependencies")
    display_type: str = Field(default=DisplayType.NUMBER.value, description="Display format")


class FieldValidation(EngineModel):
    """Optional numeric / length bounds."""

    min: Optional[float] = None
    max: Optional[float] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None


class FormField(EngineModel):
    """A single form field."""

    id: str = Field(..., min_length=1, description="Field ID, unique within the form")
    type: FieldType = Field(default=FieldType.TEXT, description="Field type")
    label: str = Field(default="", description="Field label")
    required: bool = Field(default=False, description="Whether an answer is required")
    order: int = Field(default=0, description="Display order")
    options: list[str] = Field(default_factory=list, description="Choices for choice fields")
    validation: FieldValidation = Field(default_factory=FieldValidation)
    conditional: ConditionalLogic = Field(default_factory=ConditionalLogic)
    calculation: Calculation = Field(default_factory=Calculation)

    @property
    def is_calculated(self) -> bool:
        """Whether this field carries an enabled calculation."""
        return self.calculation.enabled


class Form(EngineModel):
    """Container of fields."""

    id: Optional[str] = None
    title: str = ""
    fields: list[FormField] = Field(default_factory=list)


def load_fields(fields: Any) -> list[FormField]:
    """
    Normalize caller input into a list of FormField models.

    Args:
        fields: A Form, a dict with a "fields" key, or a list of
            FormField models / plain dicts

    Returns:
        List of validated fields, in the order supplied
    """
    if isinstance(fields, Form):
        return list(fields.fields)
    if isinstance(fields, dict):
        return list(Form.model_validate(fields).fields)
    return [f if isinstance(f, FormField) else FormField.model_validate(f) for f in fields]
