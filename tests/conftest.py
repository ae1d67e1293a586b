"""
Pytest configuration and fixtures for formlogic tests.
"""

from typing import Any

import pytest

from formlogic.core.config import Settings
from formlogic.services.calculation import CalculationService
from formlogic.services.conditional_logic import ConditionalLogicService


def calculated(
    field_id: str,
    formula: str,
    dependencies: list[str],
    order: int,
    display_type: str = "number",
) -> dict[str, Any]:
    """Build a calculated field in its wire (camelCase) form."""
    return {
        "id": field_id,
        "type": "calculated",
        "label": field_id.replace("_", " ").title(),
        "order": order,
        "calculation": {
            "enabled": True,
            "formula": formula,
            "dependencies": dependencies,
            "displayType": display_type,
        },
    }


def number(field_id: str, order: int) -> dict[str, Any]:
    """Build a plain number field."""
    return {"id": field_id, "type": "number", "label": field_id.title(), "order": order}


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults, independent of the environment."""
    return Settings(_env_file=None)


@pytest.fixture
def calculation_service(settings: Settings) -> CalculationService:
    """Calculation service using default settings."""
    return CalculationService(settings=settings)


@pytest.fixture
def logic_service() -> ConditionalLogicService:
    """Conditional logic service."""
    return ConditionalLogicService()


@pytest.fixture
def subtotal_fields() -> list[dict[str, Any]]:
    """quantity * price, displayed as currency."""
    return [
        number("quantity", 1),
        number("price", 2),
        calculated("subtotal", "{{quantity}} * {{price}}", ["quantity", "price"], 3, "currency"),
    ]


@pytest.fixture
def order_fields(subtotal_fields: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Chained order calculation: subtotal -> tax_amount -> total -> final_total."""
    return [
        *subtotal_fields,
        number("tax_rate", 4),
        calculated(
            "tax_amount",
            "{{subtotal}} * ({{tax_rate}} / 100)",
            ["subtotal", "tax_rate"],
            5,
            "currency",
        ),
        calculated("total", "{{subtotal}} + {{tax_amount}}", ["subtotal", "tax_amount"], 6, "currency"),
        number("discount", 7),
        calculated("final_total", "{{total}} - {{discount}}", ["total", "discount"], 8, "currency"),
    ]


@pytest.fixture
def logic_form() -> dict[str, Any]:
    """Survey form with show and skip rules."""
    return {
        "id": "form_1",
        "title": "Customer Survey",
        "fields": [
            {"id": "field1", "type": "text", "label": "Name", "order": 1},
            {
                "id": "field2",
                "type": "dropdown",
                "label": "How did you hear about us?",
                "order": 2,
                "options": ["Search", "Social Media", "Friend"],
            },
            {
                "id": "field3",
                "type": "text",
                "label": "Which platform?",
                "order": 3,
                "conditional": {
                    "show": {
                        "enabled": True,
                        "operator": "AND",
                        "conditions": [
                            {"fieldId": "field2", "operator": "equals", "value": "Social Media"}
                        ],
                    }
                },
            },
            {
                "id": "field4",
                "type": "number",
                "label": "Age",
                "order": 4,
                "conditional": {
                    "skip": {
                        "enabled": True,
                        "operator": "OR",
                        "conditions": [
                            {"fieldId": "field1", "operator": "equals", "value": "skip"},
                            {"fieldId": "field2", "operator": "equals", "value": "Friend"},
                        ],
                        "targetFieldId": "field5",
                    }
                },
            },
            {"id": "field5", "type": "textarea", "label": "Comments", "order": 5},
        ],
    }


@pytest.fixture
def calculated_field():
    """Factory for calculated fields."""
    return calculated


@pytest.fixture
def number_field():
    """Factory for number fields."""
    return number
