"""Service layer modules."""

from formlogic.services.calculation import CalculationService, get_calculation_service
from formlogic.services.conditional_logic import (
    ConditionalLogicService,
    get_conditional_logic_service,
)

__all__ = [
    "CalculationService",
    "ConditionalLogicService",
    "get_calculation_service",
    "get_conditional_logic_service",
]
