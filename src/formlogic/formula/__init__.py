"""Formula engine for calculated fields.

This module provides the formula evaluation system supporting:
- Arithmetic operations (+, -, *, /, ^) with unary minus
- Comparison operations (=, !=, <, >, <=, >=)
- Numeric functions (SUM, AVG, MIN, MAX, COUNT, ROUND, FLOOR, CEIL, ABS, SQRT)
- Conditional function (IF)
- Field references ({{fieldId}})
- Dependency ordering and circular reference detection
"""

from formlogic.formula.dependencies import FormulaDependencyGraph, field_dependencies
from formlogic.formula.evaluator import FormulaEvaluator
from formlogic.formula.functions import FORMULA_FUNCTIONS, register_function
from formlogic.formula.parser import FormulaParser, extract_references, get_parser

__all__ = [
    "FormulaParser",
    "FormulaEvaluator",
    "FORMULA_FUNCTIONS",
    "register_function",
    "FormulaDependencyGraph",
    "extract_references",
    "field_dependencies",
    "get_parser",
]
