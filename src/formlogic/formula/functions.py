"""Formula functions for calculated fields.

Implements the built-in numeric functions available in formulas. Every
registered function receives already-evaluated ``Decimal`` arguments.
``IF`` is evaluated by the evaluator itself so that only the selected
branch runs.
"""

from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Any, Callable

from formlogic.core.exceptions import FormulaArithmeticError

# Type alias for formula functions
FormulaFunction = Callable[..., Any]

# Registry of formula functions
FORMULA_FUNCTIONS: dict[str, FormulaFunction] = {}

# Functions whose arguments are evaluated on demand by the evaluator
LAZY_FUNCTIONS = frozenset({"IF"})


def register_function(name: str) -> Callable[[FormulaFunction], FormulaFunction]:
    """Decorator to register a formula function."""

    def decorator(func: FormulaFunction) -> FormulaFunction:
        FORMULA_FUNCTIONS[name.upper()] = func
        return func

    return decorator


def _require_args(name: str, args: tuple[Decimal, ...]) -> None:
    if not args:
        raise FormulaArithmeticError(f"Invalid arithmetic operation: {name} needs at least one value")


# =============================================================================
# Aggregate Functions
# =============================================================================


@register_function("SUM")
def func_sum(*args: Decimal) -> Decimal:
    """Sum of all arguments."""
    return sum(args, Decimal(0))


@register_function("AVG")
@register_function("AVERAGE")
def func_avg(*args: Decimal) -> Decimal:
    """Arithmetic mean of the arguments."""
    _require_args("AVG", args)
    return sum(args, Decimal(0)) / Decimal(len(args))


@register_function("MIN")
def func_min(*args: Decimal) -> Decimal:
    """Smallest argument."""
    _require_args("MIN", args)
    return min(args)


@register_function("MAX")
def func_max(*args: Decimal) -> Decimal:
    """Largest argument."""
    _require_args("MAX", args)
    return max(args)


@register_function("COUNT")
def func_count(*args: Decimal) -> Decimal:
    """Number of arguments."""
    return Decimal(len(args))


# =============================================================================
# Numeric Functions
# =============================================================================


@register_function("ROUND")
def func_round(value: Decimal, places: Decimal = Decimal(0)) -> Decimal:
    """Round half away from zero to the given number of places."""
    exponent = Decimal(1).scaleb(-int(places))
    return value.quantize(exponent, rounding=ROUND_HALF_UP)


@register_function("FLOOR")
def func_floor(value: Decimal) -> Decimal:
    return value.to_integral_value(rounding=ROUND_FLOOR)


@register_function("CEIL")
@register_function("CEILING")
def func_ceil(value: Decimal) -> Decimal:
    return value.to_integral_value(rounding=ROUND_CEILING)


@register_function("ABS")
def func_abs(value: Decimal) -> Decimal:
    return abs(value)


@register_function("SQRT")
def func_sqrt(value: Decimal) -> Decimal:
    """Square root; undefined for negative numbers."""
    if value < 0:
        raise FormulaArithmeticError(
            "Invalid arithmetic operation: square root of a negative number"
        )
    return value.sqrt()
