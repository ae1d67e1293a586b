"""Value coercion for formula and condition evaluation.

Response values arrive untyped (strings, numbers, lists of strings or
nothing at all). This module is the single point where they are turned
into the types the evaluators work with: ``Decimal`` for arithmetic and
relational operators, normalized lower-case strings for equality and
containment checks.

``to_number`` returns ``None`` for anything that is not a finite number.
Callers treat ``None`` as a missing operand, never as ``0`` or ``False``.
"""

import math
import re
from decimal import (
    MAX_EMAX,
    MAX_PREC,
    MIN_EMIN,
    ROUND_HALF_UP,
    Context,
    Decimal,
    DecimalException,
    localcontext,
)
from typing import Any

# Plain decimal notation only; rejects "NaN", "Infinity" and thousands separators
_NUMERIC_PATTERN = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")

# Wide enough for any exponent that survives parsing; used where scaling a
# response value must not overflow
_WIDE_CONTEXT = Context(prec=MAX_PREC, Emax=MAX_EMAX, Emin=MIN_EMIN)


def to_number(value: Any) -> Decimal | None:
    """
    Coerce a response value to a number.

    Args:
        value: Raw response value

    Returns:
        Decimal value, or None when the value is not a finite number
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, Decimal):
        return value if value.is_finite() else None

    if isinstance(value, int):
        return Decimal(value)

    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        # repr gives the shortest round-tripping form: 10.5 -> "10.5"
        return Decimal(repr(value))

    if isinstance(value, str):
        text = value.strip()
        if not _NUMERIC_PATTERN.fullmatch(text):
            return None
        try:
            number = Decimal(text)
        except DecimalException:
            # exponent beyond what the decimal module can hold
            return None
        return number if number.is_finite() else None

    return None


def is_empty(value: Any) -> bool:
    """
    Check whether a response value counts as unanswered.

    ``0`` and ``False`` are answers; ``None``, blank strings and empty
    lists are not.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value) == 0
    return False


def to_comparable(value: Any) -> str:
    """Stringify a value for case-insensitive comparison."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).strip().lower()


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


def values_equal(actual: Any, expected: Any) -> bool:
    """
    Case-insensitive equality between a response value and a literal.

    Numeric strings compare numerically. A list is only ever equal to
    another list holding the same members.
    """
    if _is_sequence(actual) or _is_sequence(expected):
        if not (_is_sequence(actual) and _is_sequence(expected)):
            return False
        return sorted(to_comparable(v) for v in actual) == sorted(
            to_comparable(v) for v in expected
        )

    left = to_number(actual)
    right = to_number(expected)
    if left is not None and right is not None:
        return left == right

    return to_comparable(actual) == to_comparable(expected)


def contains_value(actual: Any, expected: Any) -> bool:
    """
    Case-insensitive containment.

    Lists test membership of the expected value (or of any member when
    the expected value is itself a list); scalars test for a substring.
    """
    needles = list(expected) if _is_sequence(expected) else [expected]
    needles = [to_comparable(n) for n in needles]

    if _is_sequence(actual):
        members = {to_comparable(v) for v in actual}
        return any(n in members for n in needles)

    haystack = to_comparable(actual)
    return any(n in haystack for n in needles)


def quantize(value: Decimal, places: int) -> Decimal:
    """
    Round half-up to a fixed number of decimal places.

    Works for any magnitude a response can carry: quantizing runs in a
    context wide enough that it never overflows.
    """
    with localcontext(_WIDE_CONTEXT):
        result = value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    if result.is_zero():
        # drop the sign of negative zero
        result = result.copy_abs()
    return result


def format_fixed(value: Decimal, places: int, grouping: bool = False) -> str:
    """Render a number with exactly ``places`` decimals."""
    fmt = f",.{places}f" if grouping else f".{places}f"
    return format(quantize(value, places), fmt)


def to_percent(value: Decimal) -> Decimal:
    """Scale a ratio to a percentage (0.0825 -> 8.25)."""
    return value.scaleb(2, context=_WIDE_CONTEXT)


def format_trimmed(value: Decimal, max_places: int, grouping: bool = True) -> str:
    """Render a number with at most ``max_places`` decimals, trailing zeros removed."""
    text = format_fixed(value, max_places, grouping=grouping)
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
