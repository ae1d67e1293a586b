"""Formula evaluator for calculated fields.

Evaluates parsed formula ASTs against numeric operand values.
"""

from decimal import Decimal, DecimalException, localcontext
from typing import Any, Mapping

from formlogic.core.exceptions import (
    DivisionByZeroError,
    FormulaArithmeticError,
    FormulaError,
    MissingDependencyError,
)
from formlogic.formula.functions import FORMULA_FUNCTIONS
from formlogic.formula.parser import (
    BinaryOpNode,
    BooleanNode,
    FieldRefNode,
    FunctionCallNode,
    NumberNode,
    UnaryOpNode,
)


class FormulaEvaluator:
    """
    Evaluates formula ASTs against field values.

    Field values must already be coerced to ``Decimal``; a reference to a
    field that is absent from the mapping raises MissingDependencyError.
    Arithmetic yields ``Decimal``, comparisons yield ``bool``.
    """

    def __init__(self, fields: Mapping[str, Decimal] | None = None):
        """
        Bind the evaluator to a mapping of field ID to response value.

        Args:
            fields: Dictionary mapping field IDs to their numeric values
        """
        self._fields = fields or {}

    def evaluate(
        self,
        ast: Any,
        fields: Mapping[str, Decimal] | None = None,
    ) -> Decimal | bool:
        """
        Evaluate an AST node.

        Args:
            ast: AST node to evaluate
            fields: Optional field values (overrides constructor values)

        Returns:
            Evaluation result

        Raises:
            MissingDependencyError: A referenced field has no value
            DivisionByZeroError: A divisor evaluated to zero
            FormulaArithmeticError: Any other undefined operation
        """
        if fields is not None:
            self._fields = fields

        with localcontext() as ctx:
            ctx.prec = 28
            try:
                return self._eval(ast)
            except FormulaError:
                raise
            except DecimalException as e:
                raise FormulaArithmeticError(
                    f"Invalid arithmetic operation: {type(e).__name__}"
                ) from e

    def _eval(self, node: Any) -> Decimal | bool:
        """Dispatch on the node type."""
        if isinstance(node, NumberNode):
            return node.value

        if isinstance(node, BooleanNode):
            return node.value

        if isinstance(node, FieldRefNode):
            value = self._fields.get(node.field_id)
            if value is None:
                raise MissingDependencyError([node.field_id])
            return value

        if isinstance(node, FunctionCallNode):
            return self._eval_function(node)

        if isinstance(node, BinaryOpNode):
            return self._eval_binary(node)

        if isinstance(node, UnaryOpNode):
            return -self._number(self._eval(node.operand))

        raise FormulaError(f"Unknown formula node: {node!r}")

    def _eval_function(self, node: FunctionCallNode) -> Decimal | bool:
        """Call a function; only the taken IF branch is evaluated."""
        if node.name == "IF":
            if len(node.arguments) != 3:
                raise FormulaError("IF expects exactly three arguments")
            condition, when_true, when_false = node.arguments
            branch = when_true if self._truthy(self._eval(condition)) else when_false
            return self._eval(branch)

        func = FORMULA_FUNCTIONS.get(node.name)
        if func is None:
            raise FormulaError(f"Unknown function: {node.name}")

        args = [self._number(self._eval(arg)) for arg in node.arguments]
        try:
            return func(*args)
        except TypeError as e:
            raise FormulaError(f"Invalid arguments for {node.name}") from e

    def _eval_binary(self, node: BinaryOpNode) -> Decimal | bool:
        """Apply an arithmetic or comparison operator."""
        left = self._eval(node.left)
        right = self._eval(node.right)
        op = node.operator

        # Comparison operators
        if op in ("=", "!=", "<", ">", "<=", ">="):
            return self._compare(op, left, right)

        left = self._number(left)
        right = self._number(right)

        # Arithmetic operators
        if op == "+":
            return left + right
        if op == "-":
            return left - right
        if op == "*":
            return left * right
        if op == "/":
            if right == 0:
                raise DivisionByZeroError()
            return left / right
        if op == "^":
            return self._power(left, right)

        raise FormulaError(f"Unknown operator: {op}")

    # ==========================================================================
    # Operator Implementations
    # ==========================================================================

    @staticmethod
    def _number(value: Decimal | bool) -> Decimal:
        """Booleans take part in arithmetic as 1 and 0."""
        if isinstance(value, bool):
            return Decimal(1) if value else Decimal(0)
        return value

    @staticmethod
    def _truthy(value: Decimal | bool) -> bool:
        if isinstance(value, bool):
            return value
        return value != 0

    def _compare(self, op: str, left: Decimal | bool, right: Decimal | bool) -> bool:
        left = self._number(left)
        right = self._number(right)
        if op == "=":
            return left == right
        if op == "!=":
            return left != right
        if op == "<":
            return left < right
        if op == ">":
            return left > right
        if op == "<=":
            return left <= right
        return left >= right

    @staticmethod
    def _power(base: Decimal, exponent: Decimal) -> Decimal:
        """Exponentiation."""
        if base == 0 and exponent < 0:
            raise DivisionByZeroError()
        if base < 0 and exponent != exponent.to_integral_value():
            raise FormulaArithmeticError(
                "Invalid arithmetic operation: fractional power of a negative number"
            )
        return base**exponent
