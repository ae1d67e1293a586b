"""Formula parser for calculated fields.

Turns formula text into the node dataclasses below with a Lark LALR parser.
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping

from lark import Lark, Transformer, v_args
from lark.exceptions import LarkError, UnexpectedCharacters, UnexpectedEOF, UnexpectedToken

from formlogic.coercion import to_number
from formlogic.core.exceptions import FormulaSyntaxError
from formlogic.formula.functions import FORMULA_FUNCTIONS, LAZY_FUNCTIONS
from formlogic.formula.grammar import FORMULA_GRAMMAR

# {{fieldId}} placeholders, matched lexically so that references can be
# listed even when the surrounding formula does not parse
FIELD_REF_PATTERN = re.compile(r"\{\{\s*([^{}]*?)\s*\}\}")


# AST Node types
@dataclass(frozen=True)
class NumberNode:
    value: Decimal


@dataclass(frozen=True)
class BooleanNode:
    value: bool


@dataclass(frozen=True)
class FieldRefNode:
    field_id: str


@dataclass(frozen=True)
class FunctionCallNode:
    name: str
    arguments: tuple[Any, ...]


@dataclass(frozen=True)
class BinaryOpNode:
    operator: str
    left: Any
    right: Any


@dataclass(frozen=True)
class UnaryOpNode:
    operator: str
    operand: Any


class FormulaTransformer(Transformer):
    """Build node dataclasses from the Lark tree, one method per rule."""

    @v_args(inline=True)
    def number(self, token):
        return NumberNode(Decimal(str(token)))

    @v_args(inline=True)
    def boolean(self, token):
        return BooleanNode(str(token).upper() == "TRUE")

    @v_args(inline=True)
    def field_ref(self, token):
        # Extract field ID from {{ fieldId }}
        return FieldRefNode(str(token)[2:-2].strip())

    def function_call(self, items):
        name = str(items[0]).upper()
        args = tuple(items[1]) if len(items) > 1 and items[1] else ()
        return FunctionCallNode(name, args)

    def arguments(self, items):
        return list(items)

    # Binary operators
    @v_args(inline=True)
    def add(self, left, right):
        return BinaryOpNode("+", left, right)

    @v_args(inline=True)
    def sub(self, left, right):
        return BinaryOpNode("-", left, right)

    @v_args(inline=True)
    def mul(self, left, right):
        return BinaryOpNode("*", left, right)

    @v_args(inline=True)
    def div(self, left, right):
        return BinaryOpNode("/", left, right)

    @v_args(inline=True)
    def pow(self, left, right):
        return BinaryOpNode("^", left, right)

    # Comparison operators
    @v_args(inline=True)
    def eq(self, left, right):
        return BinaryOpNode("=", left, right)

    @v_args(inline=True)
    def ne(self, left, right):
        return BinaryOpNode("!=", left, right)

    @v_args(inline=True)
    def lt(self, left, right):
        return BinaryOpNode("<", left, right)

    @v_args(inline=True)
    def gt(self, left, right):
        return BinaryOpNode(">", left, right)

    @v_args(inline=True)
    def le(self, left, right):
        return BinaryOpNode("<=", left, right)

    @v_args(inline=True)
    def ge(self, left, right):
        return BinaryOpNode(">=", left, right)

    # Unary operators
    @v_args(inline=True)
    def neg(self, operand):
        return UnaryOpNode("-", operand)


def _describe_error(error: LarkError) -> str:
    """Short, position-bearing description of a Lark error."""
    if isinstance(error, UnexpectedEOF):
        return "unexpected end of formula"
    if isinstance(error, UnexpectedToken):
        if error.token.type == "$END":
            return "unexpected end of formula"
        return f"unexpected '{error.token}' at position {error.column}"
    if isinstance(error, UnexpectedCharacters):
        return f"unexpected character '{error.char}' at position {error.column}"
    return str(error)


def extract_references(formula: str | None) -> list[str]:
    """
    List the distinct field IDs referenced by a formula, in order of first use.

    Args:
        formula: Formula string

    Returns:
        Ordered list of referenced field IDs
    """
    if not formula:
        return []
    references: list[str] = []
    for match in FIELD_REF_PATTERN.finditer(formula):
        field_id = match.group(1)
        if field_id and field_id not in references:
            references.append(field_id)
    return references


def substitute_references(formula: str, values: Mapping[str, Any]) -> str:
    """
    Replace each {{fieldId}} with the text of its value, for previews.

    Numbers are written without trailing zeros (10.50 -> "10.5"); strings
    are inserted as typed.
    """

    def replace(match: re.Match) -> str:
        value = values.get(match.group(1))
        if value is None:
            return ""
        if isinstance(value, str):
            return value.strip()
        number = to_number(value)
        if number is None:
            return str(value)
        text = format(number, "f")
        if "." in text:
            text = text.rstrip("0").rstrip(".")
        return text

    return FIELD_REF_PATTERN.sub(replace, formula)


class FormulaParser:
    """
    Parser for calculated-field formulas.

    Parses formula strings into an AST that can be evaluated. A single
    instance may be shared: ``parse`` keeps no state between calls.
    """

    def __init__(self):
        self._parser = Lark(
            FORMULA_GRAMMAR,
            parser="lalr",
            transformer=FormulaTransformer(),
        )

    def parse(self, formula: str) -> Any:
        """
        Parse formula text into a node tree.

        Args:
            formula: Formula string to parse

        Returns:
            AST root node

        Raises:
            FormulaSyntaxError: If formula syntax is invalid
        """
        if formula is None or not formula.strip():
            raise FormulaSyntaxError(formula or "", "formula is empty")
        try:
            ast = self._parser.parse(formula)
        except LarkError as e:
            raise FormulaSyntaxError(formula, _describe_error(e)) from e

        self._check_functions(formula, ast)
        return ast

    def validate(self, formula: str) -> tuple[bool, str | None]:
        """
        Validate formula syntax.

        Args:
            formula: Formula string to validate

        Returns:
            Tuple of (is_valid, error_message)
        """
        try:
            self.parse(formula)
            return True, None
        except FormulaSyntaxError as e:
            return False, e.message

    def _check_functions(self, formula: str, node: Any) -> None:
        """Reject calls to functions that do not exist."""
        if isinstance(node, FunctionCallNode):
            if node.name not in FORMULA_FUNCTIONS and node.name not in LAZY_FUNCTIONS:
                raise FormulaSyntaxError(formula, f"unknown function {node.name}")
            for arg in node.arguments:
                self._check_functions(formula, arg)
        elif isinstance(node, BinaryOpNode):
            self._check_functions(formula, node.left)
            self._check_functions(formula, node.right)
        elif isinstance(node, UnaryOpNode):
            self._check_functions(formula, node.operand)


_default_parser: FormulaParser | None = None


def get_parser() -> FormulaParser:
    """Lazily build the shared parser."""
    global _default_parser
    if _default_parser is None:
        _default_parser = FormulaParser()
    return _default_parser
