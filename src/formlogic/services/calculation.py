"""Calculation service for calculated form fields.

Evaluates formulas against submitted responses, orders chained
calculations through the dependency graph and validates formula
configuration before it is stored.
"""

from decimal import Decimal, DecimalException
from typing import Any, Iterable, Mapping, Optional

from formlogic.coercion import format_fixed, format_trimmed, is_empty, to_number, to_percent
from formlogic.core.config import Settings, settings as default_settings
from formlogic.core.exceptions import (
    CalculationFieldNotFoundError,
    CircularDependencyError,
    FormulaArithmeticError,
    FormulaError,
    FormulaSyntaxError,
    MissingDependencyError,
    NotACalculationFieldError,
    UnknownFieldReferenceError,
)
from formlogic.core.logging import LoggerMixin
from formlogic.formula.dependencies import FormulaDependencyGraph, field_dependencies
from formlogic.formula.evaluator import FormulaEvaluator
from formlogic.formula.parser import (
    FormulaParser,
    extract_references,
    get_parser,
    substitute_references,
)
from formlogic.schemas.field import DisplayType, FormField, load_fields
from formlogic.schemas.results import (
    CalculationPass,
    CalculationResult,
    DependencyOrder,
    ExpressionResult,
    FormulaValidationResult,
    ParsedFormula,
    ValidationResult,
)

_DISPLAY_TYPES = frozenset(t.value for t in DisplayType)


class CalculationService(LoggerMixin):
    """Service for evaluating and validating calculated fields."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        parser: Optional[FormulaParser] = None,
    ) -> None:
        self.settings = settings or default_settings
        self.parser = parser or get_parser()

    # ==========================================================================
    # Evaluation
    # ==========================================================================

    def evaluate(
        self,
        formula: str,
        responses: Mapping[str, Any],
        display_type: str = DisplayType.NUMBER.value,
        dependencies: Optional[list[str]] = None,
    ) -> CalculationResult:
        """
        Evaluate one formula against a response map.

        Syntax is checked first, then every referenced value must be present
        and numeric, and only then is the expression evaluated.

        Args:
            formula: Formula with {{fieldId}} references
            responses: Field ID -> raw response value (not modified)
            display_type: How display_value is formatted
            dependencies: Dependencies reported on the result
                (default: references parsed from the formula)

        Returns:
            CalculationResult; failures are reported, never raised
        """
        references = extract_references(formula)
        deps = list(dependencies) if dependencies is not None else references

        if not formula or not formula.strip():
            return CalculationResult(
                success=False,
                error="Calculation is enabled but no formula is provided",
                dependencies=deps,
            )

        try:
            ast = self.parser.parse(formula)
        except FormulaSyntaxError as e:
            return CalculationResult(success=False, error=e.message, dependencies=deps)

        operands: dict[str, Decimal] = {}
        missing: list[str] = []
        for field_id in references:
            value = responses.get(field_id)
            number = None if is_empty(value) else to_number(value)
            if number is None:
                missing.append(field_id)
            else:
                operands[field_id] = number

        try:
            if missing:
                raise MissingDependencyError(missing)
            number = FormulaEvaluator._number(FormulaEvaluator(operands).evaluate(ast))
            value = format_fixed(number, self.settings.decimal_places)
            display_value = self._display_value(number, display_type)
        except MissingDependencyError as e:
            return CalculationResult(
                success=False,
                error=e.message,
                missing_fields=e.missing_fields,
                dependencies=deps,
            )
        except FormulaError as e:
            return CalculationResult(success=False, error=e.message, dependencies=deps)
        except DecimalException:
            error = FormulaArithmeticError("Result is out of range")
            return CalculationResult(success=False, error=error.message, dependencies=deps)

        return CalculationResult(
            success=True,
            value=value,
            display_value=display_value,
            dependencies=deps,
        )

    def evaluate_field(
        self,
        field_id: str,
        fields: Any,
        responses: Mapping[str, Any],
    ) -> CalculationResult:
        """
        Evaluate a single calculated field.

        Values of other calculated fields are read from the responses as
        supplied; use evaluate_all() to chain calculations.

        Args:
            field_id: ID of the calculated field
            fields: All fields of the form
            responses: Field ID -> raw response value

        Returns:
            CalculationResult for the field

        Raises:
            CalculationFieldNotFoundError: No field with this ID
            NotACalculationFieldError: Field has no enabled calculation
        """
        field = self._find_field(field_id, load_fields(fields))
        return self._evaluate_calculation(field, responses)

    def evaluate_all(self, fields: Any, responses: Mapping[str, Any]) -> CalculationPass:
        """
        Evaluate every calculated field of a form in dependency order.

        A calculated field's value is fed to the fields that depend on it.
        When a field fails, its dependents fail with it listed in
        missing_fields; unrelated fields are still evaluated.

        Args:
            fields: All fields of the form
            responses: Field ID -> raw response value (not modified)

        Returns:
            Results, calculation order and dependency graph

        Raises:
            UnknownFieldReferenceError: A formula references a missing field
            CircularDependencyError: Calculations depend on each other
        """
        field_list = load_fields(fields)
        graph = self.build_dependency_graph(field_list)
        calculated = {f.id: f for f in field_list if f.is_calculated}
        calculation_order = graph.get_evaluation_order(calculated)

        self.logger.debug(
            "Evaluating calculated fields",
            extra={"calculation_order": calculation_order},
        )

        context = dict(responses)
        calculations: dict[str, CalculationResult] = {}
        for field_id in calculation_order:
            result = self._evaluate_calculation(calculated[field_id], context)
            calculations[field_id] = result
            # Failed upstream fields count as unanswered for their dependents
            context[field_id] = result.value if result.success else None
            if not result.success:
                self.logger.debug(
                    "Calculated field failed",
                    extra={"field_id": field_id, "error": result.error},
                )

        return CalculationPass(
            calculations=calculations,
            calculation_order=calculation_order,
            dependency_graph=graph.to_dict(),
        )

    def _evaluate_calculation(
        self, field: FormField, responses: Mapping[str, Any]
    ) -> CalculationResult:
        return self.evaluate(
            field.calculation.formula or "",
            responses,
            display_type=field.calculation.display_type,
            dependencies=field_dependencies(field),
        )

    def _find_field(self, field_id: str, fields: list[FormField]) -> FormField:
        for field in fields:
            if field.id == field_id:
                if not field.is_calculated:
                    raise NotACalculationFieldError(field_id)
                return field
        raise CalculationFieldNotFoundError(field_id)

    # ==========================================================================
    # Dependency Graph
    # ==========================================================================

    def build_dependency_graph(self, fields: Any) -> FormulaDependencyGraph:
        """
        Build the dependency graph and check that it can be evaluated.

        Cycles are reported ahead of unknown references, so a form with
        both is always rejected as circular.

        Raises:
            CircularDependencyError: Calculations depend on each other
            UnknownFieldReferenceError: A formula references a missing field
        """
        graph = FormulaDependencyGraph.from_fields(load_fields(fields))
        graph.check_acyclic()
        unknown = graph.unknown_references()
        if unknown:
            field_id, dep = unknown[0]
            raise UnknownFieldReferenceError(dep, referenced_by=field_id)
        return graph

    def get_dependency_order(self, fields: Any) -> DependencyOrder:
        """
        Report the calculation order without raising on bad graphs.

        Returns:
            DependencyOrder; success is False on cycles or unknown references
        """
        field_list = load_fields(fields)
        try:
            graph = self.build_dependency_graph(field_list)
            order = graph.get_evaluation_order(f.id for f in field_list if f.is_calculated)
        except (CircularDependencyError, UnknownFieldReferenceError) as e:
            self.logger.warning("Invalid calculation dependency graph", extra={"error": e.message})
            return DependencyOrder(success=False, error=e.message)

        return DependencyOrder(success=True, order=order, dependency_graph=graph.to_dict())

    def get_affected_fields(self, fields: Any, changed_field_id: str) -> list[str]:
        """
        Calculated fields to recompute after one answer changes.

        Args:
            fields: All fields of the form
            changed_field_id: ID of the field whose value changed

        Returns:
            Transitive dependents of the field, in breadth-first order
        """
        graph = FormulaDependencyGraph.from_fields(load_fields(fields))
        return graph.get_affected_fields(changed_field_id)

    # ==========================================================================
    # Previews and Formatting
    # ==========================================================================

    def parse_formula(self, formula: str, values: Mapping[str, Any]) -> ParsedFormula:
        """
        Substitute values into a formula for preview.

        Args:
            formula: Formula with {{fieldId}} references
            values: Field ID -> value

        Returns:
            ParsedFormula with the substituted text
        """
        dependencies = extract_references(formula)
        ok, error = self.parser.validate(formula)
        if not ok:
            return ParsedFormula(success=False, error=error, dependencies=dependencies)

        missing = [dep for dep in dependencies if is_empty(values.get(dep))]
        if missing:
            return ParsedFormula(
                success=False,
                error=f"Missing field values: {', '.join(missing)}",
                missing_fields=missing,
                dependencies=dependencies,
            )

        return ParsedFormula(
            success=True,
            parsed_formula=substitute_references(formula, values),
            dependencies=dependencies,
        )

    def evaluate_formula(self, expression: str) -> ExpressionResult:
        """
        Evaluate an expression that contains no field references.

        Returns:
            ExpressionResult holding a number or a boolean
        """
        try:
            result = FormulaEvaluator().evaluate(self.parser.parse(expression))
        except (FormulaSyntaxError, FormulaError) as e:
            return ExpressionResult(success=False, error=e.message)

        if isinstance(result, bool):
            return ExpressionResult(success=True, result=result)
        return ExpressionResult(success=True, result=float(result))

    def format_display_value(
        self,
        value: Any,
        display_type: str,
        decimals: Optional[int] = None,
    ) -> str:
        """
        Format a number for display.

        - currency: symbol, thousands separators, fixed decimals ($1,000.00)
        - percentage: ratio as percent, trailing zeros trimmed (0.0825 -> 8.25%)
        - number / decimal: thousands separators, trailing zeros trimmed

        Args:
            value: Number or numeric string
            display_type: One of currency, percentage, number, decimal
            decimals: Decimal places (default: configured decimal_places)

        Returns:
            Formatted string, empty for non-numeric input
        """
        number = to_number(value)
        if number is None:
            return ""
        places = self.settings.decimal_places if decimals is None else decimals

        if display_type == DisplayType.CURRENCY.value:
            sign = "-" if number < 0 else ""
            amount = format_fixed(number.copy_abs(), places, grouping=True)
            if sign and amount.strip("0.,") == "":
                sign = ""
            return f"{sign}{self.settings.currency_symbol}{amount}"

        if display_type == DisplayType.PERCENTAGE.value:
            return f"{format_trimmed(to_percent(number), places)}%"

        return format_trimmed(number, places)

    def _display_value(self, number: Decimal, display_type: str) -> str:
        # Only currency differs from the plain two-decimal value string
        if display_type == DisplayType.CURRENCY.value:
            return self.format_display_value(number, display_type)
        return format_fixed(number, self.settings.decimal_places)

    # ==========================================================================
    # Validation
    # ==========================================================================

    def validate_formula(
        self,
        formula: str,
        dependencies: Optional[Iterable[str]],
        fields: Any,
        target_field_id: Optional[str] = None,
        test_values: Optional[Mapping[str, Any]] = None,
        display_type: str = DisplayType.NUMBER.value,
    ) -> FormulaValidationResult:
        """
        Validate a proposed formula before it is stored.

        Args:
            formula: Proposed formula
            dependencies: Declared dependencies
            fields: Current fields of the form
            target_field_id: Field being edited; enables the cycle check
            test_values: Optional values for a preview evaluation
            display_type: Display type for the preview

        Returns:
            FormulaValidationResult with errors and the effective dependencies
        """
        field_list = load_fields(fields)
        declared = list(dependencies or [])
        errors: list[str] = []

        if not formula or not formula.strip():
            return FormulaValidationResult(
                is_valid=False, errors=["Formula is required"], dependencies=declared
            )

        if len(formula) > self.settings.max_formula_length:
            errors.append(
                f"Formula exceeds maximum length of {self.settings.max_formula_length} characters"
            )

        ok, error = self.parser.validate(formula)
        if not ok:
            errors.append(error)

        references = extract_references(formula)
        for dep in declared:
            if dep not in references:
                errors.append(f'Dependency "{dep}" is not referenced in the formula')

        all_deps: list[str] = []
        for dep in [*declared, *references]:
            if dep not in all_deps:
                all_deps.append(dep)

        known = {f.id for f in field_list}
        for dep in all_deps:
            if dep not in known:
                errors.append(f'Referenced field "{dep}" does not exist')

        if target_field_id:
            graph = FormulaDependencyGraph.from_fields(field_list)
            cycle = graph.detect_circular_reference(target_field_id, all_deps)
            if cycle is not None:
                message = CircularDependencyError(cycle).message
                self.logger.warning(
                    "Rejected formula introducing a cycle",
                    extra={"field_id": target_field_id, "cycle": cycle},
                )
                errors.append(message)

        test_result = None
        if test_values is not None and not errors:
            test_result = self.evaluate(
                formula, test_values, display_type=display_type, dependencies=all_deps
            )

        return FormulaValidationResult(
            is_valid=not errors,
            errors=errors,
            dependencies=all_deps,
            test_result=test_result,
        )

    def validate_calculations(self, fields: Any) -> ValidationResult:
        """
        Validate every enabled calculation of a form.

        Returns:
            ValidationResult; unknown display types are warnings
        """
        field_list = load_fields(fields)
        known = {f.id for f in field_list}
        errors: list[str] = []
        warnings: list[str] = []

        for field in field_list:
            if not field.is_calculated:
                continue
            calculation = field.calculation

            if not calculation.formula or not calculation.formula.strip():
                errors.append(
                    f"Field {field.id}: Calculation is enabled but no formula is provided"
                )
                continue

            ok, error = self.parser.validate(calculation.formula)
            if not ok:
                errors.append(f"Field {field.id}: {error}")

            references = extract_references(calculation.formula)
            for dep in calculation.dependencies:
                if dep not in references:
                    errors.append(
                        f'Field {field.id}: Dependency "{dep}" is not referenced in the formula'
                    )
            for dep in field_dependencies(field):
                if dep not in known:
                    errors.append(f'Field {field.id}: Referenced field "{dep}" does not exist')

            if calculation.display_type not in _DISPLAY_TYPES:
                warnings.append(
                    f"Field {field.id}: Invalid display type {calculation.display_type}"
                )

        cycle = FormulaDependencyGraph.from_fields(field_list).find_cycle()
        if cycle is not None:
            errors.append(CircularDependencyError(cycle).message)

        return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


# Singleton instance for app-wide use
_calculation_service: CalculationService | None = None


def get_calculation_service() -> CalculationService:
    """Get or create calculation service singleton."""
    global _calculation_service
    if _calculation_service is None:
        _calculation_service = CalculationService()
    return _calculation_service
