"""
Custom exceptions for formlogic.

Provides a hierarchy of exceptions that map to HTTP status codes
and include structured error information.
"""

from typing import Any


class FormLogicException(Exception):
    """
    Base exception for all formlogic errors.

    All custom exceptions should inherit from this class.
    """

    # Default status code for base exception
    status_code = 500

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code
            details: Additional error details
        """
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


# =============================================================================
# HTTP 400 - Bad Request Errors
# =============================================================================


class BadRequestError(FormLogicException):
    """Invalid configuration or input."""

    status_code = 400


class ValidationError(BadRequestError):
    """Configuration validation failed."""

    def __init__(
        self,
        message: str = "Validation error",
        errors: list[str] | None = None,
        code: str = "VALIDATION_ERROR",
    ) -> None:
        super().__init__(
            message=message,
            code=code,
            details={"errors": errors or [message]},
        )


class NotACalculationFieldError(ValidationError):
    """Field exists but carries no enabled calculation."""

    def __init__(self, field_id: str) -> None:
        super().__init__(
            message="Field is not a calculation field",
            code="NOT_A_CALCULATION_FIELD",
        )
        self.details["field_id"] = field_id


class UnknownFieldReferenceError(ValidationError):
    """A formula or condition points at a field that does not exist."""

    def __init__(self, field_id: str, referenced_by: str | None = None) -> None:
        super().__init__(
            message=f'Referenced field "{field_id}" does not exist',
            code="UNKNOWN_FIELD_REFERENCE",
        )
        self.details.update({"field_id": field_id, "referenced_by": referenced_by})


class FormulaSyntaxError(ValidationError):
    """Formula text could not be parsed."""

    def __init__(self, formula: str, error: str) -> None:
        super().__init__(
            message=f"Invalid formula syntax: {error}",
            code="FORMULA_SYNTAX_ERROR",
        )
        self.details.update({"formula": formula, "error": error})


# =============================================================================
# HTTP 404 - Not Found Errors
# =============================================================================


class NotFoundError(FormLogicException):
    """Requested form or field not found."""

    status_code = 404

    def __init__(
        self,
        resource: str,
        identifier: str | None = None,
    ) -> None:
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} not found: {identifier}"

        super().__init__(
            message=message,
            code="NOT_FOUND",
            details={"resource": resource, "identifier": identifier},
        )


class FormNotFoundError(NotFoundError):
    """Form not found."""

    def __init__(self, form_id: str | None = None) -> None:
        super().__init__(resource="Form", identifier=form_id)


class FieldNotFoundError(NotFoundError):
    """Field not found."""

    def __init__(self, field_id: str | None = None) -> None:
        super().__init__(resource="Field", identifier=field_id)


class CalculationFieldNotFoundError(NotFoundError):
    """Calculation target field not found."""

    def __init__(self, field_id: str | None = None) -> None:
        super().__init__(resource="Calculation field", identifier=field_id)


# =============================================================================
# HTTP 422 - Unprocessable Errors
# =============================================================================


class UnprocessableEntityError(FormLogicException):
    """Configuration cannot be processed."""

    status_code = 422


class FormulaError(UnprocessableEntityError):
    """Formula parsing or execution error."""

    def __init__(
        self,
        error: str,
        formula: str | None = None,
        code: str = "FORMULA_ERROR",
    ) -> None:
        super().__init__(
            message=error,
            code=code,
            details={"formula": formula, "error": error},
        )


class CircularDependencyError(FormulaError):
    """Dependency graph contains a cycle."""

    def __init__(self, cycle: list[str]) -> None:
        super().__init__(
            error=f"Circular dependency detected in fields: {' -> '.join(cycle)}",
            code="CIRCULAR_DEPENDENCY",
        )
        self.cycle = cycle
        self.details["cycle"] = cycle


class MissingDependencyError(FormulaError):
    """One or more referenced values are absent, empty or non-numeric."""

    def __init__(self, missing_fields: list[str]) -> None:
        super().__init__(
            error=f"Missing required field values: {', '.join(missing_fields)}",
            code="MISSING_DEPENDENCY",
        )
        self.missing_fields = missing_fields
        self.details["missing_fields"] = missing_fields


class FormulaArithmeticError(FormulaError):
    """Undefined arithmetic during evaluation."""

    def __init__(self, error: str) -> None:
        super().__init__(error=error, code="ARITHMETIC_ERROR")


class DivisionByZeroError(FormulaArithmeticError):
    """Divisor resolved to exactly zero."""

    def __init__(self) -> None:
        super().__init__("Division by zero")
