"""Result types for carrying collaborator outcomes without raising."""

from enum import Enum
from typing import Callable, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ErrorType(str, Enum):
    """Standard error types shared by the selection pipeline."""

    VALIDATION_ERROR = "validation_error"
    INSUFFICIENT_CANDIDATES = "insufficient_candidates"
    INFEASIBLE_SQUAD = "infeasible_squad"
    INVARIANT_VIOLATION = "invariant_violation"
    PROVIDER_ERROR = "provider_error"
    TIMEOUT = "timeout"
    CALCULATION_ERROR = "calculation_error"


class DomainError(BaseModel):
    """Structured error information for consumers of the selection engine."""

    error_type: ErrorType = Field(..., description="Standardized error type")
    message: str = Field(..., min_length=1, description="Human-readable error message")
    details: Optional[Dict] = Field(None, description="Additional error context")
    field_errors: Optional[Dict[str, str]] = Field(
        None, description="Field-specific validation errors"
    )

    @classmethod
    def validation_error(
        cls,
        message: str,
        field_errors: Optional[Dict[str, str]] = None,
        details: Optional[Dict] = None,
    ) -> "DomainError":
        """Create a validation error."""
        return cls(
            error_type=ErrorType.VALIDATION_ERROR,
            message=message,
            field_errors=field_errors,
            details=details,
        )

    @classmethod
    def provider_error(
        cls, message: str, details: Optional[Dict] = None
    ) -> "DomainError":
        """Create an error for a failed valuation lookup."""
        return cls(
            error_type=ErrorType.PROVIDER_ERROR, message=message, details=details
        )

    @classmethod
    def timeout(cls, message: str, details: Optional[Dict] = None) -> "DomainError":
        """Create an error for a valuation lookup that did not finish in time."""
        return cls(error_type=ErrorType.TIMEOUT, message=message, details=details)


class Result(Generic[T]):
    """
    Result type for collaborator calls.

    Lets a ValueProvider report a missing or broken valuation as data so the
    gather phase can keep going and report it, instead of unwinding.
    """

    def __init__(
        self,
        value: Optional[T] = None,
        error: Optional[DomainError] = None,
        _allow_none: bool = False,
    ):
        if value is not None and error is not None:
            raise ValueError("Result cannot have both value and error")
        if not _allow_none and value is None and error is None:
            raise ValueError("Result must have either value or error")

        self._value = value
        self._error = error

    @property
    def value(self) -> T:
        """Get the success value. Raises if the result is a failure."""
        if self._error is not None:
            raise ValueError(
                f"Cannot access value on failed result: {self._error.message}"
            )
        return self._value

    @property
    def error(self) -> DomainError:
        """Get the error. Raises if the result is a success."""
        if self._error is None:
            raise ValueError("Cannot access error on successful result")
        return self._error

    @property
    def is_success(self) -> bool:
        return self._error is None

    @property
    def is_failure(self) -> bool:
        return self._error is not None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        """Create a successful result."""
        return cls(value=value, _allow_none=True)

    @classmethod
    def failure(cls, error: DomainError) -> "Result[T]":
        """Create a failed result."""
        return cls(error=error)

    def map(self, func: Callable[[T], object]) -> "Result":
        """Transform the value if successful, otherwise pass the error through."""
        if self.is_failure:
            return Result.failure(self.error)
        try:
            return Result.success(func(self.value))
        except (ValueError, TypeError, ArithmeticError) as e:
            return Result.failure(
                DomainError(
                    error_type=ErrorType.CALCULATION_ERROR,
                    message=f"Transformation failed: {e}",
                )
            )
