"""Safety module - query model validation."""

from .validator import (
    QueryValidationError,
    QueryValidator,
    ValidationResult,
    validate_query,
)

__all__ = [
    "QueryValidationError",
    "QueryValidator",
    "ValidationResult",
    "validate_query",
]
