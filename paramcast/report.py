"""
Aggregated validation results for a request.

The engine reports each parameter independently; the request validator
collects every failure into a ``ValidationReport`` and leaves the policy of
what to surface (usually the first error) to the caller.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from .errors import (
    ErrorKind,
    ErrorType,
    ParameterError,
    create_error_response,
    create_success_response,
)

logger = logging.getLogger(__name__)


class ValidationReport:
    """Result of validating every declared parameter of a request."""

    def __init__(self, errors: Optional[List[Any]] = None, validated: Optional[Iterable[str]] = None):
        self.errors: List[Any] = list(errors or [])
        self.validated: List[str] = list(validated or [])

    def add_error(self, error: Any):
        """Add a single error."""
        self.errors.append(error)

    def add_errors(self, errors: Iterable[Any]):
        """Add several errors, keeping their order."""
        self.errors.extend(errors)

    def is_valid(self) -> bool:
        """Check if validation passed."""
        return not self.errors

    @property
    def first_error(self) -> Optional[Any]:
        return self.errors[0] if self.errors else None

    def error_kinds(self) -> List[str]:
        """Kinds of all errors; custom callback errors count as invalid arguments."""
        return [
            error.kind if isinstance(error, ParameterError) else ErrorKind.INVALID_ARGUMENT
            for error in self.errors
        ]

    def to_response(self) -> Dict[str, Any]:
        """
        Convert the report to a standardized response dictionary.

        Only the first error is surfaced as the failure reason; the full list
        is included under ``errors``.
        """
        if self.is_valid():
            return create_success_response({"validated": list(self.validated)})

        first = self.first_error
        data: Dict[str, Any] = {
            "errors": [
                error.to_dict() if isinstance(error, ParameterError) else {"message": str(error)}
                for error in self.errors
            ]
        }
        if isinstance(first, ParameterError):
            data["code"] = first.kind
            data["parameter"] = first.label
        return create_error_response(str(first), ErrorType.VALIDATION, data)

    def __str__(self) -> str:
        if self.is_valid():
            return f"Valid ({len(self.validated)} params)"
        return f"Invalid: {'; '.join(str(error) for error in self.errors)}"


def log_report(report: ValidationReport, route_label: str) -> bool:
    """
    Log a validation report.

    Args:
        report: Report to log
        route_label: Route description used as log prefix (``GET /users``)

    Returns:
        True if the request is valid, False otherwise
    """
    if report.is_valid():
        logger.debug(f"[Validate {route_label}] {len(report.validated)} params passed")
        return True

    for error in report.errors:
        logger.info(f"[Validate {route_label}] {error}")
    logger.warning(f"[Validate {route_label}] Validation failed with {len(report.errors)} error(s)")
    return False
