"""
Error types and error response utilities for paramcast.

Validation failures are values, not exceptions: the engine returns
``ParameterError`` instances so callers can aggregate every failing
parameter before deciding how to respond. Exceptions are reserved for
mistakes in schema or option configuration (``SchemaError``).
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional


logger = logging.getLogger(__name__)


class ErrorKind:
    """Standard validation error kinds."""
    MISSING_PARAMETER = "MissingParameter"
    INVALID_ARGUMENT = "InvalidArgument"


class ErrorType:
    """Standard error type constants for error responses."""
    VALIDATION = "validation_error"
    SCHEMA = "schema_error"
    UNEXPECTED = "unexpected_error"


class SchemaError(ValueError):
    """Raised when a parameter schema or validator option is malformed."""


@dataclass
class ParameterError:
    """A single structured validation failure."""
    kind: str
    label: str
    message: str
    received: Any = field(default=None, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.kind,
            "parameter": self.label,
            "message": self.message,
            "received": self.received,
        }

    def __str__(self) -> str:
        return self.message


def missing_parameter(label: str) -> ParameterError:
    """Create a ``MissingParameter`` error for ``label``."""
    return ParameterError(
        ErrorKind.MISSING_PARAMETER,
        label,
        f"Param `{label}` required",
    )


def invalid_argument(label: str, message: str, received: Any = None) -> ParameterError:
    """Create an ``InvalidArgument`` error for ``label``."""
    return ParameterError(ErrorKind.INVALID_ARGUMENT, label, message, received)


def flatten_errors(items: Iterable[Any]) -> List[Any]:
    """
    Flatten nested error results into a single list.

    Falsy entries (successful validations) are dropped, lists are expanded
    recursively, anything else is kept as-is.
    """
    flat: List[Any] = []
    for item in items:
        if not item:
            continue
        if isinstance(item, list):
            flat.extend(flatten_errors(item))
        else:
            flat.append(item)
    return flat


def create_error_response(
    error_message: str,
    error_type: str = ErrorType.UNEXPECTED,
    data: Optional[Dict[str, Any]] = None,
    success: bool = False
) -> Dict[str, Any]:
    """
    Create a standardized error response.

    Args:
        error_message: Human-readable error description
        error_type: Type of error (see ErrorType constants)
        data: Additional data to include in response
        success: Whether the operation was successful

    Returns:
        Standardized error response dictionary
    """
    response = {
        "success": success,
        "error": error_message,
        "error_type": error_type
    }

    if data:
        response.update(data)

    # Log the error for debugging
    if not success:
        logger.error(f"Error ({error_type}): {error_message}")

    return response


def create_success_response(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Create a standardized success response.

    Args:
        data: Data to include in response

    Returns:
        Standardized success response dictionary
    """
    response = {
        "success": True,
        "error": None,
        "error_type": None
    }
    response.update(data)
    return response


def handle_validation_error(
    error: Any,
    default_data: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Create a standardized validation error response.

    ``error`` is usually a ``ParameterError``; custom ``validate`` callbacks
    may return anything, which is reported through its string form.

    Args:
        error: Validation error
        default_data: Default data structure to return

    Returns:
        Standardized validation error response
    """
    data = dict(default_data or {})
    if isinstance(error, ParameterError):
        data.setdefault("code", error.kind)
        data.setdefault("parameter", error.label)
    return create_error_response(
        str(error),
        ErrorType.VALIDATION,
        data
    )
