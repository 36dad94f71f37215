"""
Standard error response builders for HealthGuard.

Provides consistent response formats for the HTTP API. The ``error`` key
holds the human-readable message so existing frontend code that reads
``data.error`` keeps working.
"""

from .codes import ErrorCode
from .exceptions import HealthGuardError


def error_response(error: HealthGuardError | Exception, include_context: bool = False) -> dict:
    """Build a standard error response dictionary.

    Args:
        error: The exception to convert to a response
        include_context: Whether to include the context dict (off by default for privacy)

    Returns:
        Standard error response dict

    Example:
        >>> from errors import ConflictError, error_response
        >>> error_response(ConflictError("Email already registered"))
        {
            "error": "Email already registered",
            "code": "CONFLICT_EMAIL_TAKEN",
            "details": None,
            "recoverable": True,
        }
    """
    if isinstance(error, HealthGuardError):
        response = {
            "error": error.message,
            "code": error.code.value,
            "details": error.details,
            "recoverable": error.recoverable,
        }
        if include_context:
            response["context"] = error.context
        return response

    # Fallback for non-HealthGuard exceptions
    return {
        "error": "Server error",
        "code": ErrorCode.INTERNAL_UNEXPECTED.value,
        "details": None,
        "recoverable": False,
    }


def http_status_for(error: Exception) -> int:
    """HTTP status code to use for an exception."""
    if isinstance(error, HealthGuardError):
        return error.http_status
    return 500
