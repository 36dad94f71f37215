"""
Custom exception hierarchy for HealthGuard.

All exceptions inherit from HealthGuardError and include:
- code: ErrorCode for categorization
- message: Human-readable error message
- details: Optional additional context
- recoverable: Whether the user can retry/fix the issue
- http_status: Status used when the error reaches the HTTP layer
- context: Additional key-value pairs for debugging
"""

from typing import Any, Optional
from .codes import ErrorCode


class HealthGuardError(Exception):
    """Base exception for all HealthGuard errors.

    Attributes:
        code: The ErrorCode categorizing this error
        message: Human-readable error message
        details: Optional additional context for the user
        recoverable: Whether the error can be resolved by user action
        http_status: HTTP status code for API responses
        context: Additional debugging information
    """

    code: ErrorCode = ErrorCode.INTERNAL_UNEXPECTED
    recoverable: bool = False
    http_status: int = 500

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        code: Optional[ErrorCode] = None,
        recoverable: Optional[bool] = None,
        **context: Any,
    ):
        self.message = message
        self.details = details
        self.context = context if context else None

        # Allow overriding class defaults
        if code is not None:
            self.code = code
        if recoverable is not None:
            self.recoverable = recoverable

        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message

    def to_dict(self) -> dict:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
            "context": self.context,
        }


class ValidationError(HealthGuardError):
    """Error during input validation."""

    code = ErrorCode.VALIDATION_MISSING_PARAM
    recoverable = True
    http_status = 400

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        parameter: Optional[str] = None,
        expected: Optional[str] = None,
        received: Optional[str] = None,
        **context: Any,
    ):
        ctx = {**context}
        if parameter:
            ctx["parameter"] = parameter
        if expected:
            ctx["expected"] = expected
        if received:
            ctx["received"] = received
        super().__init__(message, details, **ctx)


class AuthenticationError(HealthGuardError):
    """Missing, invalid or expired credentials."""

    code = ErrorCode.AUTH_REQUIRED
    recoverable = True
    http_status = 401

    def __init__(self, message: str, details: Optional[str] = None, reason: Optional[str] = None, **context: Any):
        if reason == "token":
            code = ErrorCode.AUTH_INVALID_TOKEN
        elif reason == "credentials":
            code = ErrorCode.AUTH_INVALID_CREDENTIALS
        else:
            code = ErrorCode.AUTH_REQUIRED
        super().__init__(message, details, code=code, **context)


class NotFoundError(HealthGuardError):
    """Error when a required resource is not found."""

    code = ErrorCode.NOT_FOUND_USER
    recoverable = True
    http_status = 404

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        **context: Any,
    ):
        ctx = {**context}
        if resource_type:
            ctx["resource_type"] = resource_type
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message, details, **ctx)


class ConflictError(HealthGuardError):
    """A uniqueness constraint would be violated."""

    code = ErrorCode.CONFLICT_EMAIL_TAKEN
    recoverable = True
    http_status = 409


class ParseError(HealthGuardError):
    """Structured LLM reply could not be interpreted."""

    code = ErrorCode.PARSE_JSON_INVALID
    recoverable = False
    http_status = 502

    def __init__(self, message: str, details: Optional[str] = None, stage: Optional[str] = None, **context: Any):
        # Set appropriate code based on the failing stage
        if stage == "extract":
            code = ErrorCode.PARSE_JSON_MISSING
        elif stage == "schema":
            code = ErrorCode.PARSE_SCHEMA_MISMATCH
        else:
            code = ErrorCode.PARSE_JSON_INVALID

        super().__init__(message, details, code=code, **context)


class LLMError(HealthGuardError):
    """Error during LLM interactions."""

    code = ErrorCode.LLM_UNAVAILABLE
    recoverable = False
    http_status = 503

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        model: Optional[str] = None,
        error_type: Optional[str] = None,
        **context: Any,
    ):
        # Set appropriate code based on error type
        if error_type == "timeout":
            code = ErrorCode.LLM_TIMEOUT
        elif error_type == "config":
            code = ErrorCode.LLM_NOT_CONFIGURED
        elif error_type == "invalid":
            code = ErrorCode.LLM_RESPONSE_INVALID
        else:
            code = ErrorCode.LLM_UNAVAILABLE

        ctx = {**context}
        if model:
            ctx["model"] = model
        super().__init__(message, details, code=code, **ctx)


class ExternalServiceError(HealthGuardError):
    """Error from a remote LLM service (OpenAI, Gemini).

    ``status_code`` is the upstream HTTP status, when there was one. The
    request queue reads it to decide whether a failure was throttling.
    """

    code = ErrorCode.EXTERNAL_NETWORK_ERROR
    recoverable = True
    http_status = 502

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        service: Optional[str] = None,
        status_code: Optional[int] = None,
        **context: Any,
    ):
        # Set appropriate code based on service
        if service == "openai":
            code = ErrorCode.EXTERNAL_OPENAI_FAILED
        elif service == "gemini":
            code = ErrorCode.EXTERNAL_GEMINI_FAILED
        else:
            code = ErrorCode.EXTERNAL_NETWORK_ERROR

        self.status_code = status_code

        ctx = {**context}
        if service:
            ctx["service"] = service
        if status_code:
            ctx["status_code"] = status_code
        super().__init__(message, details, code=code, **ctx)
