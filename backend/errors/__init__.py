"""
HealthGuard Error Handling Module

Provides standardized error codes, exceptions, and response builders
for consistent error handling across the application.

Usage:
    from errors import (
        # Error codes
        ErrorCode,

        # Exceptions
        HealthGuardError,
        ValidationError,
        AuthenticationError,
        NotFoundError,
        ConflictError,
        ParseError,
        LLMError,
        ExternalServiceError,

        # Response builders
        error_response,

        # Decorators and handlers
        handle_async_errors,
        log_error,
        register_exception_handlers,
    )

Example:
    from errors import ConflictError, ValidationError

    async def register(self, name, email, password):
        if not name or len(name.strip()) < 2:
            raise ValidationError("Name is required", parameter="name")

        if await self.store.find_by_email(email):
            raise ConflictError("Email already registered")
        ...
"""

from .codes import ErrorCode
from .exceptions import (
    HealthGuardError,
    ValidationError,
    AuthenticationError,
    NotFoundError,
    ConflictError,
    ParseError,
    LLMError,
    ExternalServiceError,
)
from .response import (
    error_response,
    http_status_for,
)
from .handlers import (
    handle_async_errors,
    log_error,
    register_exception_handlers,
)

__all__ = [
    # Error codes
    "ErrorCode",
    # Exceptions
    "HealthGuardError",
    "ValidationError",
    "AuthenticationError",
    "NotFoundError",
    "ConflictError",
    "ParseError",
    "LLMError",
    "ExternalServiceError",
    # Response builders
    "error_response",
    "http_status_for",
    # Decorators and handlers
    "handle_async_errors",
    "log_error",
    "register_exception_handlers",
]
