"""
Error handling decorators and utilities for HealthGuard.

Provides a decorator for service-boundary error logging and the FastAPI
exception handlers: HealthGuardError renders with its own status and
message, anything else as a 500 {"error": "Server error"}.
"""

import logging
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .exceptions import HealthGuardError
from .response import error_response, http_status_for

# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., Any])

_logger = logging.getLogger("healthguard.http")


def handle_async_errors(name: str, fallback: Callable[..., Any], logger: Optional[logging.Logger] = None):
    """Decorator that catches exceptions from a coroutine and returns a fallback.

    Used at orchestrator boundaries where callers must always receive a
    valid value. The fallback is called with the same arguments as the
    wrapped function plus ``error=`` the caught exception.

    Args:
        name: Component name for log context
        fallback: Callable producing the replacement return value
        logger: Optional logger instance (defaults to component logger)

    Example:
        >>> @handle_async_errors("triage", fallback=lambda self, answers, error: rules(answers))
        ... async def assess(self, answers):
        ...     ...
    """

    def decorator(func: F) -> F:
        log = logger or logging.getLogger(f"healthguard.{name}")

        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except HealthGuardError as e:
                log.warning(f"[{name}] {e.code.value}: {e.message}")
                return fallback(*args, error=e, **kwargs)
            except Exception as e:
                log.error(f"[{name}] Unexpected error: {e}", exc_info=True)
                return fallback(*args, error=e, **kwargs)

        return wrapper  # type: ignore

    return decorator


def log_error(
    logger: logging.Logger, error: Exception, context: Optional[str] = None, include_traceback: bool = True
) -> None:
    """Log an error with consistent formatting.

    Args:
        logger: Logger instance to use
        error: The exception to log
        context: Optional context string to prefix the message
        include_traceback: Whether to include the full stack trace

    Example:
        >>> log_error(logger, err, context="Chat")
        # Logs: "[Chat] EXTERNAL_GEMINI_FAILED: Gemini API error: 503"
    """
    if isinstance(error, HealthGuardError):
        message = f"{error.code.value}: {error.message}"
    else:
        message = str(error)

    if context:
        message = f"[{context}] {message}"

    logger.error(message, exc_info=include_traceback)


async def healthguard_error_handler(request: Request, exc: HealthGuardError) -> JSONResponse:
    """Render a HealthGuardError raised inside a route."""
    return JSONResponse(status_code=http_status_for(exc), content=error_response(exc))


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render anything else as a generic 500 without leaking the message."""
    log_error(_logger, exc, context=f"{request.method} {request.url.path}")
    return JSONResponse(status_code=http_status_for(exc), content=error_response(exc))


def register_exception_handlers(app: FastAPI) -> None:
    """Attach HealthGuard exception handlers to an app."""
    app.add_exception_handler(HealthGuardError, healthguard_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
