"""
Error codes for HealthGuard.

Provides a standardized taxonomy of error codes organized by category.
Use these codes consistently across all error responses.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Standardized error codes for HealthGuard.

    Categories:
    - VALIDATION_*: Input validation errors
    - AUTH_*: Authentication and token errors
    - NOT_FOUND_*: Resource not found errors
    - CONFLICT_*: Uniqueness violations
    - PARSE_*: Structured reply parsing errors
    - LLM_*: Language model errors
    - EXTERNAL_*: External service errors
    - INTERNAL_*: Internal/unexpected errors
    """

    # Validation errors (input checking)
    VALIDATION_MISSING_PARAM = "VALIDATION_MISSING_PARAM"

    # Authentication errors
    AUTH_REQUIRED = "AUTH_REQUIRED"
    AUTH_INVALID_TOKEN = "AUTH_INVALID_TOKEN"
    AUTH_INVALID_CREDENTIALS = "AUTH_INVALID_CREDENTIALS"

    # Not found errors (missing resources)
    NOT_FOUND_USER = "NOT_FOUND_USER"

    # Conflict errors
    CONFLICT_EMAIL_TAKEN = "CONFLICT_EMAIL_TAKEN"

    # Parse errors (structured LLM replies)
    PARSE_JSON_MISSING = "PARSE_JSON_MISSING"
    PARSE_JSON_INVALID = "PARSE_JSON_INVALID"
    PARSE_SCHEMA_MISMATCH = "PARSE_SCHEMA_MISMATCH"

    # LLM errors (model interactions)
    LLM_UNAVAILABLE = "LLM_UNAVAILABLE"
    LLM_NOT_CONFIGURED = "LLM_NOT_CONFIGURED"
    LLM_TIMEOUT = "LLM_TIMEOUT"
    LLM_RESPONSE_INVALID = "LLM_RESPONSE_INVALID"

    # External service errors
    EXTERNAL_OPENAI_FAILED = "EXTERNAL_OPENAI_FAILED"
    EXTERNAL_GEMINI_FAILED = "EXTERNAL_GEMINI_FAILED"
    EXTERNAL_NETWORK_ERROR = "EXTERNAL_NETWORK_ERROR"

    # Internal errors (unexpected failures)
    INTERNAL_UNEXPECTED = "INTERNAL_UNEXPECTED"
