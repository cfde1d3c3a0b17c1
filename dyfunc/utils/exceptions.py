"""
Exception hierarchy and error handling utilities for dyfunc.

Provides:
- Custom exception classes with error codes
- Error categorization (validation, not found, unauthorized, ...)
- Safe error message formatting (no sensitive data leak)
"""

from __future__ import annotations

import asyncio
import json
import re
from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Error categories for classification."""
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    PERMISSION = "permission"
    TIMEOUT = "timeout"
    FATAL = "fatal"


class DyfuncError(Exception):
    """Base exception for all dyfunc errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        category: ErrorCategory = ErrorCategory.FATAL,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "category": self.category.value,
            "details": self.details,
        }

    def __str__(self) -> str:
        return self.message


# --- whole-batch errors ---


class MalformedBatchError(DyfuncError):
    """Batch body could not be decoded into call requests."""

    def __init__(self, cause: str):
        super().__init__(
            f"invalid json input: {cause}",
            code="MALFORMED_BATCH",
            category=ErrorCategory.VALIDATION,
        )


class DuplicateIdentifierError(DyfuncError):
    """Two requests in one batch resolve to the same correlation identifier."""

    def __init__(self, identifiers: list[str]):
        super().__init__(
            f"duplicate call identifiers: {', '.join(identifiers)}",
            code="DUPLICATE_IDENTIFIER",
            category=ErrorCategory.VALIDATION,
            details={"identifiers": identifiers},
        )


class UnauthorizedError(DyfuncError):
    """Request did not pass the basic-auth gate."""

    def __init__(self, message: str = "Unauthorized", code: str = "UNAUTHORIZED"):
        super().__init__(message, code=code, category=ErrorCategory.UNAUTHORIZED)


class MissingCredentialsError(UnauthorizedError):
    def __init__(self):
        super().__init__("Invalid authorization format", code="MISSING_CREDENTIALS")


class InvalidCredentialsError(UnauthorizedError):
    def __init__(self):
        super().__init__("Invalid username or password", code="INVALID_CREDENTIALS")


class MiddlewareRejectedError(DyfuncError):
    """A middleware refused the batch."""

    def __init__(self, message: str, middleware: str | None = None):
        details = {"middleware": middleware} if middleware else {}
        super().__init__(
            message,
            code="MIDDLEWARE_REJECTED",
            category=ErrorCategory.PERMISSION,
            details=details,
        )


class ResponseEncodingError(DyfuncError):
    """Aggregated results could not be serialized to JSON."""

    def __init__(self, cause: str):
        super().__init__(
            f"Failed to encode response: {cause}",
            code="RESPONSE_ENCODING",
            category=ErrorCategory.FATAL,
        )


# --- registry errors ---


class NotAFunctionError(DyfuncError):
    def __init__(self, name: str, reason: str = "provided value is not a function"):
        super().__init__(
            reason,
            code="NOT_A_FUNCTION",
            category=ErrorCategory.VALIDATION,
            details={"name": name},
        )


class FunctionNotFoundError(DyfuncError):
    def __init__(self, name: str):
        super().__init__(
            f"function {name} not found",
            code="FUNCTION_NOT_FOUND",
            category=ErrorCategory.NOT_FOUND,
            details={"name": name},
        )


class ArityMismatchError(DyfuncError):
    def __init__(self, expected: int, got: int):
        super().__init__(
            f"expected {expected} arguments, got {got}",
            code="ARITY_MISMATCH",
            category=ErrorCategory.VALIDATION,
            details={"expected": expected, "got": got},
        )


class CoercionError(DyfuncError):
    """A decoded JSON value cannot be converted into the target type."""

    def __init__(self, target: str, cause: str):
        super().__init__(
            cause,
            code="COERCION_ERROR",
            category=ErrorCategory.VALIDATION,
            details={"target": target},
        )
        self.target = target


class ArgumentConversionError(DyfuncError):
    def __init__(self, index: int, cause: CoercionError):
        super().__init__(
            f"argument {index} conversion error: {cause.message}",
            code="ARGUMENT_CONVERSION",
            category=ErrorCategory.VALIDATION,
            details={"argument": index, "target": cause.target},
        )
        self.index = index


class TypeMismatchError(DyfuncError):
    def __init__(self, index: int, target: str):
        super().__init__(
            f"argument {index} must be {target}",
            code="TYPE_MISMATCH",
            category=ErrorCategory.VALIDATION,
            details={"argument": index, "target": target},
        )
        self.index = index


class CallTimeoutError(DyfuncError):
    def __init__(self, name: str, timeout_seconds: float):
        super().__init__(
            f"call timed out after {timeout_seconds}s",
            code="TIMEOUT",
            category=ErrorCategory.TIMEOUT,
            details={"name": name, "timeout_seconds": timeout_seconds},
        )


_SENSITIVE_PATTERNS = [
    re.compile(r"(api[_-]?key|token|secret|password|auth)[=:]\s*['\"]?([^\s'\"]+)['\"]?", re.IGNORECASE),
    re.compile(r"basic\s+[a-zA-Z0-9+/]+=*", re.IGNORECASE),
    re.compile(r"bearer\s+[a-zA-Z0-9\-._~+/]+=*", re.IGNORECASE),
    re.compile(r"sk-[a-zA-Z0-9]{20,}"),
]


def sanitize_error_message(message: str, replacement: str = "[REDACTED]") -> str:
    """Remove sensitive information from error messages."""
    sanitized = message
    for pattern in _SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized


def classify_exception(exc: BaseException) -> tuple[str, ErrorCategory]:
    """Classify an exception and return (error_code, category)."""
    if isinstance(exc, DyfuncError):
        return exc.code, exc.category

    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return "TIMEOUT", ErrorCategory.TIMEOUT

    if isinstance(exc, PermissionError):
        return "PERMISSION_DENIED", ErrorCategory.PERMISSION

    if isinstance(exc, json.JSONDecodeError):
        return "JSON_PARSE_ERROR", ErrorCategory.VALIDATION

    if isinstance(exc, (ValueError, TypeError, KeyError)):
        return "INVALID_VALUE", ErrorCategory.VALIDATION

    if isinstance(exc, LookupError):
        return "NOT_FOUND", ErrorCategory.NOT_FOUND

    return "INTERNAL_ERROR", ErrorCategory.FATAL


def format_call_error(exc: BaseException) -> str:
    """Render the per-item error string written into a batch response."""
    if isinstance(exc, DyfuncError):
        return exc.message
    message = str(exc) or type(exc).__name__
    return sanitize_error_message(message)
