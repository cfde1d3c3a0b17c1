"""Utility functions for dyfunc."""

from dyfunc.utils.exceptions import (
    DyfuncError,
    ErrorCategory,
    MalformedBatchError,
    DuplicateIdentifierError,
    UnauthorizedError,
    MissingCredentialsError,
    InvalidCredentialsError,
    MiddlewareRejectedError,
    ResponseEncodingError,
    NotAFunctionError,
    FunctionNotFoundError,
    ArityMismatchError,
    CoercionError,
    ArgumentConversionError,
    TypeMismatchError,
    CallTimeoutError,
    classify_exception,
    format_call_error,
    sanitize_error_message,
)

__all__ = [
    "DyfuncError",
    "ErrorCategory",
    "MalformedBatchError",
    "DuplicateIdentifierError",
    "UnauthorizedError",
    "MissingCredentialsError",
    "InvalidCredentialsError",
    "MiddlewareRejectedError",
    "ResponseEncodingError",
    "NotAFunctionError",
    "FunctionNotFoundError",
    "ArityMismatchError",
    "CoercionError",
    "ArgumentConversionError",
    "TypeMismatchError",
    "CallTimeoutError",
    "classify_exception",
    "format_call_error",
    "sanitize_error_message",
]
