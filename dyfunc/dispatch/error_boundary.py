"""Error-boundary helpers: per-call error results and whole-batch status codes."""

from __future__ import annotations

from typing import Any, Callable

from dyfunc.dispatch.models import CallResult
from dyfunc.utils.exceptions import (
    DyfuncError,
    ErrorCategory,
    classify_exception,
    format_call_error,
    sanitize_error_message,
)


def dyfunc_error_result(
    *,
    identifier: str,
    func: str,
    exc: DyfuncError,
    log_warning: Callable[..., None],
) -> CallResult:
    """Map a registry/dispatch error to the item's error result."""
    log_warning("Call {} ({}) failed with {}: {}", identifier, func, exc.code, exc.message)
    return CallResult.failed(identifier, exc.message)


def unhandled_exception_result(
    *,
    identifier: str,
    func: str,
    exc: BaseException,
    log_exception: Callable[..., None],
) -> CallResult:
    """Map an exception raised by the called function to the item's error result."""
    code, _category = classify_exception(exc)
    log_exception(
        "Call {} ({}) raised [{}]: {}", identifier, func, code, sanitize_error_message(str(exc))
    )
    return CallResult.failed(identifier, format_call_error(exc))


_CATEGORY_TO_STATUS = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.UNAUTHORIZED: 401,
    ErrorCategory.PERMISSION: 403,
    ErrorCategory.TIMEOUT: 504,
    ErrorCategory.FATAL: 500,
}


def classify_http_status(exc: Exception) -> int:
    """Map a whole-batch failure to its HTTP status code."""
    if isinstance(exc, DyfuncError):
        return _CATEGORY_TO_STATUS.get(exc.category, 500)
    return 500


def error_headers(exc: Exception) -> dict[str, Any] | None:
    """Extra response headers for a whole-batch failure."""
    if isinstance(exc, DyfuncError) and exc.category is ErrorCategory.UNAUTHORIZED:
        return {"WWW-Authenticate": 'Basic realm="dyfunc"'}
    return None
