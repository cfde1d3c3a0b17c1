"""Batch decoding, concurrent dispatch and result aggregation."""

from dyfunc.dispatch.batch import DUPLICATE_POLICIES, BatchDispatcher
from dyfunc.dispatch.error_boundary import classify_http_status, error_headers
from dyfunc.dispatch.models import CallRequest, CallResult, resolve_identifier

__all__ = [
    "BatchDispatcher",
    "DUPLICATE_POLICIES",
    "CallRequest",
    "CallResult",
    "resolve_identifier",
    "classify_http_status",
    "error_headers",
]
