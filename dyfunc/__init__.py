"""dyfunc - dynamic function-call gateway."""

__version__ = "0.1.0"
__logo__ = "λ"

from dyfunc.registry import CallContext, FunctionRegistry  # noqa: E402

__all__ = ["__version__", "__logo__", "CallContext", "FunctionRegistry"]
