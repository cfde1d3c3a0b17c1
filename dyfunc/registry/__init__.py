"""Function registry: named callables, argument coercion, middleware and auth."""

from dyfunc.registry.auth import BasicAuthGate
from dyfunc.registry.coercion import coerce, is_assignable, zero_value
from dyfunc.registry.context import CallContext
from dyfunc.registry.registry import EntryData, FunctionRegistry, Middleware
from dyfunc.registry.signature import RegisteredFunction
from dyfunc.registry.types import (
    Float32,
    Float64,
    Int8,
    Int16,
    Int32,
    Int64,
    UInt8,
    UInt16,
    UInt32,
    UInt64,
)

__all__ = [
    "BasicAuthGate",
    "CallContext",
    "EntryData",
    "FunctionRegistry",
    "Middleware",
    "RegisteredFunction",
    "coerce",
    "is_assignable",
    "zero_value",
    "Float32",
    "Float64",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "UInt8",
    "UInt16",
    "UInt32",
    "UInt64",
]
