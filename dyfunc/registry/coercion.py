"""Type coercion from decoded JSON values to registered parameter types.

The wire format is weakly typed: numbers arrive as ``int`` or ``float`` with no
width, objects as ``dict`` and arrays as ``list``. ``coerce`` turns such a value
into the concrete type a registered function declares:

- ``None`` becomes the target's zero value (``0``, ``""``, ``[]``, ``None`` for
  optional targets, a default-constructed model);
- values that already have the target type pass through;
- numbers convert to any numeric target, truncating toward zero for integers
  and wrapping for fixed-width targets (see ``dyfunc.registry.types``);
- ``str`` and ``bool`` targets only accept values of exactly that type;
- everything else goes through JSON text and a strict pydantic ``TypeAdapter``.
"""

from __future__ import annotations

import functools
import inspect
import math
import types
from typing import Annotated, Any, Literal, Union, get_args, get_origin

from pydantic import TypeAdapter, ValidationError
from pydantic.errors import PydanticSchemaGenerationError, PydanticUserError
from pydantic_core import PydanticSerializationError, to_json
from typing_extensions import is_typeddict

from dyfunc.registry.types import FloatWidth, IntWidth
from dyfunc.utils.exceptions import CoercionError

NoneType = type(None)

_CONTAINER_ORIGINS = (list, dict, set, frozenset, tuple)


def type_name(target: Any) -> str:
    """Human-readable name of a target type for error messages."""
    if target is inspect.Parameter.empty:
        return "Any"
    base, metadata = _unwrap_annotated(target)
    width = _width_of(metadata)
    if isinstance(width, IntWidth):
        return f"{'int' if width.signed else 'uint'}{width.bits}"
    if isinstance(width, FloatWidth):
        return f"float{width.bits}"
    if isinstance(base, type) and get_origin(base) is None:
        return base.__name__
    return repr(base).replace("typing.", "")


def json_kind(value: Any) -> str:
    """JSON kind of a decoded value, as named in conversion errors."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def coerce(value: Any, target: Any) -> Any:
    """Convert ``value`` into ``target``. Raises ``CoercionError``."""
    if target is Any or target is inspect.Parameter.empty:
        return value

    optional, inner = split_optional(target)
    if optional:
        # Optional targets are the reference kind: null is the absent reference.
        return None if value is None else coerce(value, inner)

    if value is None:
        return zero_value(target)

    base, metadata = _unwrap_annotated(target)
    if base is int or base is float:
        return _coerce_number(value, base, _width_of(metadata), target)
    if base is str or base is bool:
        if isinstance(value, base):
            return value
        raise _unmarshal_error(value, target)
    if get_origin(base) is None and _is_instance(value, base):
        return value
    return _coerce_structured(value, target)


def zero_value(target: Any) -> Any:
    """Zero value of ``target``, used when the wire value is null."""
    if target is Any or target is inspect.Parameter.empty:
        return None
    optional, _ = split_optional(target)
    if optional:
        return None
    base, _ = _unwrap_annotated(target)
    if base in (int, float, str, bool):
        return base()
    origin = get_origin(base) or base
    if origin in _CONTAINER_ORIGINS:
        return origin()
    if isinstance(base, type):
        # Models and dataclasses whose fields all have defaults.
        return _coerce_structured({}, target)
    raise CoercionError(type_name(target), f"no zero value for {type_name(target)}")


def is_assignable(value: Any, target: Any) -> bool:
    """Whether an already-coerced ``value`` can be bound to ``target``."""
    if target is Any or target is inspect.Parameter.empty:
        return True
    optional, inner = split_optional(target)
    if optional:
        return value is None or is_assignable(value, inner)

    base, metadata = _unwrap_annotated(target)
    origin = get_origin(base)
    if origin is Union or origin is types.UnionType:
        return any(is_assignable(value, member) for member in get_args(base))
    if origin is Literal:
        return value in get_args(base)

    check = origin or base
    if is_typeddict(check):
        return isinstance(value, dict)
    if not isinstance(check, type):
        return True
    if check in (int, float) and isinstance(value, bool):
        return False
    if not _is_instance(value, check):
        return False
    width = _width_of(metadata)
    if width is not None:
        return width.contains(value)
    return True


def split_optional(target: Any) -> tuple[bool, Any]:
    """Split ``X | None`` into ``(True, X)``; other targets give ``(False, target)``."""
    origin = get_origin(target)
    if origin is Union or origin is types.UnionType:
        members = get_args(target)
        if NoneType in members:
            rest = tuple(m for m in members if m is not NoneType)
            return True, rest[0] if len(rest) == 1 else Union[rest]
    return False, target


def _unwrap_annotated(target: Any) -> tuple[Any, tuple[Any, ...]]:
    if get_origin(target) is Annotated:
        args = get_args(target)
        return args[0], tuple(args[1:])
    return target, ()


def _width_of(metadata: tuple[Any, ...]) -> IntWidth | FloatWidth | None:
    for item in metadata:
        if isinstance(item, (IntWidth, FloatWidth)):
            return item
    return None


def _is_instance(value: Any, cls: Any) -> bool:
    if not isinstance(cls, type):
        return False
    try:
        return isinstance(value, cls)
    except TypeError:
        # TypedDict and non-runtime protocols refuse instance checks.
        return False


def _unmarshal_error(value: Any, target: Any) -> CoercionError:
    name = type_name(target)
    return CoercionError(
        name,
        f"failed to unmarshal argument to {name}: cannot unmarshal {json_kind(value)} into {name}",
    )


def _coerce_number(value: Any, base: type, width: IntWidth | FloatWidth | None, target: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _unmarshal_error(value, target)

    name = type_name(target)
    if base is int:
        if isinstance(value, float):
            if not math.isfinite(value):
                raise CoercionError(name, f"cannot convert {value} to {name}")
            value = int(value)
        if isinstance(width, IntWidth):
            value = width.wrap(value)
        return value

    try:
        result = float(value)
    except OverflowError as exc:
        raise CoercionError(name, f"cannot convert {value} to {name}: {exc}") from exc
    if isinstance(width, FloatWidth):
        result = width.narrow(result)
    return result


def _coerce_structured(value: Any, target: Any) -> Any:
    name = type_name(target)
    try:
        text = to_json(value)
    except PydanticSerializationError as exc:
        raise CoercionError(name, f"failed to marshal argument: {exc}") from exc

    try:
        adapter = _adapter(target)
    except (PydanticSchemaGenerationError, PydanticUserError) as exc:
        raise CoercionError(name, f"unsupported argument type {name}: {exc}") from exc

    try:
        return adapter.validate_json(text, strict=True)
    except ValidationError as exc:
        raise CoercionError(name, f"failed to unmarshal argument to {name}: {_summarize(exc)}") from exc


def _summarize(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors()[:3]:
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    if exc.error_count() > 3:
        parts.append(f"and {exc.error_count() - 3} more")
    return "; ".join(parts)


@functools.lru_cache(maxsize=512)
def _cached_adapter(target: Any) -> TypeAdapter[Any]:
    return TypeAdapter(target)


def _adapter(target: Any) -> TypeAdapter[Any]:
    try:
        hash(target)
    except TypeError:
        return TypeAdapter(target)
    return _cached_adapter(target)
