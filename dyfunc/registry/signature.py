"""Call shapes: the uniform adapter wrapped around a callable at registration.

Signature inspection happens once, when a function is registered. The result
is a ``RegisteredFunction`` exposing ``invoke(ctx, args) -> list`` so the call
path never looks at the native signature again.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import typing
from dataclasses import dataclass
from typing import Any, Callable, get_args, get_origin

from dyfunc.registry.coercion import NoneType
from dyfunc.registry.context import CallContext
from dyfunc.utils.exceptions import NotAFunctionError

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


@dataclass(frozen=True, slots=True)
class RegisteredFunction:
    """A named callable with its parameter targets and return arity."""

    name: str
    func: Callable[..., Any]
    param_types: tuple[Any, ...]
    takes_context: bool
    returns: Any

    @classmethod
    def from_callable(cls, name: str, func: Any) -> RegisteredFunction:
        if not callable(func):
            raise NotAFunctionError(name)
        try:
            sig = inspect.signature(func)
        except (TypeError, ValueError) as exc:
            raise NotAFunctionError(name, reason=f"cannot inspect signature of {name}: {exc}") from exc
        hints = _resolve_hints(name, func)

        params: list[Any] = []
        for param in sig.parameters.values():
            if param.kind in _POSITIONAL:
                params.append(hints.get(param.name, param.annotation))
            elif param.kind is inspect.Parameter.KEYWORD_ONLY and param.default is inspect.Parameter.empty:
                raise NotAFunctionError(
                    name, reason=f"keyword-only parameter {param.name} of {name} has no default"
                )

        takes_context = bool(params) and _is_context_type(params[0])
        if takes_context:
            params = params[1:]

        returns = hints.get("return", sig.return_annotation)
        if isinstance(func, type):
            returns = func
        return cls(
            name=name,
            func=func,
            param_types=tuple(params),
            takes_context=takes_context,
            returns=returns,
        )

    @property
    def arity(self) -> int:
        """Number of wire arguments the function expects."""
        return len(self.param_types)

    @property
    def return_count(self) -> int:
        """Declared number of results."""
        if self.returns is None or self.returns is NoneType:
            return 0
        shape = _fixed_tuple_shape(self.returns)
        if shape is not None:
            return len(shape)
        return 1

    def invoke(self, ctx: CallContext, args: list[Any]) -> list[Any]:
        """Call the function with already-coerced arguments and capture its results."""
        bound = [ctx, *args] if self.takes_context else list(args)
        result = self.func(*bound)
        if inspect.isawaitable(result):
            result = asyncio.run(_resolve(result))
        return self.capture(result)

    def capture(self, value: Any) -> list[Any]:
        """Spread a return value into the result sequence, in declaration order."""
        count = self.return_count
        if count == 0:
            return []
        if _fixed_tuple_shape(self.returns) is not None:
            return list(value)
        return [value]


async def _resolve(awaitable: Any) -> Any:
    return await awaitable


def _resolve_hints(name: str, func: Any) -> dict[str, Any]:
    target = func
    if isinstance(func, functools.partial):
        target = func.func
    elif isinstance(func, type):
        target = func.__init__
    elif not (inspect.isfunction(func) or inspect.ismethod(func) or inspect.isbuiltin(func)):
        target = type(func).__call__
    try:
        return typing.get_type_hints(target, include_extras=True)
    except (NameError, TypeError) as exc:
        raise NotAFunctionError(name, reason=f"cannot resolve annotations of {name}: {exc}") from exc


def _is_context_type(annotation: Any) -> bool:
    return isinstance(annotation, type) and issubclass(annotation, CallContext)


def _fixed_tuple_shape(annotation: Any) -> tuple[Any, ...] | None:
    if get_origin(annotation) is typing.Annotated:
        annotation = get_args(annotation)[0]
    if get_origin(annotation) is not tuple:
        return None
    args = get_args(annotation)
    if Ellipsis in args:
        return None
    return args
