"""Function registry for dynamic call dispatch.

在整体架构中：宿主进程在启动时通过 FunctionRegistry 注册函数、中间件与 Basic 认证；
BatchDispatcher 在每个批次中并发读取注册表并按名称调用函数。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable

from loguru import logger

from dyfunc.registry.auth import BasicAuthGate
from dyfunc.registry.coercion import coerce, is_assignable, type_name
from dyfunc.registry.context import CallContext
from dyfunc.registry.rwlock import ReadWriteLock
from dyfunc.registry.signature import RegisteredFunction
from dyfunc.utils.exceptions import (
    ArgumentConversionError,
    ArityMismatchError,
    CoercionError,
    FunctionNotFoundError,
    MiddlewareRejectedError,
    TypeMismatchError,
)


@dataclass(slots=True)
class EntryData:
    """What every middleware sees: the decoded batch and the originating request."""

    batch: list[Any]
    request: Any


Middleware = Callable[[EntryData], Any]


class FunctionRegistry:
    """
    Registry of remotely callable functions.

    Calls run concurrently under the read side of a reader/writer lock, held
    for the whole call including the function body; registration, middleware
    changes and auth configuration take the write side and wait for in-flight
    calls to finish.
    """

    def __init__(self, auth: BasicAuthGate | None = None):
        self._functions: dict[str, RegisteredFunction] = {}
        self._middlewares: list[Middleware] = []
        self._auth = auth or BasicAuthGate()
        self._lock = ReadWriteLock()

    def register(self, name: str, func: Any) -> RegisteredFunction:
        """Register a callable under ``name``; a later registration replaces it."""
        entry = RegisteredFunction.from_callable(name, func)
        with self._lock.write_locked():
            replaced = name in self._functions
            self._functions[name] = entry
        if replaced:
            logger.debug("Function {} re-registered", name)
        else:
            logger.debug("Function {} registered (arity={})", name, entry.arity)
        return entry

    def function(self, name: str | None = None) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator form of ``register``; defaults to the function's own name."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self.register(name or func.__name__, func)
            return func

        return decorator

    def get(self, name: str) -> RegisteredFunction | None:
        with self._lock.read_locked():
            return self._functions.get(name)

    def has(self, name: str) -> bool:
        return self.get(name) is not None

    @property
    def names(self) -> list[str]:
        with self._lock.read_locked():
            return sorted(self._functions)

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._functions)

    def __contains__(self, name: str) -> bool:
        return self.has(name)

    def call(self, ctx: CallContext | None, name: str, *args: Any) -> list[Any]:
        """
        Call a registered function by name.

        Args:
            ctx: Cancellation context, bound to a leading ``CallContext`` parameter.
            name: Registered function name.
            *args: Decoded JSON arguments, coerced to the declared parameter types.

        Returns:
            The function's results in declaration order.

        Raises:
            FunctionNotFoundError, ArityMismatchError, ArgumentConversionError,
            TypeMismatchError, or whatever the function itself raises.
        """
        with self._lock.read_locked():
            entry = self._functions.get(name)
            if entry is None:
                raise FunctionNotFoundError(name)

            if len(args) != entry.arity:
                raise ArityMismatchError(entry.arity, len(args))

            converted: list[Any] = []
            for index, (arg, target) in enumerate(zip(args, entry.param_types), start=1):
                try:
                    value = coerce(arg, target)
                except CoercionError as exc:
                    raise ArgumentConversionError(index, exc) from exc
                if not is_assignable(value, target):
                    raise TypeMismatchError(index, type_name(target))
                converted.append(value)

            return entry.invoke(ctx or CallContext.background(), converted)

    def use(self, middleware: Middleware) -> None:
        """Append a middleware; middlewares run in the order they were added."""
        if not callable(middleware):
            raise TypeError("middleware must be callable")
        with self._lock.write_locked():
            self._middlewares.append(middleware)

    @property
    def middlewares(self) -> tuple[Middleware, ...]:
        with self._lock.read_locked():
            return tuple(self._middlewares)

    def invoke_middlewares(self, batch: Iterable[Any], request: Any) -> None:
        """Run every middleware against the whole batch; the first failure rejects it."""
        entry = EntryData(batch=list(batch), request=request)
        for middleware in self.middlewares:
            try:
                middleware(entry)
            except MiddlewareRejectedError:
                raise
            except Exception as exc:
                label = getattr(middleware, "__name__", type(middleware).__name__)
                raise MiddlewareRejectedError(str(exc) or type(exc).__name__, middleware=label) from exc

    @property
    def auth(self) -> BasicAuthGate:
        return self._auth

    def set_basic_auth(self, username: str, password: str) -> None:
        with self._lock.write_locked():
            self._auth.configure(username, password)
        if self._auth.enabled:
            logger.info("Basic auth enabled for user {}", username)
        else:
            logger.warning("Basic auth disabled: gateway accepts unauthenticated requests")

    def check_authentication(self, request: Any) -> bool:
        """True when ``request`` passes the auth gate; raises the specific failure otherwise."""
        with self._lock.read_locked():
            return self._auth.check_request(request)
