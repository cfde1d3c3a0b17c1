"""Concurrent batch execution against the function registry.

A batch moves through decode → authenticate → middlewares → dispatch →
aggregate → encode. Anything failing before dispatch rejects the whole batch
with a single error; after that every call is an independent unit on the
dispatcher's thread pool and fails on its own.
"""

from __future__ import annotations

import asyncio
import json
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from loguru import logger
from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError, to_jsonable_python

from dyfunc.config.schema import DispatchConfig
from dyfunc.dispatch.error_boundary import dyfunc_error_result, unhandled_exception_result
from dyfunc.dispatch.models import CallRequest, CallResult
from dyfunc.registry.context import CallContext
from dyfunc.registry.registry import FunctionRegistry
from dyfunc.utils.exceptions import (
    CallTimeoutError,
    DuplicateIdentifierError,
    DyfuncError,
    MalformedBatchError,
    ResponseEncodingError,
)

DUPLICATE_POLICIES = ("reject", "last_wins")

_BATCH_ADAPTER = TypeAdapter(list[CallRequest])


class BatchDispatcher:
    """Runs batches of call requests against a ``FunctionRegistry``."""

    def __init__(
        self,
        registry: FunctionRegistry,
        *,
        max_workers: int | None = None,
        call_timeout_seconds: float | None = None,
        duplicate_ids: str = "reject",
    ) -> None:
        if duplicate_ids not in DUPLICATE_POLICIES:
            raise ValueError(f"duplicate_ids must be one of {DUPLICATE_POLICIES}, got {duplicate_ids!r}")
        self._registry = registry
        self._call_timeout = call_timeout_seconds
        self._duplicate_ids = duplicate_ids
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="dyfunc-call")

    @classmethod
    def from_config(cls, registry: FunctionRegistry, config: DispatchConfig) -> BatchDispatcher:
        return cls(
            registry,
            max_workers=config.max_workers,
            call_timeout_seconds=config.call_timeout_seconds,
            duplicate_ids=config.duplicate_ids,
        )

    @property
    def registry(self) -> FunctionRegistry:
        return self._registry

    async def dispatch(self, body: bytes | str, request: Any = None) -> bytes:
        """Process one wire batch end to end and return the encoded response body."""
        calls = self.decode(body)
        identifiers = self.correlate(calls)
        self._registry.check_authentication(request)

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(self._executor, self._registry.invoke_middlewares, calls, request)

        results = await self.execute(calls, identifiers, request=request)
        return self.encode(results)

    def decode(self, body: bytes | str) -> list[CallRequest]:
        """Decode a JSON array of call requests."""
        try:
            calls = _BATCH_ADAPTER.validate_json(body)
        except ValidationError as exc:
            raise MalformedBatchError(_describe(exc)) from exc
        if any(_is_number(call.id) for call in calls):
            _keep_number_literals(body, calls)
        return calls

    def correlate(self, calls: list[CallRequest]) -> list[str]:
        """Resolve each request's identifier and apply the duplicate-id policy."""
        identifiers = [call.identifier(position) for position, call in enumerate(calls)]
        if self._duplicate_ids == "reject":
            seen: set[str] = set()
            duplicates: list[str] = []
            for identifier in identifiers:
                if identifier in seen and identifier not in duplicates:
                    duplicates.append(identifier)
                seen.add(identifier)
            if duplicates:
                raise DuplicateIdentifierError(duplicates)
        return identifiers

    async def execute(
        self,
        calls: list[CallRequest],
        identifiers: list[str] | None = None,
        *,
        request: Any = None,
    ) -> dict[str, CallResult]:
        """Run every call concurrently and collect results keyed by identifier."""
        if identifiers is None:
            identifiers = self.correlate(calls)
        logger.debug("Dispatching batch of {} calls", len(calls))
        results = await asyncio.gather(
            *(self._run_unit(call, identifier, request) for call, identifier in zip(calls, identifiers))
        )
        return self.aggregate(results)

    @staticmethod
    def aggregate(results: list[CallResult]) -> dict[str, CallResult]:
        """Build the identifier mapping; for repeated identifiers the later request wins."""
        return {result.id: result for result in results}

    @staticmethod
    def encode(results: dict[str, CallResult]) -> bytes:
        payload = {identifier: result.to_dict() for identifier, result in results.items()}
        try:
            return json.dumps(
                to_jsonable_python(payload), allow_nan=False, separators=(",", ":")
            ).encode("utf-8")
        except (PydanticSerializationError, ValueError, TypeError) as exc:
            raise ResponseEncodingError(str(exc)) from exc

    async def _run_unit(self, call: CallRequest, identifier: str, request: Any) -> CallResult:
        ctx = CallContext(call_id=identifier, request=request)
        loop = asyncio.get_running_loop()
        started = asyncio.Event()
        future = loop.run_in_executor(
            self._executor, self._call_one, ctx, call, identifier, loop, started
        )
        if self._call_timeout is None:
            return await future
        # Queue time on a saturated pool does not count against the call.
        await started.wait()
        try:
            return await asyncio.wait_for(future, timeout=self._call_timeout)
        except asyncio.TimeoutError:
            # The worker thread keeps running; cooperative functions observe ctx.cancelled.
            ctx.cancel()
            return dyfunc_error_result(
                identifier=identifier,
                func=call.func,
                exc=CallTimeoutError(call.func, self._call_timeout),
                log_warning=logger.warning,
            )

    def _call_one(
        self,
        ctx: CallContext,
        call: CallRequest,
        identifier: str,
        loop: asyncio.AbstractEventLoop,
        started: asyncio.Event,
    ) -> CallResult:
        ctx.start_deadline(self._call_timeout)
        loop.call_soon_threadsafe(started.set)
        try:
            data = self._registry.call(ctx, call.func, *call.args)
        except DyfuncError as exc:
            return dyfunc_error_result(
                identifier=identifier, func=call.func, exc=exc, log_warning=logger.warning
            )
        except BaseException as exc:
            # SystemExit and KeyboardInterrupt from a function stay inside its own result.
            return unhandled_exception_result(
                identifier=identifier, func=call.func, exc=exc, log_exception=logger.exception
            )
        return CallResult.ok(identifier, data)

    def shutdown(self, *, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


def _describe(exc: ValidationError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(p) for p in err.get("loc", ()))
    return f"{loc}: {err['msg']}" if loc else err["msg"]


class _NumberLiteral(str):
    """A JSON number kept as the text it was written with."""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _keep_number_literals(body: bytes | str, calls: list[CallRequest]) -> None:
    # Numeric ids correlate by their wire text, so 1e3 stays "1e3" rather than "1000.0".
    items = json.loads(body, parse_int=_NumberLiteral, parse_float=_NumberLiteral)
    for call, item in zip(calls, items):
        literal = item.get("id") if isinstance(item, dict) else None
        if isinstance(literal, _NumberLiteral):
            call.keep_id_literal(str(literal))
