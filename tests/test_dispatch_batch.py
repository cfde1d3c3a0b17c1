"""Tests for BatchDispatcher: decoding, correlation, fan-out and encoding."""

import json
import sys
import threading
import time
from types import SimpleNamespace

import pytest
from pydantic import BaseModel

from dyfunc.config.schema import DispatchConfig
from dyfunc.dispatch.batch import BatchDispatcher
from dyfunc.registry import CallContext, EntryData, Int8
from dyfunc.registry.auth import encode_basic_authorization
from dyfunc.utils.exceptions import (
    DuplicateIdentifierError,
    InvalidCredentialsError,
    MalformedBatchError,
    MiddlewareRejectedError,
    MissingCredentialsError,
    ResponseEncodingError,
)


class Point(BaseModel):
    x: int
    y: int


@pytest.fixture
def dispatcher(registry):
    d = BatchDispatcher(registry)
    yield d
    d.shutdown()


async def _run(dispatcher, batch, request=None):
    body = batch if isinstance(batch, (bytes, str)) else json.dumps(batch)
    return json.loads(await dispatcher.dispatch(body, request))


@pytest.mark.asyncio
async def test_dispatch_sum(dispatcher):
    out = await _run(dispatcher, [{"id": "a", "func": "sum", "args": [2, 3]}])
    assert out == {"a": {"data": [5]}}


@pytest.mark.asyncio
async def test_dispatch_missing_function_uses_position(dispatcher):
    out = await _run(dispatcher, [{"func": "missing", "args": []}])
    assert out == {"0": {"error": "function missing not found"}}


@pytest.mark.asyncio
async def test_dispatch_conversion_error(dispatcher):
    out = await _run(dispatcher, [{"id": 1, "func": "sum", "args": ["x", 3]}])
    assert list(out) == ["1"]
    assert out["1"]["error"].startswith("argument 1 conversion error: ")


@pytest.mark.asyncio
async def test_dispatch_arity_error(dispatcher):
    out = await _run(dispatcher, [{"id": "a", "func": "sum", "args": [1]}])
    assert out == {"a": {"error": "expected 2 arguments, got 1"}}


@pytest.mark.asyncio
async def test_failures_are_isolated(registry, dispatcher):
    def boom() -> int:
        raise RuntimeError("boom")

    registry.register("boom", boom)
    out = await _run(
        dispatcher,
        [
            {"id": "bad", "func": "boom"},
            {"id": "good", "func": "sum", "args": [1, 1]},
            {"id": "missing", "func": "nope"},
        ],
    )
    assert out == {
        "bad": {"error": "boom"},
        "good": {"data": [2]},
        "missing": {"error": "function nope not found"},
    }


@pytest.mark.asyncio
async def test_user_error_message_is_sanitized(registry, dispatcher):
    def leak() -> int:
        raise RuntimeError("login failed: password=hunter2")

    registry.register("leak", leak)
    out = await _run(dispatcher, [{"id": "x", "func": "leak"}])
    assert "hunter2" not in out["x"]["error"]
    assert "[REDACTED]" in out["x"]["error"]


@pytest.mark.asyncio
async def test_null_and_missing_args_mean_no_arguments(registry, dispatcher):
    registry.register("zero", lambda: 0)
    out = await _run(
        dispatcher,
        [{"id": "a", "func": "zero"}, {"id": "b", "func": "zero", "args": None}],
    )
    assert out == {"a": {"data": [0]}, "b": {"data": [0]}}


@pytest.mark.asyncio
async def test_null_argument_becomes_zero_value(dispatcher):
    out = await _run(dispatcher, [{"id": "a", "func": "sum", "args": [None, 4]}])
    assert out == {"a": {"data": [4]}}


@pytest.mark.asyncio
async def test_empty_batch(dispatcher):
    assert await dispatcher.dispatch(b"[]") == b"{}"


@pytest.mark.asyncio
async def test_result_shapes(registry, dispatcher):
    def divide(a: int, b: int) -> tuple[int, int]:
        return divmod(a, b)

    def forget(a: int) -> None:
        return None

    def shift(p: Point, dx: int) -> Point:
        return Point(x=p.x + dx, y=p.y)

    def wrap(x: Int8) -> int:
        return x

    registry.register("divide", divide)
    registry.register("forget", forget)
    registry.register("shift", shift)
    registry.register("wrap", wrap)
    out = await _run(
        dispatcher,
        [
            {"id": "d", "func": "divide", "args": [17, 5]},
            {"id": "f", "func": "forget", "args": [1]},
            {"id": "s", "func": "shift", "args": [{"x": 1, "y": 2}, 2]},
            {"id": "w", "func": "wrap", "args": [200]},
        ],
    )
    assert out == {
        "d": {"data": [3, 2]},
        "f": {"data": []},
        "s": {"data": [{"x": 3, "y": 2}]},
        "w": {"data": [-56]},
    }


@pytest.mark.asyncio
async def test_non_string_identifiers(dispatcher):
    out = await _run(
        dispatcher,
        [
            {"id": 7, "func": "sum", "args": [1, 2]},
            {"id": True, "func": "sum", "args": [2, 2]},
            {"id": {"k": [1]}, "func": "sum", "args": [0, 0]},
        ],
    )
    assert out == {"7": {"data": [3]}, "true": {"data": [4]}, '{"k":[1]}': {"data": [0]}}


@pytest.mark.asyncio
async def test_numeric_identifiers_keep_their_wire_text(dispatcher):
    out = await _run(
        dispatcher,
        b'[{"id":1e3,"func":"sum","args":[1,2]},{"id":1.50,"func":"sum","args":[2,2]},'
        b'{"id":-0,"func":"sum","args":[0,0]},{"id":"1e3x","func":"sum","args":[1,1]}]',
    )
    assert out == {
        "1e3": {"data": [3]},
        "1.50": {"data": [4]},
        "-0": {"data": [0]},
        "1e3x": {"data": [2]},
    }


@pytest.mark.asyncio
async def test_numeric_identifier_duplicates_compare_wire_text(dispatcher):
    # 1e3 and 1000.0 are the same number but different identifiers.
    out = await _run(dispatcher, b'[{"id":1e3,"func":"sum","args":[1,1]},{"id":1000.0,"func":"sum","args":[2,2]}]')
    assert out == {"1e3": {"data": [2]}, "1000.0": {"data": [4]}}


@pytest.mark.asyncio
async def test_missing_func_fails_only_its_item(dispatcher):
    out = await _run(
        dispatcher,
        [{"id": "a", "args": []}, {"id": "b", "func": None}, {"id": "c", "func": "sum", "args": [1, 2]}],
    )
    assert out == {
        "a": {"error": "function  not found"},
        "b": {"error": "function  not found"},
        "c": {"data": [3]},
    }


@pytest.mark.asyncio
async def test_system_exit_in_a_function_stays_in_its_item(registry, dispatcher):
    def bail() -> None:
        sys.exit(3)

    def interrupt() -> None:
        raise KeyboardInterrupt

    registry.register("bail", bail)
    registry.register("interrupt", interrupt)
    out = await _run(
        dispatcher,
        [
            {"id": "a", "func": "bail"},
            {"id": "k", "func": "interrupt"},
            {"id": "b", "func": "sum", "args": [1, 2]},
        ],
    )
    assert out == {"a": {"error": "3"}, "k": {"error": "KeyboardInterrupt"}, "b": {"data": [3]}}

    # The pool and loop survive for the next batch.
    assert await _run(dispatcher, [{"id": "again", "func": "sum", "args": [2, 2]}]) == {"again": {"data": [4]}}


@pytest.mark.asyncio
async def test_calls_run_concurrently(registry, dispatcher):
    barrier = threading.Barrier(3, timeout=5)

    def meet() -> bool:
        barrier.wait()
        return True

    registry.register("meet", meet)
    out = await _run(dispatcher, [{"func": "meet"}, {"func": "meet"}, {"func": "meet"}])
    assert out == {"0": {"data": [True]}, "1": {"data": [True]}, "2": {"data": [True]}}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [b"{not json", b'{"func": "sum"}', b'[{"func": 3}]', b'[{"func": "sum", "args": 5}]', b""],
)
async def test_malformed_batches_are_rejected(dispatcher, body):
    with pytest.raises(MalformedBatchError) as exc_info:
        await dispatcher.dispatch(body)
    assert exc_info.value.message.startswith("invalid json input: ")


@pytest.mark.asyncio
async def test_duplicate_ids_rejected_before_any_call(registry, dispatcher):
    calls = []
    registry.register("track", lambda: calls.append(1))
    with pytest.raises(DuplicateIdentifierError) as exc_info:
        await _run(
            dispatcher,
            [{"id": "a", "func": "track"}, {"id": "a", "func": "track"}, {"func": "track"}, {"id": 2, "func": "track"}],
        )
    assert exc_info.value.details == {"identifiers": ["a", "2"]}
    assert calls == []


@pytest.mark.asyncio
async def test_duplicate_ids_last_wins(registry):
    dispatcher = BatchDispatcher(registry, duplicate_ids="last_wins")
    try:
        out = await _run(
            dispatcher,
            [
                {"id": "a", "func": "sum", "args": [1, 1]},
                {"id": "a", "func": "sum", "args": [2, 2]},
            ],
        )
    finally:
        dispatcher.shutdown()
    assert out == {"a": {"data": [4]}}


def test_unknown_duplicate_policy(registry):
    with pytest.raises(ValueError):
        BatchDispatcher(registry, duplicate_ids="first_wins")


def test_from_config(registry):
    dispatcher = BatchDispatcher.from_config(
        registry, DispatchConfig(max_workers=2, call_timeout_seconds=1.5, duplicate_ids="last_wins")
    )
    try:
        assert dispatcher.registry is registry
        assert dispatcher.correlate(dispatcher.decode('[{"id":"a","func":"x"},{"id":"a","func":"x"}]')) == ["a", "a"]
    finally:
        dispatcher.shutdown()


@pytest.mark.asyncio
async def test_unauthenticated_batch_is_rejected(registry, dispatcher):
    calls = []
    registry.register("track", lambda: calls.append(1))
    registry.set_basic_auth("admin", "secret")
    body = [{"id": "a", "func": "track"}]

    with pytest.raises(MissingCredentialsError):
        await _run(dispatcher, body, SimpleNamespace(headers={}))
    with pytest.raises(InvalidCredentialsError):
        await _run(dispatcher, body, SimpleNamespace(headers={"Authorization": encode_basic_authorization("admin", "x")}))
    assert calls == []

    ok = SimpleNamespace(headers={"Authorization": encode_basic_authorization("admin", "secret")})
    assert await _run(dispatcher, body, ok) == {"a": {"data": [None]}}
    assert calls == [1]


@pytest.mark.asyncio
async def test_middleware_rejects_whole_batch(registry, dispatcher):
    calls = []
    registry.register("track", lambda: calls.append(1))

    def no_track(entry: EntryData) -> None:
        if any(call.func == "track" for call in entry.batch):
            raise PermissionError("track is not allowed")

    registry.use(no_track)
    with pytest.raises(MiddlewareRejectedError, match="track is not allowed"):
        await _run(dispatcher, [{"func": "sum", "args": [1, 2]}, {"func": "track"}])
    assert calls == []
    assert await _run(dispatcher, [{"func": "sum", "args": [1, 2]}]) == {"0": {"data": [3]}}


@pytest.mark.asyncio
async def test_middleware_sees_request(registry, dispatcher):
    seen = []
    registry.use(lambda entry: seen.append(entry.request))
    request = SimpleNamespace(headers={})
    await _run(dispatcher, [{"func": "sum", "args": [1, 2]}], request)
    assert seen == [request]


@pytest.mark.asyncio
async def test_unencodable_result_fails_whole_batch(registry, dispatcher):
    registry.register("opaque", lambda: object())
    with pytest.raises(ResponseEncodingError):
        await dispatcher.dispatch(b'[{"func": "opaque"}]')


@pytest.mark.asyncio
async def test_context_carries_identifier_and_request(registry, dispatcher):
    def whoami(ctx: CallContext) -> list:
        return [ctx.call_id, ctx.request.tag]

    registry.register("whoami", whoami)
    out = await _run(dispatcher, [{"id": "me", "func": "whoami"}], SimpleNamespace(headers={}, tag="t"))
    assert out == {"me": {"data": [["me", "t"]]}}


@pytest.mark.slow
@pytest.mark.asyncio
async def test_call_timeout_cancels_context(registry):
    contexts = []

    def stubborn(ctx: CallContext) -> str:
        contexts.append(ctx)
        time.sleep(0.5)
        return "late"

    registry.register("stubborn", stubborn)
    dispatcher = BatchDispatcher(registry, call_timeout_seconds=0.1)
    try:
        out = await _run(
            dispatcher,
            [{"id": "t", "func": "stubborn"}, {"id": "s", "func": "sum", "args": [1, 2]}],
        )
    finally:
        dispatcher.shutdown()
    assert out == {"t": {"error": "call timed out after 0.1s"}, "s": {"data": [3]}}
    assert contexts[0].cancelled



@pytest.mark.slow
@pytest.mark.asyncio
async def test_call_timeout_starts_when_the_call_runs(registry):
    deadlines = []

    def nap(ctx: CallContext) -> float:
        deadlines.append(ctx.remaining())
        time.sleep(0.2)
        return 0.2

    registry.register("nap", nap)
    # With one worker, b waits 0.2s in the queue and then runs for 0.2s, past 0.3s in total.
    dispatcher = BatchDispatcher(registry, max_workers=1, call_timeout_seconds=0.3)
    try:
        out = await _run(dispatcher, [{"id": "a", "func": "nap"}, {"id": "b", "func": "nap"}])
    finally:
        dispatcher.shutdown()
    assert out == {"a": {"data": [0.2]}, "b": {"data": [0.2]}}
    assert all(remaining > 0.25 for remaining in deadlines)
