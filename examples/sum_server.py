"""Serve a few functions on :5001/call-remote.

Run with ``python examples/sum_server.py`` or through the CLI:
``dyfunc serve --setup examples.sum_server:setup``.
"""

from dataclasses import dataclass

from dyfunc import CallContext, FunctionRegistry
from dyfunc.api import create_app, run_server
from dyfunc.registry import EntryData, Int8


@dataclass
class Point:
    x: float
    y: float


def setup(registry: FunctionRegistry) -> None:
    @registry.function("sum")
    def sum_(x: int, y: int) -> int:
        return x + y

    @registry.function()
    def divmod_(a: int, b: int) -> tuple[int, int]:
        return divmod(a, b)

    @registry.function()
    def wrap8(x: Int8) -> Int8:
        return x

    @registry.function()
    def midpoint(a: Point, b: Point) -> Point:
        return Point((a.x + b.x) / 2, (a.y + b.y) / 2)

    @registry.function()
    def whoami(ctx: CallContext) -> str:
        return ctx.call_id or ""

    def limit_batch_size(entry: EntryData) -> None:
        if len(entry.batch) > 100:
            raise ValueError("batch too large")

    registry.use(limit_batch_size)


if __name__ == "__main__":
    reg = FunctionRegistry()
    setup(reg)
    reg.set_basic_auth("admin", "secret")
    run_server(create_app(registry=reg))
