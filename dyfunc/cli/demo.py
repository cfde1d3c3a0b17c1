"""Built-in functions registered when ``dyfunc serve`` gets no setup hooks."""

from __future__ import annotations

from dyfunc.registry.registry import FunctionRegistry


def register_demo_functions(registry: FunctionRegistry) -> None:
    def sum_(x: int, y: int) -> int:
        return x + y

    registry.register("sum", sum_)
