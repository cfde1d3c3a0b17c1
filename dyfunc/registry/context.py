"""Cancellation context bound to registered functions that declare it."""

from __future__ import annotations

import threading
import time
from typing import Any


class CallContext:
    """Caller-driven cancellation and deadline for one registered call.

    A registered function receives it when its first parameter is annotated
    ``CallContext``; the parameter does not count toward the call's arity::

        def slow_sum(ctx: CallContext, values: list[int]) -> int:
            total = 0
            for v in values:
                if ctx.cancelled:
                    break
                total += v
            return total
    """

    def __init__(
        self,
        *,
        timeout: float | None = None,
        call_id: str | None = None,
        request: Any = None,
    ) -> None:
        self._cancel = threading.Event()
        self.deadline: float | None = None
        self.start_deadline(timeout)
        self.call_id = call_id
        self.request = request

    @classmethod
    def background(cls) -> CallContext:
        """Context that is never cancelled and has no deadline."""
        return cls()

    def start_deadline(self, timeout: float | None) -> None:
        """Begin counting ``timeout`` seconds from now; None leaves the context without a deadline."""
        self.deadline = time.monotonic() + timeout if timeout is not None else None

    @property
    def cancelled(self) -> bool:
        if self._cancel.is_set():
            return True
        return self.deadline is not None and time.monotonic() >= self.deadline

    def cancel(self) -> None:
        self._cancel.set()

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None without one."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def wait(self, timeout: float | None = None) -> bool:
        """Sleep up to ``timeout`` seconds; returns True as soon as the call is cancelled."""
        limit = self.remaining()
        if timeout is not None:
            limit = timeout if limit is None else min(limit, timeout)
        self._cancel.wait(limit)
        return self.cancelled
