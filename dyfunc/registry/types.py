"""Fixed-width numeric parameter types.

JSON numbers carry no width information, so a registered function that needs
machine-width semantics declares them with these ``Annotated`` aliases::

    def checksum(data: list[int], seed: UInt32) -> UInt32: ...

Narrowing wraps using two's complement truncation (``Int8`` receives ``200``
as ``-56``); ``Float32`` rounds to single precision and overflows to infinity.
"""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from typing import Annotated


@dataclass(frozen=True, slots=True)
class IntWidth:
    """Integer width marker used as ``Annotated`` metadata."""

    bits: int
    signed: bool = True

    @property
    def min_value(self) -> int:
        return -(1 << (self.bits - 1)) if self.signed else 0

    @property
    def max_value(self) -> int:
        return (1 << (self.bits - 1)) - 1 if self.signed else (1 << self.bits) - 1

    def wrap(self, value: int) -> int:
        value &= (1 << self.bits) - 1
        if self.signed and value > self.max_value:
            value -= 1 << self.bits
        return value

    def contains(self, value: int) -> bool:
        return self.min_value <= value <= self.max_value


@dataclass(frozen=True, slots=True)
class FloatWidth:
    """Float width marker used as ``Annotated`` metadata."""

    bits: int

    def narrow(self, value: float) -> float:
        if self.bits != 32 or not math.isfinite(value):
            return value
        try:
            return struct.unpack("<f", struct.pack("<f", value))[0]
        except OverflowError:
            return math.copysign(math.inf, value)

    def contains(self, value: float) -> bool:
        return self.narrow(value) == value or math.isnan(value)


Int8 = Annotated[int, IntWidth(8)]
Int16 = Annotated[int, IntWidth(16)]
Int32 = Annotated[int, IntWidth(32)]
Int64 = Annotated[int, IntWidth(64)]
UInt8 = Annotated[int, IntWidth(8, signed=False)]
UInt16 = Annotated[int, IntWidth(16, signed=False)]
UInt32 = Annotated[int, IntWidth(32, signed=False)]
UInt64 = Annotated[int, IntWidth(64, signed=False)]
Float32 = Annotated[float, FloatWidth(32)]
Float64 = Annotated[float, FloatWidth(64)]
