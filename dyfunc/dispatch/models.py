"""Wire models for batch calls."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, StrictStr, field_validator


class CallRequest(BaseModel):
    """One item of a batch: ``{"id": ..., "func": "name", "args": [...]}``.

    A missing or null ``func`` is the empty name. Unless something is registered
    under "", that item fails on its own with "function  not found".
    """

    model_config = ConfigDict(extra="ignore")

    id: Any = None
    func: StrictStr = ""
    args: list[Any] = Field(default_factory=list)

    _id_literal: str | None = PrivateAttr(default=None)

    @field_validator("func", mode="before")
    @classmethod
    def _null_func(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("args", mode="before")
    @classmethod
    def _null_args(cls, value: Any) -> Any:
        return [] if value is None else value

    def keep_id_literal(self, literal: str) -> None:
        """Remember the id as written on the wire, e.g. ``1e3`` or ``1.50``."""
        self._id_literal = literal

    def identifier(self, position: int) -> str:
        if self._id_literal is not None:
            return self._id_literal
        return resolve_identifier(self.id, position)


@dataclass(slots=True)
class CallResult:
    """Outcome of one call: exactly one of ``data`` or ``error`` is set."""

    id: str
    data: list[Any] | None = None
    error: str | None = None

    @classmethod
    def ok(cls, identifier: str, data: list[Any]) -> CallResult:
        return cls(id=identifier, data=list(data))

    @classmethod
    def failed(cls, identifier: str, error: str) -> CallResult:
        return cls(id=identifier, error=error)

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        if self.error is not None:
            return {"error": self.error}
        return {"data": self.data if self.data is not None else []}


def resolve_identifier(raw_id: Any, position: int) -> str:
    """Correlation identifier of a request: its own id, or its batch position."""
    if raw_id is None:
        return str(position)
    if isinstance(raw_id, str):
        return raw_id
    if isinstance(raw_id, bool):
        return "true" if raw_id else "false"
    if isinstance(raw_id, (int, float)):
        return str(raw_id)
    return json.dumps(raw_id, separators=(",", ":"), sort_keys=True)
