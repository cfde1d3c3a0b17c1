"""Parsing of CLI-supplied call arguments."""

from __future__ import annotations

import json
from typing import Any


def parse_value(raw: str) -> Any:
    """Parse a CLI argument as JSON if possible; fall back to the plain string.

    ``3`` becomes an int, ``[1, 2]`` a list, ``"x"`` the string x, and
    anything that is not valid JSON (``hello``) stays a string.
    """
    text = raw.strip()
    if text == "":
        return ""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return raw


def parse_args(raw_args: list[str] | None) -> list[Any]:
    return [parse_value(raw) for raw in raw_args or []]
