"""HTTP Basic authentication gate owned by the function registry."""

from __future__ import annotations

import base64
import binascii
import hmac
from dataclasses import dataclass
from typing import Any

from dyfunc.utils.exceptions import InvalidCredentialsError, MissingCredentialsError


def parse_basic_authorization(header: str | None) -> tuple[str, str] | None:
    """Decode an ``Authorization: Basic ...`` header into (username, password)."""
    if not header:
        return None
    scheme, _, encoded = header.strip().partition(" ")
    if scheme.lower() != "basic" or not encoded:
        return None
    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return username, password


def encode_basic_authorization(username: str, password: str) -> str:
    """Build the ``Authorization`` header value for the given credentials."""
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


@dataclass(slots=True)
class BasicAuthGate:
    """Single username/password pair checked against HTTP Basic credentials.

    The gate is open while either field is empty: an unconfigured gateway
    accepts every request.
    """

    username: str = ""
    password: str = ""

    @property
    def enabled(self) -> bool:
        return bool(self.username) and bool(self.password)

    def configure(self, username: str, password: str) -> None:
        self.username = username or ""
        self.password = password or ""

    def check_header(self, authorization: str | None) -> bool:
        """Return True when authorized; raise the specific failure otherwise."""
        if not self.enabled:
            return True
        credentials = parse_basic_authorization(authorization)
        if credentials is None:
            raise MissingCredentialsError()
        username, password = credentials
        user_ok = hmac.compare_digest(username.encode("utf-8"), self.username.encode("utf-8"))
        pass_ok = hmac.compare_digest(password.encode("utf-8"), self.password.encode("utf-8"))
        if user_ok and pass_ok:
            return True
        raise InvalidCredentialsError()

    def check_request(self, request: Any) -> bool:
        """Check a request object exposing a ``headers`` mapping."""
        if not self.enabled:
            return True
        headers = getattr(request, "headers", None) or {}
        return self.check_header(headers.get("Authorization") or headers.get("authorization"))
