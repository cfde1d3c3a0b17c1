"""HTTP client for posting batches to a dyfunc gateway."""

from __future__ import annotations

from typing import Any, Iterable

import httpx
from loguru import logger

from dyfunc.dispatch.models import CallRequest


class GatewayResponseError(Exception):
    """The gateway answered with a non-2xx status (a whole-batch failure)."""

    def __init__(self, status_code: int, message: str, code: str | None = None):
        super().__init__(f"gateway returned {status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.code = code


class GatewayUnavailableError(Exception):
    """The request never produced a response (connect error, timeout, ...)."""


def build_payload(calls: Iterable[CallRequest | dict[str, Any]]) -> list[dict[str, Any]]:
    payload: list[dict[str, Any]] = []
    for call in calls:
        if isinstance(call, CallRequest):
            item = {"func": call.func, "args": call.args}
            if call.id is not None:
                item = {"id": call.id, **item}
            payload.append(item)
        else:
            payload.append(dict(call))
    return payload


def _raise_for_response(response: httpx.Response) -> dict[str, Any]:
    if response.is_success:
        return response.json()
    code = None
    message = response.text or response.reason_phrase
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("message") or message
        code = body.get("error")
    raise GatewayResponseError(response.status_code, message, code)


class BatchClient:
    """Synchronous client for one gateway endpoint.

    ``base_url`` is the full endpoint URL, e.g. ``http://localhost:5001/call-remote``.
    """

    def __init__(
        self,
        base_url: str,
        username: str = "",
        password: str = "",
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url
        self.username = username
        self.password = password
        self.timeout = timeout
        auth = httpx.BasicAuth(username, password) if (username or password) else None
        self._client = httpx.Client(timeout=timeout, auth=auth, transport=transport)

    def send(self, id: Any, func: str, args: list[Any] | None = None) -> dict[str, Any]:
        """Post a one-item batch and return the decoded response object."""
        return self.send_batch([{"id": id, "func": func, "args": list(args or [])}])

    def send_batch(self, calls: Iterable[CallRequest | dict[str, Any]]) -> dict[str, Any]:
        payload = build_payload(calls)
        try:
            response = self._client.post(self.base_url, json=payload)
        except httpx.RequestError as e:
            logger.error("Batch post to {} failed: {}", self.base_url, e)
            raise GatewayUnavailableError(str(e)) from e
        return _raise_for_response(response)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> BatchClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class AsyncBatchClient:
    """``BatchClient`` over ``httpx.AsyncClient``."""

    def __init__(
        self,
        base_url: str,
        username: str = "",
        password: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.username = username
        self.password = password
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            auth = httpx.BasicAuth(self.username, self.password) if (self.username or self.password) else None
            self._client = httpx.AsyncClient(timeout=self.timeout, auth=auth, transport=self._transport)
        return self._client

    async def send(self, id: Any, func: str, args: list[Any] | None = None) -> dict[str, Any]:
        return await self.send_batch([{"id": id, "func": func, "args": list(args or [])}])

    async def send_batch(self, calls: Iterable[CallRequest | dict[str, Any]]) -> dict[str, Any]:
        client = await self._get_client()
        payload = build_payload(calls)
        try:
            response = await client.post(self.base_url, json=payload)
        except httpx.RequestError as e:
            logger.error("Batch post to {} failed: {}", self.base_url, e)
            raise GatewayUnavailableError(str(e)) from e
        return _raise_for_response(response)

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> AsyncBatchClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
