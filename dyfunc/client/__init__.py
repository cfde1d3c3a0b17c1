"""Outbound client for dyfunc gateways."""

from dyfunc.client.batch_client import (
    AsyncBatchClient,
    BatchClient,
    GatewayResponseError,
    GatewayUnavailableError,
)

__all__ = ["BatchClient", "AsyncBatchClient", "GatewayResponseError", "GatewayUnavailableError"]
