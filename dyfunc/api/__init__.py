"""HTTP transport for the gateway."""

from dyfunc.api.server import create_app, run_server

__all__ = ["create_app", "run_server"]
