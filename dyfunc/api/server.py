"""FastAPI transport for the batch gateway.

在整体架构中：HTTP 层只负责读取请求体、把请求对象交给 BatchDispatcher，
并把整批失败映射成状态码；认证、中间件与逐项调用都在 dispatch/registry 中完成。
"""

from __future__ import annotations

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from loguru import logger

from dyfunc import __version__
from dyfunc.config.schema import Config
from dyfunc.dispatch.batch import BatchDispatcher
from dyfunc.dispatch.error_boundary import classify_http_status, error_headers
from dyfunc.registry.registry import FunctionRegistry
from dyfunc.utils.exceptions import DyfuncError, classify_exception, sanitize_error_message


def create_app(
    registry: FunctionRegistry | None = None,
    config: Config | None = None,
    dispatcher: BatchDispatcher | None = None,
) -> FastAPI:
    """Create the gateway application.

    Without an explicit registry a fresh one is built with the configured
    credentials. A dispatcher passed in is left running on shutdown; one
    created here is shut down with the app.
    """
    config = config or Config()
    if registry is None:
        registry = dispatcher.registry if dispatcher is not None else FunctionRegistry()
        registry.set_basic_auth(config.auth.username, config.auth.password)
    owns_dispatcher = dispatcher is None
    if dispatcher is None:
        dispatcher = BatchDispatcher.from_config(registry, config.dispatch)
    path = config.gateway.path

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("dyfunc gateway listening on {} with {} functions", path, len(registry))
        if not registry.auth.enabled:
            logger.warning("Basic auth is disabled; the gateway accepts unauthenticated batches")
        try:
            yield
        finally:
            if owns_dispatcher:
                dispatcher.shutdown(wait=False)
            logger.info("dyfunc gateway stopped")

    app = FastAPI(
        title="dyfunc gateway",
        description="Batch remote invocation of registered Python functions",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.registry = registry
    app.state.dispatcher = dispatcher
    app.state.config = config

    @app.exception_handler(DyfuncError)
    async def dyfunc_exception_handler(request: Request, exc: DyfuncError):
        status_code = classify_http_status(exc)
        logger.warning("Batch rejected [{}] {}: {}", status_code, exc.code, exc.message)
        return JSONResponse(status_code=status_code, content=exc.to_dict(), headers=error_headers(exc))

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        code, _category = classify_exception(exc)
        logger.exception("Unhandled exception [{}]: {}", code, sanitize_error_message(str(exc)))
        return JSONResponse(
            status_code=500,
            content={"error": "INTERNAL_ERROR", "message": "An unexpected error occurred", "code": code},
        )

    @app.post(path)
    async def call_remote(request: Request) -> Response:
        """Execute a batch of calls and return the identifier → result object."""
        body = await request.body()
        payload = await dispatcher.dispatch(body, request)
        return Response(content=payload, media_type="application/json")

    @app.get("/healthz")
    async def healthz():
        return {"status": "ok", "functions": len(registry)}

    return app


def run_server(app: FastAPI, host: str = "0.0.0.0", port: int = 5001) -> None:
    """Run the gateway with uvicorn."""
    uvicorn.run(
        app,
        host=host,
        port=port,
        timeout_keep_alive=30,
        timeout_graceful_shutdown=10,
        log_level="warning",
    )
