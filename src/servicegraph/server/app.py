"""FastAPI application exposing a container over HTTP."""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request

from .. import __version__
from ..config import ServerConfig
from ..container import Container
from ..errors import DisposalError
from .routes import router

logger = logging.getLogger("servicegraph.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    container: Container = app.state.container
    config: ServerConfig = app.state.config

    result = container.validate()
    if not result.valid:
        logger.warning(f"Container graph has {len(result.errors)} problem(s): {result.errors}")
    logger.info(f"Starting servicegraph server ({len(container)} services)")

    yield

    logger.info("Shutting down servicegraph server")
    if config.dispose_on_shutdown:
        await container.dispose()


def create_app(container: Container, config: Optional[ServerConfig] = None) -> FastAPI:
    """Create FastAPI application.

    Args:
        container: Container served by the application. Handlers reach it
            through ``get_container`` and ``Inject``.
        config: Server configuration. Defaults to ``ServerConfig()``.

    Returns:
        Configured FastAPI application.
    """
    config = config or ServerConfig()

    app = FastAPI(
        title="servicegraph",
        description="Introspection API for a servicegraph container",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container
    app.state.config = config

    if config.request_scopes:
        @app.middleware("http")
        async def request_scope(request: Request, call_next):
            # One container scope per request, disposed after the response
            if container.is_disposed:
                return await call_next(request)
            scope_id = f"request-{uuid.uuid4()}"
            disposer = container.create_scope(scope_id)
            request.state.scope_id = scope_id
            try:
                return await call_next(request)
            finally:
                try:
                    await disposer()
                except DisposalError:
                    logger.exception(f"Failed to dispose {scope_id}")

    app.include_router(router)

    @app.get("/")
    async def root():
        return {
            "service": "servicegraph",
            "version": __version__,
            "docs": "/docs",
        }

    return app


def run_server(
    container: Container,
    config: Optional[ServerConfig] = None,
    host: Optional[str] = None,
    port: Optional[int] = None,
    log_level: str = "info",
):
    """Run the HTTP server.

    Args:
        container: Container to expose.
        config: Server configuration.
        host: Override host from config.
        port: Override port from config.
        log_level: Logging level.
    """
    config = config or ServerConfig()
    app = create_app(container, config)

    uvicorn.run(
        app,
        host=host or config.host,
        port=port or config.port,
        log_level=log_level,
    )
