from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tmb_server.app.config import ServerConfig, get_settings
from tmb_server.app.deps import BlueprintContext, build_context
from tmb_server.app.errors import BlueprintError
from tmb_server.app.jobs.router import build_router
from tmb_server.app.logging_setup import initialize_from_env
from tmb_server.app.models import HealthResponse
from tmb_server.app.routers import jobs, workspaces
from tmb_server.app.workspaces.docker_utils import DockerRuntime

logger = logging.getLogger("tangle_mcp")

SERVICE_NAME = "tangle-mcp-blueprint"


def ensure_docker_available_on_startup(settings: ServerConfig) -> DockerRuntime:
    """
    Verify Docker Engine is reachable before the API starts serving requests.
    Exits the process with a non-zero status if Docker is unavailable.
    """
    try:
        runtime = DockerRuntime.from_env(timeout=settings.docker_client_timeout)
        runtime.ping()
    except BlueprintError as e:
        logger.critical(
            "Docker is not available. The blueprint cannot start without Docker. "
            "Ensure Docker Engine is running and accessible. Details: %s",
            e,
        )
        raise SystemExit(1)
    return runtime


@asynccontextmanager
async def lifespan(app: FastAPI):
    owned: Optional[BlueprintContext] = None
    if getattr(app.state, "context", None) is None:
        log_path = initialize_from_env(service_name="tangle_mcp")
        logger.info("Blueprint logging to file: %s", log_path)
        settings = get_settings()
        runtime = ensure_docker_available_on_startup(settings)
        owned = build_context(settings, runtime)
        app.state.context = owned
    logger.info("Blueprint startup complete.")
    try:
        yield
    finally:
        if owned is not None:
            owned.runtime.close()
            app.state.context = None
        logger.info("Blueprint shutdown complete.")


async def _blueprint_error_handler(request: Request, exc: BlueprintError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("%s %s failed: %s: %s", request.method, request.url.path, type(exc).__name__, exc)
    else:
        logger.warning("%s %s rejected: %s: %s", request.method, request.url.path, type(exc).__name__, exc)
    return JSONResponse(
        status_code=exc.http_status,
        content={
            "detail": exc.message,
            "error": type(exc).__name__,
            "service_id": exc.service_id,
        },
    )


def create_app(context: Optional[BlueprintContext] = None) -> FastAPI:
    """
    Build the FastAPI app.

    With an injected context the lifespan neither configures logging nor
    connects to Docker; the caller owns the context.
    """
    settings = context.settings if context is not None else get_settings()

    app = FastAPI(
        title="Tangle MCP Blueprint",
        version=settings.service_version,
        description="Provisions and tears down per-tenant MCP server containers on demand.",
        lifespan=lifespan,
    )
    app.state.context = context
    app.state.job_router = build_router(service_id=settings.service_id)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(BlueprintError, _blueprint_error_handler)
    app.include_router(workspaces.router)
    app.include_router(jobs.router)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """
        Liveness check; unauthenticated.
        """
        return HealthResponse(
            status="ok",
            service=SERVICE_NAME,
            version=app.version,
            service_id=settings.service_id,
        )

    return app


app = create_app()
