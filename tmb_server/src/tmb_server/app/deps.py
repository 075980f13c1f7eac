from __future__ import annotations

"""
Shared FastAPI dependencies and the explicit handler context.

Contents:
- BlueprintContext: settings, runtime handle and lifecycle manager passed to
  every job handler (no ambient singletons).
- build_context(): wire a context from settings and a runtime.
- docker_runtime(): DockerRuntime factory configured via environment.
- get_context(): FastAPI dependency returning the app's context.
- enforce_api_key(): API key authentication dependency for routes.
- check_service_id() / enforce_service_id(): reject calls addressed to another
  service instance when BLUEPRINT_SERVICE_ID is set.
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Path, Request, status

from tmb_server.app.config import ServerConfig, get_settings
from tmb_server.app.errors import ServiceIdMismatch
from tmb_server.app.models import MAX_SERVICE_ID
from tmb_server.app.workspaces.docker_utils import DockerRuntime
from tmb_server.app.workspaces.lifecycle import Clock, LifecycleManager, Sleep
from tmb_server.app.workspaces.ports import PortAllocator
from tmb_server.app.workspaces.runtime import ContainerRuntime
from tmb_server.app.workspaces.storage import WorkspaceStore

logger = logging.getLogger("tangle_mcp")


# --------------------------
# Handler context
# --------------------------

@dataclass
class BlueprintContext:
    settings: ServerConfig
    runtime: ContainerRuntime
    lifecycle: LifecycleManager

    @property
    def ports(self) -> PortAllocator:
        return self.lifecycle.ports

    @property
    def store(self) -> Optional[WorkspaceStore]:
        return self.lifecycle.store


def build_context(
    settings: Optional[ServerConfig] = None,
    runtime: Optional[ContainerRuntime] = None,
    *,
    rng: Optional[random.Random] = None,
    clock: Clock = time.monotonic,
    sleep: Sleep = asyncio.sleep,
) -> BlueprintContext:
    """
    Build the handler context. Connects to Docker when no runtime is given.
    """
    cfg = settings or get_settings()
    rt = runtime if runtime is not None else docker_runtime(cfg)
    ports = PortAllocator(cfg.host_port_min, cfg.host_port_max, rng=rng)
    store = WorkspaceStore(cfg.data_dir) if cfg.data_dir is not None else None
    if store is None:
        logger.warning("BLUEPRINT_DATA_DIR is not set; containers will run without a data bind mount")
    lifecycle = LifecycleManager(cfg, rt, ports, store, clock=clock, sleep=sleep)
    return BlueprintContext(settings=cfg, runtime=rt, lifecycle=lifecycle)


# --------------------------
# Docker runtime factory
# --------------------------

def docker_runtime(settings: ServerConfig) -> DockerRuntime:
    """
    Provide a DockerRuntime configured via environment.

    Note:
    - Caller is responsible for closing it (BlueprintContext owners call runtime.close()).
    """
    return DockerRuntime.from_env(timeout=settings.docker_client_timeout)


# --------------------------
# FastAPI dependencies
# --------------------------

def get_context(request: Request) -> BlueprintContext:
    ctx = getattr(request.app.state, "context", None)
    if ctx is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is starting up.",
        )
    return ctx


async def enforce_api_key(request: Request, ctx: BlueprintContext = Depends(get_context)) -> None:
    """
    Enforce API key authentication using the configured header.

    Behavior:
    - If BLUEPRINT_API_KEY or BLUEPRINT_API_KEYS are set, requests must provide an exact match of one of the configured keys.
    - If neither is set, authentication is disabled (accept all).
    """
    settings = ctx.settings
    if not settings.auth_enabled:
        return
    provided_key = request.headers.get(settings.api_key_header_name)
    if not provided_key or provided_key not in settings.api_keys:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key.",
        )


def check_service_id(expected: Optional[int], service_id: int) -> None:
    """
    Raise ServiceIdMismatch when this instance is pinned to another service id.
    """
    if expected is not None and service_id != expected:
        raise ServiceIdMismatch(
            f"Request targets service {service_id}, this instance serves {expected}",
            service_id=service_id,
        )


async def enforce_service_id(
    service_id: int = Path(..., ge=0, le=MAX_SERVICE_ID),
    ctx: BlueprintContext = Depends(get_context),
) -> None:
    check_service_id(ctx.settings.service_id, service_id)


__all__ = [
    "BlueprintContext",
    "build_context",
    "docker_runtime",
    "get_context",
    "enforce_api_key",
    "check_service_id",
    "enforce_service_id",
]
