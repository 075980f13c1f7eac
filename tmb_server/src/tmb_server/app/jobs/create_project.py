from __future__ import annotations

from tmb_server.app.applications import resolve_application
from tmb_server.app.deps import BlueprintContext
from tmb_server.app.models import CreateProjectParams, ProvisionRequest
from tmb_server.app.workspaces.core import endpoint_url
from tmb_server.app.workspaces.lifecycle import ManagedContainer


async def provision_project(ctx: BlueprintContext, service_id: int, params: CreateProjectParams) -> ManagedContainer:
    request = ProvisionRequest(
        owner_public_key=params.owner_public_key,
        tier=params.tier,
        service_id=service_id,
    )
    return await ctx.lifecycle.provision(request, resolve_application("project"))


async def create_project(ctx: BlueprintContext, service_id: int, params: CreateProjectParams) -> str:
    managed = await provision_project(ctx, service_id, params)
    return endpoint_url(ctx.settings.public_host, managed.host_port)


__all__ = ["provision_project", "create_project"]
