from __future__ import annotations

from tmb_server.app.applications import resolve_application
from tmb_server.app.deps import BlueprintContext
from tmb_server.app.models import CreateWorkspaceParams, ProvisionRequest
from tmb_server.app.workspaces.core import endpoint_url
from tmb_server.app.workspaces.lifecycle import ManagedContainer


async def provision_workspace(
    ctx: BlueprintContext, service_id: int, params: CreateWorkspaceParams
) -> ManagedContainer:
    request = ProvisionRequest(
        owner_public_key=params.owner_public_key,
        tier=params.tier,
        workspace_name=params.workspace_name,
        service_id=service_id,
    )
    return await ctx.lifecycle.provision(request, resolve_application("workspace"))


async def create_workspace(ctx: BlueprintContext, service_id: int, params: CreateWorkspaceParams) -> str:
    """
    Provision the workspace container and return its SSE endpoint URL.
    """
    managed = await provision_workspace(ctx, service_id, params)
    return endpoint_url(ctx.settings.public_host, managed.host_port)


__all__ = ["provision_workspace", "create_workspace"]
