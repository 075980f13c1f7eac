from __future__ import annotations

from tmb_server.app.applications import resolve_application
from tmb_server.app.deps import BlueprintContext


async def destroy_workspace(ctx: BlueprintContext, service_id: int) -> bool:
    """
    Remove the workspace container and its data directory. Idempotent.
    """
    return await ctx.lifecycle.destroy(service_id, resolve_application("workspace"))


__all__ = ["destroy_workspace"]
