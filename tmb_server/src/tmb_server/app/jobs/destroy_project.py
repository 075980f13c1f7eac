from __future__ import annotations

from tmb_server.app.applications import resolve_application
from tmb_server.app.deps import BlueprintContext


async def destroy_project(ctx: BlueprintContext, service_id: int) -> bool:
    return await ctx.lifecycle.destroy(service_id, resolve_application("project"))


__all__ = ["destroy_project"]
