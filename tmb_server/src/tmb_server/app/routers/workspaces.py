from __future__ import annotations

"""
Workspace and project lifecycle routes.

- POST   /workspaces/{service_id}  provision and wait until healthy (201)
- DELETE /workspaces/{service_id}  idempotent teardown
- POST   /projects/{service_id}, DELETE /projects/{service_id} likewise

Requests for a service id other than BLUEPRINT_SERVICE_ID (when set) are rejected
with 403. Blueprint errors propagate to the app-level handler, which maps them to their
HTTP status.
"""

from fastapi import APIRouter, Body, Depends, Path, status

from tmb_server.app.deps import BlueprintContext, enforce_api_key, enforce_service_id, get_context
from tmb_server.app.jobs.create_project import provision_project
from tmb_server.app.jobs.create_workspace import provision_workspace
from tmb_server.app.jobs.destroy_project import destroy_project
from tmb_server.app.jobs.destroy_workspace import destroy_workspace
from tmb_server.app.models import (
    MAX_SERVICE_ID,
    CreateProjectParams,
    CreateWorkspaceParams,
    WorkspaceCreateResponse,
    WorkspaceDeleteResponse,
)
from tmb_server.app.workspaces.core import endpoint_url
from tmb_server.app.workspaces.lifecycle import ManagedContainer

router = APIRouter(dependencies=[Depends(enforce_api_key), Depends(enforce_service_id)])

_ServiceId = Path(..., ge=0, le=MAX_SERVICE_ID, description="Blueprint service instance id")


def _create_response(ctx: BlueprintContext, managed: ManagedContainer) -> WorkspaceCreateResponse:
    return WorkspaceCreateResponse(
        service_id=managed.service_id,
        url=endpoint_url(ctx.settings.public_host, managed.host_port),
        status=managed.state,
        container_name=managed.name,
        host_port=managed.host_port,
    )


@router.post(
    "/workspaces/{service_id}",
    response_model=WorkspaceCreateResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["workspaces"],
)
async def create_workspace_route(
    service_id: int = _ServiceId,
    payload: CreateWorkspaceParams = Body(...),
    ctx: BlueprintContext = Depends(get_context),
) -> WorkspaceCreateResponse:
    managed = await provision_workspace(ctx, service_id, payload)
    return _create_response(ctx, managed)


@router.delete("/workspaces/{service_id}", response_model=WorkspaceDeleteResponse, tags=["workspaces"])
async def delete_workspace_route(
    service_id: int = _ServiceId,
    ctx: BlueprintContext = Depends(get_context),
) -> WorkspaceDeleteResponse:
    deleted = await destroy_workspace(ctx, service_id)
    return WorkspaceDeleteResponse(service_id=service_id, deleted=deleted)


@router.post(
    "/projects/{service_id}",
    response_model=WorkspaceCreateResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["projects"],
)
async def create_project_route(
    service_id: int = _ServiceId,
    payload: CreateProjectParams = Body(...),
    ctx: BlueprintContext = Depends(get_context),
) -> WorkspaceCreateResponse:
    managed = await provision_project(ctx, service_id, payload)
    return _create_response(ctx, managed)


@router.delete("/projects/{service_id}", response_model=WorkspaceDeleteResponse, tags=["projects"])
async def delete_project_route(
    service_id: int = _ServiceId,
    ctx: BlueprintContext = Depends(get_context),
) -> WorkspaceDeleteResponse:
    deleted = await destroy_project(ctx, service_id)
    return WorkspaceDeleteResponse(service_id=service_id, deleted=deleted)
