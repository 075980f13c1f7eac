from __future__ import annotations

"""
Pydantic models for the blueprint server.

These models define the contracts for:
- Job parameters (create workspace / create project)
- The internal ProvisionRequest consumed by the lifecycle manager
- HTTP request and response bodies
"""

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Unsigned 64-bit bound for service ids
MAX_SERVICE_ID = 2**64 - 1


# -----------------------
# Enums and simple types
# -----------------------

class ResourceTier(str, enum.Enum):
    """
    Named resource-limit profile. Serialized in lowercase.
    """

    small = "small"
    medium = "medium"
    large = "large"


class ProvisionState(str, enum.Enum):
    created = "created"
    starting = "starting"
    health_checking = "health_checking"
    ready = "ready"
    timed_out = "timed_out"


def _validate_owner_key(v: str) -> str:
    v = (v or "").strip()
    if not v:
        raise ValueError("owner_public_key must be a non-empty string")
    if any(ch.isspace() for ch in v):
        raise ValueError("owner_public_key must not contain whitespace")
    return v


def _coerce_tier(v: Any) -> Any:
    if isinstance(v, str):
        return v.strip().lower()
    return v


# -----------------------
# Job parameters
# -----------------------

class CreateWorkspaceParams(BaseModel):
    """
    Parameters of the create-workspace job.
    """

    owner_public_key: str = Field(..., description="Owner identity (e.g. an SS58 encoded sr25519 public key).")
    tier: ResourceTier = Field(default=ResourceTier.medium)
    workspace_name: str = Field(default="", max_length=128)

    @field_validator("owner_public_key")
    def v_owner(cls, v: str) -> str:
        return _validate_owner_key(v)

    @field_validator("tier", mode="before")
    def v_tier(cls, v: Any) -> Any:
        return _coerce_tier(v)

    @field_validator("workspace_name")
    def v_workspace_name(cls, v: str) -> str:
        return (v or "").strip()


class CreateProjectParams(BaseModel):
    owner_public_key: str
    tier: ResourceTier = ResourceTier.medium

    @field_validator("owner_public_key")
    def v_owner(cls, v: str) -> str:
        return _validate_owner_key(v)

    @field_validator("tier", mode="before")
    def v_tier(cls, v: Any) -> Any:
        return _coerce_tier(v)


class ProvisionRequest(BaseModel):
    """
    One provision call as seen by the lifecycle manager. Consumed once, never persisted.
    """

    model_config = ConfigDict(frozen=True)

    owner_public_key: str
    tier: ResourceTier
    workspace_name: str = ""
    service_id: int = Field(..., ge=0, le=MAX_SERVICE_ID)


# -----------------------
# HTTP contracts
# -----------------------

class WorkspaceCreateResponse(BaseModel):
    service_id: int
    url: str = Field(..., description="Externally reachable SSE endpoint")
    status: ProvisionState
    container_name: str
    host_port: int


class WorkspaceDeleteResponse(BaseModel):
    service_id: int
    deleted: bool


class JobCallPayload(BaseModel):
    """
    Generic job call body: the target service id and the job-specific arguments.
    """

    service_id: int = Field(..., ge=0, le=MAX_SERVICE_ID)
    args: Optional[Any] = None


class JobResultResponse(BaseModel):
    job_id: int
    service_id: int
    result: Any


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    service_id: Optional[int] = None


__all__ = [
    "MAX_SERVICE_ID",
    "ResourceTier",
    "ProvisionState",
    "CreateWorkspaceParams",
    "CreateProjectParams",
    "ProvisionRequest",
    "WorkspaceCreateResponse",
    "WorkspaceDeleteResponse",
    "JobCallPayload",
    "JobResultResponse",
    "HealthResponse",
]
