from __future__ import annotations

"""
Error taxonomy for the blueprint server.

Every error raised by the lifecycle manager, the job router, or the container
runtime adapter derives from BlueprintError. Each class carries the HTTP status
the FastAPI layer maps it to, so routers never need to translate errors by hand.

Propagation rules:
- RuntimeUnavailable: the container engine cannot be reached. Surfaced as-is.
- RuntimeRequestError: the engine answered but rejected a call. The lifecycle
  manager re-raises it as ProvisionFailed or DestroyFailed depending on the path.
- HealthCheckTimeout: raised only after cleanup of the container was attempted.
- Best-effort sub-failures (stop before remove, data directory deletion) are
  logged by the caller and never raised.
"""

from typing import Optional


class BlueprintError(Exception):
    """
    Base class for all blueprint server errors.
    """

    http_status: int = 500

    def __init__(self, message: str, *, service_id: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.service_id = service_id

    def __str__(self) -> str:
        return self.message


# --------------------------
# Container runtime errors
# --------------------------

class RuntimeUnavailable(BlueprintError):
    """The container engine could not be reached."""

    http_status = 503


class RuntimeRequestError(BlueprintError):
    """The container engine rejected a request."""

    http_status = 502


class ContainerNotFound(RuntimeRequestError):
    http_status = 404


class ContainerConflict(RuntimeRequestError):
    """A container with the requested name already exists."""

    http_status = 409


# --------------------------
# Lifecycle errors
# --------------------------

class ProvisionFailed(BlueprintError):
    """Container creation or start was rejected. The caller may resubmit."""

    http_status = 409


class HealthCheckTimeout(BlueprintError):
    """The container never reported healthy before the deadline."""

    http_status = 504


class DestroyFailed(BlueprintError):
    """Forced removal of an identified container failed."""

    http_status = 500


# --------------------------
# Job dispatch errors
# --------------------------

class JobNotFound(BlueprintError):
    http_status = 404


class ServiceIdMismatch(BlueprintError):
    """The job call targets a service this instance does not serve."""

    http_status = 403


__all__ = [
    "BlueprintError",
    "RuntimeUnavailable",
    "RuntimeRequestError",
    "ContainerNotFound",
    "ContainerConflict",
    "ProvisionFailed",
    "HealthCheckTimeout",
    "DestroyFailed",
    "JobNotFound",
    "ServiceIdMismatch",
]
