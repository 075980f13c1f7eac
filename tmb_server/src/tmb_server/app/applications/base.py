from __future__ import annotations

"""
Base abstractions for the applications package.

A ContainerApplication describes one kind of managed container (workspace or
project): its name prefix, data subdirectory, image, command, environment,
labels and optional healthcheck. The lifecycle manager is generic over it.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from tmb_server.app.config import ServerConfig
from tmb_server.app.models import ProvisionRequest
from tmb_server.app.workspaces.core import (
    LABEL_CREATED_AT,
    LABEL_HOST_PORT,
    LABEL_KIND,
    LABEL_MANAGED,
    LABEL_OWNER,
    LABEL_SERVICE_ID,
    LABEL_STORAGE_LIMIT,
    LABEL_TIER,
    LABEL_WORKSPACE_NAME,
    container_name,
    now_utc_iso,
)
from tmb_server.app.workspaces.tiers import limits_for

_NANOS = 1_000_000_000


class ContainerApplication(ABC):
    """
    Abstract interface for kind-specific container behavior.
    """

    @property
    @abstractmethod
    def kind(self) -> str:
        """
        Short kind identifier, recorded in the kind label ('workspace', 'project').
        """
        raise NotImplementedError

    @property
    @abstractmethod
    def name_prefix(self) -> str:
        raise NotImplementedError

    @property
    @abstractmethod
    def data_subdir(self) -> str:
        """
        Directory under the data root holding one subdirectory per service id.
        """
        raise NotImplementedError

    @abstractmethod
    def default_image(self, settings: ServerConfig) -> str:
        raise NotImplementedError

    def command(self, settings: ServerConfig) -> Optional[List[str]]:
        """
        Container command override. Default: the image's own entrypoint/cmd.
        """
        return None

    def container_name(self, service_id: int) -> str:
        return container_name(service_id, self.name_prefix)

    def build_environment(self, request: ProvisionRequest, settings: ServerConfig) -> Dict[str, str]:
        return {
            "OWNER_PUBLIC_KEY": request.owner_public_key,
            "PORT": str(settings.container_port),
        }

    def labels(self, request: ProvisionRequest, host_port: int) -> Dict[str, str]:
        limits = limits_for(request.tier)
        return {
            LABEL_MANAGED: "true",
            LABEL_KIND: self.kind,
            LABEL_SERVICE_ID: str(request.service_id),
            LABEL_TIER: request.tier.value,
            LABEL_OWNER: request.owner_public_key,
            LABEL_WORKSPACE_NAME: request.workspace_name,
            LABEL_HOST_PORT: str(host_port),
            LABEL_STORAGE_LIMIT: str(limits.storage),
            LABEL_CREATED_AT: now_utc_iso(),
        }

    def healthcheck(self, settings: ServerConfig) -> Optional[Dict[str, object]]:
        """
        Docker healthcheck override built from MCP_HEALTHCHECK_CMD. When unset the
        image's HEALTHCHECK applies.
        """
        if not settings.healthcheck_command:
            return None
        interval_ns = int(settings.health_interval_seconds * _NANOS)
        return {
            "test": ["CMD-SHELL", settings.healthcheck_command],
            "interval": interval_ns,
            "timeout": max(interval_ns, _NANOS),
            "retries": 3,
            "start_period": 0,
        }
