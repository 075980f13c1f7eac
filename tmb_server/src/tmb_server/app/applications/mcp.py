from __future__ import annotations

"""
MCP server container profiles.

- McpWorkspaceApplication: 'mcp-svc-<id>' from the workspace image, data under workspaces/
- McpProjectApplication: 'mcp-<id>' from the project image running the configured
  command (default 'serve'), data under projects/
"""

from typing import List, Optional

from tmb_server.app.applications.base import ContainerApplication
from tmb_server.app.config import ServerConfig


class McpWorkspaceApplication(ContainerApplication):
    @property
    def kind(self) -> str:
        return "workspace"

    @property
    def name_prefix(self) -> str:
        return "mcp-svc-"

    @property
    def data_subdir(self) -> str:
        return "workspaces"

    def default_image(self, settings: ServerConfig) -> str:
        return settings.workspace_image


class McpProjectApplication(ContainerApplication):
    @property
    def kind(self) -> str:
        return "project"

    @property
    def name_prefix(self) -> str:
        return "mcp-"

    @property
    def data_subdir(self) -> str:
        return "projects"

    def default_image(self, settings: ServerConfig) -> str:
        return settings.project_image

    def command(self, settings: ServerConfig) -> Optional[List[str]]:
        return list(settings.project_command) or None


__all__ = ["McpWorkspaceApplication", "McpProjectApplication"]
