from __future__ import annotations

"""
Applications package initializer.

Re-exports the container profiles and resolves them by kind:

from tmb_server.app.applications import resolve_application

workspace_app = resolve_application("workspace")
"""

from typing import Dict

from tmb_server.app.applications.base import ContainerApplication
from tmb_server.app.applications.mcp import McpProjectApplication, McpWorkspaceApplication

_APPLICATIONS: Dict[str, ContainerApplication] = {
    "workspace": McpWorkspaceApplication(),
    "project": McpProjectApplication(),
}


def resolve_application(kind: str) -> ContainerApplication:
    """
    Return the profile for a kind ('workspace' or 'project').

    Raises:
        ValueError for unknown kinds.
    """
    try:
        return _APPLICATIONS[kind]
    except KeyError:
        raise ValueError(f"Unknown application kind: {kind!r}") from None


__all__ = [
    "ContainerApplication",
    "McpWorkspaceApplication",
    "McpProjectApplication",
    "resolve_application",
]
