"""
Unified server configuration for the Tangle MCP blueprint (tmb_server).

This module centralizes:
- Defaults for all server settings
- Loading from environment variables
- Optional .env file hydration via python-dotenv (only for allowed keys)
- Helpers for the derived values used when creating containers

Usage:
    from tmb_server.app.config import get_settings

    settings = get_settings()
    print(settings.workspace_image)

Notes:
- Environment variables always take precedence over the .env file.
- get_settings() is cached; call get_settings.cache_clear() after changing
  the environment in tests.
"""

from __future__ import annotations

import logging
import os
import shlex
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import dotenv_values


_LOGGER = logging.getLogger("tangle_mcp")

# ----------------------------
# Helpers: env, parsing, types
# ----------------------------

_ALLOWED_DOTENV_KEYS = {
    # Blueprint environment
    "BLUEPRINT_DATA_DIR",
    "BLUEPRINT_SERVICE_ID",
    "BLUEPRINT_VERSION",
    # Auth
    "BLUEPRINT_API_KEY",
    "BLUEPRINT_API_KEYS",
    "BLUEPRINT_API_KEY_HEADER",
    # Container defaults
    "MCP_WORKSPACE_IMAGE",
    "MCP_PROJECT_IMAGE",
    "MCP_PROJECT_COMMAND",
    "MCP_CONTAINER_PORT",
    "MCP_CONTAINER_DATA_DIR",
    "MCP_HEALTHCHECK_CMD",
    # Publishing
    "MCP_HOST_PORT_MIN",
    "MCP_HOST_PORT_MAX",
    "MCP_PUBLIC_HOST",
    # Lifecycle timing
    "MCP_HEALTH_TIMEOUT_SECONDS",
    "MCP_HEALTH_INTERVAL_SECONDS",
    "MCP_STOP_TIMEOUT_SECONDS",
    # Tier enforcement
    "MCP_ENFORCE_TIER_LIMITS",
    "MCP_ENFORCE_STORAGE_LIMIT",
    # Docker settings
    "DOCKER_CLIENT_TIMEOUT",
    "DOCKER_PLATFORM",
    # Server behavior
    "CORS_ALLOW_ORIGINS",
    "LOG_LEVEL",
}


def _str2bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    s = val.strip().lower()
    return s in ("1", "true", "yes", "y", "on")


def _split_csv(s: str | None) -> List[str]:
    if not s:
        return []
    return [part.strip() for part in s.split(",") if part.strip()]


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        _LOGGER.warning("Ignoring invalid integer for %s=%r; using %s", name, raw, default)
        return default


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        _LOGGER.warning("Ignoring invalid number for %s=%r; using %s", name, raw, default)
        return default


def _load_dotenv_into_env(dotenv_path: Optional[Path] = None, allowed_keys: Optional[set[str]] = None) -> None:
    """
    Hydrate os.environ from a .env file:
    - Uses the given path, else the nearest .env found walking up from this file
    - Only sets allowed keys that are not already present in os.environ
    """
    if dotenv_path is not None:
        path: Optional[Path] = Path(dotenv_path)
    else:
        path = None
        here = Path(__file__).resolve()
        for ancestor in list(here.parents)[:5]:
            candidate = ancestor / ".env"
            if candidate.is_file():
                path = candidate
                break
    if path is None or not path.is_file():
        return

    allow = set(allowed_keys or _ALLOWED_DOTENV_KEYS)
    for key, val in dotenv_values(path).items():
        if val is None:
            continue
        if key in allow and key not in os.environ:
            os.environ[key] = val


# ----------------------------
# Unified configuration object
# ----------------------------

@dataclass(frozen=True)
class ServerConfig:
    """
    Unified configuration for the blueprint server.

    All fields are immutable once created. Use from_env() to construct an instance.
    """

    # Blueprint environment
    data_dir: Optional[Path]
    service_id: Optional[int]
    service_version: str

    # Security / auth
    api_keys: List[str]
    api_key_header_name: str

    # Container defaults
    workspace_image: str
    project_image: str
    project_command: List[str]
    container_port: int
    container_data_dir: str
    healthcheck_command: Optional[str]

    # Publishing
    host_port_min: int
    host_port_max: int
    public_host: str

    # Lifecycle timing
    health_timeout_seconds: float
    health_interval_seconds: float
    stop_timeout_seconds: int

    # Tier enforcement
    enforce_tier_limits: bool
    enforce_storage_limit: bool

    # Docker client
    docker_client_timeout: int
    docker_platform: Optional[str]

    # Server behavior
    cors_allow_origins: List[str]
    log_level: str

    @staticmethod
    def from_env(dotenv: bool = True, dotenv_path: Optional[str | Path] = None) -> "ServerConfig":
        """
        Construct ServerConfig with values pulled from the current environment,
        optionally hydrated by a .env file if dotenv=True.
        """
        if dotenv:
            _load_dotenv_into_env(Path(dotenv_path) if dotenv_path else None, _ALLOWED_DOTENV_KEYS)

        data_dir_raw = os.getenv("BLUEPRINT_DATA_DIR") or None
        data_dir = Path(data_dir_raw).expanduser() if data_dir_raw else None

        service_id_raw = (os.getenv("BLUEPRINT_SERVICE_ID") or "").strip()
        service_id: Optional[int] = None
        if service_id_raw:
            try:
                service_id = int(service_id_raw)
            except ValueError as exc:
                raise ValueError(f"BLUEPRINT_SERVICE_ID must be an integer, got {service_id_raw!r}") from exc

        # Security
        api_keys = _split_csv(os.getenv("BLUEPRINT_API_KEYS"))
        api_key = os.getenv("BLUEPRINT_API_KEY") or None
        if api_key and api_key not in api_keys:
            api_keys.insert(0, api_key)

        # Container defaults
        project_command = shlex.split(os.getenv("MCP_PROJECT_COMMAND", "serve"))
        healthcheck_command = os.getenv("MCP_HEALTHCHECK_CMD") or None

        # Publishing
        port_min = _int_env("MCP_HOST_PORT_MIN", 10000)
        port_max = _int_env("MCP_HOST_PORT_MAX", 20000)
        if not (0 < port_min < port_max <= 65536):
            raise ValueError(
                f"Invalid host port range [{port_min}, {port_max}); expected 0 < min < max <= 65536"
            )

        # Lifecycle timing
        health_timeout = max(1.0, _float_env("MCP_HEALTH_TIMEOUT_SECONDS", 30.0))
        health_interval = max(0.05, _float_env("MCP_HEALTH_INTERVAL_SECONDS", 1.0))
        stop_timeout = max(0, _int_env("MCP_STOP_TIMEOUT_SECONDS", 10))

        return ServerConfig(
            data_dir=data_dir,
            service_id=service_id,
            service_version=os.getenv("BLUEPRINT_VERSION", "0.1.0"),
            api_keys=api_keys,
            api_key_header_name=os.getenv("BLUEPRINT_API_KEY_HEADER", "X-API-Key"),
            workspace_image=os.getenv("MCP_WORKSPACE_IMAGE", "tangle-mcp:0.1.0"),
            project_image=os.getenv("MCP_PROJECT_IMAGE", "mcp-server:latest"),
            project_command=project_command,
            container_port=_int_env("MCP_CONTAINER_PORT", 3000),
            container_data_dir=os.getenv("MCP_CONTAINER_DATA_DIR", "/blueprint"),
            healthcheck_command=healthcheck_command,
            host_port_min=port_min,
            host_port_max=port_max,
            public_host=os.getenv("MCP_PUBLIC_HOST", "localhost"),
            health_timeout_seconds=health_timeout,
            health_interval_seconds=health_interval,
            stop_timeout_seconds=stop_timeout,
            enforce_tier_limits=_str2bool(os.getenv("MCP_ENFORCE_TIER_LIMITS"), default=True),
            enforce_storage_limit=_str2bool(os.getenv("MCP_ENFORCE_STORAGE_LIMIT"), default=False),
            docker_client_timeout=_int_env("DOCKER_CLIENT_TIMEOUT", 120),
            docker_platform=os.getenv("DOCKER_PLATFORM") or None,
            cors_allow_origins=_split_csv(os.getenv("CORS_ALLOW_ORIGINS", "*")) or ["*"],
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    # ----------------------------
    # Derived helpers / utilities
    # ----------------------------

    @property
    def container_port_key(self) -> str:
        """
        Docker port key for the in-container listen port (e.g. '3000/tcp').
        """
        return f"{self.container_port}/tcp"

    @property
    def auth_enabled(self) -> bool:
        return bool(self.api_keys)


# ----------------------------
# Cached accessor
# ----------------------------

@lru_cache(maxsize=1)
def get_settings() -> ServerConfig:
    """
    Cached settings accessor. Safe to import and call across the app.
    """
    return ServerConfig.from_env(dotenv=True)


__all__ = [
    "ServerConfig",
    "get_settings",
]
