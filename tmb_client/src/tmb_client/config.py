"""
SDK configuration for the Tangle MCP blueprint client (tmb_client).

Environment variables (client-side):
  - BLUEPRINT_API_URL: Base URL of the blueprint server (default: https://127.0.0.1:8080)
  - BLUEPRINT_API_KEY: API key if the server requires one
  - BLUEPRINT_API_KEY_HEADER: Header name for the API key (default: X-API-Key)
  - TMB_REQUEST_TIMEOUT: Default HTTP timeout in seconds for short calls (default: 60)
  - TMB_CREATE_TIMEOUT: Default timeout for create calls, which wait for health (default: 120)
  - TMB_ALLOW_INSECURE_HTTP: Explicit opt-in to allow http:// base URLs (default: false)

Notes:
- This module does not modify process environment variables.
- Values are read once and cached; call get_settings.cache_clear() to reload.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Optional
from urllib.parse import urlparse

from .constants import DEFAULT_API_KEY_HEADER, DEFAULT_BASE_URL


def _str2bool(val: Optional[str], default: bool) -> bool:
    if val is None:
        return default
    s = val.strip().lower()
    return s in ("1", "true", "yes", "y", "on")


def _int_env(name: str, default_s: int) -> int:
    try:
        return int(os.getenv(name, str(default_s)))
    except ValueError:
        return default_s


@dataclass(frozen=True)
class ClientConfig:
    """
    Immutable configuration for the blueprint Python SDK.
    Construct via ClientConfig.from_env() or use get_settings().
    """

    base_url: str
    allow_insecure_http: bool

    api_key: Optional[str]
    api_key_header_name: str

    request_timeout: int
    create_timeout: int

    @property
    def base_url_normalized(self) -> str:
        return (self.base_url or "").rstrip("/")

    def auth_headers(self) -> Dict[str, str]:
        if not self.api_key:
            return {}
        return {self.api_key_header_name: self.api_key}

    @staticmethod
    def from_env() -> "ClientConfig":
        base_url = os.getenv("BLUEPRINT_API_URL") or DEFAULT_BASE_URL
        parsed = urlparse(base_url)
        if not parsed.scheme:
            raise ValueError(f"Invalid BLUEPRINT_API_URL (missing scheme): {base_url!r}")
        scheme = parsed.scheme.lower()

        allow_insecure_http = _str2bool(os.getenv("TMB_ALLOW_INSECURE_HTTP"), default=False)
        if scheme not in ("http", "https"):
            raise ValueError(f"Unsupported base_url scheme {scheme!r}; only http/https are supported")
        if scheme == "http" and not allow_insecure_http:
            raise ValueError(
                "Insecure HTTP base_url detected. "
                "Set TMB_ALLOW_INSECURE_HTTP=true only when running in a trusted development environment."
            )

        return ClientConfig(
            base_url=base_url,
            allow_insecure_http=allow_insecure_http,
            api_key=os.getenv("BLUEPRINT_API_KEY") or None,
            api_key_header_name=os.getenv("BLUEPRINT_API_KEY_HEADER", DEFAULT_API_KEY_HEADER),
            request_timeout=_int_env("TMB_REQUEST_TIMEOUT", 60),
            create_timeout=_int_env("TMB_CREATE_TIMEOUT", 120),
        )


@lru_cache(maxsize=1)
def get_settings() -> ClientConfig:
    """
    Cached accessor for the SDK configuration.
    """
    return ClientConfig.from_env()


__all__ = ["ClientConfig", "get_settings"]
