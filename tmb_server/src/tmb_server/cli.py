"""Command-line entry points for tmb_server."""

from __future__ import annotations

import sys

from uvicorn.main import main as uvicorn_main


def main() -> None:
    """Delegate to uvicorn's CLI entry point.

    Usage: ``tmb-server tmb_server.app.main:app --host 0.0.0.0 --port 8080``
    """

    sys.exit(uvicorn_main())
