"""
tmb_server package

The Tangle MCP blueprint server: provisions and tears down per-tenant MCP
server containers. Importing the package does not import the FastAPI app.

Public surface:
- __version__: string version of the server package

To run the service with uvicorn (example):
    uvicorn tmb_server.app.main:app --host 127.0.0.1 --port 8080
"""

from tmb_server.app import __version__

__all__ = ["__version__"]
